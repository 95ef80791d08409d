import pytest
from tracker.errors import InvalidActionError
from tracker.schemas import Position
from tracker.services.belief import Area, Exact
from tracker.services.damage import DAMAGE_DIRECT, DAMAGE_NONE, DAMAGE_SPLASH, classify_damage, refine_with_damage
from tracker.services.grid import Grid
from tracker.services.masks import build_mask_table


def P(x, y):
    return Position(x=x, y=y)


@pytest.fixture
def masks():
    return build_mask_table(15, 15)


def full_area():
    return Area(Grid.full(15, 15))


def test_classify_damage():
    assert classify_damage(6, 6) == DAMAGE_NONE
    assert classify_damage(6, 7) == DAMAGE_NONE
    assert classify_damage(6, 5) == DAMAGE_SPLASH
    assert classify_damage(6, 4) == DAMAGE_DIRECT
    assert classify_damage(3, 0) == DAMAGE_DIRECT


def test_splash_keeps_neighbours_only(masks):
    b, kind = refine_with_damage(full_area(), P(7, 7), 6, 5, masks)
    assert kind == DAMAGE_SPLASH
    assert isinstance(b, Area)
    assert b.grid.count() == 8
    # 着弾点そのものにはいない
    assert not b.grid.get(P(7, 7))
    assert b.grid.get(P(6, 6)) and b.grid.get(P(8, 8))


def test_splash_at_corner(masks):
    b, _ = refine_with_damage(full_area(), P(0, 0), 6, 5, masks)
    assert isinstance(b, Area)
    assert set(b.grid.iter_matches()) == {P(1, 0), P(0, 1), P(1, 1)}


def test_splash_intersects_existing_area(masks):
    area = Area(Grid.from_cells(15, 15, [P(6, 6), P(7, 7), P(0, 0)]))
    b, _ = refine_with_damage(area, P(7, 7), 6, 5, masks)
    assert isinstance(b, Area)
    assert set(b.grid.iter_matches()) == {P(6, 6)}


def test_direct_hit_forces_exact(masks):
    b, kind = refine_with_damage(full_area(), P(3, 4), 6, 4, masks)
    assert kind == DAMAGE_DIRECT
    assert b == Exact(P(3, 4))
    b, _ = refine_with_damage(Exact(P(10, 10)), P(3, 4), 6, 4, masks)
    assert b == Exact(P(3, 4))


def test_miss_leaves_belief(masks):
    area = full_area()
    b, kind = refine_with_damage(area, P(7, 7), 6, 6, masks)
    assert kind == DAMAGE_NONE
    assert b is area


def test_miss_refinement_optional(masks):
    b, _ = refine_with_damage(full_area(), P(7, 7), 6, 6, masks, refine_on_miss=True)
    assert isinstance(b, Area)
    assert b.grid.count() == 225 - 9
    assert not b.grid.get(P(8, 8))


def test_splash_on_exact_is_noop(masks):
    b, kind = refine_with_damage(Exact(P(1, 1)), P(7, 7), 6, 5, masks)
    assert kind == DAMAGE_SPLASH
    assert b == Exact(P(1, 1))


def test_attack_outside_map(masks):
    with pytest.raises(InvalidActionError):
        refine_with_damage(full_area(), P(15, 0), 6, 5, masks)
