import dataclasses
import pytest
from tracker.errors import InvalidActionError
from tracker.schemas import Position, TrackerConfig
from tracker.services.grid import Grid
from tracker.services.masks import build_cross_kernel, build_diamond_kernel, build_mask_table


def P(x, y):
    return Position(x=x, y=y)


@pytest.fixture
def table():
    return build_mask_table(15, 15)


def test_sector_of(table):
    assert table.sector_of(P(0, 0)) == 1
    assert table.sector_of(P(5, 0)) == 2
    assert table.sector_of(P(14, 0)) == 3
    assert table.sector_of(P(0, 5)) == 4
    assert table.sector_of(P(7, 7)) == 5
    assert table.sector_of(P(14, 14)) == 9
    with pytest.raises(InvalidActionError):
        table.sector_of(P(15, 0))


def test_sector_mask(table):
    m = table.sector_mask(5)
    assert m.count() == 25
    assert m.get(P(7, 7))
    assert m.get(P(5, 5)) and m.get(P(9, 9))
    assert not m.get(P(4, 7))
    assert not m.get(P(10, 7))
    for sector in range(1, 10):
        for pos in table.sector_mask(sector).iter_matches():
            assert table.sector_of(pos) == sector
    with pytest.raises(InvalidActionError):
        table.sector_mask(0)
    with pytest.raises(InvalidActionError):
        table.sector_mask(10)


def test_sectors_partition_map(table):
    union = Grid(15, 15)
    total = 0
    for m in table.sectors:
        union = union | m
        total += m.count()
    assert union == Grid.full(15, 15)
    assert total == 225


def test_sectors_uneven_map():
    # 割り切れないマップでも全セルがどこかの区画に入る
    t = build_mask_table(10, 10)
    assert t.sector_of(P(9, 9)) == 9
    assert t.sector_of(P(3, 3)) == 1
    assert t.sector_of(P(4, 4)) == 5
    union = Grid(10, 10)
    for m in t.sectors:
        union = union | m
    assert union == Grid.full(10, 10)


def test_torpedo_kernel(table):
    k = build_diamond_kernel(4)
    assert k.origin == P(4, 4)
    assert k.grid.count() == 41
    assert table.torpedo_area(P(7, 7)).count() == 41
    corner = table.torpedo_area(P(0, 0))
    assert corner.count() == 15
    assert corner.get(P(4, 0)) and corner.get(P(2, 2))
    assert not corner.get(P(3, 2))


def test_silence_kernel():
    k = build_cross_kernel(4, include_origin=True)
    assert k.grid.count() == 17
    assert k.grid.get(k.origin)
    k0 = build_cross_kernel(4, include_origin=False)
    assert k0.grid.count() == 16
    assert not k0.grid.get(k0.origin)
    # 斜めは含まない
    assert not k.grid.get(P(5, 5))


def test_silence_area(table):
    a = table.silence_area(P(7, 7))
    assert a.count() == 17
    assert a.get(P(7, 3)) and a.get(P(11, 7)) and a.get(P(7, 7))
    assert not a.get(P(8, 8))
    assert not a.get(P(7, 2))
    corner = table.silence_area(P(0, 0))
    assert corner.count() == 9


def test_blast_area(table):
    assert table.blast_area(P(7, 7)).count() == 9
    ring = table.blast_area(P(7, 7), include_center=False)
    assert ring.count() == 8
    assert not ring.get(P(7, 7))
    assert table.blast_area(P(0, 0), include_center=False).count() == 3
    assert table.blast_area(P(14, 7), include_center=False).count() == 5


def test_config_changes_table():
    t = build_mask_table(15, 15, TrackerConfig(torpedo_range=1, silence_include_origin=False, regions_per_side=5))
    assert t.torpedo_area(P(7, 7)).count() == 5
    assert not t.silence_area(P(7, 7)).get(P(7, 7))
    assert t.sector_count == 25
    assert t.sector_mask(25).count() == 9


def test_table_is_frozen(table):
    with pytest.raises(TypeError):
        table.sectors[0].set(P(0, 0), False)
    with pytest.raises(TypeError):
        table.torpedo.grid.set(P(0, 0), False)
    with pytest.raises(dataclasses.FrozenInstanceError):
        table.W = 3  # type: ignore
    # 配置した結果は新しい Grid
    area = table.torpedo_area(P(3, 3))
    area.set(P(3, 3), False)
    assert table.torpedo_area(P(3, 3)).get(P(3, 3))
