import random
from tracker.schemas import Direction, Position
from tracker.services.grid import Grid
from tracker.services.masks import build_mask_table
from tracker.services.navigator import Navigator


def P(x, y):
    return Position(x=x, y=y)


def make(lines):
    land = Grid.from_rows(lines)
    return Navigator(land, build_mask_table(land.W, land.H), rng=random.Random(1))


def test_open_water_prefers_east():
    nav = make(["...", "...", "..."])
    nav.sync(P(1, 1))
    assert nav.legal_directions() == [Direction.E, Direction.N, Direction.W, Direction.S]
    plan = nav.plan()
    assert plan.kind == "MOVE"
    assert plan.direction == Direction.E
    assert plan.to_order() == "MOVE E TORPEDO"


def test_two_ways_picks_larger_area():
    nav = make([
        ".....",
        ".....",
        "xx.xx",
        ".....",
        "xxxxx",
    ])
    nav.sync(P(2, 2))
    assert nav.legal_directions() == [Direction.N, Direction.S]
    assert nav.free_area(Direction.N) == 10
    assert nav.free_area(Direction.S) == 5
    assert nav.choose_direction() == Direction.N


def test_keeps_heading():
    nav = make(["....."] * 5)
    nav.sync(P(2, 2))
    nav.heading = Direction.S
    assert nav.plan().direction == Direction.S


def test_trail_blocks_moves():
    nav = make(["....."] * 5)
    nav.sync(P(2, 2))
    nav.sync(P(3, 2))
    assert Direction.W not in nav.legal_directions()


def test_surface_when_boxed_in():
    nav = make(["..."])
    nav.sync(P(0, 0))
    nav.sync(P(2, 0))
    nav.sync(P(1, 0))
    assert nav.legal_directions() == []
    plan = nav.plan()
    assert plan.kind == "SURFACE"
    assert plan.sector == 2
    assert plan.to_order() == "SURFACE"
    # 航跡は消える
    assert nav.legal_directions() == [Direction.E, Direction.W]


def test_silence_when_ready():
    nav = make(["....."] * 5)
    nav.sync(P(2, 2))
    plan = nav.plan(silence_ready=True)
    assert plan.to_order() == "SILENCE E 1"


def test_choose_start_on_water():
    lines = ["xxx", "x.x", "xxx"]
    nav = make(lines)
    assert nav.choose_start() == P(1, 1)
    assert nav.legal_directions() == []
