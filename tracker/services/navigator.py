"""
自艦の移動ルーチン (貪欲法)。

方針:
- 通過済みセルと陸を禁止セルとして持つ。
- 進める方向が1つならそれ、2つなら先の空き領域が広い方、3つ以上なら直進を優先する。
- どこにも進めなければ浮上して航跡を消す。
"""
import random
from typing import Literal, Optional
from pydantic import BaseModel
from tracker.schemas import Direction, Position
from tracker.services.grid import Grid
from tracker.services.masks import MaskTable

DIRECTION_ORDER = [Direction.E, Direction.N, Direction.W, Direction.S]

class NavPlan(BaseModel):
    kind: Literal["MOVE", "SILENCE", "SURFACE"]
    direction: Optional[Direction] = None
    distance: int = 0
    sector: Optional[int] = None

    def to_order(self, charge: str = "TORPEDO") -> str:
        if self.kind == "MOVE":
            return f"MOVE {self.direction.value} {charge}"
        if self.kind == "SILENCE":
            return f"SILENCE {self.direction.value} {self.distance}"
        return "SURFACE"

class Navigator:
    def __init__(self, obstacles: Grid, masks: MaskTable, *, rng: random.Random | None = None):
        self.obstacles = obstacles
        self.masks = masks
        self.rng = rng if rng is not None else random.Random()
        self.trail: Grid = obstacles.copy()
        self.pos: Position | None = None
        self.heading: Direction | None = None

    def choose_start(self) -> Position:
        pos = self.obstacles.random_match(False, self.rng)
        self.sync(pos)
        return pos

    def sync(self, pos: Position) -> None:
        """サーバから受け取った自艦位置を反映する"""
        self.pos = pos
        self.trail.set(pos, True)

    def next_position(self, direction: Direction) -> Position | None:
        if self.pos is None:
            return None
        try:
            nxt = direction.apply(self.pos)
        except ValueError:
            return None
        if not self.trail.in_bounds(nxt) or self.trail.get(nxt):
            return None
        return nxt

    def legal_directions(self) -> list[Direction]:
        return [d for d in DIRECTION_ORDER if self.next_position(d) is not None]

    def free_area(self, direction: Direction) -> int:
        nxt = self.next_position(direction)
        if nxt is None:
            return 0
        return self.trail.reachable_count(nxt, False)

    def choose_direction(self) -> Direction | None:
        dirs = self.legal_directions()
        if not dirs:
            return None
        if len(dirs) == 1:
            return dirs[0]
        if len(dirs) == 2:
            return max(dirs, key=self.free_area)
        if self.heading in dirs:
            return self.heading
        return dirs[0]

    def surface(self) -> NavPlan:
        """航跡を消して浮上する"""
        if self.pos is None:
            raise ValueError("position not initialised")
        self.trail = self.obstacles.copy()
        self.trail.set(self.pos, True)
        self.heading = None
        return NavPlan(kind="SURFACE", sector=self.masks.sector_of(self.pos))

    def plan(self, *, silence_ready: bool = False) -> NavPlan:
        direction = self.choose_direction()
        if direction is None:
            return self.surface()
        self.heading = direction
        if silence_ready:
            return NavPlan(kind="SILENCE", direction=direction, distance=1)
        return NavPlan(kind="MOVE", direction=direction)
