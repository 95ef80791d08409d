from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field

MAP_REGIONS = 3
SECTOR_COUNT = MAP_REGIONS * MAP_REGIONS

TORPEDO_RANGE = 4
SILENCE_RANGE = 4
BLAST_RADIUS = 1
MAX_LIFE = 6

class Offset(BaseModel, frozen=True):
    """2点間の符号付き差分 (dx: 列方向, dy: 行方向)"""
    dx: int
    dy: int

    def manhattan(self) -> int:
        return abs(self.dx) + abs(self.dy)

class Position(BaseModel, frozen=True):
    """マップ上のセル。x が列、y が行。並び順は行優先 (y, x)。"""

    x: int
    y: int

    def __lt__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.y, self.x) < (other.y, other.x)

    def __le__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.y, self.x) <= (other.y, other.x)

    def __gt__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.y, self.x) > (other.y, other.x)

    def __ge__(self, other):
        if not isinstance(other, Position):
            return NotImplemented
        return (self.y, self.x) >= (other.y, other.x)

    def __hash__(self):
        return hash((self.x, self.y))

    def __eq__(self, other):
        if isinstance(other, Position):
            return self.x == other.x and self.y == other.y
        return False

    def __sub__(self, other: 'Position') -> Offset:
        if not isinstance(other, Position):
            return NotImplemented
        return Offset(dx=self.x - other.x, dy=self.y - other.y)

    def __str__(self) -> str:
        return f"[{self.x};{self.y}]"

    @staticmethod
    def new(p1: 'int|tuple[int,int]|Position', p2: int|None = None) -> 'Position':
        if isinstance(p1, Position):
            return Position(x=p1.x, y=p1.y)
        elif isinstance(p1, (tuple, list)) and len(p1) == 2:
            return Position(x=p1[0], y=p1[1])
        elif isinstance(p1, int) and isinstance(p2, int):
            return Position(x=p1, y=p2)
        else:
            raise TypeError(f"invalid parameters to Position.new {p1}, {p2}")

    def in_bounds(self, w: int, h: int) -> bool:
        return 0 <= self.x < w and 0 <= self.y < h

    def offset(self, dx: int, dy: int) -> 'Position':
        return Position(x=self.x + dx, y=self.y + dy)

    def manhattan(self, other: 'Position') -> int:
        return (self - other).manhattan()

    def chebyshev(self, other: 'Position') -> int:
        d = self - other
        return max(abs(d.dx), abs(d.dy))

class Direction(str, Enum):
    N = "N"
    E = "E"
    S = "S"
    W = "W"

    @property
    def delta(self) -> tuple[int, int]:
        """(dx, dy)"""
        return _DELTAS[self]

    def apply(self, pos: Position) -> Position:
        """1マス進めた位置を返す。北は行0、西は列0で不正。南・東の上限は呼び出し側で確認する。"""
        if self is Direction.N and pos.y == 0:
            raise ValueError(f"cannot move N from {pos}")
        if self is Direction.W and pos.x == 0:
            raise ValueError(f"cannot move W from {pos}")
        dx, dy = self.delta
        return pos.offset(dx, dy)

_DELTAS = {
    Direction.N: (0, -1),
    Direction.E: (1, 0),
    Direction.S: (0, 1),
    Direction.W: (-1, 0),
}

# === Opponent actions ===
# 相手の宣言から観測側が知り得る情報だけを持つ
class MoveAction(BaseModel, frozen=True):
    kind: Literal["MOVE"] = "MOVE"
    direction: Direction

class SurfaceAction(BaseModel, frozen=True):
    kind: Literal["SURFACE"] = "SURFACE"
    sector: int = Field(ge=1, le=SECTOR_COUNT)

class TorpedoAction(BaseModel, frozen=True):
    kind: Literal["TORPEDO"] = "TORPEDO"
    target: Position

class SonarAction(BaseModel, frozen=True):
    kind: Literal["SONAR"] = "SONAR"
    sector: int = Field(ge=1, le=SECTOR_COUNT)

class SilenceAction(BaseModel, frozen=True):
    """距離・方向は観測できない"""
    kind: Literal["SILENCE"] = "SILENCE"

OpponentAction = Annotated[
    Union[MoveAction, SurfaceAction, TorpedoAction, SonarAction, SilenceAction],
    Field(discriminator="kind"),
]

class SonarResult(BaseModel, frozen=True):
    """自軍ソナーの結果"""
    sector: int = Field(ge=1, le=SECTOR_COUNT)
    found: bool

class TrackerConfig(BaseModel, frozen=True):
    regions_per_side: int = Field(default=MAP_REGIONS, ge=1)
    torpedo_range: int = Field(default=TORPEDO_RANGE, ge=0)
    silence_range: int = Field(default=SILENCE_RANGE, ge=0)
    # SILENCE 0 (その場に留まる) を候補に含めるか
    silence_include_origin: bool = True
    blast_radius: int = Field(default=BLAST_RADIUS, ge=0)
    # 外れた攻撃で爆風範囲を候補から除外するか
    refine_on_miss: bool = False
    max_life: int = Field(default=MAX_LIFE, ge=1)

BeliefKind = Literal["exact", "area"]

class TurnReport(BaseModel):
    """1ターン分の追跡結果"""
    turn: int
    kind: BeliefKind
    exact: Optional[Position] = None
    candidates: int
    actions: int = 0
    desync: bool = False
    refinements: List[str] = []
    logs: List[str] = []

    def dump(self):
        yield f"turn: {self.turn} kind: {self.kind} candidates: {self.candidates}"
        if self.exact is not None:
            yield f"  exact: {self.exact}"
        if self.desync:
            yield "  desync: reset to full area"
        for r in self.refinements:
            yield f"  refine: {r}"
        for log in self.logs:
            yield f"  log: {log}"
