"""
相手位置の推定 (FuzzyPos) と、相手の行動による状態遷移。

状態は Exact (位置確定) と Area (候補集合) の2種類。
遷移関数は純粋関数で、入力の状態を書き換えずに新しい状態を返す。
"""
from dataclasses import dataclass
from typing import Union
from tracker.errors import InvalidActionError, TrackingDesyncError
from tracker.schemas import (
    MoveAction,
    OpponentAction,
    Position,
    SilenceAction,
    SonarAction,
    SurfaceAction,
    TorpedoAction,
)
from tracker.services.grid import Grid
from tracker.services.masks import MaskTable

@dataclass(frozen=True)
class Exact:
    pos: Position

    def candidates(self, W: int, H: int) -> Grid:
        return Grid.single(W, H, self.pos)

    def __str__(self) -> str:
        return f"Exact: {self.pos}"

@dataclass(frozen=True)
class Area:
    grid: Grid

    def candidates(self, W: int, H: int) -> Grid:
        return self.grid.copy()

    def __str__(self) -> str:
        return f"Area:\n{self.grid.dump()}"

FuzzyPos = Union[Exact, Area]

def initial_belief(obstacles: Grid) -> Area:
    """全ての海セルを候補とする"""
    return Area(obstacles.invert().freeze())

def validate_action(action: OpponentAction, masks: MaskTable) -> None:
    """行動がマップと整合しているか確認する。不正なら InvalidActionError。"""
    if isinstance(action, (SurfaceAction, SonarAction)):
        if not (1 <= action.sector <= masks.sector_count):
            raise InvalidActionError(action, f"sector must be in 1..{masks.sector_count}")
    elif isinstance(action, TorpedoAction):
        if not action.target.in_bounds(masks.W, masks.H):
            raise InvalidActionError(action, "torpedo target outside map")
    elif isinstance(action, (MoveAction, SilenceAction)):
        pass
    else:
        raise InvalidActionError(action, "unknown action type")

def _area_transition(grid: Grid, action: OpponentAction, obstacles: Grid, masks: MaskTable) -> Grid:
    if isinstance(action, MoveAction):
        return grid.shift(action.direction, 1).and_not(obstacles)
    if isinstance(action, SurfaceAction):
        return grid & masks.sector_mask(action.sector)
    if isinstance(action, TorpedoAction):
        # 魚雷の目標は発射位置から射程内
        return grid & masks.torpedo_area(action.target)
    if isinstance(action, SonarAction):
        return grid
    if isinstance(action, SilenceAction):
        return grid.compose(masks.silence.grid, masks.silence.origin).and_not(obstacles)
    raise InvalidActionError(action, "unknown action type")

def _exact_transition(pos: Position, action: OpponentAction, obstacles: Grid, masks: MaskTable) -> FuzzyPos:
    if isinstance(action, MoveAction):
        try:
            moved = action.direction.apply(pos)
        except ValueError as e:
            raise TrackingDesyncError(f"exact position {pos} moved off map", action) from e
        if not moved.in_bounds(masks.W, masks.H):
            raise TrackingDesyncError(f"exact position {pos} moved off map", action)
        return Exact(moved)
    if isinstance(action, (SurfaceAction, TorpedoAction, SonarAction)):
        return Exact(pos)
    if isinstance(action, SilenceAction):
        forbidden = obstacles
        if not masks.silence.grid.get(masks.silence.origin):
            # 距離0の SILENCE が無い場合、相手は今の位置を離れている
            forbidden = obstacles.copy()
            forbidden.set(pos, True)
        return Area(masks.silence_area(pos).and_not(forbidden).freeze())
    raise InvalidActionError(action, "unknown action type")

def transition(belief: FuzzyPos, action: OpponentAction, obstacles: Grid, masks: MaskTable) -> FuzzyPos:
    """
    1つの行動を適用した新しい状態を返す (collapse 前)。
    """
    validate_action(action, masks)
    if isinstance(belief, Area):
        return Area(_area_transition(belief.grid, action, obstacles, masks).freeze())
    if isinstance(belief, Exact):
        return _exact_transition(belief.pos, action, obstacles, masks)
    raise TypeError(f"unknown belief state {type(belief).__name__}")

def settle(belief: FuzzyPos, action: object = None) -> FuzzyPos:
    """
    候補が1つなら Exact に縮退させる。候補が0なら TrackingDesyncError。
    """
    if isinstance(belief, Exact):
        return belief
    if isinstance(belief, Area):
        n = belief.grid.count(True)
        if n == 0:
            raise TrackingDesyncError("no candidate cell left", action)
        if n == 1:
            pos = belief.grid.first_match(True)
            assert pos is not None
            return Exact(pos)
        return belief
    raise TypeError(f"unknown belief state {type(belief).__name__}")

def apply_action(belief: FuzzyPos, action: OpponentAction, obstacles: Grid, masks: MaskTable) -> FuzzyPos:
    return settle(transition(belief, action, obstacles, masks), action)

def candidate_count(belief: FuzzyPos) -> int:
    if isinstance(belief, Exact):
        return 1
    return belief.grid.count(True)
