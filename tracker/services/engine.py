from dataclasses import dataclass
import os
import sys
from typing import Callable, Sequence
from tracker.errors import InvalidActionError, TrackingDesyncError
from tracker.schemas import OpponentAction, Position, SonarResult, TrackerConfig, TurnReport
from tracker.services.belief import Area, Exact, FuzzyPos, apply_action, candidate_count, initial_belief, settle
from tracker.services.damage import refine_with_damage
from tracker.services.grid import Grid
from tracker.services.masks import MaskTable, build_mask_table
from tracker.utils.audit import tracker_write

# Debug flag: enable when running tests or when env var SONAR_TRACKER_DEBUG is set
DEBUG = bool(os.getenv('SONAR_TRACKER_DEBUG')) or ('unittest' in sys.modules) or ('PYTEST_CURRENT_TEST' in os.environ)

def _dbg(log_id: str | None, *args, **kwargs):
    """Debug helper: prints when DEBUG, always writes to tracker log."""
    if DEBUG:
        print(*args, **kwargs)
    msg = " ".join(str(a) for a in args)
    tracker_write(log_id, {"type": "debug", "msg": msg})

def _belief_record(belief: FuzzyPos) -> dict:
    if isinstance(belief, Exact):
        return {"kind": "exact", "pos": [belief.pos.x, belief.pos.y]}
    return {"kind": "area", "count": belief.grid.count(True)}

@dataclass
class TurnMemory:
    """1ターンだけ持ち越す情報: 自軍の攻撃位置と、その時点の相手ライフ"""
    attack: Position | None = None
    opp_life: int = 0

class OpponentTracker:
    """
    相手潜水艦の位置を追跡する。
    静的マップとマスクテーブルは生成時に凍結し、以後変更しない。
    update() は1ターン単位で原子的に適用される (InvalidActionError なら状態は変わらない)。
    """
    def __init__(self, obstacles: Grid, config: TrackerConfig | None = None, *, log_id: str | None = None):
        if obstacles.count(False) == 0:
            raise ValueError("map has no open water")
        self.config: TrackerConfig = config if config is not None else TrackerConfig()
        self.log_id = log_id
        self.obstacles: Grid = obstacles.copy().freeze()
        self.masks: MaskTable = build_mask_table(obstacles.W, obstacles.H, self.config)
        self.belief: FuzzyPos = initial_belief(self.obstacles)
        self.turn: int = 0
        self.opp_life: int = self.config.max_life
        self.memory = TurnMemory(opp_life=self.opp_life)
        self.desync_count: int = 0
        _dbg(self.log_id, f"[Tracker] init W={self.W} H={self.H} water={self.obstacles.count(False)}")
        tracker_write(self.log_id, {
            "type": "tracker_bootstrap",
            "map_w": self.W,
            "map_h": self.H,
            "map": self.obstacles.dump().split("\n"),
            "config": self.config.model_dump(),
        })

    @property
    def W(self) -> int:
        return self.obstacles.W

    @property
    def H(self) -> int:
        return self.obstacles.H

    def reset(self) -> None:
        """相手位置を完全に不明な状態に戻す"""
        self.belief = initial_belief(self.obstacles)

    def candidates(self) -> Grid:
        return self.belief.candidates(self.W, self.H)

    def candidate_count(self) -> int:
        return candidate_count(self.belief)

    def record_attack(self, target: Position, opp_life: int | None = None) -> None:
        """自軍の攻撃を記録する。次の update() でダメージによる絞り込みに使う。"""
        if not target.in_bounds(self.W, self.H):
            raise InvalidActionError(target, "attack position outside map")
        self.memory.attack = target
        self.memory.opp_life = self.opp_life if opp_life is None else opp_life

    def _step(self, belief: FuzzyPos, label: str, fn: Callable[[FuzzyPos], FuzzyPos],
              logs: list[str], action: object = None) -> tuple[FuzzyPos, bool]:
        """fn を適用して縮退させる。候補が尽きたら全域に戻して (状態, True) を返す。"""
        try:
            return settle(fn(belief), action), False
        except TrackingDesyncError as e:
            msg = f"desync on {label}: {e}"
            logs.append(msg)
            _dbg(self.log_id, f"[Tracker turn {self.turn + 1}] {msg}")
            tracker_write(self.log_id, {"type": "desync", "turn": self.turn + 1, "on": label, "error": e.to_dict()})
            return initial_belief(self.obstacles), True

    def update(self, actions: Sequence[OpponentAction] | None, opp_life: int,
               sonar: SonarResult | None = None) -> TurnReport:
        """
        1ターン分の情報で推定を更新する。
        actions: 相手の行動列。None は情報なし (NA) で、行動とダメージの絞り込みを行わない。
        opp_life: 今ターン観測した相手ライフ
        sonar: 自軍ソナーの結果
        """
        turn = self.turn + 1
        tracker_write(self.log_id, {"type": "turn_start", "turn": turn, "belief": _belief_record(self.belief)})
        logs: list[str] = []
        refinements: list[str] = []
        desyncs = 0
        belief = self.belief

        if actions is not None:
            for action in actions:
                belief, d = self._step(
                    belief, action.kind,
                    lambda b, a=action: apply_action(b, a, self.obstacles, self.masks),
                    logs, action,
                )
                desyncs += d
                tracker_write(self.log_id, {
                    "type": "action", "turn": turn,
                    "action": action.model_dump(mode="json"),
                    "belief": _belief_record(belief),
                })

            attack = self.memory.attack
            if attack is not None:
                refined, kind = refine_with_damage(
                    belief, attack, self.memory.opp_life, opp_life, self.masks,
                    refine_on_miss=self.config.refine_on_miss,
                )
                belief, d = self._step(refined, "damage", lambda b: b, logs)
                desyncs += d
                refinements.append(f"damage:{kind}@{attack}")
                tracker_write(self.log_id, {
                    "type": "damage_refine", "turn": turn, "kind": kind,
                    "attack": [attack.x, attack.y],
                    "life_before": self.memory.opp_life, "life_after": opp_life,
                    "belief": _belief_record(belief),
                })

        if sonar is not None:
            belief, d = self._step(belief, "sonar", lambda b: self._refine_with_sonar(b, sonar), logs)
            desyncs += d
            refinements.append(f"sonar:{sonar.sector}:{'Y' if sonar.found else 'N'}")
            tracker_write(self.log_id, {
                "type": "sonar_refine", "turn": turn,
                "sector": sonar.sector, "found": sonar.found,
                "belief": _belief_record(belief),
            })

        self.belief = belief
        self.turn = turn
        self.opp_life = opp_life
        self.memory = TurnMemory(opp_life=opp_life)
        self.desync_count += desyncs

        report = TurnReport(
            turn=turn,
            kind="exact" if isinstance(belief, Exact) else "area",
            exact=belief.pos if isinstance(belief, Exact) else None,
            candidates=candidate_count(belief),
            actions=len(actions) if actions is not None else 0,
            desync=desyncs > 0,
            refinements=refinements,
            logs=logs,
        )
        _dbg(self.log_id, f"[Tracker turn {turn}] {belief}")
        tracker_write(self.log_id, {"type": "turn_end", **report.model_dump(mode="json")})
        return report

    def _refine_with_sonar(self, belief: FuzzyPos, sonar: SonarResult) -> FuzzyPos:
        mask = self.masks.sector_mask(sonar.sector)
        grid = belief.candidates(self.W, self.H)
        grid = grid & mask if sonar.found else grid - mask
        return Area(grid.freeze())
