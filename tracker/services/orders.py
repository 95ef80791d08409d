"""
相手の命令文字列を型付きの行動列に変換する。

例: "MOVE N TORPEDO|TORPEDO 3 5|SILENCE"
座標は "x y" の順。"NA" は情報なし (None)。
位置の推定に使わない命令 (MINE, TRIGGER, MSG) は読み飛ばす。
"""
from pydantic import ValidationError
from tracker.errors import InvalidActionError
from tracker.schemas import (
    Direction,
    MoveAction,
    OpponentAction,
    Position,
    SilenceAction,
    SonarAction,
    SurfaceAction,
    TorpedoAction,
)

NO_INFORMATION = "NA"
IGNORED_COMMANDS = ("MINE", "TRIGGER", "MSG")

def _int(word: str, text: str) -> int:
    try:
        return int(word)
    except ValueError as e:
        raise InvalidActionError(text, f"expected integer, got {word!r}") from e

def _need(words: list[str], n: int, text: str) -> None:
    if len(words) < n:
        raise InvalidActionError(text, f"expected {n} argument(s)")

def parse_action(text: str) -> OpponentAction | None:
    """1つの命令を解析する。位置に関係しない命令なら None。"""
    words = text.split()
    if not words:
        raise InvalidActionError(text, "empty order")
    cmd, args = words[0].upper(), words[1:]
    try:
        if cmd == "MOVE":
            _need(args, 1, text)
            try:
                direction = Direction(args[0].upper())
            except ValueError as e:
                raise InvalidActionError(text, f"unknown direction {args[0]!r}") from e
            return MoveAction(direction=direction)
        if cmd == "SURFACE":
            _need(args, 1, text)
            return SurfaceAction(sector=_int(args[0], text))
        if cmd == "TORPEDO":
            _need(args, 2, text)
            return TorpedoAction(target=Position(x=_int(args[0], text), y=_int(args[1], text)))
        if cmd == "SONAR":
            _need(args, 1, text)
            return SonarAction(sector=_int(args[0], text))
        if cmd == "SILENCE":
            # 相手の SILENCE は方向・距離が見えない
            return SilenceAction()
    except ValidationError as e:
        raise InvalidActionError(text, str(e)) from e
    if cmd in IGNORED_COMMANDS:
        return None
    raise InvalidActionError(text, f"unknown command {cmd!r}")

def parse_orders(line: str) -> list[OpponentAction] | None:
    """
    '|' 区切りの命令行を解析する。
    "NA" は None (情報なし)、空行は空リスト (行動なし)。
    """
    line = line.strip()
    if line == NO_INFORMATION:
        return None
    if not line:
        return []
    result: list[OpponentAction] = []
    for part in line.split("|"):
        action = parse_action(part.strip())
        if action is not None:
            result.append(action)
    return result

def format_action(action: OpponentAction) -> str:
    if isinstance(action, MoveAction):
        return f"MOVE {action.direction.value}"
    if isinstance(action, SurfaceAction):
        return f"SURFACE {action.sector}"
    if isinstance(action, TorpedoAction):
        return f"TORPEDO {action.target.x} {action.target.y}"
    if isinstance(action, SonarAction):
        return f"SONAR {action.sector}"
    if isinstance(action, SilenceAction):
        return "SILENCE"
    raise InvalidActionError(action, "unknown action type")

def format_orders(actions: list[OpponentAction]) -> str:
    return "|".join(format_action(a) for a in actions)
