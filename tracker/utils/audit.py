import json
import os
from datetime import datetime, timezone
from typing import Any, Dict

# Maintain per-tracker filename base so all writes go to the same timestamped file
_LOG_FILE_BASE: Dict[str, str] = {}


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _log_dir() -> str:
    # ../../logs/tracker relative to this file, or SONAR_TRACKER_LOG_DIR
    override = os.getenv("SONAR_TRACKER_LOG_DIR")
    if override:
        return os.path.abspath(override)
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "logs", "tracker"))


def _file_base_for(log_id: str) -> str:
    """Return a stable '<timestamp>_<log_id>' base for this process."""
    if log_id in _LOG_FILE_BASE:
        return _LOG_FILE_BASE[log_id]
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")
    base = f"{ts}_{log_id}"
    _LOG_FILE_BASE[log_id] = base
    return base


def log_path_for(log_id: str) -> str:
    return os.path.join(_log_dir(), f"{_file_base_for(log_id)}.log")


def tracker_write(log_id: str | None, record: Dict[str, Any]) -> None:
    """Append a structured JSON line to the per-tracker log.

    Nothing is written when log_id is None.
    """
    if log_id is None:
        return
    record = dict(record)
    record.setdefault("ts", datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"))
    record.setdefault("log_id", log_id)
    try:
        _ensure_dir(_log_dir())
        with open(log_path_for(log_id), "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
    except OSError:
        # best-effort
        pass
