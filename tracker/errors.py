"""Structured exceptions raised by the tracking engine."""

from __future__ import annotations

from typing import Any


class TrackerError(Exception):
    """Base class for tracker exceptions."""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.__class__.__name__, "message": str(self)}


class InvalidActionError(TrackerError, ValueError):
    """Raised when an action or order text breaks the input contract."""

    def __init__(self, action: Any, reason: str | None = None):
        self.action = action
        self.reason = reason
        message = f"Invalid action {action!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        action = self.action
        if hasattr(action, "model_dump"):
            action = action.model_dump(mode="json")
        payload["action"] = action
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


class TrackingDesyncError(TrackerError):
    """Raised when the action stream contradicts the maintained belief."""

    def __init__(self, message: str, action: Any = None):
        self.action = action
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.action is not None:
            action = self.action
            if hasattr(action, "model_dump"):
                action = action.model_dump(mode="json")
            payload["action"] = action
        return payload
