# Domain error taxonomy. Route handlers let these propagate; main.py maps them to
# {"message": ..., "error": kind} responses with the matching HTTP status.
from __future__ import annotations

from typing import Optional


class StayHubError(Exception):
    status_code: int = 500
    kind: str = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(StayHubError):
    status_code = 404
    kind = "not_found"


class Forbidden(StayHubError):
    status_code = 403
    kind = "forbidden"


class InvalidRange(StayHubError):
    status_code = 400
    kind = "invalid_range"

    def __init__(self, message: str = "Check-out date must be after check-in date") -> None:
        super().__init__(message)


class InvalidTransition(StayHubError):
    status_code = 400
    kind = "invalid_transition"

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid status transition from {current} to {target}")
        self.current = current
        self.target = target


class Unauthenticated(StayHubError):
    status_code = 401
    kind = "unauthenticated"


class Conflict(StayHubError):
    status_code = 409
    kind = "conflict"


class InternalError(StayHubError):
    """Persistence or unexpected failure. The message is safe to show; details stay in the logs."""

    status_code = 500
    kind = "internal"

    def __init__(self, message: str = "Internal server error", detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.detail = detail
