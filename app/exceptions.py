"""
Domain errors raised by the quiz attempt and achievement services

Each error carries the HTTP status and error code it is rendered with;
app.main registers a single handler for the whole family.
"""
from datetime import datetime
from typing import Any, Dict


class QuizPlatformError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message}


class ValidationError(QuizPlatformError):
    """Malformed or incomplete submission"""

    status_code = 400
    error_code = "validation_error"


class NotFoundError(QuizPlatformError):
    """Referenced quiz or attempt does not exist"""

    status_code = 404
    error_code = "not_found"


class CooldownError(QuizPlatformError):
    """Attempt blocked until the cooldown window has passed"""

    status_code = 403
    error_code = "cooldown"

    def __init__(self, next_attempt_at: datetime, message: str = "Quiz is in cooldown period"):
        super().__init__(message)
        self.next_attempt_at = next_attempt_at

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["next_attempt_at"] = self.next_attempt_at.isoformat()
        return data


class ConflictError(QuizPlatformError):
    """Concurrent write lost a uniqueness race; safe to retry"""

    status_code = 409
    error_code = "conflict"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retryable"] = True
        return data


class StoreError(QuizPlatformError):
    """Underlying persistence failure"""

    status_code = 500
    error_code = "store_error"
