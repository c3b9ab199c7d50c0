"""Streak engine error taxonomy.

Every error carries a machine-readable ``kind`` and the HTTP status the API
layer renders it with.
"""

from __future__ import annotations


class StreakError(Exception):
    """Base class for all engine errors."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(StreakError):
    """Streak absent, soft-deleted, or not owned by the caller."""

    kind = "not_found"
    status_code = 404


class ConflictError(StreakError):
    """Duplicate streak name or duplicate daily completion."""

    kind = "conflict"
    status_code = 409


class AlreadyCompletedError(ConflictError):
    kind = "already_completed"


class InvalidInputError(StreakError):
    """Negative durations, blank names, unknown timezones and the like."""

    kind = "invalid_input"
    status_code = 422


class QuotaExceededError(StreakError):
    """Freeze tokens exhausted for the current period."""

    kind = "quota_exceeded"
    status_code = 400


class InternalError(StreakError):
    """Storage failure not otherwise classified."""
