"""Exception hierarchy for the onboarding core."""

from __future__ import annotations


class RewireError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(RewireError):
    """A stage submission is missing required fields or has bad values.

    Recoverable: the transition is blocked, nothing is persisted.
    """

    def __init__(self, stage: int, fields: dict[str, str]):
        self.stage = stage
        self.fields = dict(fields)
        detail = ", ".join(f"{name}: {reason}" for name, reason in self.fields.items())
        super().__init__(f"Stage {stage} is incomplete ({detail})")


class StageError(RewireError):
    """An operation was called from a stage that doesn't allow it."""


class SessionCompletedError(RewireError):
    """The session already has completed_at set and can't be mutated."""


class StorageError(RewireError):
    """A persistence backend failed to read or write."""


class CompletionError(RewireError):
    """The completion commit failed and was rolled back.

    The session keeps its answers, so the same submission can be retried.
    """

    retryable = True

    def __init__(self, user_id: str, message: str):
        self.user_id = user_id
        super().__init__(message)


class InsufficientPointsError(RewireError):
    """A point-threshold reward was redeemed without enough points."""
