"""Storage interfaces consumed by the onboarding core.

Any backend that satisfies these protocols can be injected; the Redis
implementation lives in ``rewire.storage.redis_store``. Every method raises
``rewire.errors.StorageError`` on backend failure.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from rewire.models.profile import Profile, Program
from rewire.models.reward import RewardItem, ScheduledReward
from rewire.models.session import SessionState


class PersistenceAdapter(Protocol):
    """Stage-scoped partial writes and full reads of onboarding progress."""

    def save(self, user_id: str, stage: int, partial_answers: dict[str, Any]) -> None:
        """Overwrite the answers stored for ``(user_id, stage)``."""
        ...

    def load(self, user_id: str) -> Optional[SessionState]:
        ...

    def mark_completed(self, user_id: str, completed_at: str) -> None:
        ...

    def clear_completed(self, user_id: str) -> None:
        ...


class ProfileStore(Protocol):
    def save(self, user_id: str, profile: Profile) -> None: ...

    def get(self, user_id: str) -> Optional[Profile]: ...

    def delete(self, user_id: str) -> None: ...


class ProgramStore(Protocol):
    def save(self, user_id: str, program: Program) -> None: ...

    def get(self, user_id: str) -> Optional[Program]: ...

    def delete(self, user_id: str) -> None: ...


class RewardStore(Protocol):
    def bulk_insert(self, user_id: str, items: Sequence[RewardItem]) -> None:
        """Insert catalog items keyed by reward_id (re-insert overwrites)."""
        ...

    def list_catalog(self, user_id: str) -> list[RewardItem]: ...

    def delete_items(self, user_id: str, reward_ids: Sequence[str]) -> None: ...

    def init_points(self, user_id: str, points: int) -> bool:
        """Set the starting balance if none exists. Returns True if it was set."""
        ...

    def get_points(self, user_id: str) -> int: ...

    def delete_points(self, user_id: str) -> None: ...

    def save_schedule(self, user_id: str, slots: Sequence[ScheduledReward]) -> None: ...

    def get_schedule(self, user_id: str) -> list[ScheduledReward]: ...

    def mark_claimed(self, user_id: str, slot_id: str) -> None: ...
