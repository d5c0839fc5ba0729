"""Redis-backed implementations of the storage protocols.

Key layout:
  onboarding:{uid}            hash   started_at | last_stage | completed_at
  onboarding:{uid}:answers    hash   stage -> JSON partial answers
  profile:{uid}               string JSON Profile
  program:{uid}               string JSON Program
  rewards:{uid}               hash   reward_id -> JSON RewardItem
  points:{uid}                string point balance
  reward_schedule:{uid}       hash   slot_id -> JSON ScheduledReward
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Sequence

import redis

from rewire.config.settings import REDIS_URL
from rewire.errors import StorageError
from rewire.models.profile import Profile, Program
from rewire.models.reward import RewardItem, RewardTier, ScheduledReward
from rewire.models.session import SessionState

logger = logging.getLogger(__name__)

SESSION_PREFIX = "onboarding:"
PROFILE_PREFIX = "profile:"
PROGRAM_PREFIX = "program:"
REWARDS_PREFIX = "rewards:"
POINTS_PREFIX = "points:"
SCHEDULE_PREFIX = "reward_schedule:"


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


@contextmanager
def _storage_errors(action: str, user_id: str) -> Iterator[None]:
    """Re-raise Redis failures as StorageError."""
    try:
        yield
    except redis.RedisError as exc:
        raise StorageError(f"{action} failed for {user_id}: {exc}") from exc


def session_key(user_id: str) -> str:
    return f"{SESSION_PREFIX}{user_id}"


def answers_key(user_id: str) -> str:
    return f"{SESSION_PREFIX}{user_id}:answers"


# ═══════════════════════════════════════════════════════════════════════════
# Onboarding progress
# ═══════════════════════════════════════════════════════════════════════════

class RedisSessionStore:
    """PersistenceAdapter over two Redis hashes per user."""

    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    def save(self, user_id: str, stage: int, partial_answers: dict[str, Any]) -> None:
        with _storage_errors("save stage", user_id):
            pipe = self.r.pipeline(transaction=True)
            pipe.hset(answers_key(user_id), str(stage), json.dumps(partial_answers))
            pipe.hsetnx(
                session_key(user_id), "started_at",
                datetime.now(timezone.utc).isoformat(),
            )
            pipe.hset(session_key(user_id), "last_stage", stage)
            pipe.execute()
        logger.debug("Saved stage %d for %s", stage, user_id)

    def load(self, user_id: str) -> Optional[SessionState]:
        with _storage_errors("load session", user_id):
            meta = self.r.hgetall(session_key(user_id))
            raw_answers = self.r.hgetall(answers_key(user_id))
        if not meta and not raw_answers:
            return None

        stage_answers = {int(stage): json.loads(payload) for stage, payload in raw_answers.items()}
        merged: dict[str, Any] = {}
        for stage in sorted(stage_answers):
            merged.update(stage_answers[stage])

        last_stage = meta.get("last_stage")
        return SessionState(
            user_id=user_id,
            answers=merged,
            stage_answers=stage_answers,
            last_stage=int(last_stage) if last_stage else None,
            started_at=meta.get("started_at", ""),
            completed_at=meta.get("completed_at", ""),
        )

    def mark_completed(self, user_id: str, completed_at: str) -> None:
        with _storage_errors("mark completed", user_id):
            self.r.hset(session_key(user_id), "completed_at", completed_at)

    def clear_completed(self, user_id: str) -> None:
        with _storage_errors("clear completed", user_id):
            self.r.hdel(session_key(user_id), "completed_at")


# ═══════════════════════════════════════════════════════════════════════════
# Profile / Program
# ═══════════════════════════════════════════════════════════════════════════

class RedisProfileStore:
    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    def save(self, user_id: str, profile: Profile) -> None:
        with _storage_errors("save profile", user_id):
            self.r.set(f"{PROFILE_PREFIX}{user_id}", json.dumps(profile.to_dict()))

    def get(self, user_id: str) -> Optional[Profile]:
        with _storage_errors("load profile", user_id):
            payload = self.r.get(f"{PROFILE_PREFIX}{user_id}")
        return Profile.from_dict(json.loads(payload)) if payload else None

    def delete(self, user_id: str) -> None:
        with _storage_errors("delete profile", user_id):
            self.r.delete(f"{PROFILE_PREFIX}{user_id}")


class RedisProgramStore:
    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    def save(self, user_id: str, program: Program) -> None:
        with _storage_errors("save program", user_id):
            self.r.set(f"{PROGRAM_PREFIX}{user_id}", json.dumps(program.to_dict()))

    def get(self, user_id: str) -> Optional[Program]:
        with _storage_errors("load program", user_id):
            payload = self.r.get(f"{PROGRAM_PREFIX}{user_id}")
        return Program.from_dict(json.loads(payload)) if payload else None

    def delete(self, user_id: str) -> None:
        with _storage_errors("delete program", user_id):
            self.r.delete(f"{PROGRAM_PREFIX}{user_id}")


# ═══════════════════════════════════════════════════════════════════════════
# Rewards: catalog, points balance, variable-ratio schedule
# ═══════════════════════════════════════════════════════════════════════════

_TIER_ORDER = {tier: i for i, tier in enumerate(RewardTier.ALL)}


class RedisRewardStore:
    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    # -- Catalog --

    def bulk_insert(self, user_id: str, items: Sequence[RewardItem]) -> None:
        if not items:
            return
        mapping = {item.reward_id: json.dumps(item.to_dict()) for item in items}
        with _storage_errors("insert rewards", user_id):
            self.r.hset(f"{REWARDS_PREFIX}{user_id}", mapping=mapping)
        logger.debug("Stored %d rewards for %s", len(items), user_id)

    def list_catalog(self, user_id: str) -> list[RewardItem]:
        with _storage_errors("list rewards", user_id):
            raw = self.r.hgetall(f"{REWARDS_PREFIX}{user_id}")
        items = [RewardItem.from_dict(json.loads(v)) for v in raw.values()]
        items.sort(key=lambda item: (item.points_required or 0, item.reward_id))
        return items

    def delete_items(self, user_id: str, reward_ids: Sequence[str]) -> None:
        if not reward_ids:
            return
        with _storage_errors("delete rewards", user_id):
            self.r.hdel(f"{REWARDS_PREFIX}{user_id}", *reward_ids)

    # -- Points --

    def init_points(self, user_id: str, points: int) -> bool:
        with _storage_errors("init points", user_id):
            return bool(self.r.set(f"{POINTS_PREFIX}{user_id}", points, nx=True))

    def get_points(self, user_id: str) -> int:
        with _storage_errors("read points", user_id):
            value = self.r.get(f"{POINTS_PREFIX}{user_id}")
        return int(value) if value else 0

    def delete_points(self, user_id: str) -> None:
        with _storage_errors("delete points", user_id):
            self.r.delete(f"{POINTS_PREFIX}{user_id}")

    # -- Schedule --

    def save_schedule(self, user_id: str, slots: Sequence[ScheduledReward]) -> None:
        """Replace the user's whole schedule."""
        key = f"{SCHEDULE_PREFIX}{user_id}"
        with _storage_errors("save schedule", user_id):
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(key)
            if slots:
                pipe.hset(key, mapping={s.slot_id: json.dumps(s.to_dict()) for s in slots})
            pipe.execute()

    def get_schedule(self, user_id: str) -> list[ScheduledReward]:
        with _storage_errors("load schedule", user_id):
            raw = self.r.hgetall(f"{SCHEDULE_PREFIX}{user_id}")
        slots = [ScheduledReward.from_dict(json.loads(v)) for v in raw.values()]
        slots.sort(key=lambda s: (_TIER_ORDER.get(s.tier, len(_TIER_ORDER)), s.trigger_value))
        return slots

    def mark_claimed(self, user_id: str, slot_id: str) -> None:
        key = f"{SCHEDULE_PREFIX}{user_id}"
        with _storage_errors("claim reward", user_id):
            payload = self.r.hget(key, slot_id)
            if payload is None:
                raise KeyError(f"No scheduled reward {slot_id!r} for {user_id}")
            slot = ScheduledReward.from_dict(json.loads(payload))
            slot.claimed = True
            self.r.hset(key, slot_id, json.dumps(slot.to_dict()))
