"""Reward catalog items and variable-ratio schedule slots.

Two reward mechanisms live side by side:
  - point-threshold items (``points_required``) seeded at onboarding completion
  - tiered items (``duration``) drawn into a task-count schedule
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Optional


class RewardTier:
    MICRO = "micro"     # 10-minute activities
    MINI = "mini"       # 30-minute activities
    MAJOR = "major"     # 2-hour activities

    ALL = (MICRO, MINI, MAJOR)


TIER_DURATIONS: dict[str, int] = {
    RewardTier.MICRO: 10,
    RewardTier.MINI: 30,
    RewardTier.MAJOR: 120,
}


class TriggerType:
    TASK_COMPLETION = "task_completion"
    TIME_BASED = "time_based"
    MILESTONE = "milestone"


@dataclass
class RewardItem:
    reward_id: str
    title: str
    description: str
    category: str                           # micro | mini | major
    points_required: Optional[int] = None  # point-threshold mechanism
    duration: Optional[int] = None         # minutes, schedulable items
    personalized_for: str = ""
    is_custom: bool = False
    reward_type: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> RewardItem:
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class ScheduledReward:
    slot_id: str
    reward_id: str
    trigger_type: str
    trigger_value: int          # completed-task count that unlocks the slot
    claimed: bool = False
    is_active: bool = True

    @property
    def tier(self) -> str:
        return self.slot_id.split("-", 1)[0]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ScheduledReward:
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        data["trigger_value"] = int(data["trigger_value"])
        return cls(**data)
