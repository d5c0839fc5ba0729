"""Reward Scheduler: variable-ratio reinforcement over a tiered catalog.

Trigger values are fixed, uneven progressions per tier:

  micro (10 min):  1, 2, 3, 4, 6, 7, 9, 11
  mini  (30 min):  5, 8, 10, 12
  major (2 h):     6, 12

The spacing is what makes reward timing feel unpredictable; the sequences
themselves never change. Only the reward drawn into each slot is random, and
the random source is injected so tests can seed it.

The scheduler answers eligibility queries only. Claiming belongs to whoever
owns the RewardStore.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

from rewire.config.settings import REWARD_SCHEDULE_SEED
from rewire.models.reward import (
    TIER_DURATIONS,
    RewardItem,
    RewardTier,
    ScheduledReward,
    TriggerType,
)

logger = logging.getLogger(__name__)

TRIGGER_PROGRESSIONS: dict[str, tuple[int, ...]] = {
    RewardTier.MICRO: (1, 2, 3, 4, 6, 7, 9, 11),
    RewardTier.MINI: (5, 8, 10, 12),
    RewardTier.MAJOR: (6, 12),
}

MAX_PERSONALIZED_PER_TIER = 4


def _template(reward_id: str, title: str, description: str, category: str, personalized_for: str) -> RewardItem:
    return RewardItem(
        reward_id=reward_id,
        title=title,
        description=description,
        category=category,
        duration=TIER_DURATIONS[category],
        personalized_for=personalized_for,
    )


REWARD_TEMPLATES: tuple[RewardItem, ...] = (
    # Micro rewards (10 minutes)
    _template("micro-1", "Favorite Song", "Listen to your favorite energizing song", RewardTier.MICRO, "music"),
    _template("micro-2", "Quick Walk", "5-minute walk outside for fresh air", RewardTier.MICRO, "movement"),
    _template("micro-3", "Premium Coffee", "Make or buy your favorite premium coffee", RewardTier.MICRO, "treats"),
    _template("micro-4", "Funny Video", "Watch a specific funny YouTube video", RewardTier.MICRO, "entertainment"),
    _template("micro-5", "Stretch Break", "Quick stretching or yoga routine", RewardTier.MICRO, "wellness"),
    _template("micro-6", "Social Check-in", "Quick text or call to a friend", RewardTier.MICRO, "social"),
    _template("micro-7", "Mindful Breathing", "5-minute meditation or breathing exercise", RewardTier.MICRO, "mindfulness"),
    _template("micro-8", "Healthy Snack", "Enjoy a specific healthy snack you love", RewardTier.MICRO, "nutrition"),
    # Mini rewards (30 minutes)
    _template("mini-1", "TV Episode", "Watch one episode of your favorite show", RewardTier.MINI, "entertainment"),
    _template("mini-2", "Video Game Session", "Play your favorite game for 30 minutes", RewardTier.MINI, "gaming"),
    _template("mini-3", "Friend Call", "Have a proper catch-up call with a friend", RewardTier.MINI, "social"),
    _template("mini-4", "Favorite Meal", "Order or cook your favorite meal", RewardTier.MINI, "food"),
    _template("mini-5", "Creative Time", "Work on a personal creative project", RewardTier.MINI, "creativity"),
    _template("mini-6", "Nature Walk", "Take a longer walk in nature or park", RewardTier.MINI, "nature"),
    _template("mini-7", "Reading Time", "Read a book or articles you enjoy", RewardTier.MINI, "learning"),
    _template("mini-8", "Online Shopping", "Browse and maybe buy something small", RewardTier.MINI, "shopping"),
    # Major rewards (2 hours)
    _template("major-1", "Movie Night", "Watch a full movie you've been wanting to see", RewardTier.MAJOR, "entertainment"),
    _template("major-2", "Dinner Out", "Go to your favorite restaurant", RewardTier.MAJOR, "dining"),
    _template("major-3", "Hobby Session", "Dedicated time for your favorite hobby", RewardTier.MAJOR, "hobbies"),
    _template("major-4", "Social Activity", "Meet friends for an activity or hangout", RewardTier.MAJOR, "social"),
    _template("major-5", "Spa Time", "Self-care session: bath, skincare, relaxation", RewardTier.MAJOR, "wellness"),
    _template("major-6", "Adventure Time", "Explore a new place or try new activity", RewardTier.MAJOR, "adventure"),
)


@dataclass
class RewardPersonalization:
    """What the user told us they enjoy, collected on the reward setup screen."""
    enjoyable_activities: list[str] = field(default_factory=list)
    mood_boosters: list[str] = field(default_factory=list)


def _clean(entries: Sequence[str]) -> list[str]:
    return [e.strip() for e in entries if isinstance(e, str) and e.strip()]


def personalized_rewards(personalization: RewardPersonalization) -> list[RewardItem]:
    """Turn the user's activities and mood boosters into custom tier items.

    Activities -> micro (up to 4), mood boosters -> mini (up to 4), plus an
    extended version of the first activity and a free-choice item -> major.
    """
    activities = _clean(personalization.enjoyable_activities)
    boosters = _clean(personalization.mood_boosters)
    items: list[RewardItem] = []

    for i, activity in enumerate(activities[:MAX_PERSONALIZED_PER_TIER]):
        items.append(RewardItem(
            reward_id=f"custom-micro-{i}",
            title=activity,
            description=f"Enjoy {activity.lower()} for 10 minutes",
            category=RewardTier.MICRO,
            duration=TIER_DURATIONS[RewardTier.MICRO],
            personalized_for="custom",
            is_custom=True,
        ))

    for i, booster in enumerate(boosters[:MAX_PERSONALIZED_PER_TIER]):
        items.append(RewardItem(
            reward_id=f"custom-mini-{i}",
            title=booster,
            description=f"Dedicated time for {booster.lower()}",
            category=RewardTier.MINI,
            duration=TIER_DURATIONS[RewardTier.MINI],
            personalized_for="custom",
            is_custom=True,
        ))

    if activities:
        items.append(RewardItem(
            reward_id="custom-major-1",
            title=f"Extended {activities[0]}",
            description=f"2-hour dedicated session for {activities[0].lower()}",
            category=RewardTier.MAJOR,
            duration=TIER_DURATIONS[RewardTier.MAJOR],
            personalized_for="custom",
            is_custom=True,
        ))
    items.append(RewardItem(
        reward_id="custom-major-2",
        title="Personal Choice Reward",
        description="Choose any 2-hour activity that brings you joy",
        category=RewardTier.MAJOR,
        duration=TIER_DURATIONS[RewardTier.MAJOR],
        personalized_for="custom",
        is_custom=True,
    ))
    return items


def build_catalog(
    personalization: Optional[RewardPersonalization] = None,
    templates: Sequence[RewardItem] = REWARD_TEMPLATES,
) -> dict[str, list[RewardItem]]:
    """Partition templates plus personalized items into per-tier candidate pools."""
    catalog: dict[str, list[RewardItem]] = {tier: [] for tier in RewardTier.ALL}
    custom = personalized_rewards(personalization) if personalization else []
    for item in list(templates) + custom:
        if item.category in catalog:
            catalog[item.category].append(item)
    return catalog


def satisfied(slot: ScheduledReward, completed_task_count: int) -> bool:
    """True once enough tasks are done, unless the slot was already claimed."""
    return completed_task_count >= slot.trigger_value and not slot.claimed


class RewardScheduler:
    """Draws catalog items into the fixed trigger progressions."""

    def __init__(
        self,
        catalog: dict[str, Sequence[RewardItem]],
        rng: random.Random | None = None,
    ):
        self.catalog = {tier: list(catalog.get(tier, ())) for tier in RewardTier.ALL}
        for tier, pool in self.catalog.items():
            if not pool:
                raise ValueError(f"Reward tier {tier!r} has no candidates to schedule")
        self.rng = rng or random.Random(REWARD_SCHEDULE_SEED)

    @property
    def reward_ids(self) -> set[str]:
        return {item.reward_id for pool in self.catalog.values() for item in pool}

    def get_reward(self, reward_id: str) -> Optional[RewardItem]:
        for pool in self.catalog.values():
            for item in pool:
                if item.reward_id == reward_id:
                    return item
        return None

    def generate(self) -> list[ScheduledReward]:
        """Build a full, unclaimed schedule: 8 micro + 4 mini + 2 major slots."""
        schedule: list[ScheduledReward] = []
        for tier in RewardTier.ALL:
            pool = self.catalog[tier]
            for index, trigger in enumerate(TRIGGER_PROGRESSIONS[tier]):
                reward = self.rng.choice(pool)
                schedule.append(ScheduledReward(
                    slot_id=f"{tier}-schedule-{index}",
                    reward_id=reward.reward_id,
                    trigger_type=TriggerType.TASK_COMPLETION,
                    trigger_value=trigger,
                ))
        logger.info(
            "Generated reward schedule: %s",
            {tier: len(TRIGGER_PROGRESSIONS[tier]) for tier in RewardTier.ALL},
        )
        return schedule

    def regenerate(self) -> list[ScheduledReward]:
        """Redraw every slot. Trigger sequences stay as they were; claims reset."""
        return self.generate()

    @staticmethod
    def eligible(schedule: Sequence[ScheduledReward], completed_task_count: int) -> list[ScheduledReward]:
        return [slot for slot in schedule if slot.is_active and satisfied(slot, completed_task_count)]

    @staticmethod
    def next_unlock(schedule: Sequence[ScheduledReward], completed_task_count: int) -> Optional[ScheduledReward]:
        """Nearest slot still ahead of the counter (ties go to the smaller tier)."""
        upcoming = [
            slot for slot in schedule
            if slot.is_active and not slot.claimed and slot.trigger_value > completed_task_count
        ]
        if not upcoming:
            return None
        tier_rank = {tier: i for i, tier in enumerate(RewardTier.ALL)}
        return min(upcoming, key=lambda s: (s.trigger_value, tier_rank.get(s.tier, len(tier_rank))))
