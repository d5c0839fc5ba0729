"""Initial point-threshold reward catalog, seeded at onboarding completion.

Separate from the variable-ratio schedule: these rewards unlock on
cumulative points, not on completed-task counts.
"""

from __future__ import annotations

import logging

from rewire.errors import InsufficientPointsError
from rewire.models.reward import RewardItem, RewardTier

logger = logging.getLogger(__name__)

# (title, description, points_required, category, reward_type)
INITIAL_REWARDS: tuple[tuple[str, str, int, str, str], ...] = (
    ("15-Minute Break", "Guilt-free break time with your favorite activity",
     100, RewardTier.MICRO, "time_based"),
    ("Favorite Snack", "Treat yourself to that special snack you love",
     250, RewardTier.MICRO, "consumable"),
    ("Coffee Shop Session", "Work from your favorite coffee shop for a session",
     500, RewardTier.MINI, "experience"),
    ("Movie Night", "Watch that movie you've been wanting to see",
     750, RewardTier.MINI, "entertainment"),
    ("Weekend Adventure", "Plan a special weekend activity or trip",
     2000, RewardTier.MAJOR, "experience"),
)


def seed_initial_catalog() -> list[RewardItem]:
    """The five starter rewards, ascending by points_required.

    Ids are fixed (``seed-1`` .. ``seed-5``) so inserting them twice for the
    same user overwrites instead of duplicating.
    """
    return [
        RewardItem(
            reward_id=f"seed-{i}",
            title=title,
            description=description,
            category=category,
            points_required=points,
            reward_type=reward_type,
        )
        for i, (title, description, points, category, reward_type) in enumerate(INITIAL_REWARDS, start=1)
    ]


def can_redeem(item: RewardItem, points: int) -> bool:
    return item.points_required is not None and points >= item.points_required


def redeem(item: RewardItem, points: int) -> int:
    """Spend points on a threshold reward and return the remaining balance."""
    if item.points_required is None:
        raise ValueError(f"Reward {item.reward_id} is not a point-threshold reward")
    if points < item.points_required:
        raise InsufficientPointsError(
            f"{item.title} needs {item.points_required} points, have {points}"
        )
    remaining = points - item.points_required
    logger.info("Redeemed %s for %d points (%d left)", item.reward_id, item.points_required, remaining)
    return remaining
