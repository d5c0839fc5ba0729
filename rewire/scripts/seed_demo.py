"""Seed Redis with a completed demo onboarding and a reward schedule.

Run: python -m rewire.scripts.seed_demo
"""

import logging
import random

import redis

from rewire.config.settings import LOG_LEVEL, REDIS_URL
from rewire.engine.completion import CompletionPipeline, OnboardingResult
from rewire.engine.reward_scheduler import RewardPersonalization, RewardScheduler, build_catalog
from rewire.engine.stage_engine import StageEngine
from rewire.engine.stages import REWARD_LABELS
from rewire.models.session import AnswerField as F
from rewire.storage.redis_store import (
    POINTS_PREFIX,
    PROFILE_PREFIX,
    PROGRAM_PREFIX,
    REWARDS_PREFIX,
    SCHEDULE_PREFIX,
    RedisProfileStore,
    RedisProgramStore,
    RedisRewardStore,
    RedisSessionStore,
    answers_key,
    session_key,
)

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user-001"

# One submission per stage, in order. Stage 4 is informational.
DEMO_STAGE_ANSWERS: list[dict] = [
    {F.BASELINE_ANXIETY: 7},
    {F.PROCRASTINATION_FREQUENCY: "11-30"},
    {F.ACCOMPLISHMENTS: ["Made coffee", "Answered two emails", "Went for a run"]},
    {},
    {F.TRIGGER_TYPE: "Projects that seem too complex"},
    {F.AVOIDANCE_PATTERN: "Research and plan obsessively"},
    {F.WORK_ENVIRONMENT: "Background music or white noise"},
    {F.MOTIVATION_STYLE: "You have a clear, step-by-step plan"},
    {F.REWARD_PREFERENCES: {label: rating for label, rating in zip(REWARD_LABELS, [5, 4, 2, 5, 3, 1, 4])}},
    {F.SESSION_LENGTH: "30-45 minutes"},
    {F.BIGGEST_PROJECT: "Ship the thesis literature review"},
    {F.CURRENT_FRUSTRATION: "I keep rereading papers instead of writing"},
    {F.BIGGEST_SUCCESS: "Finished a 10k", F.SUCCESS_FACTORS: "A fixed weekly plan"},
]

DEMO_FINAL_ANSWERS = {
    F.FIRST_ACTION: "Open the outline document",
    F.SECOND_ACTION: "Write three bullet points for section 1",
    F.THIRD_ACTION: "Send the outline to my advisor",
}

DEMO_PERSONALIZATION = RewardPersonalization(
    enjoyable_activities=["Sketching", "Playing guitar"],
    mood_boosters=["Calling my sister"],
)


def clear_user(r: redis.Redis, user_id: str) -> None:
    """Remove every key stored for ``user_id`` and nothing else."""
    per_user = [
        f"{prefix}{user_id}"
        for prefix in (PROFILE_PREFIX, PROGRAM_PREFIX, REWARDS_PREFIX, POINTS_PREFIX, SCHEDULE_PREFIX)
    ]
    r.delete(session_key(user_id), answers_key(user_id), *per_user)


def run_demo(r: redis.Redis, user_id: str = DEMO_USER_ID, seed: int | None = None) -> OnboardingResult:
    session_store = RedisSessionStore(r)
    reward_store = RedisRewardStore(r)
    pipeline = CompletionPipeline(
        session_store,
        RedisProfileStore(r),
        RedisProgramStore(r),
        reward_store,
    )

    engine = StageEngine.resume(user_id, session_store, pipeline=pipeline)
    for answers in DEMO_STAGE_ANSWERS[engine.current_stage - 1:]:
        engine.advance(answers)
    result = engine.complete(DEMO_FINAL_ANSWERS)

    scheduler = RewardScheduler(build_catalog(DEMO_PERSONALIZATION), rng=random.Random(seed))
    reward_store.save_schedule(user_id, scheduler.generate())

    logger.info(
        "Seeded %s: %s, %d catalog rewards, %d scheduled rewards",
        user_id, result.profile.primary_type, len(result.catalog),
        len(reward_store.get_schedule(user_id)),
    )
    return result


def seed():
    r = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    clear_user(r, DEMO_USER_ID)
    run_demo(r)


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    seed()
