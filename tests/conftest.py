"""Shared test fixtures for the Rewire test suite."""

import pytest
import fakeredis

from rewire.engine.completion import CompletionPipeline
from rewire.engine.stage_engine import StageEngine
from rewire.engine.stages import REWARD_LABELS
from rewire.models.session import AnswerField as F
from rewire.storage.redis_store import (
    RedisProfileStore,
    RedisProgramStore,
    RedisRewardStore,
    RedisSessionStore,
)


# ── Redis ────────────────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def session_store(r):
    return RedisSessionStore(r)


@pytest.fixture
def profile_store(r):
    return RedisProfileStore(r)


@pytest.fixture
def program_store(r):
    return RedisProgramStore(r)


@pytest.fixture
def reward_store(r):
    return RedisRewardStore(r)


@pytest.fixture
def pipeline(session_store, profile_store, program_store, reward_store):
    return CompletionPipeline(session_store, profile_store, program_store, reward_store)


# ── Clock ───────────────────────────────────────────────────────────────

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ── Answers ─────────────────────────────────────────────────────────────

def stage_submissions() -> dict[int, dict]:
    """A valid submission for each of stages 1-13, keyed by stage number."""
    return {
        1: {F.BASELINE_ANXIETY: 6},
        2: {F.PROCRASTINATION_FREQUENCY: "4-10"},
        3: {F.ACCOMPLISHMENTS: ["Made coffee", "Sent an email", "Took a walk"]},
        4: {},
        5: {F.TRIGGER_TYPE: "Fear of not doing it perfectly"},
        6: {F.AVOIDANCE_PATTERN: "Do smaller, easier tasks instead"},
        7: {F.WORK_ENVIRONMENT: "Complete silence and isolation"},
        8: {F.MOTIVATION_STYLE: "Someone else is counting on you"},
        9: {F.REWARD_PREFERENCES: {label: 4 if i % 2 == 0 else 2 for i, label in enumerate(REWARD_LABELS)}},
        10: {F.SESSION_LENGTH: "1-2 hours"},
        11: {F.BIGGEST_PROJECT: "Launch my portfolio site"},
        12: {F.CURRENT_FRUSTRATION: "I never get past the design phase"},
        13: {F.BIGGEST_SUCCESS: "Passed the bar exam", F.SUCCESS_FACTORS: "Daily routine"},
    }


FINAL_ANSWERS = {
    F.FIRST_ACTION: "Pick a template",
    F.SECOND_ACTION: "Write the about page",
    F.THIRD_ACTION: "Publish a draft",
}


@pytest.fixture
def submissions():
    return stage_submissions()


@pytest.fixture
def final_answers():
    return dict(FINAL_ANSWERS)


@pytest.fixture
def make_engine(session_store, pipeline, clock):
    """Factory for a fresh StageEngine over the fake Redis stores.

    Usage:
        engine = make_engine("user-1")
        engine = make_engine("user-1", store=failing_store)
    """
    def _factory(user_id: str = "user-1", store=None, **kwargs):
        kwargs.setdefault("pipeline", pipeline)
        kwargs.setdefault("clock", clock)
        return StageEngine.start(user_id, store or session_store, **kwargs)

    return _factory


@pytest.fixture
def engine_at_terminal(make_engine, submissions):
    """Engine that has advanced through stages 1-13."""
    engine = make_engine()
    for stage in range(1, 14):
        engine.advance(submissions[stage])
    assert engine.is_terminal
    return engine


@pytest.fixture
def scenario_answers():
    """High-risk answer set with a known, hand-computed profile."""
    return {
        F.BASELINE_ANXIETY: 9,
        F.PROCRASTINATION_FREQUENCY: "I've lost count",
        F.DOPAMINE_RESPONSE: 9,
        F.COMPLETION_ATTEMPTED: True,
        F.ACCOMPLISHMENTS: ["a", "b", "c"],
        F.RESISTANCE_LEVEL: 9,
        F.TRIGGER_TYPE: "Projects that seem too complex",
    }
