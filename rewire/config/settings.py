"""Application-wide configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()

# Redis
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

# ── Onboarding ───────────────────────────────────────────────────────────

# Filled in on the dopamine test stage when the client doesn't send a value
DEFAULT_DOPAMINE_RESPONSE: int = int(os.getenv("DEFAULT_DOPAMINE_RESPONSE", "8"))
# Applied at completion when the client doesn't send a value
DEFAULT_RESISTANCE_LEVEL: int = int(os.getenv("DEFAULT_RESISTANCE_LEVEL", "3"))

# ── Rewards ──────────────────────────────────────────────────────────────

STARTING_POINTS: int = int(os.getenv("STARTING_POINTS", "100"))

# Leave empty in production so reward draws stay unpredictable.
_seed = os.getenv("REWARD_SCHEDULE_SEED", "")
REWARD_SCHEDULE_SEED: int | None = int(_seed) if _seed else None

# ── Logging ──────────────────────────────────────────────────────────────

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
