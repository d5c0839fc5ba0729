"""Onboarding session model.

One Session per user. Answers accumulate across stages and are keyed by the
snake_case field names below.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


class AnswerField:
    # Stage 1-3: initial hook
    BASELINE_ANXIETY = "baseline_anxiety"                  # 0-10
    PROCRASTINATION_FREQUENCY = "procrastination_frequency"
    DOPAMINE_RESPONSE = "dopamine_response"                # 0-10
    ACCOMPLISHMENTS = "accomplishments"                    # list[str]
    ACCOMPLISHMENTS_ELAPSED = "accomplishments_elapsed_seconds"

    # Stage 5-13: assessment
    TRIGGER_TYPE = "trigger_type"
    AVOIDANCE_PATTERN = "avoidance_pattern"
    WORK_ENVIRONMENT = "work_environment"
    MOTIVATION_STYLE = "motivation_style"
    REWARD_PREFERENCES = "reward_preferences"              # {label: 1-5}
    SESSION_LENGTH = "session_length"
    BIGGEST_PROJECT = "biggest_project"
    CURRENT_FRUSTRATION = "current_frustration"
    BIGGEST_SUCCESS = "biggest_success"
    SUCCESS_FACTORS = "success_factors"

    # Stage 14: proof of concept
    FIRST_ACTION = "first_action"
    SECOND_ACTION = "second_action"
    THIRD_ACTION = "third_action"
    COMPLETION_ATTEMPTED = "completion_attempted"          # bool
    RESISTANCE_LEVEL = "resistance_level"                  # 0-10


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SessionState:
    """What the persistence adapter hands back for a user."""
    user_id: str
    answers: dict[str, Any] = field(default_factory=dict)
    stage_answers: dict[int, dict[str, Any]] = field(default_factory=dict)
    last_stage: Optional[int] = None    # last stage successfully saved
    started_at: str = ""
    completed_at: str = ""


@dataclass
class Session:
    user_id: str
    current_stage: int = 1
    answers: dict[str, Any] = field(default_factory=dict)
    started_at: str = field(default_factory=_utcnow)
    completed_at: str = ""

    @property
    def is_completed(self) -> bool:
        return bool(self.completed_at)

    def merge(self, partial: dict[str, Any]) -> None:
        self.answers.update(copy.deepcopy(partial))
