"""Stage table and branch table for the onboarding wizard.

Stages carry their required fields, value checks and defaults; transitions
live in a separate branch table (stage -> callable over answers) so stage
content and routing can change independently.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from rewire.config.settings import DEFAULT_DOPAMINE_RESPONSE
from rewire.models.session import AnswerField as F

# A check returns a reason string when the value is unacceptable, else None.
FieldCheck = Callable[[Any], Optional[str]]
BranchRule = Callable[[dict[str, Any]], Optional[int]]


def is_filled(value: Any) -> bool:
    """0 and False count as answers; None, blanks and empty containers don't."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def int_range(lo: int, hi: int) -> FieldCheck:
    def _check(value: Any) -> Optional[str]:
        if isinstance(value, bool) or not isinstance(value, int):
            return f"must be an integer between {lo} and {hi}"
        if not lo <= value <= hi:
            return f"must be between {lo} and {hi}"
        return None
    return _check


def text_list(count: int) -> FieldCheck:
    def _check(value: Any) -> Optional[str]:
        if not isinstance(value, (list, tuple)):
            return "must be a list"
        filled = [v for v in value if isinstance(v, str) and v.strip()]
        if len(filled) != count:
            return f"needs {count} non-empty entries"
        return None
    return _check


def ratings(labels: tuple[str, ...], lo: int = 1, hi: int = 5) -> FieldCheck:
    def _check(value: Any) -> Optional[str]:
        if not isinstance(value, dict):
            return "must map reward labels to ratings"
        missing = [label for label in labels if label not in value]
        if missing:
            return f"unrated: {', '.join(missing)}"
        bad = [
            label for label, rating in value.items()
            if isinstance(rating, bool) or not isinstance(rating, int) or not lo <= rating <= hi
        ]
        if bad:
            return f"ratings must be {lo}-{hi}: {', '.join(bad)}"
        return None
    return _check


# ═══════════════════════════════════════════════════════════════════════════
# Option sets shown by the presentation layer
# ═══════════════════════════════════════════════════════════════════════════

FREQUENCY_OPTIONS = ("never", "1-3", "4-10", "11-30", "lost-count")

TRIGGER_OPTIONS = (
    "Projects that seem too complex",
    "Fear of not doing it perfectly",
    "Unclear where to start",
    "Boring or repetitive tasks",
    "Fear of failure/judgment",
)

REWARD_LABELS = (
    "Checking items off a list",
    "Beating a personal record",
    "External recognition/praise",
    "Learning something new",
    "Helping others",
    "Financial rewards",
    "Completing challenges",
)

SESSION_LENGTH_OPTIONS = (
    "15-25 minutes",
    "30-45 minutes",
    "1-2 hours",
    "3+ hours",
    "varies",
)


# ═══════════════════════════════════════════════════════════════════════════
# Stage table
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StageDefinition:
    number: int
    key: str
    title: str
    required: tuple[str, ...] = ()
    checks: dict[str, FieldCheck] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    timed: bool = False     # free-text capture with an elapsed-time proxy


STAGES: tuple[StageDefinition, ...] = (
    StageDefinition(1, "baseline_anxiety", "Baseline Assessment",
                    required=(F.BASELINE_ANXIETY,),
                    checks={F.BASELINE_ANXIETY: int_range(0, 10)}),
    StageDefinition(2, "procrastination_frequency", "Pattern Recognition Test",
                    required=(F.PROCRASTINATION_FREQUENCY,)),
    StageDefinition(3, "dopamine_test", "The Dopamine Trigger Test",
                    required=(F.ACCOMPLISHMENTS, F.DOPAMINE_RESPONSE),
                    checks={F.ACCOMPLISHMENTS: text_list(3),
                            F.DOPAMINE_RESPONSE: int_range(0, 10)},
                    defaults={F.DOPAMINE_RESPONSE: DEFAULT_DOPAMINE_RESPONSE},
                    timed=True),
    StageDefinition(4, "insight", "What Just Happened"),
    StageDefinition(5, "trigger", "Procrastination Trigger",
                    required=(F.TRIGGER_TYPE,)),
    StageDefinition(6, "avoidance", "Avoidance Pattern",
                    required=(F.AVOIDANCE_PATTERN,)),
    StageDefinition(7, "environment", "Work Environment",
                    required=(F.WORK_ENVIRONMENT,)),
    StageDefinition(8, "motivation", "Motivation Style",
                    required=(F.MOTIVATION_STYLE,)),
    StageDefinition(9, "rewards", "Reward Preferences",
                    required=(F.REWARD_PREFERENCES,),
                    checks={F.REWARD_PREFERENCES: ratings(REWARD_LABELS)}),
    StageDefinition(10, "session_length", "Your Ideal Session Length",
                    required=(F.SESSION_LENGTH,)),
    StageDefinition(11, "project", "Your Biggest Project",
                    required=(F.BIGGEST_PROJECT,)),
    StageDefinition(12, "frustration", "Current Frustration",
                    required=(F.CURRENT_FRUSTRATION,)),
    StageDefinition(13, "success", "Your Biggest Success",
                    required=(F.BIGGEST_SUCCESS, F.SUCCESS_FACTORS)),
    StageDefinition(14, "actions", "Proof of Concept",
                    required=(F.FIRST_ACTION, F.SECOND_ACTION, F.THIRD_ACTION),
                    checks={F.RESISTANCE_LEVEL: int_range(0, 10)}),
)

FIRST_STAGE = STAGES[0].number
TERMINAL_STAGE = STAGES[-1].number


def get_stage(number: int, stages: tuple[StageDefinition, ...] = STAGES) -> StageDefinition:
    for stage in stages:
        if stage.number == number:
            return stage
    raise KeyError(f"Unknown stage {number}")


# ═══════════════════════════════════════════════════════════════════════════
# Branch table
# ═══════════════════════════════════════════════════════════════════════════

# Every listed trigger goes on to the avoidance stage; unlisted labels fall
# back to the sequential default.
TRIGGER_ROUTES: dict[str, int] = {trigger: 6 for trigger in TRIGGER_OPTIONS}


def _route_by_trigger(answers: dict[str, Any]) -> Optional[int]:
    return TRIGGER_ROUTES.get(answers.get(F.TRIGGER_TYPE, ""))


BRANCHES: dict[int, BranchRule] = {
    5: _route_by_trigger,
}


def next_stage(
    current_stage: int,
    answers: dict[str, Any],
    branches: dict[int, BranchRule] | None = None,
    terminal_stage: int = TERMINAL_STAGE,
) -> int:
    """Stage that follows ``current_stage`` given the answers so far.

    Default is ``current + 1``; a branch rule returning None also falls back
    to the default. Never moves backwards and never passes the terminal stage.
    """
    branches = BRANCHES if branches is None else branches
    target = None
    rule = branches.get(current_stage)
    if rule is not None:
        target = rule(answers)
    if target is None or target <= current_stage:
        target = current_stage + 1
    return min(target, terminal_stage)
