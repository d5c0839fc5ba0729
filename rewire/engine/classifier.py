"""Profile classification from pure rule tables.

Each profile field is an ordered list of independent ``(predicate, value)``
rules; the first predicate that holds wins. Success probability and risk
factors are additive tables where every matching rule applies.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from rewire.models.profile import (
    ComplexityTolerance,
    DopamineSensitivity,
    MotivationSustainability,
    ProcrastinationLevel,
    Profile,
)
from rewire.models.session import AnswerField as F

Answers = dict[str, Any]
Predicate = Callable[[Answers], bool]

SUCCESS_BASE = 50
SUCCESS_MIN = 10
SUCCESS_MAX = 95
PREFERRED_REWARD_MIN_RATING = 4
DEFAULT_SESSION_LENGTH = "30-45 minutes"


# ── Predicate builders ───────────────────────────────────────────────────

def _text(answers: Answers, key: str) -> str:
    value = answers.get(key)
    if not isinstance(value, str):
        return ""
    # Matching ignores case, so free-text answers ("Complex projects") hit the same rules.
    # Option values use hyphens ("lost-count"), labels use spaces ("I've lost count").
    return value.lower().replace("-", " ") if key == F.PROCRASTINATION_FREQUENCY else value.lower()


def _number(answers: Answers, key: str) -> Optional[float]:
    value = answers.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def contains(key: str, fragment: str) -> Predicate:
    needle = fragment.lower()
    if key == F.PROCRASTINATION_FREQUENCY:
        needle = needle.replace("-", " ")
    return lambda answers: needle in _text(answers, key)


def at_least(key: str, threshold: float) -> Predicate:
    def _pred(answers: Answers) -> bool:
        n = _number(answers, key)
        return n is not None and n >= threshold
    return _pred


def at_most(key: str, threshold: float) -> Predicate:
    def _pred(answers: Answers) -> bool:
        n = _number(answers, key)
        return n is not None and n <= threshold
    return _pred


def is_true(key: str) -> Predicate:
    return lambda answers: answers.get(key) is True


def is_not_true(key: str) -> Predicate:
    return lambda answers: answers.get(key) is not True


def min_items(key: str, count: int) -> Predicate:
    return lambda answers: len(answers.get(key) or ()) >= count


# ═══════════════════════════════════════════════════════════════════════════
# Rule tables
# ═══════════════════════════════════════════════════════════════════════════

PRIMARY_TYPE_RULES: list[tuple[Predicate, str]] = [
    (contains(F.TRIGGER_TYPE, "complex"), "Complexity Overwhelm"),
    (contains(F.TRIGGER_TYPE, "perfect"), "Perfectionism Paralysis"),
    (contains(F.TRIGGER_TYPE, "unclear"), "Decision Fatigue"),
    (contains(F.TRIGGER_TYPE, "boring"), "Motivation Deficit"),
]
PRIMARY_TYPE_DEFAULT = "General Procrastination"

PROCRASTINATION_LEVEL_RULES: list[tuple[Predicate, str]] = [
    (contains(F.PROCRASTINATION_FREQUENCY, "lost count"), ProcrastinationLevel.HIGH),
    (contains(F.PROCRASTINATION_FREQUENCY, "11-30"), ProcrastinationLevel.HIGH),
    (contains(F.PROCRASTINATION_FREQUENCY, "4-10"), ProcrastinationLevel.MEDIUM),
    (contains(F.PROCRASTINATION_FREQUENCY, "1-3"), ProcrastinationLevel.LOW),
]
PROCRASTINATION_LEVEL_DEFAULT = ProcrastinationLevel.MEDIUM

DOPAMINE_SENSITIVITY_RULES: list[tuple[Predicate, str]] = [
    (at_least(F.DOPAMINE_RESPONSE, 8), DopamineSensitivity.RESPONSIVE),
    (at_least(F.DOPAMINE_RESPONSE, 5), DopamineSensitivity.MODERATE),
]
DOPAMINE_SENSITIVITY_DEFAULT = DopamineSensitivity.RESISTANT

# Higher anxiety -> lower tolerance
COMPLEXITY_TOLERANCE_RULES: list[tuple[Predicate, str]] = [
    (at_least(F.BASELINE_ANXIETY, 8), ComplexityTolerance.LOW),
    (at_least(F.BASELINE_ANXIETY, 5), ComplexityTolerance.MEDIUM),
]
COMPLEXITY_TOLERANCE_DEFAULT = ComplexityTolerance.HIGH

MOTIVATION_SUSTAINABILITY_RULES: list[tuple[Predicate, str]] = [
    (contains(F.SESSION_LENGTH, "15-25"), MotivationSustainability.SPRINT),
    (contains(F.SESSION_LENGTH, "3+"), MotivationSustainability.MARATHON),
]
MOTIVATION_SUSTAINABILITY_DEFAULT = MotivationSustainability.STEADY

SUCCESS_ADJUSTMENTS: list[tuple[Predicate, int]] = [
    (is_true(F.COMPLETION_ATTEMPTED), +20),
    (at_least(F.DOPAMINE_RESPONSE, 7), +15),
    (at_most(F.BASELINE_ANXIETY, 5), +10),
    (min_items(F.ACCOMPLISHMENTS, 3), +10),
    (contains(F.PROCRASTINATION_FREQUENCY, "lost count"), -20),
    (at_least(F.BASELINE_ANXIETY, 8), -15),
    (at_least(F.RESISTANCE_LEVEL, 8), -10),
]

RISK_FACTOR_RULES: list[tuple[Predicate, str]] = [
    (at_least(F.BASELINE_ANXIETY, 8), "High baseline anxiety"),
    (contains(F.PROCRASTINATION_FREQUENCY, "lost count"), "Chronic procrastination pattern"),
    (at_least(F.RESISTANCE_LEVEL, 8), "High resistance to change"),
    (is_not_true(F.COMPLETION_ATTEMPTED), "Low task completion motivation"),
    (contains(F.TRIGGER_TYPE, "perfect"), "Perfectionism paralysis"),
]


# ═══════════════════════════════════════════════════════════════════════════
# Evaluation
# ═══════════════════════════════════════════════════════════════════════════

def first_match(rules: Sequence[tuple[Predicate, Any]], answers: Answers, default: Any) -> Any:
    for predicate, value in rules:
        if predicate(answers):
            return value
    return default


def success_probability(answers: Answers) -> int:
    total = SUCCESS_BASE + sum(delta for predicate, delta in SUCCESS_ADJUSTMENTS if predicate(answers))
    return max(SUCCESS_MIN, min(SUCCESS_MAX, total))


def risk_factors(answers: Answers) -> tuple[str, ...]:
    return tuple(label for predicate, label in RISK_FACTOR_RULES if predicate(answers))


def preferred_rewards(answers: Answers) -> tuple[str, ...]:
    prefs = answers.get(F.REWARD_PREFERENCES) or {}
    return tuple(sorted(
        label for label, rating in prefs.items()
        if isinstance(rating, (int, float)) and rating >= PREFERRED_REWARD_MIN_RATING
    ))


def _echo(answers: Answers, key: str, default: str) -> str:
    value = answers.get(key)
    return value if isinstance(value, str) and value.strip() else default


def classify(answers: Answers) -> Profile:
    """Map finalized onboarding answers to a Profile.

    Same answers, same Profile: nothing here reads the clock or any state
    outside ``answers``.
    """
    return Profile(
        primary_type=first_match(PRIMARY_TYPE_RULES, answers, PRIMARY_TYPE_DEFAULT),
        procrastination_level=first_match(
            PROCRASTINATION_LEVEL_RULES, answers, PROCRASTINATION_LEVEL_DEFAULT),
        dopamine_sensitivity=first_match(
            DOPAMINE_SENSITIVITY_RULES, answers, DOPAMINE_SENSITIVITY_DEFAULT),
        complexity_tolerance=first_match(
            COMPLEXITY_TOLERANCE_RULES, answers, COMPLEXITY_TOLERANCE_DEFAULT),
        motivation_sustainability=first_match(
            MOTIVATION_SUSTAINABILITY_RULES, answers, MOTIVATION_SUSTAINABILITY_DEFAULT),
        risk_factors=risk_factors(answers),
        success_probability=success_probability(answers),
        trigger_type=_echo(answers, F.TRIGGER_TYPE, "unknown"),
        avoidance_pattern=_echo(answers, F.AVOIDANCE_PATTERN, "unknown"),
        motivation_style=_echo(answers, F.MOTIVATION_STYLE, "unknown"),
        reward_preferences=preferred_rewards(answers),
        optimal_session_length=_echo(answers, F.SESSION_LENGTH, DEFAULT_SESSION_LENGTH),
    )
