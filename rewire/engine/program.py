"""Program synthesis: three-week task plan and expected outcomes.

Week content and peak hours are fixed templates. Only the optimal session
length is substituted in; the profile's categorical fields don't change the
plan yet.
"""

from __future__ import annotations

from typing import Any

from rewire.models.profile import Profile, Program
from rewire.models.session import AnswerField as F

DEFAULT_WORK_DURATION = 45

# Checked in order; first fragment found in session_length wins
WORK_DURATION_RULES: list[tuple[str, int]] = [
    ("15-25", 25),
    ("30-45", 45),
    ("1-2", 90),
    ("3+", 180),
]

# (max work minutes, break minutes); anything longer gets the fallback
BREAK_DURATION_RULES: list[tuple[int, int]] = [
    (25, 5),
    (45, 15),
    (90, 20),
]
LONG_BREAK_DURATION = 30

DEFAULT_PEAK_HOURS: tuple[str, ...] = ("09:00", "10:00", "11:00", "14:00", "15:00")

WEEK1_TASKS: tuple[str, ...] = (
    "Complete 3-minute micro-task to build momentum",
    "Break down your main project into 5 micro-actions",
    "Practice the 2-minute rule with daily tasks",
    "Set up your optimal work environment",
    "Complete first micro-action from your project breakdown",
    "Track your dopamine response to task completion",
    "Establish your daily productivity ritual",
)

WEEK2_TASKS: tuple[str, ...] = (
    "Implement your personalized focus protocol",
    "Complete 3 micro-actions from your main project",
    "Practice procrastination interruption techniques",
    "Optimize your reward timing for maximum dopamine",
    "Handle your first resistance moment using AI coaching",
    "Build your task completion celebration ritual",
    "Establish sustainable momentum patterns",
)

WEEK3_TASKS: tuple[str, ...] = (
    "Complete major milestone in your main project",
    "Master complex task breakdown independently",
    "Implement advanced focus and flow techniques",
    "Create your long-term productivity system",
    "Handle multiple projects using neural switching",
    "Establish relapse prevention protocols",
    "Graduate to self-directed neural management",
)

EXPECTED_OUTCOMES: tuple[str, ...] = (
    "70-85% reduction in project initiation delay",
    "Sustained focus sessions of {optimal_session_length}+",
    "Completion of primary project within 21 days",
    "Transferable system for future projects",
    "Measurable dopamine response optimization",
    "Reduced procrastination anxiety by 60%+",
    "Established neural pathway automation",
)


def work_duration(session_length: str | None) -> int:
    text = session_length or ""
    for fragment, minutes in WORK_DURATION_RULES:
        if fragment in text:
            return minutes
    return DEFAULT_WORK_DURATION


def break_duration(work_minutes: int) -> int:
    for limit, minutes in BREAK_DURATION_RULES:
        if work_minutes <= limit:
            return minutes
    return LONG_BREAK_DURATION


def expected_outcomes(profile: Profile) -> tuple[str, ...]:
    return tuple(
        line.format(optimal_session_length=profile.optimal_session_length)
        for line in EXPECTED_OUTCOMES
    )


def synthesize(profile: Profile, answers: dict[str, Any]) -> Program:
    """Build the Program for a classified user. Total: never raises on a valid Profile."""
    session_length = answers.get(F.SESSION_LENGTH)
    work = work_duration(session_length if isinstance(session_length, str) else None)
    return Program(
        week1_tasks=WEEK1_TASKS,
        week2_tasks=WEEK2_TASKS,
        week3_tasks=WEEK3_TASKS,
        expected_outcomes=expected_outcomes(profile),
        work_duration=work,
        break_duration=break_duration(work),
        risk_factors=profile.risk_factors,
        success_probability=profile.success_probability,
        peak_productivity_hours=DEFAULT_PEAK_HOURS,
    )
