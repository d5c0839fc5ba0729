"""Profile and Program records produced once, at session completion."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict


class ProcrastinationLevel:
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DopamineSensitivity:
    RESPONSIVE = "RESPONSIVE"
    MODERATE = "MODERATE"
    RESISTANT = "RESISTANT"


class ComplexityTolerance:
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class MotivationSustainability:
    SPRINT = "SPRINT"
    STEADY = "STEADY"
    MARATHON = "MARATHON"


@dataclass(frozen=True)
class Profile:
    primary_type: str
    procrastination_level: str
    dopamine_sensitivity: str
    complexity_tolerance: str
    motivation_sustainability: str
    risk_factors: tuple[str, ...]
    success_probability: int        # 10-95
    trigger_type: str = "unknown"
    avoidance_pattern: str = "unknown"
    motivation_style: str = "unknown"
    reward_preferences: tuple[str, ...] = ()
    optimal_session_length: str = "30-45 minutes"

    def to_dict(self) -> dict:
        d = asdict(self)
        d["risk_factors"] = list(self.risk_factors)
        d["reward_preferences"] = list(self.reward_preferences)
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Profile:
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        data["risk_factors"] = tuple(data.get("risk_factors", ()))
        data["reward_preferences"] = tuple(data.get("reward_preferences", ()))
        data["success_probability"] = int(data["success_probability"])
        return cls(**data)


@dataclass(frozen=True)
class Program:
    week1_tasks: tuple[str, ...]
    week2_tasks: tuple[str, ...]
    week3_tasks: tuple[str, ...]
    expected_outcomes: tuple[str, ...]
    work_duration: int              # minutes
    break_duration: int             # minutes
    risk_factors: tuple[str, ...] = ()
    success_probability: int = 50
    peak_productivity_hours: tuple[str, ...] = field(default_factory=tuple)

    _SEQUENCE_FIELDS = (
        "week1_tasks", "week2_tasks", "week3_tasks",
        "expected_outcomes", "risk_factors", "peak_productivity_hours",
    )

    def to_dict(self) -> dict:
        d = asdict(self)
        for name in self._SEQUENCE_FIELDS:
            d[name] = list(d[name])
        return d

    @classmethod
    def from_dict(cls, data: dict) -> Program:
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        for name in cls._SEQUENCE_FIELDS:
            if name in data:
                data[name] = tuple(data[name])
        return cls(**data)
