"""Stage Engine: resumable state machine driving the onboarding wizard.

The engine owns one Session. Each ``advance`` validates the current stage,
merges the answers, writes them through the PersistenceAdapter and moves to
the stage the branch table picks. Interim writes are best-effort: a storage
failure is logged and the user keeps going. ``complete`` is different: it
runs the CompletionPipeline and only marks the session completed if every
write landed.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from rewire.config.settings import DEFAULT_RESISTANCE_LEVEL
from rewire.engine.completion import CompletionPipeline, OnboardingResult
from rewire.engine.stages import (
    STAGES,
    BranchRule,
    StageDefinition,
    is_filled,
    next_stage,
)
from rewire.errors import SessionCompletedError, StageError, StorageError, ValidationError
from rewire.models.session import AnswerField as F
from rewire.models.session import Session
from rewire.storage.protocols import PersistenceAdapter

logger = logging.getLogger(__name__)

# Applied on the terminal stage when the client doesn't send them
COMPLETION_DEFAULTS: dict[str, Any] = {
    F.COMPLETION_ATTEMPTED: True,
    F.RESISTANCE_LEVEL: DEFAULT_RESISTANCE_LEVEL,
}


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class StageEngine:
    def __init__(
        self,
        session: Session,
        session_store: PersistenceAdapter,
        pipeline: Optional[CompletionPipeline] = None,
        stages: tuple[StageDefinition, ...] = STAGES,
        branches: dict[int, BranchRule] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.session_store = session_store
        self.pipeline = pipeline
        self.stages = {stage.number: stage for stage in stages}
        self.first_stage = min(self.stages)
        self.terminal_stage = max(self.stages)
        self.branches = branches
        self.clock = clock
        self._timer_started: Optional[float] = None

    # -- Construction --

    @classmethod
    def start(cls, user_id: str, session_store: PersistenceAdapter, **kwargs) -> StageEngine:
        stages = kwargs.get("stages", STAGES)
        session = Session(user_id=user_id, current_stage=min(s.number for s in stages))
        logger.info("Started onboarding for %s", user_id)
        return cls(session, session_store, **kwargs)

    @classmethod
    def resume(cls, user_id: str, session_store: PersistenceAdapter, **kwargs) -> StageEngine:
        """Rebuild the session from storage, or start a fresh one."""
        state = session_store.load(user_id)
        if state is None:
            return cls.start(user_id, session_store, **kwargs)

        session = Session(
            user_id=user_id,
            answers=dict(state.answers),
            started_at=state.started_at or _utcnow(),
            completed_at=state.completed_at,
        )
        engine = cls(session, session_store, **kwargs)
        if state.completed_at:
            session.current_stage = engine.terminal_stage
        elif state.last_stage is None:
            session.current_stage = engine.first_stage
        else:
            # A failed interim save can leave a hole behind last_stage
            gap = engine._first_incomplete_stage()
            after_last = engine._next(state.last_stage)
            session.current_stage = after_last if gap is None else min(gap[0], after_last)
        logger.info("Resumed onboarding for %s at stage %d", user_id, session.current_stage)
        return engine

    # -- State --

    @property
    def current_stage(self) -> int:
        return self.session.current_stage

    @property
    def stage(self) -> StageDefinition:
        return self.stages[self.session.current_stage]

    @property
    def is_terminal(self) -> bool:
        return self.session.current_stage == self.terminal_stage

    @property
    def answers(self) -> dict[str, Any]:
        return self.session.answers

    def progress(self) -> tuple[int, int]:
        return self.session.current_stage, len(self.stages)

    def answers_for_stage(self, number: int) -> dict[str, Any]:
        """Previously entered values for a stage, for redisplay."""
        stage = self.stages[number]
        fields = set(stage.required) | set(stage.checks) | set(stage.defaults)
        if stage.timed:
            fields.add(F.ACCOMPLISHMENTS_ELAPSED)
        return {k: v for k, v in self.session.answers.items() if k in fields}

    # -- Timed free-text capture --

    def record_input(self, field_name: str, value: Any) -> None:
        """Keystroke hook; the first non-empty input on a timed stage starts the clock."""
        if self.stage.timed and self._timer_started is None and is_filled(value):
            self._timer_started = self.clock()
            logger.debug("Timer started on stage %d by %s", self.current_stage, field_name)

    def _stop_timer(self) -> Optional[float]:
        if self._timer_started is None:
            return None
        elapsed = max(0.0, self.clock() - self._timer_started)
        self._timer_started = None
        return round(elapsed, 3)

    # -- Transitions --

    def _ensure_open(self) -> None:
        if self.session.is_completed:
            raise SessionCompletedError(f"Onboarding for {self.session.user_id} is already completed")

    def _next(self, stage_number: int) -> int:
        return next_stage(
            stage_number,
            self.session.answers,
            branches=self.branches,
            terminal_stage=self.terminal_stage,
        )

    def _missing_fields(self, stage: StageDefinition) -> dict[str, str]:
        answers = self.session.answers
        return {
            name: "required" for name in stage.required
            if not is_filled(answers.get(name)) and not is_filled(stage.defaults.get(name))
        }

    def _first_incomplete_stage(self) -> Optional[tuple[int, dict[str, str]]]:
        """Walk the branch path up to the terminal stage; first stage with unfilled required fields."""
        number = self.first_stage
        while number < self.terminal_stage:
            missing = self._missing_fields(self.stages[number])
            if missing:
                return number, missing
            number = self._next(number)
        return None

    def validate(self, partial: dict[str, Any], extra_defaults: dict[str, Any] | None = None) -> dict[str, Any]:
        """Check the current stage; return what this stage contributes.

        Raises ValidationError listing every missing or bad field. Nothing is
        mutated either way.
        """
        stage = self.stage
        defaults = {**stage.defaults, **(extra_defaults or {})}
        candidate = {**self.session.answers, **partial}
        contributed = dict(partial)
        for name, value in defaults.items():
            if not is_filled(candidate.get(name)):
                candidate[name] = value
                contributed[name] = value

        problems: dict[str, str] = {}
        for name in stage.required:
            if not is_filled(candidate.get(name)):
                problems[name] = "required"
            else:
                contributed.setdefault(name, candidate[name])
        for name, check in stage.checks.items():
            if name in problems or not is_filled(candidate.get(name)):
                continue
            reason = check(candidate[name])
            if reason:
                problems[name] = reason
        if problems:
            raise ValidationError(stage.number, problems)
        return contributed

    def _persist(self, stage_number: int, contributed: dict[str, Any]) -> None:
        try:
            self.session_store.save(self.session.user_id, stage_number, contributed)
        except StorageError as exc:
            logger.warning(
                "Could not save stage %d for %s, continuing: %s",
                stage_number, self.session.user_id, exc,
            )

    def advance(self, partial_answers: dict[str, Any] | None = None) -> int:
        """Submit the current stage and move on. Returns the new stage number."""
        self._ensure_open()
        if self.is_terminal:
            raise StageError("The final stage is submitted with complete()")

        contributed = self.validate(dict(partial_answers or {}))
        if self.stage.timed:
            elapsed = self._stop_timer()
            if elapsed is not None:
                contributed[F.ACCOMPLISHMENTS_ELAPSED] = elapsed

        stage_number = self.session.current_stage
        self.session.merge(contributed)
        self._persist(stage_number, contributed)
        self.session.current_stage = self._next(stage_number)
        logger.debug(
            "%s: stage %d -> %d", self.session.user_id, stage_number, self.session.current_stage,
        )
        return self.session.current_stage

    def go_back(self) -> int:
        """Step back one stage, keeping every answer already given."""
        self._ensure_open()
        if self.session.current_stage > self.first_stage:
            self.session.current_stage -= 1
            self._timer_started = None
        return self.session.current_stage

    def complete(self, final_answers: dict[str, Any] | None = None) -> OnboardingResult:
        """Submit the terminal stage and run the completion pipeline.

        On CompletionError the session stays open with its answers, so the
        same call can simply be repeated.
        """
        self._ensure_open()
        if not self.is_terminal:
            raise StageError(
                f"complete() is only allowed on stage {self.terminal_stage}, "
                f"currently on {self.session.current_stage}"
            )
        if self.pipeline is None:
            raise RuntimeError("StageEngine was built without a CompletionPipeline")

        contributed = self.validate(dict(final_answers or {}), extra_defaults=COMPLETION_DEFAULTS)
        gap = self._first_incomplete_stage()
        if gap is not None:
            raise ValidationError(*gap)
        self.session.merge(contributed)
        self._persist(self.terminal_stage, contributed)

        completed_at = _utcnow()
        result = self.pipeline.run(self.session.user_id, dict(self.session.answers), completed_at)
        self.session.completed_at = completed_at
        return result
