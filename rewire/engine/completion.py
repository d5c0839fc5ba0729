"""Completion pipeline: classify -> synthesize -> seed, committed as one unit.

Everything is computed in memory first, then written store by store. If any
write fails, the writes already made are undone and a CompletionError is
raised; the caller still has the answers and can retry the same submission.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from rewire.config.settings import STARTING_POINTS
from rewire.engine.catalog_seeder import seed_initial_catalog
from rewire.engine.classifier import classify
from rewire.engine.program import synthesize
from rewire.errors import CompletionError, StorageError
from rewire.models.profile import Profile, Program
from rewire.models.reward import RewardItem
from rewire.storage.protocols import (
    PersistenceAdapter,
    ProfileStore,
    ProgramStore,
    RewardStore,
)

logger = logging.getLogger(__name__)


@dataclass
class OnboardingResult:
    profile: Profile
    program: Program
    catalog: list[RewardItem] = field(default_factory=list)
    starting_points: int = 0
    completed_at: str = ""


class CompletionPipeline:
    """Runs the completion step against injected stores."""

    def __init__(
        self,
        session_store: PersistenceAdapter,
        profile_store: ProfileStore,
        program_store: ProgramStore,
        reward_store: RewardStore,
        starting_points: int = STARTING_POINTS,
    ):
        self.session_store = session_store
        self.profile_store = profile_store
        self.program_store = program_store
        self.reward_store = reward_store
        self.starting_points = starting_points

    def build(self, answers: dict[str, Any]) -> tuple[Profile, Program, list[RewardItem]]:
        """The pure part: no storage touched."""
        profile = classify(answers)
        program = synthesize(profile, answers)
        catalog = seed_initial_catalog()
        return profile, program, catalog

    def run(self, user_id: str, answers: dict[str, Any], completed_at: str) -> OnboardingResult:
        profile, program, catalog = self.build(answers)

        # Undo steps are registered before each write so a write that fails
        # midway is still cleaned up. Points are the exception: an existing
        # balance must survive a rollback.
        undo: list[tuple[str, Callable[[], None]]] = []
        try:
            undo.append(("profile", lambda: self.profile_store.delete(user_id)))
            self.profile_store.save(user_id, profile)

            undo.append(("program", lambda: self.program_store.delete(user_id)))
            self.program_store.save(user_id, program)

            seeded_ids = [item.reward_id for item in catalog]
            undo.append(("catalog", lambda: self.reward_store.delete_items(user_id, seeded_ids)))
            self.reward_store.bulk_insert(user_id, catalog)

            if self.reward_store.init_points(user_id, self.starting_points):
                undo.append(("points", lambda: self.reward_store.delete_points(user_id)))

            undo.append(("completed_at", lambda: self.session_store.clear_completed(user_id)))
            self.session_store.mark_completed(user_id, completed_at)
        except StorageError as exc:
            logger.error("Completion commit failed for %s: %s", user_id, exc)
            self._rollback(user_id, undo)
            raise CompletionError(
                user_id, f"Could not complete onboarding for {user_id}; nothing was saved"
            ) from exc

        logger.info(
            "Onboarding completed for %s: %s (success probability %d%%)",
            user_id, profile.primary_type, profile.success_probability,
        )
        return OnboardingResult(
            profile=profile,
            program=program,
            catalog=catalog,
            starting_points=self.starting_points,
            completed_at=completed_at,
        )

    @staticmethod
    def _rollback(user_id: str, undo: list[tuple[str, Callable[[], None]]]) -> None:
        for name, step in reversed(undo):
            try:
                step()
            except StorageError:
                logger.exception("Rollback of %s failed for %s", name, user_id)
