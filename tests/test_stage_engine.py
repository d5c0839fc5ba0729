"""Tests for the onboarding stage engine."""

import pytest

from rewire.config.settings import DEFAULT_DOPAMINE_RESPONSE, DEFAULT_RESISTANCE_LEVEL
from rewire.engine.stage_engine import StageEngine
from rewire.engine.stages import STAGES, TERMINAL_STAGE, get_stage, is_filled, next_stage
from rewire.errors import SessionCompletedError, StageError, StorageError, ValidationError
from rewire.models.session import AnswerField as F
from rewire.models.session import Session
from rewire.storage.redis_store import RedisSessionStore


class FailingSaveStore(RedisSessionStore):
    """Session store whose interim saves always fail."""

    def save(self, user_id, stage, partial_answers):
        raise StorageError("redis unavailable")


class DropsStageTwoStore(RedisSessionStore):
    """Session store that loses only the stage 2 write."""

    def save(self, user_id, stage, partial_answers):
        if stage == 2:
            raise StorageError("redis unavailable")
        super().save(user_id, stage, partial_answers)


def _advance_to(engine, submissions, stage):
    while engine.current_stage < stage:
        engine.advance(submissions[engine.current_stage])


# ═══════════════════════════════════════════════════════════════════════════
# Stage table & branching
# ═══════════════════════════════════════════════════════════════════════════


class TestStageTable:
    def test_fourteen_stages_in_order(self):
        assert [s.number for s in STAGES] == list(range(1, 15))
        assert TERMINAL_STAGE == 14

    def test_get_stage_unknown(self):
        with pytest.raises(KeyError):
            get_stage(15)

    @pytest.mark.parametrize("value,expected", [
        (0, True),
        (False, True),
        ("x", True),
        (None, False),
        ("   ", False),
        ([], False),
        ({}, False),
    ])
    def test_is_filled(self, value, expected):
        assert is_filled(value) is expected


class TestNextStage:
    def test_sequential_default(self):
        assert next_stage(1, {}) == 2

    def test_known_trigger_goes_to_avoidance(self):
        assert next_stage(5, {F.TRIGGER_TYPE: "Unclear where to start"}) == 6

    def test_unknown_trigger_falls_back(self):
        assert next_stage(5, {F.TRIGGER_TYPE: "Something else"}) == 6

    def test_never_moves_backwards(self):
        assert next_stage(5, {}, branches={5: lambda a: 2}) == 6

    def test_capped_at_terminal(self):
        assert next_stage(13, {}, branches={13: lambda a: 40}) == TERMINAL_STAGE
        assert next_stage(TERMINAL_STAGE, {}) == TERMINAL_STAGE


# ═══════════════════════════════════════════════════════════════════════════
# Advance / validation
# ═══════════════════════════════════════════════════════════════════════════


class TestAdvance:
    def test_advance_moves_forward(self, make_engine, submissions):
        engine = make_engine()
        assert engine.advance(submissions[1]) == 2
        assert engine.answers[F.BASELINE_ANXIETY] == 6

    def test_missing_field_blocks_transition(self, make_engine, session_store):
        engine = make_engine()
        with pytest.raises(ValidationError) as exc_info:
            engine.advance({})
        assert exc_info.value.stage == 1
        assert exc_info.value.fields == {F.BASELINE_ANXIETY: "required"}
        assert engine.current_stage == 1
        assert session_store.load("user-1") is None

    @pytest.mark.parametrize("value", [11, -1, True, "6"])
    def test_anxiety_range(self, make_engine, value):
        engine = make_engine()
        with pytest.raises(ValidationError):
            engine.advance({F.BASELINE_ANXIETY: value})
        assert engine.current_stage == 1

    def test_zero_is_an_answer(self, make_engine):
        engine = make_engine()
        assert engine.advance({F.BASELINE_ANXIETY: 0}) == 2

    def test_three_accomplishments_required(self, make_engine, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 3)
        with pytest.raises(ValidationError) as exc_info:
            engine.advance({F.ACCOMPLISHMENTS: ["one", "two", ""]})
        assert F.ACCOMPLISHMENTS in exc_info.value.fields
        assert engine.current_stage == 3

    def test_dopamine_response_defaults(self, make_engine, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 4)
        assert engine.answers[F.DOPAMINE_RESPONSE] == DEFAULT_DOPAMINE_RESPONSE

    def test_dopamine_response_kept_when_given(self, make_engine, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 3)
        engine.advance({**submissions[3], F.DOPAMINE_RESPONSE: 2})
        assert engine.answers[F.DOPAMINE_RESPONSE] == 2

    def test_info_stage_needs_nothing(self, make_engine, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 4)
        assert engine.advance() == 5

    def test_reward_ratings_must_cover_every_label(self, make_engine, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 9)
        with pytest.raises(ValidationError):
            engine.advance({F.REWARD_PREFERENCES: {"Helping others": 5}})

    def test_advance_on_terminal_raises(self, engine_at_terminal, final_answers):
        with pytest.raises(StageError):
            engine_at_terminal.advance(final_answers)

    def test_interim_save_failure_still_advances(self, make_engine, r, submissions, caplog):
        engine = make_engine(store=FailingSaveStore(r))
        with caplog.at_level("WARNING"):
            assert engine.advance(submissions[1]) == 2
        assert engine.answers[F.BASELINE_ANXIETY] == 6
        assert "Could not save stage 1" in caplog.text

    def test_custom_branch_table_skips(self, make_engine, submissions):
        engine = make_engine(branches={1: lambda answers: 3})
        assert engine.advance(submissions[1]) == 3

    def test_progress(self, make_engine, submissions):
        engine = make_engine()
        assert engine.progress() == (1, 14)
        engine.advance(submissions[1])
        assert engine.progress() == (2, 14)


class TestGoBack:
    def test_go_back_keeps_answers(self, make_engine, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 3)
        assert engine.go_back() == 2
        assert engine.answers[F.BASELINE_ANXIETY] == 6
        assert engine.answers_for_stage(2) == submissions[2]

    def test_go_back_stops_at_first_stage(self, make_engine):
        engine = make_engine()
        assert engine.go_back() == 1

    def test_resubmitting_overwrites(self, make_engine, submissions, session_store):
        engine = make_engine()
        _advance_to(engine, submissions, 3)
        engine.go_back()
        engine.advance({F.PROCRASTINATION_FREQUENCY: "11-30"})
        state = session_store.load("user-1")
        assert state.stage_answers[2] == {F.PROCRASTINATION_FREQUENCY: "11-30"}
        assert state.answers[F.PROCRASTINATION_FREQUENCY] == "11-30"


# ═══════════════════════════════════════════════════════════════════════════
# Timed stage
# ═══════════════════════════════════════════════════════════════════════════


class TestTimer:
    def test_elapsed_recorded(self, make_engine, submissions, clock):
        engine = make_engine()
        _advance_to(engine, submissions, 3)
        engine.record_input(F.ACCOMPLISHMENTS, "M")
        clock.tick(12.5)
        engine.record_input(F.ACCOMPLISHMENTS, "Made coffee")
        clock.tick(30)
        engine.advance(submissions[3])
        assert engine.answers[F.ACCOMPLISHMENTS_ELAPSED] == 42.5

    def test_empty_input_does_not_start_timer(self, make_engine, submissions, clock):
        engine = make_engine()
        _advance_to(engine, submissions, 3)
        engine.record_input(F.ACCOMPLISHMENTS, "")
        clock.tick(5)
        engine.advance(submissions[3])
        assert F.ACCOMPLISHMENTS_ELAPSED not in engine.answers

    def test_untimed_stage_ignores_input(self, make_engine, submissions, clock):
        engine = make_engine()
        engine.record_input(F.BASELINE_ANXIETY, 6)
        clock.tick(5)
        engine.advance(submissions[1])
        assert F.ACCOMPLISHMENTS_ELAPSED not in engine.answers


# ═══════════════════════════════════════════════════════════════════════════
# Completion
# ═══════════════════════════════════════════════════════════════════════════


class TestComplete:
    def test_complete_off_terminal_raises(self, make_engine, final_answers):
        engine = make_engine()
        with pytest.raises(StageError):
            engine.complete(final_answers)

    def test_complete_without_pipeline(self, make_engine, submissions, final_answers):
        engine = make_engine(pipeline=None)
        _advance_to(engine, submissions, 14)
        with pytest.raises(RuntimeError):
            engine.complete(final_answers)

    def test_missing_action_blocks_completion(self, engine_at_terminal, final_answers):
        del final_answers[F.THIRD_ACTION]
        with pytest.raises(ValidationError) as exc_info:
            engine_at_terminal.complete(final_answers)
        assert F.THIRD_ACTION in exc_info.value.fields
        assert not engine_at_terminal.session.is_completed

    def test_resistance_level_range(self, engine_at_terminal, final_answers):
        with pytest.raises(ValidationError):
            engine_at_terminal.complete({**final_answers, F.RESISTANCE_LEVEL: 11})

    def test_complete_success(self, engine_at_terminal, final_answers,
                              profile_store, program_store, reward_store, session_store):
        result = engine_at_terminal.complete(final_answers)

        assert engine_at_terminal.session.is_completed
        assert engine_at_terminal.session.completed_at == result.completed_at
        assert profile_store.get("user-1") == result.profile
        assert program_store.get("user-1") == result.program
        assert len(reward_store.list_catalog("user-1")) == 5
        assert reward_store.get_points("user-1") == 100
        assert session_store.load("user-1").completed_at == result.completed_at

    def test_completion_defaults_applied(self, engine_at_terminal, final_answers):
        engine_at_terminal.complete(final_answers)
        assert engine_at_terminal.answers[F.COMPLETION_ATTEMPTED] is True
        assert engine_at_terminal.answers[F.RESISTANCE_LEVEL] == DEFAULT_RESISTANCE_LEVEL

    def test_profile_reflects_answers(self, engine_at_terminal, final_answers):
        result = engine_at_terminal.complete(final_answers)
        assert result.profile.primary_type == "Perfectionism Paralysis"
        assert result.program.work_duration == 90
        assert result.program.break_duration == 20

    def test_completed_session_is_immutable(self, engine_at_terminal, final_answers):
        engine_at_terminal.complete(final_answers)
        with pytest.raises(SessionCompletedError):
            engine_at_terminal.advance({})
        with pytest.raises(SessionCompletedError):
            engine_at_terminal.go_back()
        with pytest.raises(SessionCompletedError):
            engine_at_terminal.complete(final_answers)


# ═══════════════════════════════════════════════════════════════════════════
# Resume
# ═══════════════════════════════════════════════════════════════════════════


class TestResume:
    def test_resume_without_state_starts_fresh(self, session_store):
        engine = StageEngine.resume("nobody", session_store)
        assert engine.current_stage == 1
        assert engine.answers == {}

    def test_resume_mid_assessment(self, make_engine, session_store, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 6)

        resumed = StageEngine.resume("user-1", session_store)
        assert resumed.current_stage == 6
        assert resumed.answers == engine.answers

    def test_resume_after_going_back_uses_last_save(self, make_engine, session_store, submissions):
        engine = make_engine()
        _advance_to(engine, submissions, 4)
        engine.go_back()
        engine.advance(submissions[3])

        assert StageEngine.resume("user-1", session_store).current_stage == 4

    def test_resume_completed_session(self, engine_at_terminal, final_answers, session_store):
        engine_at_terminal.complete(final_answers)
        resumed = StageEngine.resume("user-1", session_store)
        assert resumed.is_terminal
        assert resumed.session.is_completed
        with pytest.raises(SessionCompletedError):
            resumed.go_back()

    def test_resumed_engine_can_finish(self, make_engine, session_store, pipeline,
                                       submissions, final_answers):
        engine = make_engine()
        _advance_to(engine, submissions, 8)

        resumed = StageEngine.resume("user-1", session_store, pipeline=pipeline)
        _advance_to(resumed, submissions, 14)
        result = resumed.complete(final_answers)
        assert result.profile.trigger_type == submissions[5][F.TRIGGER_TYPE]

    def test_resume_stops_at_stage_lost_by_failed_save(self, make_engine, r, session_store, submissions):
        engine = make_engine(store=DropsStageTwoStore(r))
        _advance_to(engine, submissions, 6)

        resumed = StageEngine.resume("user-1", session_store)
        assert resumed.current_stage == 2
        assert F.PROCRASTINATION_FREQUENCY not in resumed.answers
        assert resumed.answers[F.TRIGGER_TYPE] == submissions[5][F.TRIGGER_TYPE]

    def test_resumed_gap_refilled_then_completes(self, make_engine, r, session_store, pipeline,
                                                 submissions, final_answers):
        engine = make_engine(store=DropsStageTwoStore(r))
        _advance_to(engine, submissions, 6)

        resumed = StageEngine.resume("user-1", session_store, pipeline=pipeline)
        resumed.advance(submissions[2])
        while not resumed.is_terminal:
            resumed.advance(submissions.get(resumed.current_stage, {}))
        result = resumed.complete(final_answers)
        assert result.profile.procrastination_level == "MEDIUM"
        assert resumed.answers[F.PROCRASTINATION_FREQUENCY] == "4-10"


class TestCompletionGuard:
    def test_complete_refuses_unfilled_earlier_stage(self, session_store, pipeline, profile_store,
                                                     submissions, final_answers):
        answers = {}
        for stage, partial in submissions.items():
            if stage != 2:
                answers.update(partial)
        answers[F.DOPAMINE_RESPONSE] = DEFAULT_DOPAMINE_RESPONSE
        session = Session(user_id="user-1", current_stage=TERMINAL_STAGE, answers=answers)
        engine = StageEngine(session, session_store, pipeline=pipeline)

        with pytest.raises(ValidationError) as exc_info:
            engine.complete(final_answers)
        assert exc_info.value.stage == 2
        assert F.PROCRASTINATION_FREQUENCY in exc_info.value.fields
        assert not engine.session.is_completed
        assert profile_store.get("user-1") is None
