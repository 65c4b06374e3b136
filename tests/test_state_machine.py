"""Tests for maturity_engine.core.state_machine: transitions and operation guards."""

import pytest

from maturity_engine.core.exceptions import InvalidTransitionError, StateTransitionError
from maturity_engine.core.schemas_areas import AreaStatus
from maturity_engine.core.state_machine import (
    AREA_FLOW,
    assert_can_answer_clarifier,
    assert_can_generate_core_clarifiers,
    assert_can_generate_followups,
    assert_can_score_area,
    assert_can_write_mcq,
    assert_transition,
    assert_writable,
    can_transition,
)

ALL_STATUSES = list(AreaStatus)


# =============================================================================
# Transitions
# =============================================================================


class TestTransitions:
    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            ("not_started", "in_progress"),
            ("in_progress", "completed"),
            ("completed", "locked"),
        ],
    )
    def test_forward_transitions_allowed(self, from_status, to_status):
        assert can_transition(from_status, to_status) is True
        assert_transition(from_status, to_status)

    @pytest.mark.parametrize("status", ALL_STATUSES)
    def test_self_transition_never_allowed(self, status):
        assert can_transition(status, status) is False

    @pytest.mark.parametrize("target", ALL_STATUSES)
    def test_locked_is_terminal(self, target):
        assert can_transition(AreaStatus.LOCKED, target) is False

    def test_no_backward_transitions(self):
        assert can_transition("completed", "in_progress") is False
        assert can_transition("in_progress", "not_started") is False
        assert can_transition("locked", "completed") is False

    def test_no_skipping(self):
        assert can_transition("not_started", "completed") is False
        assert can_transition("in_progress", "locked") is False

    def test_assert_transition_raises_with_context(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            assert_transition("in_progress", "locked")

        err = exc_info.value
        assert err.code == "InvalidTransition"
        assert err.status == "in_progress"
        assert err.http_status == 409
        assert isinstance(err, StateTransitionError)

    def test_flow_covers_every_status(self):
        assert set(AREA_FLOW) == set(AreaStatus)

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            can_transition("archived", "locked")


# =============================================================================
# Guards
# =============================================================================


class TestMcqGuard:
    @pytest.mark.parametrize("status", ["not_started", "in_progress"])
    def test_writable_statuses(self, status):
        assert_can_write_mcq(status)
        assert_can_write_mcq(status, changes_values=True)

    def test_completed_rejects_unchanged_write(self):
        with pytest.raises(StateTransitionError) as exc_info:
            assert_can_write_mcq("completed")
        assert exc_info.value.operation == "save_mcq_answers"
        assert exc_info.value.status == "completed"

    def test_completed_accepts_changing_write(self):
        assert_can_write_mcq("completed", changes_values=True)

    def test_locked_rejects_every_write(self):
        with pytest.raises(StateTransitionError):
            assert_can_write_mcq("locked")
        with pytest.raises(StateTransitionError):
            assert_can_write_mcq("locked", changes_values=True)


class TestOperationGuards:
    @pytest.mark.parametrize(
        "guard",
        [
            assert_can_generate_core_clarifiers,
            assert_can_generate_followups,
            assert_can_answer_clarifier,
            assert_can_score_area,
        ],
    )
    def test_in_progress_only(self, guard):
        guard("in_progress")
        for status in ("not_started", "completed", "locked"):
            with pytest.raises(StateTransitionError) as exc_info:
                guard(status)
            assert exc_info.value.status == status

    def test_core_from_not_started_names_operation(self):
        with pytest.raises(StateTransitionError) as exc_info:
            assert_can_generate_core_clarifiers("not_started")
        assert exc_info.value.operation == "generate_core_clarifiers"
        assert exc_info.value.code == "InvalidState"

    def test_score_guard_reports_evaluate_area(self):
        with pytest.raises(StateTransitionError) as exc_info:
            assert_can_score_area("completed")
        assert exc_info.value.operation == "evaluate_area"

    @pytest.mark.parametrize("status", ["completed", "locked"])
    def test_finalized_statuses_not_writable(self, status):
        with pytest.raises(StateTransitionError):
            assert_writable(status, "anything")

    def test_accepts_enum_members(self):
        assert_can_score_area(AreaStatus.IN_PROGRESS)
