"""Downstream invalidation when MCQ answers change.

When a stored MCQ value changes, everything derived from it is stale:

  - delete all clarifier questions (both steps)
  - delete all clarifier answers bound to them
  - delete the area assessment (and its recommendations)
  - mark area.is_dirty = true
  - force status back to "in_progress"

This module only decides *what* must happen. The effects are applied in a
single transaction by the ``save_mcq_answers`` database function.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

from maturity_engine.core.schemas_areas import AreaStatus, McqAnswerIn
from maturity_engine.core.state_machine import assert_can_write_mcq, assert_transition, coerce_status


@dataclass(frozen=True)
class DownstreamInvalidation:
    """The cascade's effects, applied atomically with the MCQ upsert."""

    delete_clarifiers: bool = True
    delete_clarifier_answers: bool = True
    delete_assessment: bool = True
    set_dirty: bool = True
    force_status: AreaStatus = AreaStatus.IN_PROGRESS


@dataclass(frozen=True)
class McqWritePlan:
    """Outcome of evaluating an MCQ write against the stored answers.

    ``seen_values`` holds the stored value (or None) of every incoming
    question as read for this plan. The commit re-reads them under the area
    row lock and refuses to apply the plan if any has moved.
    """

    expected_status: AreaStatus
    next_status: AreaStatus
    mcq_changed: bool
    seen_values: dict[str, int | None] = field(default_factory=dict)
    changed_question_ids: tuple[str, ...] = ()
    invalidation: DownstreamInvalidation | None = None


def stored_values(
    existing_answers: Iterable[dict[str, Any]],
    incoming: Iterable[McqAnswerIn],
) -> dict[str, int | None]:
    """Map each incoming question ID to its stored value, None if unanswered."""
    existing_map = {str(a["question_id"]): int(a["answer_value"]) for a in existing_answers}
    return {answer.question_id: existing_map.get(answer.question_id) for answer in incoming}


def changed_questions(
    existing_answers: Iterable[dict[str, Any]],
    incoming: Iterable[McqAnswerIn],
) -> list[str]:
    """Return question IDs whose stored value differs from the incoming one.

    Answers to questions with no stored value are additions, not changes.
    """
    incoming = list(incoming)
    seen = stored_values(existing_answers, incoming)
    return [
        answer.question_id
        for answer in incoming
        if seen[answer.question_id] is not None and seen[answer.question_id] != answer.answer_value
    ]


def plan_mcq_write(
    status: AreaStatus | str,
    existing_answers: Iterable[dict[str, Any]],
    incoming: Iterable[McqAnswerIn],
) -> McqWritePlan:
    """
    Decide the effects of an MCQ write.

    The guard runs before any effect is planned: locked areas and completed
    areas receiving unchanged values are rejected, so the cascade's backward
    transition is only ever reached from in_progress or completed.

    Args:
        status: Current area status (read fresh for this request)
        existing_answers: Stored rows with question_id and answer_value
        incoming: Answers being written

    Returns:
        McqWritePlan describing the status the commit must see, the status
        after the write, and whether the cascade fires

    Raises:
        StateTransitionError: If MCQ writes are not allowed in this status
    """
    status = coerce_status(status)
    incoming = list(incoming)
    existing_answers = list(existing_answers)
    seen = stored_values(existing_answers, incoming)
    changed = changed_questions(existing_answers, incoming)
    assert_can_write_mcq(status, changes_values=bool(changed))

    if changed:
        invalidation = DownstreamInvalidation()
        return McqWritePlan(
            expected_status=status,
            next_status=invalidation.force_status,
            mcq_changed=True,
            seen_values=seen,
            changed_question_ids=tuple(changed),
            invalidation=invalidation,
        )

    next_status = status
    if status == AreaStatus.NOT_STARTED:
        assert_transition(status, AreaStatus.IN_PROGRESS)
        next_status = AreaStatus.IN_PROGRESS

    return McqWritePlan(
        expected_status=status,
        next_status=next_status,
        mcq_changed=False,
        seen_values=seen,
    )
