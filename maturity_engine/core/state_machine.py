"""
Area state machine and operation guards.

Allowed status transitions for run_areas:

  NOT_STARTED → IN_PROGRESS → COMPLETED → LOCKED

There is no automatic path backwards. The only backward move is the forced
reset to IN_PROGRESS performed by the invalidation cascade, which bypasses
``assert_transition`` on purpose (see ``core.invalidation``).

Guards gate *operations*, not status changes: each one checks the status read
for the current request and raises ``StateTransitionError`` when the
operation is not legal.
"""

from maturity_engine.core.exceptions import InvalidTransitionError, StateTransitionError
from maturity_engine.core.schemas_areas import AreaStatus

AREA_FLOW: dict[AreaStatus, frozenset[AreaStatus]] = {
    AreaStatus.NOT_STARTED: frozenset({AreaStatus.IN_PROGRESS}),
    AreaStatus.IN_PROGRESS: frozenset({AreaStatus.COMPLETED}),
    AreaStatus.COMPLETED: frozenset({AreaStatus.LOCKED}),
    AreaStatus.LOCKED: frozenset(),  # frozen until an admin unlocks
}

MCQ_WRITABLE = frozenset({AreaStatus.NOT_STARTED, AreaStatus.IN_PROGRESS})
FINALIZED = frozenset({AreaStatus.COMPLETED, AreaStatus.LOCKED})

# Operation names reported on errors and in logs
OP_SAVE_MCQ = "save_mcq_answers"
OP_CORE_CLARIFIERS = "generate_core_clarifiers"
OP_FOLLOWUP_CLARIFIERS = "generate_followup_clarifiers"
OP_ANSWER_CLARIFIER = "submit_clarifier_answer"
OP_SCORE_AREA = "evaluate_area"
OP_LOCK_AREA = "lock_area"
OP_TRANSITION = "transition"


def coerce_status(status: AreaStatus | str) -> AreaStatus:
    """Accept raw datastore values as well as enum members."""
    return status if isinstance(status, AreaStatus) else AreaStatus(status)


# ============================================================================
# Transitions
# ============================================================================


def can_transition(from_status: AreaStatus | str, to_status: AreaStatus | str) -> bool:
    """Return True if ``from_status → to_status`` is an allowed forward transition."""
    return coerce_status(to_status) in AREA_FLOW.get(coerce_status(from_status), frozenset())


def assert_transition(from_status: AreaStatus | str, to_status: AreaStatus | str) -> None:
    """Raise InvalidTransitionError if the transition is not allowed."""
    if not can_transition(from_status, to_status):
        from_value = coerce_status(from_status).value
        raise InvalidTransitionError(
            OP_TRANSITION,
            from_value,
            f"Invalid transition: {from_value} → {coerce_status(to_status).value}",
        )


# ============================================================================
# Guards
# ============================================================================


def assert_can_write_mcq(status: AreaStatus | str, changes_values: bool = False) -> None:
    """
    MCQ answers are editable while the area is not_started or in_progress.

    A completed area accepts a write only when it changes a stored value:
    that write reopens the area through the invalidation cascade. Locked
    areas reject every write.
    """
    status = coerce_status(status)
    if status in MCQ_WRITABLE:
        return
    if status == AreaStatus.COMPLETED and changes_values:
        return
    raise StateTransitionError(
        OP_SAVE_MCQ, status.value, f"Cannot modify MCQs when area is {status.value}"
    )


def assert_writable(status: AreaStatus | str, operation: str) -> None:
    """Prevents any write once the area is completed or locked."""
    status = coerce_status(status)
    if status in FINALIZED:
        raise StateTransitionError(
            operation, status.value, f"{operation} is not allowed when area is {status.value}"
        )


def _require_in_progress(status: AreaStatus | str, operation: str, message: str) -> None:
    status = coerce_status(status)
    assert_writable(status, operation)
    if status != AreaStatus.IN_PROGRESS:
        raise StateTransitionError(operation, status.value, message)


def assert_can_generate_core_clarifiers(status: AreaStatus | str) -> None:
    """Core clarifiers (3 questions) only while in_progress."""
    _require_in_progress(
        status,
        OP_CORE_CLARIFIERS,
        "Core clarifiers can only be generated when area is in_progress",
    )


def assert_can_generate_followups(status: AreaStatus | str) -> None:
    """Follow-up clarifiers (2 questions) only while in_progress."""
    _require_in_progress(
        status,
        OP_FOLLOWUP_CLARIFIERS,
        "Follow-up clarifiers can only be generated when area is in_progress",
    )


def assert_can_answer_clarifier(status: AreaStatus | str) -> None:
    _require_in_progress(
        status,
        OP_ANSWER_CLARIFIER,
        "Clarifier answers can only be submitted when area is in_progress",
    )


def assert_can_score_area(status: AreaStatus | str) -> None:
    """Scoring is the terminal in_progress action."""
    _require_in_progress(
        status,
        OP_SCORE_AREA,
        "Area can only be evaluated when status is in_progress",
    )
