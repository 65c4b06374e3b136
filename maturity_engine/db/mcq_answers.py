"""MCQ question bank and answer database operations."""

from typing import Any
from uuid import UUID

from maturity_engine.core.exceptions import ConflictError
from maturity_engine.core.logging import get_logger
from maturity_engine.db.run_areas import is_status_conflict
from maturity_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_area_mcq_questions(area_id: str) -> list[dict[str, Any]]:
    """
    List the question bank rows for an area.

    Only the fields the engine consumes are selected: the prompt text itself
    belongs to the presentation layer.

    Args:
        area_id: Diagnostic area identifier

    Returns:
        List of dicts with id, dimension, weight

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("mcq_questions")
            .select("id, dimension, weight")
            .eq("area_id", area_id)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(
            f"Failed to list mcq_questions for area {area_id}: {e}",
            extra={"area_id": area_id},
        )
        raise


def list_mcq_answers(run_area_id: UUID) -> list[dict[str, Any]]:
    """
    List stored MCQ answers for a run area.

    Args:
        run_area_id: Run area UUID

    Returns:
        List of dicts with question_id and answer_value

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_mcq_answers")
            .select("question_id, answer_value")
            .eq("run_area_id", str(run_area_id))
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(
            f"Failed to list run_mcq_answers for run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id)},
        )
        raise


def save_mcq_answers(
    run_area_id: UUID,
    answers: list[dict[str, Any]],
    seen_answers: dict[str, int | None],
    expected_status: str,
    next_status: str,
    invalidate: bool,
) -> dict[str, Any]:
    """
    Upsert MCQ answers and, when ``invalidate`` is set, run the downstream
    cascade, all inside the ``save_mcq_answers`` database function.

    The function locks the run_areas row, re-checks ``expected_status`` and
    the stored values in ``seen_answers``, and raises SQLSTATE 40001 if
    either moved. Either every effect applies or none.

    Args:
        run_area_id: Run area UUID
        answers: List of {question_id, answer_value}
        seen_answers: Stored value per incoming question when the write was
            planned (None for unanswered)
        expected_status: Status the guard check saw
        next_status: Status to write after the upsert
        invalidate: Delete clarifiers/answers/assessment and set is_dirty

    Returns:
        Updated run area dict (id, status, is_dirty)

    Raises:
        ConflictError: If the area status or a stored answer changed since
            the write was planned
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.rpc(
            "save_mcq_answers",
            {
                "p_run_area_id": str(run_area_id),
                "p_answers": answers,
                "p_seen_answers": seen_answers,
                "p_expected_status": expected_status,
                "p_next_status": next_status,
                "p_invalidate": invalidate,
            },
        ).execute()

        if not response.data:
            raise ValueError("No data returned from save_mcq_answers")

        area = response.data[0] if isinstance(response.data, list) else response.data
        logger.info(
            f"Saved {len(answers)} MCQ answers for run_area {run_area_id}",
            extra={
                "run_area_id": str(run_area_id),
                "invalidated": invalidate,
                "status": area.get("status"),
            },
        )
        return area

    except Exception as e:
        if is_status_conflict(e):
            raise ConflictError(
                "save_mcq_answers",
                f"Area {run_area_id} changed during MCQ save",
                status=expected_status,
            ) from e
        logger.error(
            f"Failed to save MCQ answers for run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id)},
        )
        raise
