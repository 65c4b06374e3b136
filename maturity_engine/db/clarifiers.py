"""Clarifier question and answer database operations."""

from typing import Any
from uuid import UUID

from maturity_engine.core.exceptions import ConflictError
from maturity_engine.core.logging import get_logger
from maturity_engine.core.state_machine import OP_CORE_CLARIFIERS, OP_FOLLOWUP_CLARIFIERS
from maturity_engine.db.run_areas import is_status_conflict
from maturity_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_clarifier_questions(run_area_id: UUID, step: int | None = None) -> list[dict[str, Any]]:
    """
    List clarifier questions for a run area, optionally for one step.

    Args:
        run_area_id: Run area UUID
        step: Optional step filter (1 = core, 2 = follow-up)

    Returns:
        List of question dicts ordered by step, then created_at

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        query = (
            supabase.table("run_clarifier_questions")
            .select("id, run_area_id, step, question_text, topic")
            .eq("run_area_id", str(run_area_id))
        )
        if step is not None:
            query = query.eq("step", step)

        response = query.order("step").order("created_at").execute()
        return response.data or []

    except Exception as e:
        logger.error(
            f"Failed to list clarifier questions for run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id), "step": step},
        )
        raise


def get_clarifier_question(question_id: UUID) -> dict[str, Any] | None:
    """Get a single clarifier question, or None if not found."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_clarifier_questions")
            .select("id, run_area_id, step, question_text, topic")
            .eq("id", str(question_id))
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(
            f"Failed to get clarifier question {question_id}: {e}",
            extra={"question_id": str(question_id)},
        )
        raise


def insert_clarifier_round(
    run_area_id: UUID,
    step: int,
    questions: list[dict[str, Any]],
    expected_status: str,
) -> list[dict[str, Any]]:
    """
    Insert one round of clarifier questions via the ``insert_clarifier_round``
    database function.

    The function locks the run_areas row, re-checks ``expected_status`` and
    that the step has no questions yet, and raises SQLSTATE 40001 otherwise.
    A concurrent generation for the same step therefore inserts nothing.

    Args:
        run_area_id: Run area UUID
        step: 1 for core, 2 for follow-up
        questions: List of {question_text, topic}
        expected_status: Status the guard check saw

    Returns:
        Inserted question dicts

    Raises:
        ConflictError: If the status moved or the step was already generated
        Exception: If database operation fails
    """
    supabase = get_supabase()
    operation = OP_CORE_CLARIFIERS if step == 1 else OP_FOLLOWUP_CLARIFIERS

    try:
        response = supabase.rpc(
            "insert_clarifier_round",
            {
                "p_run_area_id": str(run_area_id),
                "p_step": step,
                "p_questions": [
                    {"question_text": q["question_text"], "topic": q.get("topic")} for q in questions
                ],
                "p_expected_status": expected_status,
            },
        ).execute()

        if not response.data:
            raise ValueError("No data returned from insert_clarifier_round")

        logger.info(
            f"Inserted {len(response.data)} step-{step} clarifiers for run_area {run_area_id}",
            extra={"run_area_id": str(run_area_id), "step": step},
        )
        return response.data

    except Exception as e:
        if is_status_conflict(e):
            raise ConflictError(
                operation,
                f"Area {run_area_id} changed or already has step-{step} clarifiers",
                status=expected_status,
            ) from e
        logger.error(
            f"Failed to insert clarifier questions: {e}",
            extra={"run_area_id": str(run_area_id), "step": step},
        )
        raise


def list_clarifier_answers(question_ids: list[str]) -> list[dict[str, Any]]:
    """
    List answers bound to the given clarifier questions.

    Args:
        question_ids: Clarifier question IDs

    Returns:
        List of answer dicts

    Raises:
        Exception: If database operation fails
    """
    if not question_ids:
        return []

    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_clarifier_answers")
            .select("id, clarifier_question_id, answer_text, audio_ref, transcription_status")
            .in_("clarifier_question_id", [str(q) for q in question_ids])
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(
            f"Failed to list clarifier answers: {e}",
            extra={"question_count": len(question_ids)},
        )
        raise


def upsert_clarifier_answer(question_id: UUID, payload: dict[str, Any]) -> dict[str, Any]:
    """
    Insert or replace the answer for a clarifier question.

    Args:
        question_id: Clarifier question UUID
        payload: answer_text, audio_ref, transcription_status

    Returns:
        Upserted answer dict

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        row = {"clarifier_question_id": str(question_id), **payload}
        response = (
            supabase.table("run_clarifier_answers")
            .upsert(row, on_conflict="clarifier_question_id")
            .execute()
        )

        if not response.data:
            raise ValueError("No data returned from upsert_clarifier_answer")

        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to upsert clarifier answer for question {question_id}: {e}",
            extra={"question_id": str(question_id)},
        )
        raise
