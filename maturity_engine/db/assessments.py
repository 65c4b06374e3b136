"""Area assessment database operations."""

from typing import Any
from uuid import UUID

from maturity_engine.core.exceptions import ConflictError
from maturity_engine.core.logging import get_logger
from maturity_engine.db.run_areas import is_status_conflict
from maturity_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_assessment(run_area_id: UUID) -> dict[str, Any] | None:
    """
    Get the live assessment for a run area.

    Args:
        run_area_id: Run area UUID

    Returns:
        Assessment dict or None if the area has not been scored

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_assessments")
            .select("*")
            .eq("run_area_id", str(run_area_id))
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(
            f"Failed to get assessment for run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id)},
        )
        raise


def commit_area_assessment(
    run_area_id: UUID,
    assessment: dict[str, Any],
    recommendations: list[dict[str, Any]],
) -> dict[str, Any]:
    """
    Replace the area's assessment and recommendations and complete the area.

    Runs the ``commit_area_assessment`` database function, which in one
    transaction re-checks that the area is still in_progress with five
    clarifier answers, swaps the assessment and recommendations, clears
    is_dirty and moves the area to completed.

    Args:
        run_area_id: Run area UUID
        assessment: Assessment row (JSON-serializable)
        recommendations: Recommendation rows (JSON-serializable)

    Returns:
        Updated run area dict

    Raises:
        ConflictError: If status or evidence changed since the guard check
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = supabase.rpc(
            "commit_area_assessment",
            {
                "p_run_area_id": str(run_area_id),
                "p_assessment": assessment,
                "p_recommendations": recommendations,
            },
        ).execute()

        if not response.data:
            raise ValueError("No data returned from commit_area_assessment")

        area = response.data[0] if isinstance(response.data, list) else response.data
        logger.info(
            f"Committed assessment for run_area {run_area_id}",
            extra={
                "run_area_id": str(run_area_id),
                "reported_score": assessment.get("reported_score"),
                "recommendation_count": len(recommendations),
            },
        )
        return area

    except Exception as e:
        if is_status_conflict(e):
            raise ConflictError(
                "evaluate_area",
                f"Area {run_area_id} changed during scoring",
                status="in_progress",
            ) from e
        logger.error(
            f"Failed to commit assessment for run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id)},
        )
        raise
