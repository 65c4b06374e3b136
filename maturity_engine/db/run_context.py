"""Run-scoped context (company, pillar, pain points, ambition, role)."""

from typing import Any
from uuid import UUID

from maturity_engine.core.logging import get_logger
from maturity_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_run_context(run_id: UUID | str | None) -> dict[str, Any]:
    """
    Get the free-form context captured for a run.

    Args:
        run_id: Run UUID (areas created without a run get an empty context)

    Returns:
        Context dict; empty when nothing was captured

    Raises:
        Exception: If database operation fails
    """
    if not run_id:
        return {}

    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_context")
            .select("company_context, pillar_context, pain_points, ambition, role")
            .eq("run_id", str(run_id))
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else {}

    except Exception as e:
        logger.error(
            f"Failed to get run_context for run {run_id}: {e}",
            extra={"run_id": str(run_id)},
        )
        raise
