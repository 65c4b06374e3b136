"""Action template and recommendation database operations."""

from typing import Any
from uuid import UUID

from maturity_engine.core.logging import get_logger
from maturity_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_action_templates(system_tags: list[str]) -> list[dict[str, Any]]:
    """
    List action templates triggered by any of the given system tags.

    Args:
        system_tags: Tags present on an assessment

    Returns:
        List of template dicts (id, action_id, title, description, dimension,
        system_tags, uplift_estimate)

    Raises:
        Exception: If database operation fails
    """
    if not system_tags:
        return []

    supabase = get_supabase()

    try:
        response = (
            supabase.table("action_templates")
            .select("id, action_id, title, description, dimension, system_tags, uplift_estimate")
            .overlaps("system_tags", system_tags)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(
            f"Failed to list action templates: {e}",
            extra={"system_tags": system_tags},
        )
        raise


def list_recommendations(run_area_id: UUID) -> list[dict[str, Any]]:
    """
    List recommendations for a run area, most severe first.

    Args:
        run_area_id: Run area UUID

    Returns:
        List of recommendation dicts

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_recommendations")
            .select("*")
            .eq("run_area_id", str(run_area_id))
            .order("severity", desc=True)
            .execute()
        )
        return response.data or []

    except Exception as e:
        logger.error(
            f"Failed to list recommendations for run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id)},
        )
        raise
