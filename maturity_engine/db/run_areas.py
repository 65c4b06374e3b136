"""Run area database operations."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from maturity_engine.core.logging import get_logger
from maturity_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)

STATUS_CONFLICT_SQLSTATE = "40001"


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def is_status_conflict(error: Exception) -> bool:
    """True if a database function rejected the write because the area moved since it was read."""
    return getattr(error, "code", None) == STATUS_CONFLICT_SQLSTATE


def get_run_area(run_area_id: UUID) -> dict[str, Any] | None:
    """
    Get a run area by ID. Always a fresh read: status is never cached.

    Args:
        run_area_id: Run area UUID

    Returns:
        Run area dict (id, run_id, area_id, status, is_dirty) or None if not found

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_areas")
            .select("id, run_id, area_id, status, is_dirty")
            .eq("id", str(run_area_id))
            .limit(1)
            .execute()
        )

        return response.data[0] if response.data else None

    except Exception as e:
        logger.error(
            f"Failed to get run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id)},
        )
        raise


def update_area_status(
    run_area_id: UUID,
    expected_status: str,
    new_status: str,
) -> dict[str, Any] | None:
    """
    Compare-and-update the area status.

    The update only matches when the stored status still equals
    ``expected_status``.

    Args:
        run_area_id: Run area UUID
        expected_status: Status the caller's guard check saw
        new_status: Status to write

    Returns:
        Updated run area dict, or None if the status changed underneath

    Raises:
        Exception: If database operation fails
    """
    supabase = get_supabase()

    try:
        response = (
            supabase.table("run_areas")
            .update({"status": new_status, "updated_at": _utc_now_iso()})
            .eq("id", str(run_area_id))
            .eq("status", expected_status)
            .execute()
        )

        if not response.data:
            logger.warning(
                f"Status compare-and-update missed for run_area {run_area_id}",
                extra={
                    "run_area_id": str(run_area_id),
                    "expected_status": expected_status,
                    "new_status": new_status,
                },
            )
            return None

        logger.info(
            f"Moved run_area {run_area_id} {expected_status} → {new_status}",
            extra={"run_area_id": str(run_area_id)},
        )
        return response.data[0]

    except Exception as e:
        logger.error(
            f"Failed to update status for run_area {run_area_id}: {e}",
            extra={"run_area_id": str(run_area_id)},
        )
        raise
