"""API router for v1 endpoints."""

from fastapi import APIRouter

from maturity_engine.api import run_areas

router = APIRouter()

# Area lifecycle routes (MCQ, clarifiers, scoring, lock)
router.include_router(run_areas.router, prefix="/run-areas", tags=["run_areas"])
