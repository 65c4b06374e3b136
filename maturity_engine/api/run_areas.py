"""API endpoints for the run area lifecycle."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Path

from maturity_engine.core import area_engine
from maturity_engine.core.exceptions import AreaEngineError
from maturity_engine.core.logging import get_logger
from maturity_engine.core.schemas_areas import (
    AreaAssessment,
    AreaStateOut,
    ClarifierAnswerIn,
    ClarifierAnswerOut,
    ClarifierQuestionOut,
    ClarifierQuestionsResult,
    ListRecommendationsResponse,
    McqAnswersRequest,
    McqWriteResult,
)

logger = get_logger(__name__)

router = APIRouter()


def _engine_http_error(e: AreaEngineError, run_area_id: UUID) -> HTTPException:
    """Map an engine error to its HTTP response."""
    logger.warning(
        f"{e.code} in {e.operation}: {e.message}",
        extra={"run_area_id": str(run_area_id), "operation": e.operation, "status": e.status},
    )
    return HTTPException(status_code=e.http_status, detail=e.to_dict())


def _internal_error(action: str, e: Exception, run_area_id: UUID) -> HTTPException:
    error_msg = f"Failed to {action}: {str(e)}"
    logger.error(error_msg, extra={"run_area_id": str(run_area_id)})
    return HTTPException(status_code=500, detail=error_msg)


@router.get("/{run_area_id}", response_model=AreaStateOut)
async def get_run_area(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> AreaStateOut:
    """
    Get the lifecycle position of a run area.

    Raises:
        HTTPException 404: If the area does not exist
        HTTPException 500: If database operation fails
    """
    try:
        return area_engine.get_area_state(run_area_id)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("get run area", e, run_area_id) from e


@router.put("/{run_area_id}/mcq-answers", response_model=McqWriteResult)
async def put_mcq_answers(
    run_area_id: UUID = Path(..., description="Run area UUID"),
    request: McqAnswersRequest = ...,
) -> McqWriteResult:
    """
    Write MCQ answers. Changing a stored value resets clarifiers and the
    assessment and returns the area to in_progress.

    Raises:
        HTTPException 404: If the area does not exist
        HTTPException 409: If the area status forbids the write or moved concurrently
        HTTPException 500: If database operation fails
    """
    try:
        logger.info(
            f"Writing {len(request.answers)} MCQ answers",
            extra={"run_area_id": str(run_area_id), "operation": "save_mcq_answers"},
        )
        return area_engine.write_mcq_answers(run_area_id, request.answers)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("save MCQ answers", e, run_area_id) from e


@router.get("/{run_area_id}/clarifiers", response_model=list[ClarifierQuestionOut])
async def get_clarifiers(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> list[ClarifierQuestionOut]:
    """List clarifier questions for a run area."""
    try:
        return area_engine.list_clarifiers(run_area_id)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("list clarifiers", e, run_area_id) from e


@router.post("/{run_area_id}/clarifiers/core", response_model=ClarifierQuestionsResult)
async def post_core_clarifiers(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> ClarifierQuestionsResult:
    """
    Generate the 3 core clarifier questions (returns stored ones if present).

    Raises:
        HTTPException 409: If the area is not in_progress
        HTTPException 422: If MCQ answers are incomplete
        HTTPException 502: If the evaluator fails
    """
    try:
        return area_engine.generate_core_clarifiers(run_area_id)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("generate core clarifiers", e, run_area_id) from e


@router.post("/{run_area_id}/clarifiers/followup", response_model=ClarifierQuestionsResult)
async def post_followup_clarifiers(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> ClarifierQuestionsResult:
    """
    Generate the 2 follow-up clarifier questions.

    Raises:
        HTTPException 409: If the area is not in_progress
        HTTPException 422: If core clarifiers are not all answered
        HTTPException 502: If the evaluator fails
    """
    try:
        return area_engine.generate_followup_clarifiers(run_area_id)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("generate follow-up clarifiers", e, run_area_id) from e


@router.put(
    "/{run_area_id}/clarifiers/{question_id}/answer",
    response_model=ClarifierAnswerOut,
)
async def put_clarifier_answer(
    run_area_id: UUID = Path(..., description="Run area UUID"),
    question_id: UUID = Path(..., description="Clarifier question UUID"),
    request: ClarifierAnswerIn = ...,
) -> ClarifierAnswerOut:
    """
    Submit (or replace) the answer to a clarifier question.

    Raises:
        HTTPException 404: If the area or question does not exist
        HTTPException 409: If the area is not in_progress
    """
    try:
        return area_engine.submit_clarifier_answer(run_area_id, question_id, request)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("submit clarifier answer", e, run_area_id) from e


@router.post("/{run_area_id}/score", response_model=AreaAssessment)
async def post_score(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> AreaAssessment:
    """
    Score the area and move it to completed.

    Raises:
        HTTPException 409: If the area is not in_progress or changed during scoring
        HTTPException 422: If MCQ or clarifier answers are incomplete
        HTTPException 502: If the evaluator fails or returns invalid output
    """
    try:
        return area_engine.score_area(run_area_id)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("score area", e, run_area_id) from e


@router.get("/{run_area_id}/assessment", response_model=AreaAssessment)
async def get_assessment(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> AreaAssessment:
    """Get the live assessment (404 until the area is scored)."""
    try:
        return area_engine.get_assessment(run_area_id)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("get assessment", e, run_area_id) from e


@router.get("/{run_area_id}/recommendations", response_model=ListRecommendationsResponse)
async def get_recommendations(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> ListRecommendationsResponse:
    """List recommendations, most severe first."""
    try:
        recommendations = area_engine.list_recommendations(run_area_id)
        return ListRecommendationsResponse(
            recommendations=recommendations,
            total=len(recommendations),
        )

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("list recommendations", e, run_area_id) from e


@router.post("/{run_area_id}/lock", response_model=AreaStateOut)
async def post_lock(
    run_area_id: UUID = Path(..., description="Run area UUID"),
) -> AreaStateOut:
    """
    Lock a completed area.

    Raises:
        HTTPException 409: If the area is not completed
    """
    try:
        return area_engine.lock_area(run_area_id)

    except AreaEngineError as e:
        raise _engine_http_error(e, run_area_id) from e
    except Exception as e:
        raise _internal_error("lock area", e, run_area_id) from e
