"""
Area lifecycle engine.

Every operation reads the area status fresh, runs its guard, and only then
touches the evaluator or the datastore. Writes that depend on the status the
guard saw are committed with a compare-and-set so a concurrent status change
surfaces as ConflictError instead of a lost update.
"""

from typing import Any
from uuid import UUID

from maturity_engine.chains.generate_clarifiers import generate_clarifier_questions
from maturity_engine.core.config import get_settings
from maturity_engine.core.evidence import (
    assemble_evidence_pack,
    load_area_snapshot,
    require_evidence,
)
from maturity_engine.core.exceptions import ConflictError, NotFoundError
from maturity_engine.core.invalidation import plan_mcq_write
from maturity_engine.core.logging import get_logger
from maturity_engine.core.schemas_areas import (
    AreaAssessment,
    AreaStateOut,
    AreaStatus,
    ClarifierAnswerIn,
    ClarifierAnswerOut,
    ClarifierQuestionOut,
    ClarifierQuestionsResult,
    ClarifierStep,
    McqAnswerIn,
    McqWriteResult,
    Recommendation,
)
from maturity_engine.core.state_machine import (
    OP_ANSWER_CLARIFIER,
    OP_CORE_CLARIFIERS,
    OP_FOLLOWUP_CLARIFIERS,
    OP_LOCK_AREA,
    OP_SAVE_MCQ,
    OP_SCORE_AREA,
    assert_can_answer_clarifier,
    assert_can_generate_core_clarifiers,
    assert_can_generate_followups,
    assert_can_score_area,
    assert_transition,
)
from maturity_engine.db.assessments import get_assessment as db_get_assessment
from maturity_engine.db.clarifiers import (
    get_clarifier_question,
    insert_clarifier_round,
    list_clarifier_questions,
    upsert_clarifier_answer,
)
from maturity_engine.db.mcq_answers import list_mcq_answers, save_mcq_answers
from maturity_engine.db.recommendations import list_recommendations as db_list_recommendations
from maturity_engine.db.run_areas import get_run_area, update_area_status
from maturity_engine.graphs.score_area_graph import run_score_area

logger = get_logger(__name__)


def _load_area(run_area_id: UUID, operation: str) -> dict[str, Any]:
    area = get_run_area(run_area_id)
    if not area:
        raise NotFoundError(operation, f"Run area {run_area_id} not found")
    return area


# ============================================================================
# MCQ
# ============================================================================


def write_mcq_answers(run_area_id: UUID, answers: list[McqAnswerIn]) -> McqWriteResult:
    """
    Upsert MCQ answers for an area.

    A first write moves a not_started area to in_progress. A write that
    changes a stored value runs the invalidation cascade in the same
    transaction.

    Raises:
        NotFoundError: Area does not exist
        StateTransitionError: Area is locked, or completed with unchanged values
        ConflictError: Status or a stored answer changed between the read and the commit
    """
    area = _load_area(run_area_id, OP_SAVE_MCQ)
    existing = list_mcq_answers(run_area_id)

    plan = plan_mcq_write(area["status"], existing, answers)

    if plan.mcq_changed:
        logger.info(
            f"MCQ change on {len(plan.changed_question_ids)} question(s), invalidating downstream",
            extra={
                "run_area_id": str(run_area_id),
                "operation": OP_SAVE_MCQ,
                "status": plan.expected_status.value,
            },
        )

    updated = save_mcq_answers(
        run_area_id=run_area_id,
        answers=[a.model_dump() for a in answers],
        seen_answers=plan.seen_values,
        expected_status=plan.expected_status.value,
        next_status=plan.next_status.value,
        invalidate=plan.invalidation is not None,
    )

    return McqWriteResult(
        run_area_id=run_area_id,
        mcq_changed=plan.mcq_changed,
        status=updated["status"],
        is_dirty=bool(updated["is_dirty"]),
    )


# ============================================================================
# Clarifiers
# ============================================================================


def _clarifier_result(run_area_id: UUID, step: ClarifierStep, rows: list[dict[str, Any]]) -> ClarifierQuestionsResult:
    return ClarifierQuestionsResult(
        run_area_id=run_area_id,
        step=step,
        questions=[ClarifierQuestionOut.model_validate(row) for row in rows],
    )


def _generate_clarifiers(run_area_id: UUID, step: ClarifierStep, operation: str) -> ClarifierQuestionsResult:
    area = _load_area(run_area_id, operation)

    if step == ClarifierStep.CORE:
        assert_can_generate_core_clarifiers(area["status"])
        stage = "core"
    else:
        assert_can_generate_followups(area["status"])
        stage = "followup"

    snapshot = load_area_snapshot(area)
    existing = snapshot.questions_for_step(step)
    if existing:
        logger.info(
            f"Step-{int(step)} clarifiers already exist, returning stored questions",
            extra={"run_area_id": str(run_area_id), "operation": operation},
        )
        return _clarifier_result(run_area_id, step, existing)

    require_evidence(snapshot, stage, operation)
    evidence = assemble_evidence_pack(snapshot, stage)

    drafts = generate_clarifier_questions(evidence=evidence, step=step, settings=get_settings())

    # Status and step emptiness are re-checked under the area row lock
    rows = insert_clarifier_round(
        run_area_id=run_area_id,
        step=int(step),
        questions=[d.model_dump() for d in drafts],
        expected_status=area["status"],
    )
    return _clarifier_result(run_area_id, step, rows)


def generate_core_clarifiers(run_area_id: UUID) -> ClarifierQuestionsResult:
    """
    Generate the 3 core clarifier questions.

    Raises:
        NotFoundError, StateTransitionError, MissingEvidenceError,
        EvaluatorError, ConflictError
    """
    return _generate_clarifiers(run_area_id, ClarifierStep.CORE, OP_CORE_CLARIFIERS)


def generate_followup_clarifiers(run_area_id: UUID) -> ClarifierQuestionsResult:
    """
    Generate the 2 follow-up questions. Requires all 3 core answers.

    Raises:
        NotFoundError, StateTransitionError, MissingEvidenceError,
        EvaluatorError, ConflictError
    """
    return _generate_clarifiers(run_area_id, ClarifierStep.FOLLOWUP, OP_FOLLOWUP_CLARIFIERS)


def submit_clarifier_answer(
    run_area_id: UUID,
    question_id: UUID,
    answer: ClarifierAnswerIn,
) -> ClarifierAnswerOut:
    """
    Record (or replace) the answer to one clarifier question.

    Raises:
        NotFoundError: Area missing, or question does not belong to the area
        StateTransitionError: Area is not in_progress
    """
    area = _load_area(run_area_id, OP_ANSWER_CLARIFIER)
    assert_can_answer_clarifier(area["status"])

    question = get_clarifier_question(question_id)
    if not question or str(question["run_area_id"]) != str(run_area_id):
        raise NotFoundError(
            OP_ANSWER_CLARIFIER,
            f"Clarifier question {question_id} not found for run area {run_area_id}",
            status=area["status"],
        )

    row = upsert_clarifier_answer(question_id, answer.model_dump(mode="json"))

    logger.info(
        f"Stored answer for step-{question['step']} clarifier {question_id}",
        extra={
            "run_area_id": str(run_area_id),
            "operation": OP_ANSWER_CLARIFIER,
            "transcription_status": answer.transcription_status.value,
        },
    )
    return ClarifierAnswerOut.model_validate(row)


# ============================================================================
# Scoring
# ============================================================================


def score_area(run_area_id: UUID) -> AreaAssessment:
    """
    Score an area and move it to completed.

    Raises:
        NotFoundError, StateTransitionError, MissingEvidenceError,
        EvaluatorError, ConflictError
    """
    area = _load_area(run_area_id, OP_SCORE_AREA)
    assert_can_score_area(area["status"])

    assessment, recommendations = run_score_area(area)

    logger.info(
        f"Area scored: reported_score={assessment.reported_score}, "
        f"{len(recommendations)} recommendations",
        extra={"run_area_id": str(run_area_id), "operation": OP_SCORE_AREA, "status": "completed"},
    )
    return assessment


def lock_area(run_area_id: UUID) -> AreaStateOut:
    """
    Freeze a completed area.

    Raises:
        NotFoundError: Area does not exist
        InvalidTransitionError: Area is not completed
        ConflictError: Status changed before the update landed
    """
    area = _load_area(run_area_id, OP_LOCK_AREA)
    assert_transition(area["status"], AreaStatus.LOCKED)

    updated = update_area_status(run_area_id, area["status"], AreaStatus.LOCKED.value)
    if not updated:
        raise ConflictError(
            OP_LOCK_AREA,
            f"Run area {run_area_id} changed before it could be locked",
            status=area["status"],
        )
    return get_area_state(run_area_id)


# ============================================================================
# Reads
# ============================================================================


def get_area_state(run_area_id: UUID) -> AreaStateOut:
    """Status, dirty flag and progress counts for an area."""
    area = _load_area(run_area_id, "get_area_state")
    snapshot = load_area_snapshot(area, include_context=False)

    bank_ids = {str(q["id"]) for q in snapshot.mcq_questions}
    answered = sum(1 for a in snapshot.mcq_answers if str(a["question_id"]) in bank_ids)

    return AreaStateOut(
        id=area["id"],
        run_id=area.get("run_id"),
        area_id=area.get("area_id"),
        status=area["status"],
        is_dirty=bool(area.get("is_dirty")),
        mcq_answered=answered,
        mcq_total=len(snapshot.mcq_questions),
        core_questions=len(snapshot.questions_for_step(ClarifierStep.CORE)),
        followup_questions=len(snapshot.questions_for_step(ClarifierStep.FOLLOWUP)),
        clarifier_answers=len(snapshot.clarifier_answers),
        has_assessment=db_get_assessment(run_area_id) is not None,
    )


def get_assessment(run_area_id: UUID) -> AreaAssessment:
    """
    Raises:
        NotFoundError: Area missing or not scored yet
    """
    area = _load_area(run_area_id, "get_assessment")
    row = db_get_assessment(run_area_id)
    if not row:
        raise NotFoundError(
            "get_assessment", f"No assessment for run area {run_area_id}", status=area["status"]
        )
    return AreaAssessment.model_validate(row)


def list_recommendations(run_area_id: UUID) -> list[Recommendation]:
    """Recommendations for an area, most severe first."""
    _load_area(run_area_id, "list_recommendations")
    return [Recommendation.model_validate(row) for row in db_list_recommendations(run_area_id)]


def list_clarifiers(run_area_id: UUID) -> list[ClarifierQuestionOut]:
    """All clarifier questions for an area, core first."""
    _load_area(run_area_id, "list_clarifiers")
    return [ClarifierQuestionOut.model_validate(row) for row in list_clarifier_questions(run_area_id)]
