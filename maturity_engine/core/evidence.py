"""Evidence assembly for clarifier generation and scoring.

An evidence pack is built per call from a fresh snapshot of the area's rows.
What goes in depends on the stage:

  core      MCQ answers + run context
  followup  + the 3 core clarifier Q&A
  scoring   + all 5 clarifier Q&A
"""

from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import UUID

from maturity_engine.core.exceptions import MissingEvidenceError
from maturity_engine.core.schemas_areas import (
    CLARIFIER_COUNTS,
    REQUIRED_CLARIFIER_ANSWERS,
    ClarifierExchange,
    ClarifierStep,
    EvidencePack,
    McqAnswerIn,
)
from maturity_engine.core.scoring import compute_mcq_score
from maturity_engine.db.clarifiers import list_clarifier_answers, list_clarifier_questions
from maturity_engine.db.mcq_answers import list_area_mcq_questions, list_mcq_answers
from maturity_engine.db.run_context import get_run_context

EvidenceStage = Literal["core", "followup", "scoring"]

STAGE_STEPS: dict[str, tuple[ClarifierStep, ...]] = {
    "core": (),
    "followup": (ClarifierStep.CORE,),
    "scoring": (ClarifierStep.CORE, ClarifierStep.FOLLOWUP),
}

CONTEXT_FIELDS = ("company_context", "pillar_context", "pain_points", "ambition", "role")


@dataclass
class AreaSnapshot:
    """Rows read for one request. Not reused across calls."""

    area: dict[str, Any]
    mcq_questions: list[dict[str, Any]] = field(default_factory=list)
    mcq_answers: list[dict[str, Any]] = field(default_factory=list)
    clarifier_questions: list[dict[str, Any]] = field(default_factory=list)
    clarifier_answers: list[dict[str, Any]] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def run_area_id(self) -> str:
        return str(self.area["id"])

    def questions_for_step(self, step: ClarifierStep) -> list[dict[str, Any]]:
        return [q for q in self.clarifier_questions if int(q["step"]) == int(step)]

    def answers_by_question(self) -> dict[str, dict[str, Any]]:
        return {str(a["clarifier_question_id"]): a for a in self.clarifier_answers}

    def answered_for_step(self, step: ClarifierStep) -> int:
        answers = self.answers_by_question()
        return sum(1 for q in self.questions_for_step(step) if str(q["id"]) in answers)

    def missing_mcq_question_ids(self) -> list[str]:
        answered = {str(a["question_id"]) for a in self.mcq_answers}
        return [str(q["id"]) for q in self.mcq_questions if str(q["id"]) not in answered]

    def mcq_weights(self) -> dict[str, float]:
        return {
            str(q["id"]): float(q["weight"]) if q.get("weight") is not None else 1.0
            for q in self.mcq_questions
        }


def load_area_snapshot(area: dict[str, Any], include_context: bool = True) -> AreaSnapshot:
    """
    Read every row the lifecycle operations reason about.

    Args:
        area: Run area dict (already loaded by the caller's guard check)
        include_context: Also load run context (not needed for state reads)

    Returns:
        AreaSnapshot for this request
    """
    run_area_id = UUID(str(area["id"]))

    clarifier_questions = list_clarifier_questions(run_area_id)
    clarifier_answers = list_clarifier_answers([str(q["id"]) for q in clarifier_questions])

    return AreaSnapshot(
        area=area,
        mcq_questions=list_area_mcq_questions(area["area_id"]),
        mcq_answers=list_mcq_answers(run_area_id),
        clarifier_questions=clarifier_questions,
        clarifier_answers=clarifier_answers,
        context=get_run_context(area.get("run_id")) if include_context else {},
    )


def require_evidence(snapshot: AreaSnapshot, stage: EvidenceStage, operation: str) -> None:
    """
    Check the prerequisites for a stage.

    Raises:
        MissingEvidenceError: If MCQ answers or clarifier answers are missing
    """
    status = snapshot.area.get("status")

    if not snapshot.mcq_questions:
        raise MissingEvidenceError(
            operation, f"No MCQ questions configured for area {snapshot.area.get('area_id')}", status
        )

    missing = snapshot.missing_mcq_question_ids()
    if missing:
        raise MissingEvidenceError(
            operation,
            f"{len(missing)} of {len(snapshot.mcq_questions)} MCQ questions are unanswered",
            status,
        )

    for step in STAGE_STEPS[stage]:
        expected = CLARIFIER_COUNTS[step]
        asked = len(snapshot.questions_for_step(step))
        answered = snapshot.answered_for_step(step)
        if asked != expected or answered != expected:
            raise MissingEvidenceError(
                operation,
                f"Step {int(step)} needs {expected} answered clarifiers "
                f"({asked} asked, {answered} answered)",
                status,
            )

    if stage == "scoring" and len(snapshot.clarifier_answers) != REQUIRED_CLARIFIER_ANSWERS:
        raise MissingEvidenceError(
            operation,
            f"Scoring needs exactly {REQUIRED_CLARIFIER_ANSWERS} clarifier answers, "
            f"found {len(snapshot.clarifier_answers)}",
            status,
        )


def assemble_evidence_pack(snapshot: AreaSnapshot, stage: EvidenceStage) -> EvidencePack:
    """Build the read-only pack for ``stage`` from an already-checked snapshot."""
    bank_ids = {str(q["id"]) for q in snapshot.mcq_questions}
    mcq_answers = [
        McqAnswerIn(question_id=str(a["question_id"]), answer_value=int(a["answer_value"]))
        for a in snapshot.mcq_answers
        if str(a["question_id"]) in bank_ids
    ]

    answers = snapshot.answers_by_question()
    clarifiers = []
    for step in STAGE_STEPS[stage]:
        for question in snapshot.questions_for_step(step):
            answer = answers.get(str(question["id"]), {})
            clarifiers.append(
                ClarifierExchange(
                    question_id=str(question["id"]),
                    step=step,
                    question_text=question["question_text"],
                    topic=question.get("topic"),
                    answer_text=answer.get("answer_text"),
                    transcription_status=answer.get("transcription_status"),
                )
            )

    context = {key: snapshot.context.get(key) for key in CONTEXT_FIELDS}

    return EvidencePack(
        run_area_id=snapshot.run_area_id,
        stage=stage,
        mcq_score=compute_mcq_score(mcq_answers, snapshot.mcq_weights()),
        mcq_answers=mcq_answers,
        clarifiers=clarifiers,
        **context,
    )


def build_evidence_pack(
    area: dict[str, Any],
    stage: EvidenceStage,
    operation: str,
) -> tuple[EvidencePack, AreaSnapshot]:
    """
    Load, check and assemble evidence for one operation.

    Returns:
        (EvidencePack, AreaSnapshot). The snapshot is returned so callers can
        reuse the question bank and clarifier rows without another read

    Raises:
        MissingEvidenceError: If the stage's prerequisites are not met
    """
    snapshot = load_area_snapshot(area)
    require_evidence(snapshot, stage, operation)
    return assemble_evidence_pack(snapshot, stage), snapshot
