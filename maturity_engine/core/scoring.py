"""Deterministic scoring math for area assessments.

No LLM and no I/O here: the scoring graph feeds in the evidence pack and the
validated evaluator result, and persists what ``build_assessment`` returns.
"""

from typing import Any, Iterable, Mapping
from uuid import UUID

from maturity_engine.core.config import Settings
from maturity_engine.core.schemas_areas import (
    AreaAssessment,
    ClarifierScoringResult,
    ContradictionFlags,
    Dimension,
    EvidencePack,
    McqAnswerIn,
    Reliability,
    SystemTag,
    TagQuality,
    TranscriptionStatus,
)

# Axis → (clarifier dimension, system tags that register a weakness on it)
CONTRADICTION_AXES: dict[str, tuple[Dimension, frozenset[SystemTag]]] = {
    "automation": (
        Dimension.AUTOMATION,
        frozenset({
            SystemTag.LIMITED_AUTOMATION,
            SystemTag.CORE_PROCESS_EXCEL,
            SystemTag.NO_WORKFLOW_SUPPORT,
            SystemTag.MULTI_SYSTEM_FRAGMENTATION,
        }),
    ),
    "governance": (
        Dimension.CONTROLS,
        frozenset({
            SystemTag.NO_DOCUMENTATION,
            SystemTag.LATE_ADJUSTMENTS,
            SystemTag.MISSING_OWNERSHIP,
        }),
    ),
    "people": (
        Dimension.PEOPLE_SKILLS,
        frozenset({
            SystemTag.CAPACITY_CONSTRAINT,
            SystemTag.POOR_HANDOFFS,
        }),
    ),
}

# Home dimension of each system tag (used when a template has none)
TAG_DIMENSIONS: dict[SystemTag, Dimension] = {
    SystemTag.CORE_PROCESS_EXCEL: Dimension.AUTOMATION,
    SystemTag.NO_WORKFLOW_SUPPORT: Dimension.AUTOMATION,
    SystemTag.LIMITED_AUTOMATION: Dimension.AUTOMATION,
    SystemTag.MULTI_SYSTEM_FRAGMENTATION: Dimension.AUTOMATION,
    SystemTag.NO_DOCUMENTATION: Dimension.PROCESS,
    SystemTag.REWORK_HEAVY: Dimension.PROCESS,
    SystemTag.POOR_HANDOFFS: Dimension.PROCESS,
    SystemTag.LATE_ADJUSTMENTS: Dimension.CONTROLS,
    SystemTag.MISSING_OWNERSHIP: Dimension.CONTROLS,
    SystemTag.UPSTREAM_DATA_ISSUES: Dimension.DATA_QUALITY,
    SystemTag.DATA_QUALITY_GAPS: Dimension.DATA_QUALITY,
    SystemTag.CAPACITY_CONSTRAINT: Dimension.PEOPLE_SKILLS,
}


def _round(value: float) -> float:
    return round(value, 2)


def compute_mcq_score(
    answers: Iterable[McqAnswerIn],
    weights: Mapping[str, float] | None = None,
) -> float:
    """
    Weighted mean of MCQ answer values (1-5).

    Questions without a configured weight count as 1.0. If every weight is
    zero the plain arithmetic mean is used.

    Raises:
        ValueError: If there are no answers
    """
    answers = list(answers)
    if not answers:
        raise ValueError("Cannot score an area without MCQ answers")

    weights = weights or {}
    total_weight = 0.0
    weighted_sum = 0.0
    for answer in answers:
        weight = float(weights.get(answer.question_id, 1.0))
        total_weight += weight
        weighted_sum += weight * answer.answer_value

    if total_weight <= 0:
        return _round(sum(a.answer_value for a in answers) / len(answers))
    return _round(weighted_sum / total_weight)


def compute_clarifier_score(subscores: Mapping[Dimension, float]) -> float:
    """Mean of the evaluator's per-dimension subscores."""
    if not subscores:
        raise ValueError("No subscores to average")
    return _round(sum(subscores.values()) / len(subscores))


def blend_reported_score(area_mcq_score: float, clarifier_score_raw: float, mcq_weight: float) -> float:
    """reported_score = w * mcq + (1 - w) * clarifier."""
    return _round(mcq_weight * area_mcq_score + (1.0 - mcq_weight) * clarifier_score_raw)


def axis_mcq_signal(
    answers: Iterable[McqAnswerIn],
    question_dimensions: Mapping[str, str | None],
    dimension: Dimension,
    fallback: float,
) -> float:
    """Mean MCQ value for questions mapped to ``dimension``; ``fallback`` if none are."""
    values = [
        a.answer_value
        for a in answers
        if question_dimensions.get(a.question_id) == dimension.value
    ]
    if not values:
        return fallback
    return _round(sum(values) / len(values))


def compute_contradiction_flags(
    answers: Iterable[McqAnswerIn],
    question_dimensions: Mapping[str, str | None],
    area_mcq_score: float,
    result: ClarifierScoringResult,
    threshold: float,
    strength_threshold: float,
) -> ContradictionFlags:
    """
    Flag axes where MCQ answers and the clarifier evaluation disagree.

    An axis is contradictory when the MCQ signal and the clarifier subscore
    are at least ``threshold`` apart, or when the MCQ signal reads as a
    strength while a system tag registers a weakness on the same axis.
    """
    answers = list(answers)
    tags = set(result.system_tags)
    flags: dict[str, bool] = {}

    for axis, (dimension, weakness_tags) in CONTRADICTION_AXES.items():
        mcq_signal = axis_mcq_signal(answers, question_dimensions, dimension, area_mcq_score)
        clarifier_signal = result.subscores[dimension]

        gap = abs(mcq_signal - clarifier_signal) >= threshold
        strength_vs_tag = mcq_signal >= strength_threshold and bool(tags & weakness_tags)
        flags[axis] = gap or strength_vs_tag

    return ContradictionFlags(**flags)


def compute_reliability(
    tag_quality: TagQuality,
    transcription_statuses: Iterable[TranscriptionStatus | str | None],
) -> Reliability:
    """
    Confidence in the assessment.

    Low tag quality caps at low; any failed transcription caps at medium.
    """
    if tag_quality == TagQuality.LOW:
        return Reliability.LOW
    if any(s == TranscriptionStatus.FAILED for s in transcription_statuses):
        return Reliability.MEDIUM
    return Reliability.HIGH


def build_assessment(
    run_area_id: UUID,
    evidence: EvidencePack,
    result: ClarifierScoringResult,
    questions: list[dict[str, Any]],
    settings: Settings,
) -> AreaAssessment:
    """
    Combine MCQ evidence and the evaluator result into an AreaAssessment.

    Args:
        run_area_id: Area being scored
        evidence: Scoring-stage evidence pack (all 5 clarifier answers present)
        result: Validated evaluator output
        questions: Question bank rows (id, dimension) for the area
        settings: Tunables (blend weight and contradiction thresholds)

    Returns:
        The assessment to persist
    """
    dimensions = {str(q["id"]): q.get("dimension") for q in questions}

    area_mcq_score = evidence.mcq_score
    clarifier_score_raw = compute_clarifier_score(result.subscores)

    return AreaAssessment(
        run_area_id=run_area_id,
        area_mcq_score=area_mcq_score,
        clarifier_score_raw=clarifier_score_raw,
        reported_score=blend_reported_score(
            area_mcq_score, clarifier_score_raw, settings.REPORTED_SCORE_MCQ_WEIGHT
        ),
        subscores={d: float(v) for d, v in result.subscores.items()},
        system_tags=list(result.system_tags),
        narrative_tags=list(result.narrative_tags),
        contradiction_flags=compute_contradiction_flags(
            evidence.mcq_answers,
            dimensions,
            area_mcq_score,
            result,
            threshold=settings.CONTRADICTION_THRESHOLD,
            strength_threshold=settings.MCQ_STRENGTH_THRESHOLD,
        ),
        reliability=compute_reliability(
            result.tag_quality,
            [c.transcription_status for c in evidence.clarifiers],
        ),
        tag_quality=result.tag_quality,
    )
