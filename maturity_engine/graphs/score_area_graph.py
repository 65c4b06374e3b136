"""LangGraph agent for scoring a run area and committing its assessment."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from langgraph.graph import END, StateGraph

from maturity_engine.chains.evaluate_area import evaluate_area
from maturity_engine.core.config import get_settings
from maturity_engine.core.evidence import build_evidence_pack
from maturity_engine.core.logging import get_logger
from maturity_engine.core.recommendations import derive_recommendations
from maturity_engine.core.schemas_areas import (
    AreaAssessment,
    ClarifierScoringResult,
    EvidencePack,
    Recommendation,
)
from maturity_engine.core.scoring import build_assessment
from maturity_engine.core.state_machine import OP_SCORE_AREA
from maturity_engine.db.assessments import commit_area_assessment
from maturity_engine.db.recommendations import list_action_templates

logger = get_logger(__name__)

MAX_STEPS = 8


@dataclass
class ScoreAreaState:
    """State for the score area graph."""

    # Input fields
    run_area_id: UUID
    area: dict[str, Any]

    # Processing state
    step_count: int = 0
    evidence: EvidencePack | None = None
    mcq_questions: list[dict[str, Any]] = field(default_factory=list)
    scoring_result: ClarifierScoringResult | None = None
    assessment: AreaAssessment | None = None
    recommendations: list[Recommendation] = field(default_factory=list)

    # Output
    committed_area: dict[str, Any] | None = None


def _check_max_steps(state: ScoreAreaState) -> ScoreAreaState:
    """Check and increment step count, raise if exceeded."""
    state.step_count += 1
    if state.step_count > MAX_STEPS:
        raise RuntimeError(f"Graph exceeded max steps ({MAX_STEPS})")
    return state


def load_evidence(state: ScoreAreaState) -> dict[str, Any]:
    """Load MCQ answers, all five clarifier answers and run context."""
    state = _check_max_steps(state)

    evidence, snapshot = build_evidence_pack(state.area, "scoring", OP_SCORE_AREA)

    logger.info(
        f"Loaded scoring evidence: {len(evidence.mcq_answers)} MCQ answers, "
        f"{len(evidence.clarifiers)} clarifiers",
        extra={"run_area_id": str(state.run_area_id), "operation": OP_SCORE_AREA},
    )

    return {
        "evidence": evidence,
        "mcq_questions": snapshot.mcq_questions,
        "step_count": state.step_count,
    }


def call_evaluator(state: ScoreAreaState) -> dict[str, Any]:
    """Call the evaluator model."""
    state = _check_max_steps(state)

    if not state.evidence:
        raise ValueError("Evidence not loaded")

    scoring_result = evaluate_area(evidence=state.evidence, settings=get_settings())

    return {
        "scoring_result": scoring_result,
        "step_count": state.step_count,
    }


def compute_assessment(state: ScoreAreaState) -> dict[str, Any]:
    """Blend scores and compute contradiction flags and reliability."""
    state = _check_max_steps(state)

    if not state.evidence or not state.scoring_result:
        raise ValueError("Evidence or evaluator output not available")

    assessment = build_assessment(
        run_area_id=state.run_area_id,
        evidence=state.evidence,
        result=state.scoring_result,
        questions=state.mcq_questions,
        settings=get_settings(),
    )

    logger.info(
        f"Assessment computed: reported_score={assessment.reported_score}, "
        f"reliability={assessment.reliability.value}",
        extra={"run_area_id": str(state.run_area_id), "operation": OP_SCORE_AREA},
    )

    return {
        "assessment": assessment,
        "step_count": state.step_count,
    }


def map_recommendations(state: ScoreAreaState) -> dict[str, Any]:
    """Map system tags to action templates and append evaluator extras."""
    state = _check_max_steps(state)

    if not state.assessment or not state.scoring_result:
        raise ValueError("Assessment not computed")

    templates = list_action_templates([t.value for t in state.assessment.system_tags])
    recommendations = derive_recommendations(
        state.assessment,
        templates,
        state.scoring_result.suggested_actions,
        get_settings(),
    )

    return {
        "recommendations": recommendations,
        "step_count": state.step_count,
    }


def persist(state: ScoreAreaState) -> dict[str, Any]:
    """Commit assessment + recommendations and move the area to completed."""
    state = _check_max_steps(state)

    if not state.assessment:
        raise ValueError("Assessment not computed")

    settings = get_settings()
    assessment_row = state.assessment.model_dump(mode="json", exclude={"created_at"})
    assessment_row.update(
        {
            "model": settings.EVALUATOR_MODEL,
            "prompt_version": settings.EVALUATOR_PROMPT_VERSION,
            "schema_version": settings.EVALUATOR_SCHEMA_VERSION,
        }
    )

    committed_area = commit_area_assessment(
        run_area_id=state.run_area_id,
        assessment=assessment_row,
        recommendations=[r.model_dump(mode="json", exclude={"id"}) for r in state.recommendations],
    )

    return {
        "committed_area": committed_area,
        "step_count": state.step_count,
    }


def _build_graph() -> StateGraph:
    """Build the score area graph."""
    graph = StateGraph(ScoreAreaState)

    graph.add_node("load_evidence", load_evidence)
    graph.add_node("call_evaluator", call_evaluator)
    graph.add_node("compute_assessment", compute_assessment)
    graph.add_node("map_recommendations", map_recommendations)
    graph.add_node("persist", persist)

    # Linear flow: a failure at any node aborts before persist
    graph.set_entry_point("load_evidence")
    graph.add_edge("load_evidence", "call_evaluator")
    graph.add_edge("call_evaluator", "compute_assessment")
    graph.add_edge("compute_assessment", "map_recommendations")
    graph.add_edge("map_recommendations", "persist")
    graph.add_edge("persist", END)

    return graph


# Compile the graph once at module load
_compiled_graph = _build_graph().compile()


def run_score_area(area: dict[str, Any]) -> tuple[AreaAssessment, list[Recommendation]]:
    """
    Run the score area graph.

    The caller has already checked that the area is in_progress. The commit
    re-checks status and answer count inside the database transaction.

    Args:
        area: Run area dict read for this request

    Returns:
        Tuple of (AreaAssessment, recommendations)

    Raises:
        MissingEvidenceError: If MCQ or clarifier answers are incomplete
        EvaluatorError: If the evaluator fails or returns invalid output
        ConflictError: If the area changed before the commit
        RuntimeError: If graph exceeds max steps
    """
    run_area_id = UUID(str(area["id"]))
    initial_state = ScoreAreaState(run_area_id=run_area_id, area=area)

    logger.info(
        f"Starting score_area graph for run_area {run_area_id}",
        extra={"run_area_id": str(run_area_id), "operation": OP_SCORE_AREA},
    )

    final_state = _compiled_graph.invoke(initial_state)

    assessment = final_state["assessment"]
    if not assessment or not final_state["committed_area"]:
        raise ValueError("Graph did not produce expected outputs")

    logger.info(
        "Completed score_area graph",
        extra={
            "run_area_id": str(run_area_id),
            "operation": OP_SCORE_AREA,
            "status": final_state["committed_area"].get("status"),
        },
    )

    return assessment, final_state["recommendations"]
