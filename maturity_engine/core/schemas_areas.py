"""Pydantic schemas for run areas, clarifiers, assessments and recommendations."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class AreaStatus(str, Enum):
    """Lifecycle status of a run area."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    LOCKED = "locked"


class Dimension(str, Enum):
    """The five maturity dimensions scored for every area."""

    PROCESS = "process"
    AUTOMATION = "automation"
    DATA_QUALITY = "data_quality"
    CONTROLS = "controls"
    PEOPLE_SKILLS = "people_skills"


DIMENSIONS: list[Dimension] = list(Dimension)


class SystemTag(str, Enum):
    """Controlled vocabulary of structural weaknesses (must match scoring prompts)."""

    CORE_PROCESS_EXCEL = "CORE_PROCESS_EXCEL"
    NO_WORKFLOW_SUPPORT = "NO_WORKFLOW_SUPPORT"
    NO_DOCUMENTATION = "NO_DOCUMENTATION"
    LATE_ADJUSTMENTS = "LATE_ADJUSTMENTS"
    UPSTREAM_DATA_ISSUES = "UPSTREAM_DATA_ISSUES"
    REWORK_HEAVY = "REWORK_HEAVY"
    MISSING_OWNERSHIP = "MISSING_OWNERSHIP"
    POOR_HANDOFFS = "POOR_HANDOFFS"
    CAPACITY_CONSTRAINT = "CAPACITY_CONSTRAINT"
    LIMITED_AUTOMATION = "LIMITED_AUTOMATION"
    MULTI_SYSTEM_FRAGMENTATION = "MULTI_SYSTEM_FRAGMENTATION"
    DATA_QUALITY_GAPS = "DATA_QUALITY_GAPS"


class ClarifierStep(int, Enum):
    """Clarifier round: 1 = three core questions, 2 = two follow-ups."""

    CORE = 1
    FOLLOWUP = 2


class TranscriptionStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"


class TagQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Reliability(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationSource(str, Enum):
    DETERMINISTIC = "deterministic"
    LLM_EXTRA = "llm_extra"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Number of questions per clarifier round
CLARIFIER_COUNTS: dict[ClarifierStep, int] = {
    ClarifierStep.CORE: 3,
    ClarifierStep.FOLLOWUP: 2,
}
REQUIRED_CLARIFIER_ANSWERS = sum(CLARIFIER_COUNTS.values())


# =============================================================================
# MCQ
# =============================================================================


class McqAnswerIn(BaseModel):
    """A single MCQ answer as submitted by the user."""

    question_id: str = Field(..., min_length=1, description="Question bank ID")
    answer_value: int = Field(..., ge=1, le=5, description="Answer on the 1-5 scale")


class McqAnswersRequest(BaseModel):
    """Request body for writing MCQ answers."""

    answers: list[McqAnswerIn] = Field(..., min_length=1)

    @field_validator("answers")
    @classmethod
    def unique_questions(cls, answers: list[McqAnswerIn]) -> list[McqAnswerIn]:
        seen = set()
        for answer in answers:
            if answer.question_id in seen:
                raise ValueError(f"Duplicate answer for question {answer.question_id}")
            seen.add(answer.question_id)
        return answers


class McqWriteResult(BaseModel):
    run_area_id: UUID
    mcq_changed: bool = Field(..., description="True when a stored answer changed value")
    status: AreaStatus
    is_dirty: bool


# =============================================================================
# Clarifiers
# =============================================================================


class ClarifierQuestionOut(BaseModel):
    id: UUID
    run_area_id: UUID
    step: ClarifierStep
    question_text: str
    topic: str | None = None


class ClarifierQuestionsResult(BaseModel):
    run_area_id: UUID
    step: ClarifierStep
    questions: list[ClarifierQuestionOut]


class ClarifierAnswerIn(BaseModel):
    """User response to a clarifier, typed or transcribed from audio."""

    answer_text: str | None = Field(default=None, description="Typed answer or transcript")
    audio_ref: str | None = Field(default=None, description="Storage reference to the recording")
    transcription_status: TranscriptionStatus = TranscriptionStatus.OK

    @model_validator(mode="after")
    def text_or_audio(self) -> "ClarifierAnswerIn":
        has_text = bool(self.answer_text and self.answer_text.strip())
        if not has_text and not self.audio_ref:
            raise ValueError("Provide answer_text or audio_ref")
        if not has_text and self.transcription_status == TranscriptionStatus.OK:
            raise ValueError("Audio answers with a successful transcription need answer_text")
        return self


class ClarifierAnswerOut(BaseModel):
    id: UUID
    clarifier_question_id: UUID
    answer_text: str | None = None
    audio_ref: str | None = None
    transcription_status: TranscriptionStatus


# =============================================================================
# Evaluator output
# =============================================================================


Subscore = Annotated[float, Field(ge=1, le=5)]


class ClarifierDraft(BaseModel):
    question_text: str = Field(..., min_length=1)
    topic: str | None = None


class GeneratedClarifiers(BaseModel):
    """Questions returned by the clarifier generation call.

    Accepts plain strings or {"question": ..., "topic": ...} objects.
    """

    questions: list[ClarifierDraft]

    @field_validator("questions", mode="before")
    @classmethod
    def normalize(cls, questions: Any) -> Any:
        if not isinstance(questions, list):
            return questions
        drafts = []
        for item in questions:
            if isinstance(item, str):
                if item.strip():
                    drafts.append({"question_text": item.strip()})
            elif isinstance(item, dict):
                text = item.get("question_text") or item.get("question") or ""
                if not isinstance(text, str):
                    drafts.append(item)
                elif text.strip():
                    drafts.append({"question_text": text.strip(), "topic": item.get("topic")})
            else:
                drafts.append(item)
        return drafts


class SuggestedAction(BaseModel):
    """An extra action proposed by the evaluator on top of the template table."""

    action_id: str = Field(..., min_length=1)
    title: str
    rationale: str | None = None
    dimension: Dimension | None = None


class ClarifierScoringResult(BaseModel):
    """Structured result expected from the area evaluator."""

    subscores: dict[Dimension, Subscore]
    system_tags: list[SystemTag] = Field(default_factory=list)
    narrative_tags: list[str] = Field(default_factory=list)
    tag_quality: TagQuality
    suggested_actions: list[SuggestedAction] = Field(default_factory=list)

    @field_validator("subscores")
    @classmethod
    def all_dimensions(cls, subscores: dict[Dimension, float]) -> dict[Dimension, float]:
        missing = set(DIMENSIONS) - set(subscores)
        if missing or len(subscores) != len(DIMENSIONS):
            raise ValueError(
                f"Expected subscores for exactly {len(DIMENSIONS)} dimensions, "
                f"missing: {sorted(d.value for d in missing)}"
            )
        return subscores

    @field_validator("system_tags")
    @classmethod
    def dedupe_tags(cls, tags: list[SystemTag]) -> list[SystemTag]:
        return list(dict.fromkeys(tags))


# =============================================================================
# Evidence
# =============================================================================


class ClarifierExchange(BaseModel):
    """One clarifier question with its answer (if any)."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    step: ClarifierStep
    question_text: str
    topic: str | None = None
    answer_text: str | None = None
    transcription_status: TranscriptionStatus | None = None


class EvidencePack(BaseModel):
    """Read-only bundle handed to the evaluator. Never persisted."""

    model_config = ConfigDict(frozen=True)

    run_area_id: str
    stage: Literal["core", "followup", "scoring"]
    mcq_score: float
    mcq_answers: list[McqAnswerIn]
    clarifiers: list[ClarifierExchange] = Field(default_factory=list)
    company_context: Any = None
    pillar_context: Any = None
    pain_points: Any = None
    ambition: str | None = None
    role: str | None = None

    def for_prompt(self) -> dict[str, Any]:
        """Serializable view sent to the language model."""
        return self.model_dump(mode="json", exclude={"run_area_id"})


# =============================================================================
# Assessment + recommendations
# =============================================================================


class ContradictionFlags(BaseModel):
    automation: bool = False
    governance: bool = False
    people: bool = False


class AreaAssessment(BaseModel):
    """Terminal artifact of one scoring pass."""

    run_area_id: UUID
    area_mcq_score: float
    clarifier_score_raw: float
    reported_score: float
    subscores: dict[Dimension, float]
    system_tags: list[SystemTag] = Field(default_factory=list)
    narrative_tags: list[str] = Field(default_factory=list)
    contradiction_flags: ContradictionFlags = Field(default_factory=ContradictionFlags)
    reliability: Reliability
    tag_quality: TagQuality
    created_at: datetime | None = None


class ActionTemplate(BaseModel):
    id: str
    action_id: str
    title: str
    description: str | None = None
    dimension: Dimension | None = None
    system_tags: list[str] = Field(default_factory=list)
    uplift_estimate: float | None = None


class Recommendation(BaseModel):
    id: UUID | None = None
    run_area_id: UUID
    action_id: str
    source: RecommendationSource
    severity: float
    priority: Priority
    uplift_estimate: float | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class ListRecommendationsResponse(BaseModel):
    recommendations: list[Recommendation]
    total: int


class AreaStateOut(BaseModel):
    """Snapshot of an area's lifecycle position."""

    id: UUID
    run_id: UUID | None = None
    area_id: str | None = None
    status: AreaStatus
    is_dirty: bool
    mcq_answered: int
    mcq_total: int
    core_questions: int
    followup_questions: int
    clarifier_answers: int
    has_assessment: bool
