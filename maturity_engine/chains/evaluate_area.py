"""LLM chain for scoring an area from its clarifier evidence."""

import json
import time

from pydantic import ValidationError

from maturity_engine.core.config import Settings
from maturity_engine.core.exceptions import EvaluatorError
from maturity_engine.core.llm import get_openai_client, parse_llm_json
from maturity_engine.core.llm_usage import log_llm_usage
from maturity_engine.core.logging import get_logger
from maturity_engine.core.schemas_areas import (
    DIMENSIONS,
    ClarifierScoringResult,
    EvidencePack,
    SystemTag,
)

logger = get_logger(__name__)

OPERATION = "evaluate_area"

SYSTEM_PROMPT = """You are the Area Evaluator for the Finance Maturity Diagnostic.

You receive one finance area: its MCQ answers (1-5 scale), five clarifier
questions with the user's answers, and company context.

Score the area on each dimension from 1 (ad hoc) to 5 (optimised), tag the
structural weaknesses you see using ONLY the allowed system tags, and rate how
confident you are in the tags (tag_quality).

If an answer has transcription_status "failed", treat it as missing evidence
and do not infer from it."""

OUTPUT_SCHEMA = {
    "subscores": {d.value: "number 1-5" for d in DIMENSIONS},
    "system_tags": ["one of allowed_system_tags"],
    "narrative_tags": ["short free-text label"],
    "tag_quality": "high | medium | low",
    "suggested_actions": [
        {"action_id": "string", "title": "string", "rationale": "string", "dimension": "string"}
    ],
}


def build_evaluator_prompt(evidence: EvidencePack, prompt_version: str) -> str:
    """User message for the scoring call."""
    return json.dumps(
        {
            "prompt_version": prompt_version,
            "allowed_system_tags": [t.value for t in SystemTag],
            "output_schema": OUTPUT_SCHEMA,
            "evidence": evidence.for_prompt(),
        }
    )


def evaluate_area(*, evidence: EvidencePack, settings: Settings) -> ClarifierScoringResult:
    """
    Score an area with the evaluator model.

    The output must parse and validate in full: five subscores in range,
    known system tags only, a tag_quality value. Anything else is an
    evaluator failure and nothing is persisted by the caller.

    Args:
        evidence: Scoring-stage evidence pack
        settings: Application settings

    Returns:
        Validated ClarifierScoringResult

    Raises:
        EvaluatorError: On API failure or malformed output
    """
    model = settings.EVALUATOR_MODEL

    logger.info(
        f"Calling {model} to score area",
        extra={"run_area_id": evidence.run_area_id, "operation": OPERATION},
    )

    client = get_openai_client(settings)
    try:
        start = time.time()
        response = client.chat.completions.create(
            model=model,
            temperature=settings.EVALUATOR_TEMPERATURE,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_evaluator_prompt(evidence, settings.EVALUATOR_PROMPT_VERSION),
                },
            ],
            response_format={"type": "json_object"},
        )
        duration_ms = int((time.time() - start) * 1000)
    except Exception as e:
        logger.error(
            f"Evaluator call failed: {e}",
            extra={"run_area_id": evidence.run_area_id, "operation": OPERATION},
        )
        raise EvaluatorError(OPERATION, f"LLM error: {e}", status="in_progress") from e

    if response.usage:
        log_llm_usage(
            workflow="area_lifecycle",
            model=model,
            provider="openai",
            tokens_input=response.usage.prompt_tokens,
            tokens_output=response.usage.completion_tokens,
            duration_ms=duration_ms,
            run_area_id=evidence.run_area_id,
            chain=OPERATION,
        )

    if not response.choices:
        logger.error(
            "Evaluator returned no choices",
            extra={"run_area_id": evidence.run_area_id, "operation": OPERATION},
        )
        raise EvaluatorError(OPERATION, "Evaluator returned no choices", status="in_progress")

    raw_output = response.choices[0].message.content or ""

    try:
        result = parse_llm_json(raw_output, ClarifierScoringResult)
    except json.JSONDecodeError as e:
        logger.error(
            f"Evaluator returned invalid JSON: {e}",
            extra={"run_area_id": evidence.run_area_id, "operation": OPERATION},
        )
        raise EvaluatorError(OPERATION, f"Invalid JSON from evaluator: {e}", status="in_progress") from e
    except ValidationError as e:
        logger.error(
            f"Evaluator output failed validation: {e.error_count()} errors",
            extra={"run_area_id": evidence.run_area_id, "operation": OPERATION},
        )
        raise EvaluatorError(
            OPERATION, f"Evaluator output failed validation: {e}", status="in_progress"
        ) from e

    logger.info(
        f"Evaluator returned {len(result.system_tags)} system tags, tag_quality={result.tag_quality.value}",
        extra={"run_area_id": evidence.run_area_id, "operation": OPERATION},
    )
    return result
