"""LLM chain for generating clarifier questions (core round and follow-ups).

Call 1 produces exactly 3 core questions from MCQ answers and run context.
Call 2 produces exactly 2 follow-ups that refine, never replace, the core
round, using the core answers as additional evidence.
"""

import json
import time

from pydantic import ValidationError

from maturity_engine.core.config import Settings
from maturity_engine.core.exceptions import EvaluatorError
from maturity_engine.core.llm import get_openai_client, parse_llm_json
from maturity_engine.core.llm_usage import log_llm_usage
from maturity_engine.core.logging import get_logger
from maturity_engine.core.schemas_areas import (
    CLARIFIER_COUNTS,
    ClarifierDraft,
    ClarifierStep,
    EvidencePack,
    GeneratedClarifiers,
)

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are the Clarifier Engine for the Finance Maturity Diagnostic."

CORE_TASK = "Generate exactly 3 clarifier questions."
CORE_RULES = [
    "Questions must be factual and non-redundant.",
    "Each question must target a distinct topic.",
    "Questions should be answerable in 1-3 sentences.",
    "No duplication. No narrative. No scoring.",
]

FOLLOWUP_TASK = "Generate exactly 2 follow-up clarifier questions."
FOLLOWUP_RULES = [
    "Follow-ups must dig into gaps or tensions in the core answers.",
    "Do not repeat or rephrase a core question.",
    "Questions should be answerable in 1-3 sentences.",
    "No duplication. No narrative. No scoring.",
]

OUTPUT_FORMAT = '{"questions": [{"question": "string", "topic": "string"}]}'

OPERATIONS = {
    ClarifierStep.CORE: "generate_core_clarifiers",
    ClarifierStep.FOLLOWUP: "generate_followup_clarifiers",
}


def build_clarifier_prompt(evidence: EvidencePack, step: ClarifierStep, prompt_version: str) -> str:
    """User message for a clarifier round."""
    task, rules = (CORE_TASK, CORE_RULES) if step == ClarifierStep.CORE else (FOLLOWUP_TASK, FOLLOWUP_RULES)
    return json.dumps(
        {
            "prompt_version": prompt_version,
            "task": task,
            "rules": rules,
            "output_format": OUTPUT_FORMAT,
            "evidence": evidence.for_prompt(),
        }
    )


def _fallback_lines(raw_output: str, expected: int) -> list[ClarifierDraft]:
    """Recover questions from a plain-text answer, one per line."""
    lines = [line.strip(" -*\t0123456789.)") for line in raw_output.strip().split("\n")]
    return [ClarifierDraft(question_text=line) for line in lines if len(line) > 8][:expected]


def generate_clarifier_questions(
    *,
    evidence: EvidencePack,
    step: ClarifierStep,
    settings: Settings,
) -> list[ClarifierDraft]:
    """
    Ask the model for one round of clarifier questions.

    Args:
        evidence: Evidence pack for the round (core or followup stage)
        step: Which round to generate
        settings: Application settings

    Returns:
        Exactly CLARIFIER_COUNTS[step] drafts

    Raises:
        EvaluatorError: If the call fails, the JSON has the wrong shape, or the
            wrong number of questions comes back
    """
    operation = OPERATIONS[step]
    expected = CLARIFIER_COUNTS[step]
    model = settings.CLARIFIER_MODEL

    logger.info(
        f"Calling {model} for step-{int(step)} clarifiers",
        extra={"run_area_id": evidence.run_area_id, "operation": operation},
    )

    client = get_openai_client(settings)
    try:
        start = time.time()
        response = client.chat.completions.create(
            model=model,
            temperature=settings.CLARIFIER_TEMPERATURE,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_clarifier_prompt(evidence, step, settings.CLARIFIER_PROMPT_VERSION),
                },
            ],
            response_format={"type": "json_object"},
        )
        duration_ms = int((time.time() - start) * 1000)
    except Exception as e:
        logger.error(
            f"Clarifier generation call failed: {e}",
            extra={"run_area_id": evidence.run_area_id, "operation": operation},
        )
        raise EvaluatorError(operation, f"LLM error: {e}") from e

    if response.usage:
        log_llm_usage(
            workflow="area_lifecycle",
            model=model,
            provider="openai",
            tokens_input=response.usage.prompt_tokens,
            tokens_output=response.usage.completion_tokens,
            duration_ms=duration_ms,
            run_area_id=evidence.run_area_id,
            chain=operation,
        )

    if not response.choices:
        logger.error(
            "Clarifier generation returned no choices",
            extra={"run_area_id": evidence.run_area_id, "operation": operation},
        )
        raise EvaluatorError(operation, "LLM returned no choices")

    raw_output = response.choices[0].message.content or ""

    try:
        questions = parse_llm_json(raw_output, GeneratedClarifiers).questions
    except json.JSONDecodeError as e:
        logger.warning(
            f"Clarifier output was not valid JSON, falling back to line split: {e}",
            extra={"run_area_id": evidence.run_area_id, "operation": operation},
        )
        questions = _fallback_lines(raw_output, expected)
    except ValidationError as e:
        logger.error(
            f"Clarifier output failed validation: {e.error_count()} errors",
            extra={"run_area_id": evidence.run_area_id, "operation": operation},
        )
        raise EvaluatorError(operation, f"Clarifier output failed validation: {e}") from e

    if len(questions) != expected:
        logger.error(
            f"Expected {expected} clarifiers, got {len(questions)}",
            extra={"run_area_id": evidence.run_area_id, "operation": operation},
        )
        raise EvaluatorError(
            operation, f"LLM did not return exactly {expected} questions (got {len(questions)})"
        )

    return questions
