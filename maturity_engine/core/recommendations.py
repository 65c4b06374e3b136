"""Recommendation derivation from assessment tags.

Deterministic recommendations come from the action template table, keyed by
system tag. Evaluator-suggested extras are appended unless they repeat a
deterministic action_id. No LLM here.
"""

from typing import Any, Iterable
from uuid import UUID

from maturity_engine.core.config import Settings
from maturity_engine.core.schemas_areas import (
    ActionTemplate,
    AreaAssessment,
    Dimension,
    Priority,
    Recommendation,
    RecommendationSource,
    SuggestedAction,
    SystemTag,
)
from maturity_engine.core.scoring import TAG_DIMENSIONS


def severity_for(subscore: float, maturity_threshold: float) -> float:
    """How far a subscore falls below the maturity threshold (0 if at or above)."""
    return round(max(0.0, maturity_threshold - subscore), 2)


def priority_for(severity: float, settings: Settings) -> Priority:
    """Bucket severity into a priority."""
    if severity >= settings.PRIORITY_HIGH_SEVERITY:
        return Priority.HIGH
    if severity >= settings.PRIORITY_MEDIUM_SEVERITY:
        return Priority.MEDIUM
    return Priority.LOW


def _subscore(assessment: AreaAssessment, dimension: Dimension | str | None) -> float:
    if dimension is None:
        return assessment.clarifier_score_raw
    return assessment.subscores.get(Dimension(dimension), assessment.clarifier_score_raw)


def derive_recommendations(
    assessment: AreaAssessment,
    templates: Iterable[dict[str, Any] | ActionTemplate],
    suggested: Iterable[SuggestedAction],
    settings: Settings,
) -> list[Recommendation]:
    """
    Map assessment tags to recommendations.

    Args:
        assessment: The assessment being committed
        templates: Action templates whose system_tags overlap the assessment's
        suggested: Extra actions proposed by the evaluator
        settings: Severity threshold and priority buckets

    Returns:
        Recommendations ordered by severity (deterministic first on ties)
    """
    run_area_id: UUID = assessment.run_area_id
    present_tags = {tag.value for tag in assessment.system_tags}

    by_action: dict[str, Recommendation] = {}
    for raw in templates:
        template = raw if isinstance(raw, ActionTemplate) else ActionTemplate.model_validate(raw)

        for tag in template.system_tags:
            if tag not in present_tags:
                continue

            dimension = template.dimension or TAG_DIMENSIONS[SystemTag(tag)]
            severity = severity_for(_subscore(assessment, dimension), settings.MATURITY_THRESHOLD)

            current = by_action.get(template.action_id)
            if current is not None and current.severity >= severity:
                continue

            by_action[template.action_id] = Recommendation(
                run_area_id=run_area_id,
                action_id=template.action_id,
                source=RecommendationSource.DETERMINISTIC,
                severity=severity,
                priority=priority_for(severity, settings),
                uplift_estimate=template.uplift_estimate,
                payload={
                    "template_id": template.id,
                    "title": template.title,
                    "description": template.description,
                    "dimension": Dimension(dimension).value,
                    "system_tag": tag,
                },
            )

    recommendations = list(by_action.values())

    # Extras are only deduplicated on an exact action_id match
    seen = set(by_action)
    for action in suggested:
        if action.action_id in seen:
            continue
        seen.add(action.action_id)

        severity = severity_for(_subscore(assessment, action.dimension), settings.MATURITY_THRESHOLD)
        recommendations.append(
            Recommendation(
                run_area_id=run_area_id,
                action_id=action.action_id,
                source=RecommendationSource.LLM_EXTRA,
                severity=severity,
                priority=priority_for(severity, settings),
                uplift_estimate=None,
                payload={
                    "title": action.title,
                    "rationale": action.rationale,
                    "dimension": action.dimension.value if action.dimension else None,
                },
            )
        )

    return sorted(
        recommendations,
        key=lambda r: (-r.severity, r.source != RecommendationSource.DETERMINISTIC),
    )
