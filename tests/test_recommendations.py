"""Tests for deterministic recommendation derivation."""

from uuid import uuid4

from maturity_engine.core.config import Settings
from maturity_engine.core.recommendations import derive_recommendations, priority_for, severity_for
from maturity_engine.core.schemas_areas import (
    AreaAssessment,
    Priority,
    RecommendationSource,
    SuggestedAction,
)
from tests.fixtures_areas import ACTION_TEMPLATES


def _settings() -> Settings:
    return Settings(
        SUPABASE_URL="https://test.supabase.co",
        SUPABASE_SERVICE_ROLE_KEY="test-key",
        OPENAI_API_KEY="test-openai-key",
    )


def _assessment(system_tags, **subscores) -> AreaAssessment:
    scores = {
        "process": 3.0,
        "automation": 3.0,
        "data_quality": 3.0,
        "controls": 3.0,
        "people_skills": 3.0,
    }
    scores.update(subscores)
    return AreaAssessment(
        run_area_id=uuid4(),
        area_mcq_score=3.0,
        clarifier_score_raw=3.0,
        reported_score=3.0,
        subscores=scores,
        system_tags=system_tags,
        reliability="high",
        tag_quality="high",
    )


class TestSeverity:
    def test_below_threshold(self):
        assert severity_for(1.5, 3.5) == 2.0

    def test_at_or_above_threshold_is_zero(self):
        assert severity_for(3.5, 3.5) == 0.0
        assert severity_for(4.5, 3.5) == 0.0

    def test_priority_buckets(self):
        settings = _settings()
        assert priority_for(2.0, settings) == Priority.HIGH
        assert priority_for(1.0, settings) == Priority.MEDIUM
        assert priority_for(0.5, settings) == Priority.LOW


class TestDeriveRecommendations:
    def test_maps_tags_to_templates(self):
        assessment = _assessment(["CORE_PROCESS_EXCEL", "NO_DOCUMENTATION"], automation=1.5, controls=2.5)

        recs = derive_recommendations(assessment, ACTION_TEMPLATES, [], _settings())

        assert [r.action_id for r in recs] == ["AUTOMATE_RECONCILIATIONS", "DOCUMENT_CLOSE_CALENDAR"]
        top = recs[0]
        assert top.source == RecommendationSource.DETERMINISTIC
        assert top.severity == 2.0
        assert top.priority == Priority.HIGH
        assert top.uplift_estimate == 0.8
        assert top.payload["system_tag"] == "CORE_PROCESS_EXCEL"
        assert recs[1].priority == Priority.MEDIUM

    def test_one_recommendation_per_template(self):
        assessment = _assessment(["CORE_PROCESS_EXCEL", "LIMITED_AUTOMATION"], automation=2.0)

        recs = derive_recommendations(assessment, ACTION_TEMPLATES, [], _settings())

        assert len(recs) == 1
        assert recs[0].action_id == "AUTOMATE_RECONCILIATIONS"

    def test_no_tags_no_deterministic(self):
        recs = derive_recommendations(_assessment([]), ACTION_TEMPLATES, [], _settings())
        assert recs == []

    def test_llm_extras_appended_and_deduplicated(self):
        assessment = _assessment(["CORE_PROCESS_EXCEL"], automation=2.0, people_skills=2.0)
        suggested = [
            SuggestedAction(action_id="AUTOMATE_RECONCILIATIONS", title="dup"),
            SuggestedAction(action_id="TRAIN_CLOSE_TEAM", title="Training", dimension="people_skills"),
        ]

        recs = derive_recommendations(assessment, ACTION_TEMPLATES, suggested, _settings())

        assert [r.action_id for r in recs] == ["AUTOMATE_RECONCILIATIONS", "TRAIN_CLOSE_TEAM"]
        extra = recs[1]
        assert extra.source == RecommendationSource.LLM_EXTRA
        assert extra.severity == 1.5
        assert extra.payload["title"] == "Training"

    def test_sorted_by_severity(self):
        assessment = _assessment(["CORE_PROCESS_EXCEL"], automation=3.0, controls=1.0)
        suggested = [SuggestedAction(action_id="FIX_CONTROLS", title="Controls", dimension="controls")]

        recs = derive_recommendations(assessment, ACTION_TEMPLATES, suggested, _settings())

        assert [r.action_id for r in recs] == ["FIX_CONTROLS", "AUTOMATE_RECONCILIATIONS"]
