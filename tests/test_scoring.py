"""Tests for maturity_engine.core.scoring: pure scoring math."""

from uuid import uuid4

import pytest

from maturity_engine.core.config import Settings
from maturity_engine.core.schemas_areas import (
    ClarifierExchange,
    Dimension,
    EvidencePack,
    McqAnswerIn,
    Reliability,
    TagQuality,
)
from maturity_engine.core.scoring import (
    axis_mcq_signal,
    blend_reported_score,
    build_assessment,
    compute_clarifier_score,
    compute_contradiction_flags,
    compute_mcq_score,
    compute_reliability,
)
from tests.fixtures_areas import MCQ_QUESTIONS, make_scoring_result


def _settings(**overrides) -> Settings:
    return Settings(
        SUPABASE_URL="https://test.supabase.co",
        SUPABASE_SERVICE_ROLE_KEY="test-key",
        OPENAI_API_KEY="test-openai-key",
        **overrides,
    )


def _mcq(**values) -> list[McqAnswerIn]:
    return [McqAnswerIn(question_id=qid, answer_value=v) for qid, v in values.items()]


DIMENSION_MAP = {q["id"]: q["dimension"] for q in MCQ_QUESTIONS}


class TestMcqScore:
    def test_unweighted_mean(self):
        assert compute_mcq_score(_mcq(a=2, b=4)) == 3.0

    def test_weighted_mean(self):
        # (1*2 + 3*4) / 4
        assert compute_mcq_score(_mcq(a=2, b=4), {"a": 1.0, "b": 3.0}) == 3.5

    def test_missing_weight_counts_as_one(self):
        assert compute_mcq_score(_mcq(a=1, b=5), {"a": 1.0}) == 3.0

    def test_zero_weights_fall_back_to_mean(self):
        assert compute_mcq_score(_mcq(a=1, b=5), {"a": 0.0, "b": 0.0}) == 3.0

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            compute_mcq_score([])


class TestBlend:
    def test_clarifier_score_is_mean_of_subscores(self):
        result = make_scoring_result()
        assert compute_clarifier_score(result.subscores) == 2.8

    def test_default_weight_is_even_blend(self):
        assert blend_reported_score(4.0, 2.0, 0.5) == 3.0

    def test_weight_one_reports_mcq(self):
        assert blend_reported_score(4.0, 2.0, 1.0) == 4.0


class TestContradictions:
    def test_axis_signal_uses_matching_questions(self):
        answers = _mcq(r2r_q1=1, r2r_q2=5, r2r_q3=3, r2r_q4=3)
        assert axis_mcq_signal(answers, DIMENSION_MAP, Dimension.AUTOMATION, 3.0) == 5.0

    def test_axis_signal_falls_back_without_questions(self):
        assert axis_mcq_signal(_mcq(x=5), {}, Dimension.AUTOMATION, 2.5) == 2.5

    def test_gap_flags_axis(self):
        answers = _mcq(r2r_q1=3, r2r_q2=4, r2r_q3=3, r2r_q4=3)
        result = make_scoring_result(system_tags=[])
        # automation: MCQ 4 vs subscore 2.0 → gap 2.0
        flags = compute_contradiction_flags(answers, DIMENSION_MAP, 3.25, result, 1.5, 4.0)

        assert flags.automation is True
        assert flags.governance is False
        assert flags.people is False

    def test_strength_with_weakness_tag_flags_axis(self):
        answers = _mcq(r2r_q1=3, r2r_q2=3, r2r_q3=4, r2r_q4=3)
        result = make_scoring_result(
            subscores={
                "process": 3.0,
                "automation": 3.0,
                "data_quality": 3.0,
                "controls": 3.5,
                "people_skills": 3.0,
            },
            system_tags=["MISSING_OWNERSHIP"],
        )
        flags = compute_contradiction_flags(answers, DIMENSION_MAP, 3.25, result, 1.5, 4.0)

        assert flags.governance is True
        assert flags.automation is False

    def test_weak_mcq_with_weakness_tag_is_consistent(self):
        answers = _mcq(r2r_q1=2, r2r_q2=2, r2r_q3=2, r2r_q4=2)
        result = make_scoring_result(
            subscores={d.value: 2.0 for d in Dimension},
            system_tags=["CORE_PROCESS_EXCEL", "CAPACITY_CONSTRAINT"],
        )
        flags = compute_contradiction_flags(answers, DIMENSION_MAP, 2.0, result, 1.5, 4.0)

        assert not (flags.automation or flags.governance or flags.people)


class TestReliability:
    def test_high_when_clean(self):
        assert compute_reliability(TagQuality.HIGH, ["ok", "ok"]) == Reliability.HIGH

    def test_medium_tag_quality_still_high(self):
        assert compute_reliability(TagQuality.MEDIUM, ["ok"]) == Reliability.HIGH

    def test_failed_transcription_caps_at_medium(self):
        assert compute_reliability(TagQuality.HIGH, ["ok", "failed"]) == Reliability.MEDIUM

    def test_low_tag_quality_is_low(self):
        assert compute_reliability(TagQuality.LOW, ["failed"]) == Reliability.LOW


class TestBuildAssessment:
    def test_assembles_all_fields(self):
        run_area_id = uuid4()
        answers = _mcq(r2r_q1=3, r2r_q2=4, r2r_q3=3, r2r_q4=3)
        evidence = EvidencePack(
            run_area_id=str(run_area_id),
            stage="scoring",
            mcq_score=3.4,
            mcq_answers=answers,
            clarifiers=[
                ClarifierExchange(
                    question_id=str(uuid4()),
                    step=1,
                    question_text="Q",
                    answer_text=None,
                    transcription_status="failed",
                )
            ],
        )

        assessment = build_assessment(
            run_area_id, evidence, make_scoring_result(), MCQ_QUESTIONS, _settings()
        )

        assert assessment.area_mcq_score == 3.4
        assert assessment.clarifier_score_raw == 2.8
        assert assessment.reported_score == 3.1
        assert set(assessment.subscores) == set(Dimension)
        assert assessment.reliability == Reliability.MEDIUM
        assert assessment.contradiction_flags.automation is True

    def test_blend_weight_from_settings(self):
        run_area_id = uuid4()
        evidence = EvidencePack(
            run_area_id=str(run_area_id),
            stage="scoring",
            mcq_score=4.0,
            mcq_answers=_mcq(r2r_q1=4),
        )

        assessment = build_assessment(
            run_area_id,
            evidence,
            make_scoring_result(),
            MCQ_QUESTIONS,
            _settings(REPORTED_SCORE_MCQ_WEIGHT=0.25),
        )

        # 0.25 * 4.0 + 0.75 * 2.8
        assert assessment.reported_score == 3.1
