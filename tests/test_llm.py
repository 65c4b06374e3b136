"""Tests for LLM output parsing and usage logging."""

import json
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from maturity_engine.core.llm import _strip_llm_fences, parse_llm_json
from maturity_engine.core.llm_usage import _estimate_cost, log_llm_usage
from maturity_engine.core.schemas_areas import GeneratedClarifiers


class TestStripFences:
    def test_json_fence(self):
        assert _strip_llm_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert _strip_llm_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert _strip_llm_fences('  {"a": 1}  ') == '{"a": 1}'


class TestParseLlmJson:
    def test_validates_model(self):
        parsed = parse_llm_json('{"questions": ["Is the close documented?"]}', GeneratedClarifiers)
        assert parsed.questions[0].question_text == "Is the close documented?"

    def test_blank_questions_dropped(self):
        parsed = parse_llm_json('{"questions": ["  ", "Real question?"]}', GeneratedClarifiers)
        assert len(parsed.questions) == 1

    def test_bad_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_llm_json("questions: none", GeneratedClarifiers)

    def test_schema_mismatch_raises(self):
        with pytest.raises(ValidationError):
            parse_llm_json('{"questions": [42]}', GeneratedClarifiers)

    def test_non_string_question_field_fails_validation(self):
        with pytest.raises(ValidationError):
            parse_llm_json('{"questions": [{"question": 5}]}', GeneratedClarifiers)


class TestUsageLogging:
    def test_cost_for_known_model(self):
        # 1M input at $0.15 + 1M output at $0.60
        assert _estimate_cost("gpt-4o-mini", 1_000_000, 1_000_000) == 0.75

    def test_dated_snapshot_uses_family_price(self):
        assert _estimate_cost("gpt-4o-mini-2024-07-18", 1_000_000, 0) == 0.15

    def test_unknown_model_is_free(self):
        assert _estimate_cost("mystery-model", 1000, 1000) == 0.0

    def test_inserts_row(self):
        with patch("maturity_engine.core.llm_usage.get_supabase") as mock:
            log_llm_usage(
                workflow="area_lifecycle",
                model="gpt-4o-mini",
                provider="openai",
                tokens_input=100,
                tokens_output=50,
                run_area_id="abc",
                chain="evaluate_area",
            )

            row = mock.return_value.table.return_value.insert.call_args.args[0]
            assert row["chain"] == "evaluate_area"
            assert row["run_area_id"] == "abc"

    def test_never_raises(self):
        with patch("maturity_engine.core.llm_usage.get_supabase", side_effect=RuntimeError("down")):
            log_llm_usage("area_lifecycle", "gpt-4o-mini", "openai", 1, 1)
