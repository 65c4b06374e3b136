"""Pytest configuration and fixtures."""

import os
from unittest.mock import patch

import pytest

from tests.fakes.fake_db import fake_db


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["DIAGNOSTIC_ENV"] = "test"


@pytest.fixture
def mock_db_helpers():
    """Route every DB helper the engine uses to the in-memory fake DB."""
    fake_db.reset()

    patches = [
        # area_engine
        patch("maturity_engine.core.area_engine.get_run_area", side_effect=fake_db.get_run_area),
        patch("maturity_engine.core.area_engine.update_area_status", side_effect=fake_db.update_area_status),
        patch("maturity_engine.core.area_engine.list_mcq_answers", side_effect=fake_db.list_mcq_answers),
        patch("maturity_engine.core.area_engine.save_mcq_answers", side_effect=fake_db.save_mcq_answers),
        patch("maturity_engine.core.area_engine.get_clarifier_question", side_effect=fake_db.get_clarifier_question),
        patch("maturity_engine.core.area_engine.insert_clarifier_round", side_effect=fake_db.insert_clarifier_round),
        patch("maturity_engine.core.area_engine.list_clarifier_questions", side_effect=fake_db.list_clarifier_questions),
        patch("maturity_engine.core.area_engine.upsert_clarifier_answer", side_effect=fake_db.upsert_clarifier_answer),
        patch("maturity_engine.core.area_engine.db_get_assessment", side_effect=fake_db.get_assessment),
        patch("maturity_engine.core.area_engine.db_list_recommendations", side_effect=fake_db.list_recommendations),
        # evidence
        patch("maturity_engine.core.evidence.list_clarifier_questions", side_effect=fake_db.list_clarifier_questions),
        patch("maturity_engine.core.evidence.list_clarifier_answers", side_effect=fake_db.list_clarifier_answers),
        patch("maturity_engine.core.evidence.list_area_mcq_questions", side_effect=fake_db.list_area_mcq_questions),
        patch("maturity_engine.core.evidence.list_mcq_answers", side_effect=fake_db.list_mcq_answers),
        patch("maturity_engine.core.evidence.get_run_context", side_effect=fake_db.get_run_context),
        # score_area_graph
        patch("maturity_engine.graphs.score_area_graph.commit_area_assessment", side_effect=fake_db.commit_area_assessment),
        patch("maturity_engine.graphs.score_area_graph.list_action_templates", side_effect=fake_db.list_action_templates),
    ]

    for p in patches:
        p.start()

    yield fake_db

    for p in patches:
        p.stop()
