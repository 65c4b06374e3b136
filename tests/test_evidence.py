"""Tests for evidence assembly per stage."""

import pytest

from maturity_engine.core.evidence import (
    AreaSnapshot,
    assemble_evidence_pack,
    build_evidence_pack,
    load_area_snapshot,
    require_evidence,
)
from maturity_engine.core.exceptions import MissingEvidenceError
from tests.fixtures_areas import RUN_CONTEXT


def _snapshot(db, run_area_id) -> AreaSnapshot:
    return load_area_snapshot(db.get_run_area(run_area_id))


class TestRequireEvidence:
    def test_core_needs_every_mcq_answered(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.mcq_answers[(str(run_area_id), "r2r_q1")] = 3

        with pytest.raises(MissingEvidenceError) as exc_info:
            require_evidence(_snapshot(db, run_area_id), "core", "generate_core_clarifiers")

        assert "3 of 4" in exc_info.value.message
        assert exc_info.value.http_status == 422

    def test_core_ok_with_full_mcq(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id)

        require_evidence(_snapshot(db, run_area_id), "core", "generate_core_clarifiers")

    def test_empty_question_bank_is_missing_evidence(self, mock_db_helpers):
        db = mock_db_helpers
        db.mcq_questions = []
        run_area_id = db.seed_area("in_progress")

        with pytest.raises(MissingEvidenceError):
            require_evidence(_snapshot(db, run_area_id), "core", "generate_core_clarifiers")

    def test_followup_needs_three_answered_core(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id)
        rows = db.seed_clarifiers(run_area_id, step=1, count=3, answered=False)
        for row in rows[:2]:
            db.upsert_clarifier_answer(row["id"], {"answer_text": "x", "transcription_status": "ok"})

        with pytest.raises(MissingEvidenceError) as exc_info:
            require_evidence(_snapshot(db, run_area_id), "followup", "generate_followup_clarifiers")

        assert "3 asked, 2 answered" in exc_info.value.message

    def test_scoring_needs_five_answers(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id)
        db.seed_clarifiers(run_area_id, step=1, count=3)
        db.seed_clarifiers(run_area_id, step=2, count=2, answered=False)

        with pytest.raises(MissingEvidenceError):
            require_evidence(_snapshot(db, run_area_id), "scoring", "evaluate_area")


class TestAssembleEvidencePack:
    def test_core_pack_has_no_clarifiers(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id, value=4)

        pack = assemble_evidence_pack(_snapshot(db, run_area_id), "core")

        assert pack.stage == "core"
        assert pack.clarifiers == []
        assert len(pack.mcq_answers) == 4
        assert pack.mcq_score == 4.0
        assert pack.ambition == RUN_CONTEXT["ambition"]
        assert pack.role == RUN_CONTEXT["role"]

    def test_followup_pack_carries_core_answers(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id)
        db.seed_clarifiers(run_area_id, step=1, count=3)

        pack = assemble_evidence_pack(_snapshot(db, run_area_id), "followup")

        assert len(pack.clarifiers) == 3
        assert all(c.step == 1 for c in pack.clarifiers)
        assert all(c.answer_text == "An answer" for c in pack.clarifiers)

    def test_scoring_pack_uses_weights(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id, value=2)
        # r2r_q2 has weight 2.0: (2 + 2*5 + 2 + 2) / 5
        db.mcq_answers[(str(run_area_id), "r2r_q2")] = 5
        db.seed_clarifiers(run_area_id, step=1, count=3)
        db.seed_clarifiers(run_area_id, step=2, count=2)

        pack, snapshot = build_evidence_pack(db.get_run_area(run_area_id), "scoring", "evaluate_area")

        assert pack.mcq_score == 3.2
        assert len(pack.clarifiers) == 5
        assert [c.step for c in pack.clarifiers] == [1, 1, 1, 2, 2]
        assert len(snapshot.mcq_questions) == 4

    def test_prompt_view_excludes_area_id(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id)

        pack = assemble_evidence_pack(_snapshot(db, run_area_id), "core")

        assert "run_area_id" not in pack.for_prompt()
        assert pack.for_prompt()["company_context"]["industry"] == "Manufacturing"

    def test_pack_is_immutable(self, mock_db_helpers):
        db = mock_db_helpers
        run_area_id = db.seed_area("in_progress")
        db.seed_mcq_answers(run_area_id)

        pack = assemble_evidence_pack(_snapshot(db, run_area_id), "core")

        with pytest.raises(Exception):
            pack.mcq_score = 1.0
