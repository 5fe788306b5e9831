"""Tests for CVResponseRepository against an in-memory database."""

from datetime import datetime, timezone
from unittest.mock import patch

from schemas.candidate_record import CandidateRecord
from schemas.documents import ProcessingResult, SubmittedDocument
from storage.models import CVResponse
from storage.repository import CVResponseRepository
from tests.fixtures.llm_responses import SAMPLE_RECORD


def _success(index):
    return ProcessingResult.success(index, CandidateRecord.model_validate(SAMPLE_RECORD))


def _documents(n):
    return [
        {"base64": f"ZG9j{i}", "fileType": "pdf", "candidateStatus": "new" if i % 2 else "shortlisted"}
        for i in range(n)
    ]


def _dated_rows(repo, *dates):
    rows = []
    for i, created_at in enumerate(dates):
        row = repo.save_result(_success(i))
        row.created_at = created_at
        rows.append(row)
    repo.commit()
    return rows


class TestSaveResults:

    def test_only_successes_are_stored(self, db_session):
        repo = CVResponseRepository(db_session)
        results = [_success(0), ProcessingResult.failure(1, "Unsupported file type: bmp"), _success(2)]

        rows = repo.save_results(results, _documents(3))
        repo.commit()

        assert [r.index for r in rows] == [0, 2]
        assert db_session.query(CVResponse).count() == 2

    def test_failed_insert_keeps_sibling_rows(self, db_session):
        repo = CVResponseRepository(db_session)
        results = [_success(0), _success(1), _success(2)]

        # second row collides with the first on the primary key
        with patch("storage.models.uuid.uuid4", side_effect=["id-a", "id-a", "id-b"]):
            rows = repo.save_results(results, _documents(3))

        assert [r.index for r in rows] == [0, 2]
        stored = db_session.query(CVResponse).order_by(CVResponse.id).all()
        assert [(r.id, r.index) for r in stored] == [("id-a", 0), ("id-b", 2)]

    def test_each_row_is_committed(self, db_session):
        repo = CVResponseRepository(db_session)
        repo.save_results([_success(0)], _documents(1))

        db_session.rollback()

        assert db_session.query(CVResponse).count() == 1

    def test_long_candidate_status_is_stored(self, db_session):
        repo = CVResponseRepository(db_session)
        status = "phone screen scheduled, waiting on references " * 4

        row = repo.save_results([_success(0)], [{"base64": "eA==", "fileType": "pdf", "candidateStatus": status}])[0]

        assert repo.get_by_id(row.id).candidate_status == status

    def test_row_carries_document_fields(self, db_session):
        repo = CVResponseRepository(db_session)

        row = repo.save_results([_success(1)], _documents(2))[0]
        repo.commit()

        stored = repo.get_by_id(row.id).to_dict()
        assert stored["base64"] == "ZG9j1"
        assert stored["candidateStatus"] == "new"
        assert stored["status"] == "success"
        assert stored["result"]["Name"] == "Jane Doe"
        assert stored["result"]["Skills"] == ["Python", "SQL"]
        assert "error" not in stored

    def test_accepts_submitted_document_models(self, db_session):
        repo = CVResponseRepository(db_session)
        doc = SubmittedDocument(base64="eA==", file_type="docx", candidate_status="hired")

        row = repo.save_results([_success(0)], [doc])[0]

        assert row.candidate_status == "hired"
        assert row.base64 == "eA=="

    def test_missing_document_stores_result_only(self, db_session):
        repo = CVResponseRepository(db_session)

        row = repo.save_results([_success(3)], _documents(1))[0]

        assert row.base64 is None
        assert row.index == 3


class TestQueries:

    def test_get_by_id_unknown(self, db_session):
        assert CVResponseRepository(db_session).get_by_id("missing") is None

    def test_ids_are_unique(self, db_session):
        repo = CVResponseRepository(db_session)
        rows = repo.save_results([_success(0), _success(1)], _documents(2))
        assert rows[0].id != rows[1].id

    def test_list_between_is_inclusive_and_ordered(self, db_session):
        repo = CVResponseRepository(db_session)
        jan, feb, mar = (datetime(2024, m, 1, tzinfo=timezone.utc) for m in (1, 2, 3))
        rows = _dated_rows(repo, mar, jan, feb)

        found = repo.list_between(datetime(2024, 1, 15, tzinfo=timezone.utc), mar)

        assert [r.id for r in found] == [rows[2].id, rows[0].id]

    def test_list_between_open_ended(self, db_session):
        repo = CVResponseRepository(db_session)
        jan, feb = (datetime(2024, m, 1, tzinfo=timezone.utc) for m in (1, 2))
        _dated_rows(repo, feb, jan)

        assert len(repo.list_between()) == 2
        assert len(repo.list_between(start=feb)) == 1
        assert len(repo.list_between(end=jan)) == 1

    def test_naive_bounds_are_utc(self, db_session):
        repo = CVResponseRepository(db_session)
        _dated_rows(repo, datetime(2024, 5, 1, 12, tzinfo=timezone.utc))

        assert len(repo.list_between(datetime(2024, 5, 1, 11), datetime(2024, 5, 1, 13))) == 1
        assert repo.list_between(datetime(2024, 5, 1, 13)) == []

    def test_limit(self, db_session):
        repo = CVResponseRepository(db_session)
        repo.save_results([_success(i) for i in range(5)], _documents(5))
        repo.commit()

        assert len(repo.list_between(limit=3)) == 3

    def test_to_dict_without_base64(self, db_session):
        repo = CVResponseRepository(db_session)
        row = repo.save_results([_success(0)], _documents(1))[0]

        assert "base64" not in row.to_dict(include_base64=False)
