from __future__ import annotations

from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from report_intake.db.commit_store import CommitTransportError, MemoryCommitStore, PostgresCommitStore
from report_intake.models.commit_result import CommitStatus
from report_intake.models.workbook import Artifact


def _statements(cursor: MagicMock) -> list[str]:
    return [c.args[0] for c in cursor.execute.call_args_list]


@pytest.fixture()
def cursor() -> MagicMock:
    cur = MagicMock()
    cur.fetchone.return_value = (42,)
    return cur


@pytest.fixture()
def store(cursor) -> PostgresCommitStore:
    return PostgresCommitStore(cursor, submission_table="subs", document_table="docs")


class TestPostgresCommitStore:
    def test_submit_inserts_in_one_transaction(self, store, cursor, tabular_artifact, document_artifact):
        with patch("report_intake.db.commit_store.execute_values") as ev:
            response = store.submit(tabular_artifact, [document_artifact])

        assert response.status == CommitStatus.SAVED.value
        assert response.submission_id == 42
        stmts = _statements(cursor)
        assert stmts[0] == "BEGIN"
        assert stmts[1].startswith("INSERT INTO subs (name, file, sha256)")
        assert stmts[-1] == "COMMIT"

        params = cursor.execute.call_args_list[1].args[1]
        assert params[0] == "report.xlsx"
        assert len(params[2]) == 64

        ev.assert_called_once()
        args, kwargs = ev.call_args
        assert args[0] is cursor
        assert args[1] == "INSERT INTO docs (submission_id, name, file) VALUES %s"
        rows = args[2]
        assert [(r[0], r[1]) for r in rows] == [(42, "report.pdf")]
        assert kwargs == {"page_size": 100}

    def test_no_documents_skips_document_insert(self, store, tabular_artifact):
        with patch("report_intake.db.commit_store.execute_values") as ev:
            assert store.submit(tabular_artifact, []).is_stored
        ev.assert_not_called()

    def test_integrity_error_is_a_rejection(self, store, cursor, tabular_artifact, document_artifact):
        def _execute(sql, params=None):
            if sql.startswith("INSERT"):
                raise psycopg2.IntegrityError(
                    'duplicate key value violates unique constraint "subs_sha256_key"\nDETAIL:  Key (sha256)=(ab) exists.'
                )

        cursor.execute.side_effect = _execute
        with patch("report_intake.db.commit_store.execute_values"):
            response = store.submit(tabular_artifact, [document_artifact])

        assert response.status == CommitStatus.FAILED.value
        assert response.error == 'duplicate key value violates unique constraint "subs_sha256_key"'
        assert response.is_rejected
        assert _statements(cursor)[-1] == "ROLLBACK"

    def test_other_database_errors_raise_transport_error(self, store, cursor, tabular_artifact, document_artifact):
        with patch(
            "report_intake.db.commit_store.execute_values",
            side_effect=psycopg2.OperationalError("server closed the connection unexpectedly"),
        ):
            with pytest.raises(CommitTransportError, match="server closed the connection"):
                store.submit(tabular_artifact, [document_artifact])
        stmts = _statements(cursor)
        assert "ROLLBACK" in stmts
        assert "COMMIT" not in stmts

    def test_ensure_tables(self, store, cursor):
        store.ensure_tables()
        stmts = _statements(cursor)
        assert len(stmts) == 2
        assert stmts[0].startswith("CREATE TABLE IF NOT EXISTS subs (")
        assert "sha256 CHAR(64) NOT NULL UNIQUE" in stmts[0]
        assert "REFERENCES subs(id)" in stmts[1]


class TestMemoryCommitStore:
    def test_saves_and_numbers_submissions(self, tabular_artifact, document_artifact):
        store = MemoryCommitStore()
        first = store.submit(tabular_artifact, [document_artifact])
        second = store.submit(Artifact("other.xlsx", b"other"), [])
        assert first.is_stored and first.submission_id == 1
        assert second.submission_id == 2
        assert len(store.submissions) == 2

    def test_same_content_is_a_duplicate(self, tabular_artifact, document_artifact):
        store = MemoryCommitStore()
        store.submit(tabular_artifact, [document_artifact])
        again = store.submit(Artifact("renamed.xlsx", tabular_artifact.content), [document_artifact])
        assert again.status == "FAILED"
        assert again.error == "duplicate record: renamed.xlsx was already submitted"
        assert len(store.submissions) == 1


class TestFetchSubmission:
    def test_returns_stored_file(self, store, cursor):
        cursor.fetchone.return_value = ("report.xlsx", memoryview(b"xlsx-bytes"))
        artifact = store.fetch_submission(5)
        assert artifact == Artifact("report.xlsx", b"xlsx-bytes")
        cursor.execute.assert_called_once_with("SELECT name, file FROM subs WHERE id = %s", (5,))

    def test_unknown_id(self, store, cursor):
        cursor.fetchone.return_value = None
        assert store.fetch_submission(99) is None
