from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import execute_values

from ..models.commit_result import CommitResponse
from ..models.workbook import Artifact

"""Submission backends.

A backend receives the validated tabular file and the supporting documents
and answers with a CommitResponse. Server-side rejections (e.g. a duplicate
submission) come back as FAILED with a message; anything that prevents the
backend from answering raises CommitTransportError.

PostgresCommitStore writes one submission per transaction:
- the tabular file into ``submission_table`` (RETURNING id)
- the documents into ``document_table`` via execute_values
The tabular file's sha256 is unique, so re-submitting the same file is
rejected by the database.
"""

__all__ = [
    "CommitBackend",
    "CommitTransportError",
    "MemoryCommitStore",
    "PostgresCommitStore",
]

logger = logging.getLogger(__name__)


class CommitTransportError(Exception):
    """The backend could not be reached or failed without a usable answer."""


class CommitBackend(Protocol):
    def submit(self, tabular: Artifact, documents: Sequence[Artifact]) -> CommitResponse: ...


def _sha256(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


@dataclass
class MemoryCommitStore:
    """In-process backend for dry runs and tests; rejects duplicate tabular files."""
    submissions: list[tuple[Artifact, tuple[Artifact, ...]]] = field(default_factory=list)
    _digests: set[str] = field(default_factory=set)

    def submit(self, tabular: Artifact, documents: Sequence[Artifact]) -> CommitResponse:
        digest = _sha256(tabular.content)
        if digest in self._digests:
            return CommitResponse.failed(f"duplicate record: {tabular.name} was already submitted")
        self._digests.add(digest)
        self.submissions.append((tabular, tuple(documents)))
        return CommitResponse.saved(submission_id=len(self.submissions))


def _db_message(e: Exception) -> str:
    """First line of the server message (psycopg2 appends DETAIL lines)."""
    text = getattr(e, "pgerror", None) or str(e)
    return text.strip().splitlines()[0] if text.strip() else type(e).__name__


class PostgresCommitStore:
    """psycopg2-backed backend; the caller owns the connection and cursor."""

    def __init__(
        self,
        cursor: Any,
        *,
        submission_table: str = "report_submissions",
        document_table: str = "report_documents",
        page_size: int = 100,
    ) -> None:
        self.cursor = cursor
        self.submission_table = submission_table
        self.document_table = document_table
        self.page_size = page_size

    def ensure_tables(self) -> None:
        """Create the submission tables if they do not exist yet."""
        self.cursor.execute(
            f"CREATE TABLE IF NOT EXISTS {self.submission_table} ("
            "id BIGSERIAL PRIMARY KEY, "
            "name TEXT NOT NULL, "
            "file BYTEA NOT NULL, "
            "sha256 CHAR(64) NOT NULL UNIQUE, "
            "created_at TIMESTAMPTZ NOT NULL DEFAULT now())"
        )
        self.cursor.execute(
            f"CREATE TABLE IF NOT EXISTS {self.document_table} ("
            "id BIGSERIAL PRIMARY KEY, "
            f"submission_id BIGINT NOT NULL REFERENCES {self.submission_table}(id), "
            "name TEXT NOT NULL, "
            "file BYTEA NOT NULL)"
        )

    def fetch_submission(self, submission_id: int) -> Artifact | None:
        """Stored tabular file of one submission (None when the id is unknown)."""
        self.cursor.execute(
            f"SELECT name, file FROM {self.submission_table} WHERE id = %s",
            (submission_id,),
        )
        row = self.cursor.fetchone()
        if row is None:
            return None
        name, data = row
        return Artifact(name=name, content=bytes(data))

    def _rollback(self) -> None:
        try:
            self.cursor.execute("ROLLBACK")
        except Exception:  # pragma: no cover
            logger.debug("rollback failed", exc_info=True)

    def submit(self, tabular: Artifact, documents: Sequence[Artifact]) -> CommitResponse:
        start = time.time()
        try:
            self.cursor.execute("BEGIN")
            self.cursor.execute(
                f"INSERT INTO {self.submission_table} (name, file, sha256) VALUES (%s, %s, %s) RETURNING id",
                (tabular.name, psycopg2.Binary(tabular.content), _sha256(tabular.content)),
            )
            submission_id = self.cursor.fetchone()[0]
            if documents:
                execute_values(
                    self.cursor,
                    f"INSERT INTO {self.document_table} (submission_id, name, file) VALUES %s",
                    [(submission_id, d.name, psycopg2.Binary(d.content)) for d in documents],
                    page_size=self.page_size,
                )
            self.cursor.execute("COMMIT")
        except psycopg2.IntegrityError as e:
            self._rollback()
            logger.info("submission rejected name=%s: %s", tabular.name, _db_message(e))
            return CommitResponse.failed(_db_message(e))
        except psycopg2.Error as e:
            self._rollback()
            raise CommitTransportError(_db_message(e)) from e
        logger.debug(
            "submission stored id=%s name=%s documents=%d elapsed=%.3fs",
            submission_id,
            tabular.name,
            len(documents),
            time.time() - start,
        )
        return CommitResponse.saved(submission_id=submission_id)
