from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Commit response model for the submission backend.

The backend answers with a status string; SAVED and SUCCESS mean the
submission was stored, FAILED may carry a server message that is shown to
the user verbatim. Any other status is treated like a transport failure.
"""

__all__ = [
    "CommitStatus",
    "CommitResponse",
]


class CommitStatus(Enum):
    SAVED = "SAVED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True)
class CommitResponse:
    status: str
    error: str | None = None
    submission_id: Any = None

    @classmethod
    def saved(cls, submission_id: Any = None) -> CommitResponse:
        return cls(status=CommitStatus.SAVED.value, submission_id=submission_id)

    @classmethod
    def failed(cls, error: str | None) -> CommitResponse:
        return cls(status=CommitStatus.FAILED.value, error=error)

    @property
    def is_stored(self) -> bool:
        return self.status in (CommitStatus.SAVED.value, CommitStatus.SUCCESS.value)

    @property
    def is_rejected(self) -> bool:
        """Server-side rejection with a message the user can act on."""
        return self.status == CommitStatus.FAILED.value and bool(self.error)
