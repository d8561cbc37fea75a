from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.violation import Violation, ViolationRecord

"""JSON Lines log of validation violations.

Each buffer owns one file, ``logs/violations-YYYYMMDD-HHMMSS.log`` (UTC),
named when it is first flushed. Every line carries exactly the keys of
ViolationRecord; later flushes append to the same file.
"""

__all__ = [
    "ViolationRecord",
    "ViolationLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ViolationLogBuffer:
    """Collects ViolationRecords until flush().

    Not thread safe; the pipeline handles one event at a time.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir or LOGS_DIR
        self._pending: list[ViolationRecord] = []
        self._target: Path | None = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def file_path(self) -> Path:
        """Log file of this buffer; creates the directory on first use."""
        if self._target is None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            name = f"violations-{datetime.now(UTC):{TIMESTAMP_FMT}}.log"
            self._target = self.logs_dir / name
        return self._target

    def append(self, record: ViolationRecord) -> None:
        self._pending.append(record)

    def extend(self, file: str, violations: Iterable[Violation]) -> None:
        """Buffer one record per violation found in ``file``."""
        self._pending.extend(ViolationRecord.create(file, v) for v in violations)

    def flush(self) -> Path | None:
        if not self._pending:
            return None
        target = self.file_path
        with target.open("a", encoding="utf-8") as out:
            out.writelines(f"{record.to_json_line()}\n" for record in self._pending)
        self._pending = []
        return target
