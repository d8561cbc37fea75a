from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Per-sheet progress bar for validation runs.

One tick per sheet, with the running violation count as postfix. Drawn only
when stdout is a terminal so that piped CLI output stays free of control
sequences.
"""

__all__ = [
    "SheetProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class SheetProgress:
    """Progress of one validation run over the sheets of a Workbook.

    Counters are kept whether or not a bar is drawn; ``enabled`` tells which.
    """

    def __init__(self, sheet_count: int, *, label: str = "Validating sheets", enabled: bool = True) -> None:
        self.sheet_count = sheet_count
        self.label = label
        self.sheets_done = 0
        self.violations_seen = 0
        self._bar: TqdmType[Any] | None = None
        if enabled and is_tty_enabled():
            self._bar = tqdm(
                total=sheet_count,
                desc=label,
                unit="sheet",
                leave=True,
                ncols=80,
                ascii=True,
            )

    @property
    def enabled(self) -> bool:
        return self._bar is not None

    def sheet_started(self, sheet_name: str) -> None:
        if self._bar is not None:
            self._bar.set_description_str(f"{self.label} [{sheet_name}]")

    def sheet_done(self, found: int) -> None:
        """Count one finished sheet and the violations it produced."""
        self.sheets_done += 1
        self.violations_seen += found
        if self._bar is not None:
            self._bar.update(1)
            self._bar.set_postfix_str(f"errors={self.violations_seen}")

    def close(self) -> None:
        if self._bar is not None:
            self._bar.set_description_str(self.label)
            self._bar.close()
            self._bar = None

    def __enter__(self) -> SheetProgress:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
