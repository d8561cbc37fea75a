# Shared pytest fixtures
from __future__ import annotations
import io
import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from report_intake.models.workbook import Artifact, Workbook


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """reader:
  na_strings: [N/A]
  skip_blank_rows: true
export:
  file_stem: corrected_file
commit:
  submission_table: report_submissions
  document_table: report_documents
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "intake.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_xlsx_bytes(sheets: dict[str, list[list[object]]]) -> bytes:
    """Build an xlsx file in memory; rows are written as-is (no header handling)."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows, dtype=object).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return buffer.getvalue()


@pytest.fixture()
def make_xlsx() -> Callable[[Path, str, dict[str, list[list[object]]]], Path]:
    def _make(directory: Path, name: str, sheets: dict[str, list[list[object]]]) -> Path:
        p = directory / name
        p.write_bytes(make_xlsx_bytes(sheets))
        return p
    return _make


@pytest.fixture()
def report_rows() -> list[list[object]]:
    """One clean report sheet (header + two data rows)."""
    return [
        ["report_name", "final_value", "purpose_id", "value_premise_id"],
        ["Tower A", 1500000, 1, 2],
        ["Tower B", 820000, 14, 5],
    ]


@pytest.fixture()
def clean_workbook(report_rows) -> Workbook:
    return Workbook.from_rows([report_rows])


@pytest.fixture()
def purpose_violation_workbook() -> Workbook:
    """Single purpose_id violation at sheet 0, row 2, col 2."""
    return Workbook.from_rows([
        [
            ["report_name", "final_value", "purpose_id", "value_premise_id"],
            ["Tower A", 1500000, 1, 2],
            ["Tower B", 820000, 7, 5],
        ]
    ])


@pytest.fixture()
def tabular_artifact() -> Artifact:
    return Artifact(name="report.xlsx", content=b"xlsx-bytes")


@pytest.fixture()
def document_artifact() -> Artifact:
    return Artifact(name="report.pdf", content=b"%PDF-1.7 report")


@pytest.fixture()
def xlsx_bytes() -> Callable[[dict[str, list[list[object]]]], bytes]:
    return make_xlsx_bytes
