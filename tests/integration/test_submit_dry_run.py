from __future__ import annotations

from pathlib import Path

import pytest

from report_intake.cli import main as cli_main
from report_intake.logging.init import reset_logging

pytestmark = pytest.mark.integration


@pytest.fixture()
def document(temp_workdir: Path) -> Path:
    p = temp_workdir / "data" / "report.pdf"
    p.write_bytes(b"%PDF-1.7 valuation report")
    return p


def test_submit_dry_run_success(temp_workdir: Path, write_config: Path, make_xlsx, report_rows, document, capsys):
    reset_logging()
    tabular = make_xlsx(temp_workdir / "data", "reports.xlsx", {"Reports": report_rows})
    code = cli_main(["submit", str(tabular), str(document), "--dry-run"])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY sheets=1 errors=0" in out
    assert "INFO commit status=SAVED name=reports.xlsx" in out
    assert "INFO submission stored" in out


def test_submit_refuses_invalid_tabular(temp_workdir: Path, make_xlsx, document, capsys):
    reset_logging()
    rows = [["final_value", "purpose_id"], [10.25, 8]]
    tabular = make_xlsx(temp_workdir / "data", "bad.xlsx", {"S": rows})
    code = cli_main(["submit", str(tabular), str(document), "--dry-run"])
    out = capsys.readouterr().out
    assert code == 2
    assert "ERROR bad.xlsx: fix the violations above before submitting" in out
    assert "submission stored" not in out


def test_disable_db_connect_env_forces_dry_run(temp_workdir: Path, make_xlsx, report_rows, document, monkeypatch, capsys):
    reset_logging()
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    tabular = make_xlsx(temp_workdir / "data", "reports.xlsx", {"Reports": report_rows})
    assert cli_main(["--debug", "submit", str(tabular), str(document)]) == 0
    assert "DEBUG dry run -> in-memory commit store" in capsys.readouterr().out


def test_dotenv_file_is_loaded(temp_workdir: Path, make_xlsx, report_rows, document, monkeypatch, capsys):
    reset_logging()
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    (temp_workdir / ".env").write_text("DISABLE_DB_CONNECT=1\n", encoding="utf-8")
    tabular = make_xlsx(temp_workdir / "data", "reports.xlsx", {"Reports": report_rows})
    try:
        assert cli_main(["submit", str(tabular), str(document)]) == 0
    finally:
        # load_dotenv writes to os.environ directly
        monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    assert "INFO submission stored" in capsys.readouterr().out


def test_missing_document_is_fatal(temp_workdir: Path, make_xlsx, report_rows, capsys):
    reset_logging()
    tabular = make_xlsx(temp_workdir / "data", "reports.xlsx", {"Reports": report_rows})
    code = cli_main(["submit", str(tabular), str(temp_workdir / "nope.pdf"), "--dry-run"])
    assert code == 1
    assert "ERROR input: cannot read" in capsys.readouterr().out
