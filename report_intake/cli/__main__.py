from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from report_intake.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from report_intake.db.commit_store import CommitBackend, MemoryCommitStore, PostgresCommitStore
from report_intake.excel.writer import WorkbookWriteError
from report_intake.logging.init import enable_debug, log_summary, setup_logging
from report_intake.logging.violation_log import ViolationLogBuffer
from report_intake.models.config_models import DatabaseConfig, IntakeConfig
from report_intake.models.pipeline_state import Stage
from report_intake.models.workbook import Artifact
from report_intake.services.session import SubmissionSession
from report_intake.services.summary import render_summary_line

"""CLI entrypoint.

Drives the submission pipeline from the command line:
- validate: parse + validate a tabular file, optionally write the corrected
  copy and the JSON Lines violation log
- submit: validate, attach the document and commit both to PostgreSQL
  (or to an in-memory store with --dry-run / DISABLE_DB_CONNECT=1)
- fetch: write the stored tabular file of a submission back to disk

Exit codes: 0 valid / stored, 2 violations or commit rejected, 1 fatal.
"""

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_REJECTED = 2


def _dsn(db_cfg: DatabaseConfig) -> str:
    """Resolve the connection string.

    Precedence:
        1. DATABASE_URL / PGDSN (whole DSN)
        2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. the ``database`` section of the YAML config
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: IntakeConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """psycopg2 connection + cursor; the commit store issues BEGIN/COMMIT itself."""
    conn = psycopg2.connect(_dsn(cfg.database))
    conn.autocommit = True
    cur = conn.cursor()
    try:
        yield cur
    finally:
        try:
            cur.close()
        finally:
            conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env (override=True: .env wins over the inherited environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="report-intake", description="Validate and submit report workbooks")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help=f"YAML config (default: {DEFAULT_CONFIG_PATH})")
    sub = p.add_subparsers(dest="command", required=True)

    v = sub.add_parser("validate", help="Validate a tabular file")
    v.add_argument("tabular", type=Path)
    v.add_argument("--export", type=Path, default=None, help="Write the corrected copy (file or directory)")
    v.add_argument("--log-violations", action="store_true", help="Write violations as JSON Lines under logs/")

    s = sub.add_parser("submit", help="Validate, attach a document and commit")
    s.add_argument("tabular", type=Path)
    s.add_argument("document", type=Path)
    s.add_argument("--dry-run", action="store_true", help="Commit to an in-memory store")
    s.add_argument("--init-db", action="store_true", help="Create the submission tables if missing")

    f = sub.add_parser("fetch", help="Download the tabular file of a stored submission")
    f.add_argument("id", type=int)
    f.add_argument("--out", type=Path, default=Path("."), help="Target file or directory (default: .)")
    return p.parse_args(argv)


def _load(cfg_path: Path | None) -> IntakeConfig:
    if cfg_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return IntakeConfig()
        cfg_path = DEFAULT_CONFIG_PATH
    return load_config(cfg_path)


def _validate_file(session: SubmissionSession, path: Path, logger: logging.Logger) -> bool:
    """Select + validate; returns False on a fatal input error."""
    try:
        artifact = Artifact.from_path(path)
    except OSError as e:
        logger.error(f"input: cannot read {path}: {e}")
        return False
    state = session.select_tabular(artifact)
    if state.error:
        logger.error(f"input: {state.error}")
        return False
    session.advance()
    state = session.validate()
    if state.error:
        logger.error(f"validation: {state.error}")
        return False

    workbook = state.workbook
    for v in state.violations or ():
        header = workbook.sheets[v.sheet_index].header_at(v.col) if workbook else ""
        logger.warning(f"sheet={v.sheet_index + 1} cell={v.cell_ref} column={header or '-'} {v.message}")
    summary_line = render_summary_line(len(workbook.sheets) if workbook else 0, state.summary)
    log_summary(summary_line[len("SUMMARY "):])
    return True


def _write_export(session: SubmissionSession, target: Path, logger: logging.Logger) -> None:
    name, data = session.corrected_export()
    out = target / name if target.is_dir() else target
    out.write_bytes(data)
    logger.info(f"corrected copy written: {out}")


def _cmd_validate(args: argparse.Namespace, cfg: IntakeConfig, logger: logging.Logger) -> int:
    session = SubmissionSession(MemoryCommitStore(), config=cfg, progress=True)
    if not _validate_file(session, args.tabular, logger):
        return EXIT_FATAL
    state = session.state
    if state.is_tabular_valid:
        logger.info(f"{args.tabular.name}: no violations")
        return EXIT_OK

    if args.export is not None:
        try:
            _write_export(session, args.export, logger)
        except (OSError, WorkbookWriteError) as e:
            logger.error(f"export: {e}")
            return EXIT_FATAL
    if args.log_violations:
        buffer = ViolationLogBuffer()
        buffer.extend(args.tabular.name, state.violations or ())
        try:
            path = buffer.flush()
        except OSError as e:
            logger.error(f"violation log: {e}")
            return EXIT_FATAL
        logger.info(f"violation log written: {path}")
    return EXIT_REJECTED


def _commit(session: SubmissionSession, logger: logging.Logger) -> int:
    state = session.commit()
    if state.stage is Stage.SUCCESS:
        logger.info("submission stored")
        return EXIT_OK
    logger.error(f"commit: {state.error}")
    return EXIT_REJECTED


def _cmd_submit(args: argparse.Namespace, cfg: IntakeConfig, logger: logging.Logger) -> int:
    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    backend: CommitBackend = MemoryCommitStore()
    session = SubmissionSession(backend, config=cfg, progress=True)
    if not _validate_file(session, args.tabular, logger):
        return EXIT_FATAL
    if not session.state.is_tabular_valid:
        logger.error(f"{args.tabular.name}: fix the violations above before submitting")
        return EXIT_REJECTED

    try:
        document = Artifact.from_path(args.document)
    except OSError as e:
        logger.error(f"input: cannot read {args.document}: {e}")
        return EXIT_FATAL
    session.select_document(document)

    if dry_run:
        logger.debug("dry run -> in-memory commit store")
        return _commit(session, logger)

    try:
        with _db_connection(cfg) as cur:
            store = PostgresCommitStore(
                cur,
                submission_table=cfg.commit.submission_table,
                document_table=cfg.commit.document_table,
            )
            if args.init_db:
                store.ensure_tables()
            session.backend = store
            return _commit(session, logger)
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL


def _cmd_fetch(args: argparse.Namespace, cfg: IntakeConfig, logger: logging.Logger) -> int:
    try:
        with _db_connection(cfg) as cur:
            store = PostgresCommitStore(cur, submission_table=cfg.commit.submission_table)
            artifact = store.fetch_submission(args.id)
    except psycopg2.Error as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    if artifact is None:
        logger.error(f"submission {args.id} not found in {cfg.commit.submission_table}")
        return EXIT_FATAL
    out = args.out / artifact.name if args.out.is_dir() else args.out
    try:
        out.write_bytes(artifact.content)
    except OSError as e:
        logger.error(f"output: cannot write {out}: {e}")
        return EXIT_FATAL
    logger.info(f"submission {args.id} written: {out} ({artifact.size} bytes)")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest args)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()

    try:
        cfg = _load(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "validate":
        return _cmd_validate(args, cfg, logger)
    if args.command == "fetch":
        return _cmd_fetch(args, cfg, logger)
    return _cmd_submit(args, cfg, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
