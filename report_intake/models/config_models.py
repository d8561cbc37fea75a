from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the report intake pipeline.

Built by report_intake.config.loader from config/intake.yml after schema
validation. Every section is optional in the YAML; the defaults below apply
when a section or key is missing.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ReaderConfig:
    """How tabular uploads are turned into Workbooks."""
    na_strings: tuple[str, ...] = ()  # strings read as empty cells (e.g. "N/A")
    skip_blank_rows: bool = True


@dataclass(frozen=True)
class ExportConfig:
    file_stem: str = "corrected_file"  # corrected copy is <file_stem>.xlsx


@dataclass(frozen=True)
class CommitConfig:
    submission_table: str = "report_submissions"
    document_table: str = "report_documents"


@dataclass(frozen=True)
class IntakeConfig:
    """Root configuration object."""
    reader: ReaderConfig = field(default_factory=ReaderConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    commit: CommitConfig = field(default_factory=CommitConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @property
    def export_file_name(self) -> str:
        return f"{self.export.file_stem}.xlsx"
