"""Domain models for the report intake pipeline.

This package contains the value objects shared by the reader, the validation
engine, the export builder and the pipeline state machine.
"""

from .commit_result import CommitResponse, CommitStatus
from .config_models import CommitConfig, DatabaseConfig, ExportConfig, IntakeConfig, ReaderConfig
from .pipeline_state import PipelineState, Stage
from .violation import RuleKind, ValidationResult, ValidationSummary, Violation, ViolationRecord
from .workbook import Artifact, Sheet, Workbook

__all__ = [
    # Configuration models
    "CommitConfig",
    "DatabaseConfig",
    "ExportConfig",
    "IntakeConfig",
    "ReaderConfig",
    # Tabular data
    "Artifact",
    "Sheet",
    "Workbook",
    # Validation results
    "RuleKind",
    "ValidationResult",
    "ValidationSummary",
    "Violation",
    "ViolationRecord",
    # Pipeline
    "CommitResponse",
    "CommitStatus",
    "PipelineState",
    "Stage",
]
