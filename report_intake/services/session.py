from __future__ import annotations

import logging

from ..db.commit_store import CommitBackend
from ..excel.reader import read_workbook
from ..excel.writer import write_workbook
from ..models.config_models import IntakeConfig
from ..models.pipeline_state import PipelineState
from ..models.workbook import Artifact, Workbook
from . import pipeline
from .validation import validate

"""Submission session: drives the pipeline transitions for a presentation layer.

The session owns the current PipelineState and the collaborators the pure
transitions do not know about (reader settings, writer, commit backend). Each
event method replaces ``state`` wholesale and returns it. Long-running steps
run begin -> work -> complete/fail so that the busy flag is cleared on every
exit path; failures end up in ``state.error`` instead of propagating.
"""

__all__ = [
    "SubmissionSession",
]

logger = logging.getLogger(__name__)


class SubmissionSession:
    def __init__(
        self,
        backend: CommitBackend,
        *,
        config: IntakeConfig | None = None,
        progress: bool = False,
    ) -> None:
        self.backend = backend
        self.config = config or IntakeConfig()
        self.progress = progress
        self.state: PipelineState = pipeline.initial_state()

    def parse(self, artifact: Artifact) -> Workbook:
        return read_workbook(
            artifact.name,
            artifact.content,
            na_strings=self.config.reader.na_strings,
            skip_blank_rows=self.config.reader.skip_blank_rows,
        )

    # -- navigation -------------------------------------------------------

    def select_tabular(self, artifact: Artifact) -> PipelineState:
        self.state = pipeline.select_tabular(self.state, artifact, parse=self.parse)
        return self.state

    def advance(self) -> PipelineState:
        self.state = pipeline.advance(self.state)
        return self.state

    def retreat(self) -> PipelineState:
        self.state = pipeline.retreat(self.state)
        return self.state

    def restart_upload(self) -> PipelineState:
        self.state = pipeline.restart_upload(self.state)
        return self.state

    def select_document(self, artifact: Artifact) -> PipelineState:
        self.state = pipeline.select_document(self.state, artifact)
        return self.state

    def start_new(self) -> PipelineState:
        self.state = pipeline.start_new(self.state)
        return self.state

    def reset(self) -> PipelineState:
        self.state = pipeline.reset(self.state)
        return self.state

    # -- long-running steps -----------------------------------------------

    def _current_workbook(self) -> Workbook:
        if self.state.workbook is None:
            raise pipeline.TransitionError("validation started without a parsed workbook")
        return self.state.workbook

    def _staged_files(self) -> tuple[Artifact, Artifact]:
        tabular, document = self.state.tabular, self.state.document
        if tabular is None or document is None:
            raise pipeline.TransitionError("commit started without both files")
        return tabular, document

    def validate(self) -> PipelineState:
        """Run the validation engine on the current Workbook."""
        self.state, token = pipeline.begin_validation(self.state)
        try:
            result = validate(self._current_workbook(), progress=self.progress)
        except Exception as e:
            logger.error("validation failed name=%s: %s", self.state.tabular.name if self.state.tabular else "-", e)
            self.state = pipeline.fail_validation(self.state, token, f"Validation failed: {e}")
        else:
            self.state = pipeline.complete_validation(self.state, token, result)
        return self.state

    def corrected_export(self) -> tuple[str, bytes]:
        """Annotated copy of the current file as (download name, xlsx bytes)."""
        annotated = pipeline.corrected_export(self.state)
        return self.config.export_file_name, write_workbook(annotated)

    def commit(self) -> PipelineState:
        """Hand both artifacts to the backend; stays on commit unless stored."""
        self.state, token = pipeline.begin_commit(self.state)
        try:
            tabular, document = self._staged_files()
            response = self.backend.submit(tabular, [document])
        except Exception as e:
            logger.warning("commit failed: %s", e)
            self.state = pipeline.fail_commit(self.state, token)
        else:
            logger.info("commit status=%s name=%s", response.status, tabular.name)
            self.state = pipeline.complete_commit(self.state, token, response)
        return self.state
