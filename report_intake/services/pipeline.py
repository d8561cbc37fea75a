from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace

from ..excel.reader import read_artifact
from ..models.commit_result import CommitResponse
from ..models.pipeline_state import PipelineState, Stage
from ..models.violation import ValidationResult, Violation
from ..models.workbook import Artifact, Workbook
from .annotated_export import build_annotated

"""Pipeline state machine: pure transition functions over PipelineState.

Every function takes the current state and returns the next one; nothing is
mutated in place. Long-running steps (validation, commit) are split into a
``begin_*`` function that sets the busy flag and issues an operation token
and ``complete_*`` / ``fail_*`` functions that apply the outcome only if the
token still matches. A completion arriving after the user moved on is
ignored and the state is returned unchanged.

Disallowed events raise TransitionError; an event that would start a second
long-running operation while one is in flight raises BusyError.
"""

__all__ = [
    "BusyError",
    "TransitionError",
    "INPUT_ERROR_MESSAGE",
    "COMMIT_ERROR_MESSAGE",
    "initial_state",
    "select_tabular",
    "restart_upload",
    "advance",
    "retreat",
    "begin_validation",
    "complete_validation",
    "fail_validation",
    "corrected_export",
    "select_document",
    "begin_commit",
    "complete_commit",
    "fail_commit",
    "start_new",
    "reset",
]

logger = logging.getLogger(__name__)

INPUT_ERROR_MESSAGE = "Error reading Excel file. Please make sure the file is valid."
COMMIT_ERROR_MESSAGE = "Error saving report. Please try again."


class TransitionError(Exception):
    """Raised when an event is not allowed in the current stage."""


class BusyError(TransitionError):
    """Raised when a long-running operation is already in flight."""


def _new_token() -> str:
    return uuid.uuid4().hex


def _move(state: PipelineState, event: str, **changes: object) -> PipelineState:
    nxt = replace(state, **changes)
    if nxt.stage is not state.stage:
        logger.debug("transition %s -> %s event=%s", state.stage.value, nxt.stage.value, event)
    return nxt


def _require_stage(state: PipelineState, event: str, *stages: Stage) -> None:
    if state.stage not in stages:
        allowed = ", ".join(s.value for s in stages)
        raise TransitionError(f"{event} not allowed in stage {state.stage.value} (allowed: {allowed})")


def _is_current(state: PipelineState, token: str, busy: bool) -> bool:
    return busy and state.operation_token is not None and state.operation_token == token


def initial_state() -> PipelineState:
    return PipelineState()


def select_tabular(
    state: PipelineState,
    artifact: Artifact,
    parse: Callable[[Artifact], Workbook] = read_artifact,
) -> PipelineState:
    """Store a newly selected tabular file.

    From validate_tabular this also routes back to upload_tabular and
    abandons any validation in flight. A file that fails to parse leaves the
    stage unchanged, clears the previous file and sets the input error.
    """
    _require_stage(state, "select_tabular", Stage.UPLOAD_TABULAR, Stage.VALIDATE_TABULAR)
    base = dict(
        stage=Stage.UPLOAD_TABULAR,
        violations=None,
        validating=False,
        operation_token=None,
    )
    try:
        workbook = parse(artifact)
    except Exception as e:
        # any parser failure, not only WorkbookReadError, is an input error
        logger.warning("tabular file rejected name=%s: %s: %s", artifact.name, type(e).__name__, e)
        return _move(state, "select_tabular", tabular=None, workbook=None, error=INPUT_ERROR_MESSAGE, **base)
    logger.debug("tabular file selected name=%s sheets=%d", artifact.name, len(workbook.sheets))
    return _move(state, "select_tabular", tabular=artifact, workbook=workbook, error=None, **base)


def restart_upload(state: PipelineState) -> PipelineState:
    """Leave validation results behind and return to the upload stage."""
    _require_stage(state, "restart_upload", Stage.VALIDATE_TABULAR)
    return _move(
        state,
        "restart_upload",
        stage=Stage.UPLOAD_TABULAR,
        violations=None,
        validating=False,
        operation_token=None,
        error=None,
    )


def advance(state: PipelineState) -> PipelineState:
    """Manual forward navigation; only allowed when the stage's precondition holds."""
    if state.stage is Stage.UPLOAD_TABULAR:
        if state.tabular is None or state.workbook is None:
            raise TransitionError("advance requires a parsed tabular file")
        return _move(state, "advance", stage=Stage.VALIDATE_TABULAR, error=None)

    if state.stage is Stage.VALIDATE_TABULAR:
        if state.validating:
            raise BusyError("validation in progress")
        if not state.is_tabular_valid:
            raise TransitionError("advance requires a validated tabular file without violations")
        return _move(state, "advance", stage=Stage.UPLOAD_DOCUMENT)

    if state.stage is Stage.UPLOAD_DOCUMENT:
        if state.document is None:
            raise TransitionError("advance requires a document")
        return _move(state, "advance", stage=Stage.COMMIT)

    # commit and success are only left through their own events
    raise TransitionError(f"advance not allowed in stage {state.stage.value}")


def retreat(state: PipelineState) -> PipelineState:
    """Backward navigation; both artifacts are retained."""
    if state.stage is Stage.UPLOAD_DOCUMENT:
        return _move(state, "retreat", stage=Stage.VALIDATE_TABULAR)
    if state.stage is Stage.COMMIT:
        if state.committing:
            raise BusyError("commit in progress")
        return _move(state, "retreat", stage=Stage.UPLOAD_DOCUMENT, error=None)
    raise TransitionError(f"retreat not allowed in stage {state.stage.value}")


def begin_validation(state: PipelineState) -> tuple[PipelineState, str]:
    """Mark validation as running and return the token its result must carry."""
    _require_stage(state, "begin_validation", Stage.VALIDATE_TABULAR)
    if state.validating:
        raise BusyError("validation already in progress")
    if state.tabular is None or state.workbook is None:
        raise TransitionError("validation requires a parsed tabular file")
    token = _new_token()
    return _move(state, "begin_validation", validating=True, operation_token=token, error=None), token


def complete_validation(
    state: PipelineState,
    token: str,
    result: ValidationResult | Iterable[Violation],
) -> PipelineState:
    """Store a validation outcome; a clean result moves on to upload_document."""
    if not _is_current(state, token, state.validating):
        logger.debug("stale validation result ignored token=%s", token)
        return state
    violations = result.violations if isinstance(result, ValidationResult) else tuple(result)
    stage = Stage.UPLOAD_DOCUMENT if not violations else Stage.VALIDATE_TABULAR
    return _move(
        state,
        "complete_validation",
        stage=stage,
        violations=violations,
        validating=False,
        operation_token=None,
    )


def fail_validation(state: PipelineState, token: str, message: str) -> PipelineState:
    if not _is_current(state, token, state.validating):
        logger.debug("stale validation failure ignored token=%s", token)
        return state
    return _move(state, "fail_validation", validating=False, operation_token=None, error=message)


def corrected_export(state: PipelineState) -> Workbook:
    """Build the annotated copy of the current Workbook; the state is not changed."""
    _require_stage(state, "corrected_export", Stage.VALIDATE_TABULAR)
    if not state.violations or state.workbook is None:
        raise TransitionError("corrected export requires validation violations")
    return build_annotated(state.workbook, state.violations)


def select_document(state: PipelineState, artifact: Artifact) -> PipelineState:
    _require_stage(state, "select_document", Stage.UPLOAD_DOCUMENT)
    return _move(state, "select_document", stage=Stage.COMMIT, document=artifact, error=None)


def begin_commit(state: PipelineState) -> tuple[PipelineState, str]:
    _require_stage(state, "begin_commit", Stage.COMMIT)
    if state.committing:
        raise BusyError("commit already in progress")
    if state.tabular is None or state.document is None:
        raise TransitionError("commit requires both the tabular file and the document")
    token = _new_token()
    return _move(state, "begin_commit", committing=True, operation_token=token, error=None), token


def complete_commit(state: PipelineState, token: str, response: CommitResponse) -> PipelineState:
    """Apply the backend's answer.

    SAVED / SUCCESS finish the workflow; FAILED with a message surfaces that
    message verbatim; anything else gets the generic retry message.
    """
    if not _is_current(state, token, state.committing):
        logger.debug("stale commit result ignored token=%s", token)
        return state
    done = dict(committing=False, operation_token=None)
    if response.is_stored:
        return _move(state, "complete_commit", stage=Stage.SUCCESS, error=None, **done)
    if response.is_rejected:
        return _move(state, "complete_commit", error=response.error, **done)
    logger.warning("unexpected commit status=%s", response.status)
    return _move(state, "complete_commit", error=COMMIT_ERROR_MESSAGE, **done)


def fail_commit(state: PipelineState, token: str) -> PipelineState:
    """Transport failure: stay on commit with the generic message."""
    if not _is_current(state, token, state.committing):
        logger.debug("stale commit failure ignored token=%s", token)
        return state
    return _move(state, "fail_commit", committing=False, operation_token=None, error=COMMIT_ERROR_MESSAGE)


def start_new(state: PipelineState) -> PipelineState:
    _require_stage(state, "start_new", Stage.SUCCESS)
    logger.debug("transition %s -> %s event=start_new", state.stage.value, Stage.UPLOAD_TABULAR.value)
    return initial_state()


def reset(state: PipelineState) -> PipelineState:
    """Full reset from any stage; in-flight results become stale."""
    if state.stage is not Stage.UPLOAD_TABULAR:
        logger.debug("transition %s -> %s event=reset", state.stage.value, Stage.UPLOAD_TABULAR.value)
    return initial_state()
