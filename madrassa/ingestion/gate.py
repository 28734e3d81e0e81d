"""
Preview & confirmation gate for a roster import.

    EMPTY -> PREVIEWING -> CONFIRMING -> SUBMITTING -> DONE | FAILED
    PREVIEWING -> EMPTY         clear()
    CONFIRMING -> PREVIEWING    cancel_confirmation()
    FAILED -> PREVIEWING        retry(), batch kept

Selecting a file only ever reaches PREVIEWING. The network call happens in
submit(), which is reachable only from CONFIRMING.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol, Sequence

from madrassa.config import PREVIEW_ROWS
from madrassa.ingestion.ingestion import ImportBatch
from madrassa.students.models import ImportResult, StudentDraft
from madrassa.students.repository import ApiError

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    EMPTY = "empty"
    PREVIEWING = "previewing"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class InvalidTransition(RuntimeError):
    def __init__(self, action: str, state: GateState):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while import is {state.value}")


class BatchSubmitter(Protocol):
    def import_students(self, drafts: Sequence[StudentDraft]) -> ImportResult: ...


class ImportGate:
    """Owns at most one ImportBatch and decides when it may be sent."""

    def __init__(self) -> None:
        self.state: GateState = GateState.EMPTY
        self.batch: Optional[ImportBatch] = None
        self.result: Optional[ImportResult] = None
        self.error: Optional[str] = None

    # -- queries -----------------------------------------------------------

    @property
    def can_confirm(self) -> bool:
        return self.state is GateState.PREVIEWING and bool(self.batch and self.batch.drafts)

    @property
    def can_submit(self) -> bool:
        return self.state is GateState.CONFIRMING

    def preview(self, limit: int = PREVIEW_ROWS) -> tuple[list[StudentDraft], int]:
        """First `limit` drafts and the number of drafts not shown."""
        if self.batch is None:
            return [], 0
        shown = self.batch.drafts[:limit]
        return shown, len(self.batch.drafts) - len(shown)

    # -- transitions -------------------------------------------------------

    def _require(self, action: str, *allowed: GateState) -> None:
        if self.state not in allowed:
            raise InvalidTransition(action, self.state)

    def _move(self, new_state: GateState) -> None:
        logger.debug("[gate] %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def load(self, batch: ImportBatch) -> None:
        self._require("load a file", GateState.EMPTY, GateState.DONE)
        self.batch = batch
        self.result = None
        self.error = None
        self._move(GateState.PREVIEWING)

    def clear(self) -> None:
        self._require("clear", GateState.PREVIEWING)
        self.batch = None
        self._move(GateState.EMPTY)

    def request_confirmation(self) -> None:
        self._require("confirm", GateState.PREVIEWING)
        if not self.can_confirm:
            raise InvalidTransition("confirm an empty batch", self.state)
        self._move(GateState.CONFIRMING)

    def cancel_confirmation(self) -> None:
        self._require("cancel confirmation", GateState.CONFIRMING)
        self._move(GateState.PREVIEWING)

    def submit(self, submitter: BatchSubmitter) -> Optional[ImportResult]:
        """
        Send the whole batch in one call.

        Returns the ImportResult on success (state DONE, batch released).
        On ApiError the state becomes FAILED, the message is kept in
        `error` and the batch stays loaded for retry(); None is returned.
        """
        self._require("submit", GateState.CONFIRMING)
        assert self.batch is not None
        self._move(GateState.SUBMITTING)
        try:
            result = submitter.import_students(self.batch.drafts)
        except ApiError as e:
            logger.warning("[gate] submission of %d drafts failed: %s", len(self.batch), e)
            self.error = str(e)
            self._move(GateState.FAILED)
            return None
        except Exception:
            self.error = "Unexpected error during submission"
            self._move(GateState.FAILED)
            raise

        logger.info("[gate] submitted %d drafts: %s", len(self.batch), result.summary())
        self.result = result
        self.batch = None
        self._move(GateState.DONE)
        return result

    def retry(self) -> None:
        self._require("retry", GateState.FAILED)
        self.error = None
        self._move(GateState.PREVIEWING)

    def close(self) -> None:
        """Discard everything. Not allowed mid-submission."""
        if self.state is GateState.SUBMITTING:
            raise InvalidTransition("close", self.state)
        self.batch = None
        self.result = None
        self.error = None
        self._move(GateState.EMPTY)
