"""
Confirmation Gate Test Suite

Covers the state machine and the failure/retry path: a rejected submission
leaves the batch loaded so it can be sent again without re-uploading.
"""

import pytest

from madrassa.ingestion.gate import GateState, ImportGate, InvalidTransition
from madrassa.ingestion.ingestion import run_import
from madrassa.students.models import ImportResult
from madrassa.students.repository import ApiError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeSubmitter:
    def __init__(self, failures=0, exc=None):
        self.calls = []
        self.failures = failures
        self.exc = exc

    def import_students(self, drafts):
        self.calls.append(list(drafts))
        if self.exc is not None:
            raise self.exc
        if self.failures:
            self.failures -= 1
            raise ApiError("Import failed: server unavailable", 503)
        return ImportResult(imported=len(drafts))


def make_batch(rows=3):
    lines = ["firstName,lastName"] + [f"F{i},L{i}" for i in range(rows)]
    return run_import("\n".join(lines).encode("utf-8"), "roster.csv")


def empty_batch():
    return run_import(b"firstName,lastName\n,Jones\n", "roster.csv")


def confirming_gate(rows=3):
    gate = ImportGate()
    gate.load(make_batch(rows))
    gate.request_confirmation()
    return gate


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestHappyPath:
    def test_starts_empty(self):
        gate = ImportGate()
        assert gate.state is GateState.EMPTY
        assert gate.batch is None

    def test_load_only_reaches_previewing(self):
        gate = ImportGate()
        gate.load(make_batch())
        assert gate.state is GateState.PREVIEWING
        assert not gate.can_submit

    def test_full_flow(self):
        submitter = FakeSubmitter()
        gate = confirming_gate(rows=3)
        result = gate.submit(submitter)
        assert result.imported == 3
        assert gate.state is GateState.DONE
        assert gate.result is result
        assert gate.batch is None
        assert len(submitter.calls) == 1

    def test_whole_batch_sent_in_order(self):
        submitter = FakeSubmitter()
        gate = confirming_gate(rows=5)
        gate.submit(submitter)
        assert [d.firstName for d in submitter.calls[0]] == ["F0", "F1", "F2", "F3", "F4"]

    def test_load_again_after_done(self):
        gate = confirming_gate()
        gate.submit(FakeSubmitter())
        gate.load(make_batch())
        assert gate.state is GateState.PREVIEWING
        assert gate.result is None


# ---------------------------------------------------------------------------
# Scenario D: rejected submission
# ---------------------------------------------------------------------------

class TestFailure:
    def test_api_error_moves_to_failed_and_keeps_batch(self):
        gate = confirming_gate(rows=3)
        batch = gate.batch
        assert gate.submit(FakeSubmitter(failures=1)) is None
        assert gate.state is GateState.FAILED
        assert gate.batch is batch
        assert len(gate.batch) == 3
        assert "server unavailable" in gate.error

    def test_retry_resends_same_batch(self):
        submitter = FakeSubmitter(failures=1)
        gate = confirming_gate(rows=2)
        gate.submit(submitter)
        gate.retry()
        assert gate.state is GateState.PREVIEWING
        assert gate.error is None
        gate.request_confirmation()
        result = gate.submit(submitter)
        assert result.imported == 2
        assert submitter.calls[0] == submitter.calls[1]

    def test_unexpected_error_propagates(self):
        gate = confirming_gate()
        with pytest.raises(KeyError):
            gate.submit(FakeSubmitter(exc=KeyError("boom")))
        assert gate.state is GateState.FAILED
        assert gate.batch is not None


# ---------------------------------------------------------------------------
# Guarded transitions
# ---------------------------------------------------------------------------

class TestGuards:
    def test_cannot_submit_from_previewing(self):
        gate = ImportGate()
        gate.load(make_batch())
        submitter = FakeSubmitter()
        with pytest.raises(InvalidTransition):
            gate.submit(submitter)
        assert submitter.calls == []

    def test_cannot_submit_when_empty(self):
        with pytest.raises(InvalidTransition):
            ImportGate().submit(FakeSubmitter())

    def test_cannot_confirm_empty_batch(self):
        gate = ImportGate()
        gate.load(empty_batch())
        assert not gate.can_confirm
        with pytest.raises(InvalidTransition):
            gate.request_confirmation()
        assert gate.state is GateState.PREVIEWING

    def test_cannot_load_over_a_preview(self):
        gate = ImportGate()
        gate.load(make_batch())
        with pytest.raises(InvalidTransition):
            gate.load(make_batch())

    def test_clear_discards_batch(self):
        gate = ImportGate()
        gate.load(make_batch())
        gate.clear()
        assert gate.state is GateState.EMPTY
        assert gate.batch is None

    def test_cancel_confirmation_returns_to_preview(self):
        gate = confirming_gate()
        gate.cancel_confirmation()
        assert gate.state is GateState.PREVIEWING
        assert gate.batch is not None

    def test_retry_only_from_failed(self):
        gate = confirming_gate()
        with pytest.raises(InvalidTransition):
            gate.retry()

    def test_close_resets(self):
        gate = confirming_gate()
        gate.submit(FakeSubmitter(failures=1))
        gate.close()
        assert gate.state is GateState.EMPTY
        assert gate.batch is None
        assert gate.error is None

    def test_close_refused_while_submitting(self):
        gate = ImportGate()
        gate.state = GateState.SUBMITTING
        with pytest.raises(InvalidTransition):
            gate.close()

    def test_error_message_names_action_and_state(self):
        with pytest.raises(InvalidTransition) as exc_info:
            ImportGate().retry()
        assert str(exc_info.value) == "Cannot retry while import is empty"


class TestPreview:
    def test_preview_limits_rows(self):
        gate = ImportGate()
        gate.load(make_batch(rows=13))
        shown, remaining = gate.preview(10)
        assert len(shown) == 10
        assert remaining == 3

    def test_preview_without_batch(self):
        assert ImportGate().preview() == ([], 0)
