import pytest

from madrassa.config import GENDERS, STUDENT_STATUSES
from madrassa.students.dialogs import (
    Creating,
    Deleting,
    DialogState,
    Editing,
    Importing,
    NoDialog,
    Viewing,
    choice_index,
    load_selected,
)
from madrassa.students.repository import ApiError


class TestDialogState:
    def test_starts_closed(self):
        state = DialogState()
        assert state.is_open(NoDialog)
        assert state.selected_id is None

    def test_one_dialog_at_a_time(self):
        state = DialogState()
        state.open(Editing(4))
        state.open(Deleting(5))
        assert state.is_open(Deleting)
        assert not state.is_open(Editing)
        assert state.selected_id == 5

    def test_selected_id_only_for_record_dialogs(self):
        state = DialogState()
        state.open(Viewing(3))
        assert state.selected_id == 3
        for dialog in (Creating(), Importing()):
            state.open(dialog)
            assert state.selected_id is None

    def test_close(self):
        state = DialogState()
        state.open(Importing())
        state.close()
        assert state.active == NoDialog()


class TestChoiceIndex:
    def test_known_value(self):
        assert choice_index(STUDENT_STATUSES, "graduated") == 2

    @pytest.mark.parametrize("value", ["enrolled", None, ""])
    def test_unknown_value_falls_back_to_first_option(self, value):
        assert choice_index(STUDENT_STATUSES, value) == 0

    def test_unknown_gender(self):
        assert choice_index(GENDERS, "x") == 0


class TestLoadSelected:
    def test_returns_record(self):
        state = DialogState()
        state.open(Editing(4))
        record, error = load_selected(state, lambda student_id: {"id": student_id})
        assert record == {"id": 4}
        assert error is None
        assert state.is_open(Editing)

    def test_api_error_closes_dialog(self):
        """A student deleted elsewhere shows a notice instead of a traceback."""
        def gone(student_id):
            raise ApiError("Student not found", 404)

        state = DialogState()
        state.open(Deleting(9))
        record, error = load_selected(state, gone)
        assert record is None
        assert error == "Student not found"
        assert state.is_open(NoDialog)

    def test_other_errors_propagate(self):
        def broken(student_id):
            raise KeyError(student_id)

        state = DialogState()
        state.open(Viewing(1))
        with pytest.raises(KeyError):
            load_selected(state, broken)
