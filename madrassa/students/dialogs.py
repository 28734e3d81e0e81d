"""
Which student dialog is open.

A single ActiveDialog value replaces one boolean per dialog, so states such
as "editing and deleting at once" cannot be represented.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

from madrassa.students.repository import ApiError


@dataclass(frozen=True)
class NoDialog:
    pass


@dataclass(frozen=True)
class Creating:
    pass


@dataclass(frozen=True)
class Editing:
    student_id: int


@dataclass(frozen=True)
class Viewing:
    student_id: int


@dataclass(frozen=True)
class Deleting:
    student_id: int


@dataclass(frozen=True)
class Importing:
    pass


ActiveDialog = Union[NoDialog, Creating, Editing, Viewing, Deleting, Importing]


class DialogState:
    def __init__(self) -> None:
        self.active: ActiveDialog = NoDialog()

    def open(self, dialog: ActiveDialog) -> None:
        self.active = dialog

    def close(self) -> None:
        self.active = NoDialog()

    def is_open(self, kind: type) -> bool:
        return isinstance(self.active, kind)

    @property
    def selected_id(self) -> Optional[int]:
        return getattr(self.active, "student_id", None)


def choice_index(options: Sequence[str], value: Optional[str]) -> int:
    """Position of value in a select box's options; 0 when absent or unknown."""
    try:
        return list(options).index(value)
    except ValueError:
        return 0


def load_selected(
    state: DialogState,
    fetch: Callable[[int], dict[str, Any]],
) -> tuple[Optional[dict[str, Any]], Optional[str]]:
    """
    Fetch the record the open dialog points at.

    Returns (record, None). If the API refuses, for instance because the
    student was deleted in the meantime, the dialog is closed and
    (None, message) is returned.
    """
    try:
        return fetch(state.selected_id), None
    except ApiError as e:
        state.close()
        return None, str(e)
