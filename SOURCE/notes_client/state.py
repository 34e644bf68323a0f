"""
Session state for one browser session and the pure transitions over it.

Every transition returns a new :class:`SessionState`; nothing here touches
the network except :func:`reconstruct`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from .api import APIClient, APIError
from .schemas import Note, User


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionState:
    user: Optional[User] = None
    notes: Tuple[Note, ...] = ()
    editing_note_id: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None

    @property
    def editing_note(self) -> Optional[Note]:
        if self.editing_note_id is None:
            return None
        return find_note(self, self.editing_note_id)


def find_note(state: SessionState, note_id: str) -> Optional[Note]:
    return next((note for note in state.notes if note.id == note_id), None)


def signed_in(state: SessionState, user: Optional[User]) -> SessionState:
    return replace(state, user=user)


def signed_out(state: SessionState) -> SessionState:
    return SessionState()


def notes_loaded(state: SessionState, notes: Iterable[Note]) -> SessionState:
    notes = tuple(notes)
    editing = state.editing_note_id
    if editing is not None and not any(note.id == editing for note in notes):
        editing = None
    return replace(state, notes=notes, editing_note_id=editing)


def note_created(state: SessionState, note: Note) -> SessionState:
    return replace(state, notes=(note,) + state.notes)


def note_updated(state: SessionState, note: Note) -> SessionState:
    return replace(
        state,
        notes=tuple(note if existing.id == note.id else existing for existing in state.notes),
    )


def note_deleted(state: SessionState, note_id: str) -> SessionState:
    editing = None if state.editing_note_id == note_id else state.editing_note_id
    return replace(
        state,
        notes=tuple(note for note in state.notes if note.id != note_id),
        editing_note_id=editing,
    )


def start_editing(state: SessionState, note_id: str) -> SessionState:
    if find_note(state, note_id) is None:
        return state
    return replace(state, editing_note_id=note_id)


def stop_editing(state: SessionState) -> SessionState:
    return replace(state, editing_note_id=None)


def reconstruct(client: APIClient) -> SessionState:
    """Rebuild the state from the backend's session check."""
    try:
        user = client.auth.me()
    except APIError as exc:
        logger.debug("Session check failed: %r", exc)
        user = None
    return SessionState(user=user)


def notes_label(count: int) -> str:
    return f"{count} {'note' if count == 1 else 'notes'}"


__all__ = [
    "SessionState",
    "find_note",
    "signed_in",
    "signed_out",
    "notes_loaded",
    "note_created",
    "note_updated",
    "note_deleted",
    "start_editing",
    "stop_editing",
    "reconstruct",
    "notes_label",
]
