from notes_client import state as st_
from notes_client.schemas import Note, User


def note(note_id, title="t", body="b"):
    return Note(id=note_id, title=title, body=body)


def loaded(*ids):
    return st_.notes_loaded(st_.SessionState(user=User(username="u")), [note(i) for i in ids])


def test_created_note_is_prepended():
    state = st_.note_created(loaded("1", "2"), note("3"))
    assert [n.id for n in state.notes] == ["3", "1", "2"]


def test_update_replaces_by_id_in_place():
    state = st_.note_updated(loaded("1", "2", "3"), note("2", title="new"))
    assert [n.id for n in state.notes] == ["1", "2", "3"]
    assert st_.find_note(state, "2").title == "new"


def test_delete_filters_by_id():
    state = st_.note_deleted(loaded("1", "2"), "1")
    assert [n.id for n in state.notes] == ["2"]


def test_transitions_do_not_mutate_previous_state():
    before = loaded("1")
    st_.note_created(before, note("2"))
    assert [n.id for n in before.notes] == ["1"]


def test_only_one_note_is_edited_at_a_time():
    state = st_.start_editing(loaded("1", "2"), "1")
    assert state.editing_note_id == "1"
    state = st_.start_editing(state, "2")
    assert state.editing_note_id == "2"
    assert state.editing_note.id == "2"


def test_editing_unknown_note_is_ignored():
    state = st_.start_editing(loaded("1"), "missing")
    assert state.editing_note_id is None


def test_stop_editing_and_deleting_edited_note_exit_edit_mode():
    state = st_.start_editing(loaded("1", "2"), "1")
    assert st_.stop_editing(state).editing_note_id is None
    assert st_.note_deleted(state, "1").editing_note_id is None
    assert st_.note_deleted(state, "2").editing_note_id == "1"


def test_signed_out_clears_everything():
    state = st_.signed_out(st_.start_editing(loaded("1"), "1"))
    assert state == st_.SessionState()
    assert not state.authenticated


def test_notes_label():
    assert st_.notes_label(0) == "0 notes"
    assert st_.notes_label(1) == "1 note"
    assert st_.notes_label(5) == "5 notes"


def test_reconstruct_from_session_check(client, backend):
    assert st_.reconstruct(client) == st_.SessionState()

    client.init()
    client.auth.register("me@test.com", "Password1", "me")
    state = st_.reconstruct(client)
    assert state.authenticated
    assert state.user.email == "me@test.com"
