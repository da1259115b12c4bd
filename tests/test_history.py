from __future__ import annotations

from webforge.utils.history import EditHistory, drop_history, get_history


def test_undo_and_redo_walk_the_history() -> None:
    history = EditHistory()
    history.initialize({"v": 0})
    history.push({"v": 1}, "First")
    history.push({"v": 2}, "Second")

    assert history.undo().state == {"v": 1}
    assert history.undo().state == {"v": 0}
    assert history.undo() is None
    assert not history.can_undo()

    assert history.redo().state == {"v": 1}
    assert history.redo().description == "Second"
    assert history.redo() is None
    assert not history.can_redo()


def test_push_after_undo_discards_redo_branch() -> None:
    history = EditHistory()
    history.initialize({"v": 0})
    history.push({"v": 1})
    history.push({"v": 2})
    history.undo()

    history.push({"v": 3}, "Branch")

    assert history.descriptions() == ["Initial state", "Edit", "Branch"]
    assert not history.can_redo()
    assert history.current().state == {"v": 3}


def test_oldest_entries_are_dropped_at_capacity() -> None:
    history = EditHistory(max_entries=3)
    for i in range(5):
        history.push({"v": i}, f"Edit {i}")

    assert len(history) == 3
    assert history.descriptions() == ["Edit 2", "Edit 3", "Edit 4"]
    assert history.current().state == {"v": 4}
    assert history.undo().state == {"v": 3}
    assert history.undo().state == {"v": 2}
    assert history.undo() is None


def test_recorded_states_are_copies() -> None:
    history = EditHistory()
    state = {"items": [1]}
    history.push(state)
    state["items"].append(2)

    current = history.current()
    assert current.state == {"items": [1]}
    current.state["items"].append(3)
    assert history.current().state == {"items": [1]}


def test_empty_history() -> None:
    history = EditHistory()
    assert history.current() is None
    assert history.undo() is None
    assert history.redo() is None


def test_registry_seeds_new_histories_once() -> None:
    history = get_history("site-registry", initial_state={"v": 0})
    history.push({"v": 1})

    again = get_history("site-registry", initial_state={"v": 99})
    assert again is history
    assert again.current().state == {"v": 1}

    drop_history("site-registry")
    fresh = get_history("site-registry", initial_state={"v": 99})
    assert fresh.current().state == {"v": 99}
    drop_history("site-registry")
