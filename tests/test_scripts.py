import pytest

from callcoach.core.scripts import (
    ScriptNotFound, create_script, get_active_script, get_script, list_scripts, update_script,
)
from callcoach.core.storage import MemoryStore


def _active_ids(store):
    return [s.id for s in list_scripts(store) if s.active]


def test_activating_one_deactivates_others():
    store = MemoryStore({"scripts": [
        {"id": "a", "name": "A", "content": "x", "active": True},
        {"id": "b", "name": "B", "content": "y", "active": False},
        {"id": "c", "name": "C", "content": "z", "active": True},
    ], "calls": []})
    update_script(store, "b", active=True)
    assert _active_ids(store) == ["b"]
    assert get_active_script(store).id == "b"


def test_active_falls_back_to_first():
    store = MemoryStore({"scripts": [
        {"id": "a", "name": "A", "content": "x", "active": False},
        {"id": "b", "name": "B", "content": "y", "active": False},
    ], "calls": []})
    assert get_active_script(store).id == "a"
    assert get_active_script(MemoryStore()) is None


def test_update_content_and_name(store):
    script = update_script(store, "default", content="New rubric", name="Renamed")
    assert script.content == "New rubric" and script.name == "Renamed" and script.active
    assert get_script(store, "default").content == "New rubric"


def test_deactivate(store):
    update_script(store, "default", active=False)
    assert _active_ids(store) == []
    assert get_active_script(store).id == "default"


def test_unknown_script(store):
    with pytest.raises(ScriptNotFound):
        update_script(store, "nope", content="x")


def test_create_active_script(store):
    new = create_script(store, "Inbound", "Answer within three rings.", active=True)
    assert _active_ids(store) == [new.id]
    assert len(list_scripts(store)) == 2
