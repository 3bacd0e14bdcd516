import json

import pytest

from callcoach.core.analysis import build_call_record
from callcoach.core.normalizer import normalize_response
from callcoach.core.storage import (
    JsonFileStore, MemoryStore, get_call, init_store, insert_call, list_calls, open_store,
)


def _record(agent):
    return build_call_record(normalize_response('{"qualityScore": 80}'), agent, "", "transcript")


def test_newest_first_and_ids():
    store = MemoryStore()
    r1 = insert_call(store, _record("Ann"))
    r2 = insert_call(store, _record("Bob"))
    assert (r1.id, r2.id) == (1, 2)
    assert [c.agent_name for c in list_calls(store)] == ["Bob", "Ann"]


def test_get_call():
    store = MemoryStore()
    rec = insert_call(store, _record("Ann"))
    assert get_call(store, rec.id).to_dict() == rec.to_dict()
    assert get_call(store, 999) is None


def test_json_store_roundtrip_and_layout(tmp_path):
    path = tmp_path / "state.json"
    store = JsonFileStore(str(path))
    init_store(store)
    insert_call(store, _record("Ann"))

    doc = json.loads(path.read_text(encoding="utf-8"))
    assert set(doc) == {"scripts", "calls"}
    assert doc["calls"][0]["agentName"] == "Ann"
    assert doc["calls"][0]["scriptAdherence"] == pytest.approx(0.72)
    assert "\n  " in path.read_text(encoding="utf-8")  # pretty-printed

    reopened = JsonFileStore(str(path))
    assert [c.agent_name for c in list_calls(reopened)] == ["Ann"]
    assert list(tmp_path.iterdir()) == [path]  # no temp files left behind


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{ not json", encoding="utf-8")
    store = JsonFileStore(str(path))
    assert store.read() == {"scripts": [], "calls": []}
    init_store(store)
    assert len(store.read()["scripts"]) == 1


def test_missing_keys_are_filled(tmp_path):
    path = tmp_path / "state.json"
    path.write_text('{"calls": {}}', encoding="utf-8")
    assert JsonFileStore(str(path)).read() == {"scripts": [], "calls": []}


def test_failed_transaction_does_not_write():
    store = MemoryStore()
    with pytest.raises(RuntimeError):
        with store.transaction() as doc:
            doc["calls"].append({"id": 1})
            raise RuntimeError("abort")
    assert store.read()["calls"] == []


def test_init_store_is_idempotent():
    store = MemoryStore()
    init_store(store)
    init_store(store)
    scripts = store.read()["scripts"]
    assert len(scripts) == 1 and scripts[0]["active"] is True


def test_open_store_backends(tmp_path):
    assert isinstance(open_store("memory"), MemoryStore)
    assert isinstance(open_store("json", str(tmp_path / "s.json")), JsonFileStore)
    with pytest.raises(ValueError):
        open_store("redis")


def test_malformed_call_rows_are_skipped(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"scripts": [], "calls": ["x", {"id": 1, "agentName": "Ann"}, 7]}), encoding="utf-8")
    store = JsonFileStore(str(path))
    assert list_calls(store) == []
    assert get_call(store, 1) is None

    rec = insert_call(store, _record("Bob"))
    assert rec.id == 2
    assert [c.agent_name for c in list_calls(store)] == ["Bob"]


def test_scripts_without_id_are_dropped():
    store = MemoryStore({"scripts": [{"name": "no id"}, "junk"], "calls": []})
    init_store(store)
    assert [s["id"] for s in store.read()["scripts"]] == ["default"]
