from __future__ import annotations

import json

import pytest
from cryptography.fernet import Fernet

from state.store import JsonFileStore, MemoryKeyValueStore, StoreError, store_from_env


def test_memory_store_last_write_wins():
    kv = MemoryKeyValueStore()
    assert kv.get("appState") is None
    kv.set("appState", 1)
    kv.set("appState", 2)
    assert kv.get("appState") == 2
    assert kv.as_dict() == {"appState": 2}


def test_read_missing_file_is_empty(tmp_path):
    kv = JsonFileStore(tmp_path / "nope" / "state.json")
    assert kv.get("appState") is None
    assert not (tmp_path / "nope").exists()


def test_write_and_reopen_roundtrip(tmp_path):
    path = tmp_path / "state.json"
    kv = JsonFileStore(path)
    kv.set("appState", 2)
    kv.set("isOnboarded", True)

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk == {"appState": 2, "isOnboarded": True}

    reopened = JsonFileStore(path)
    assert reopened.get("appState") == 2
    assert reopened.get("isOnboarded") is True
    assert not path.with_name("state.json.tmp").exists()


def test_corrupt_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    kv = JsonFileStore(path)
    assert kv.get("appState") is None
    kv.set("paymentStatus", 0)
    assert json.loads(path.read_text(encoding="utf-8")) == {"paymentStatus": 0}


def test_non_object_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert JsonFileStore(path).get("appState") is None


def test_encrypted_roundtrip(tmp_path):
    path = tmp_path / "state.bin"
    key = Fernet.generate_key()

    JsonFileStore(path, fernet_key=key).set("appState", 1)
    assert b"appState" not in path.read_bytes()

    assert JsonFileStore(path, fernet_key=key.decode("ascii")).get("appState") == 1


def test_wrong_key_raises_store_error(tmp_path):
    path = tmp_path / "state.bin"
    JsonFileStore(path, fernet_key=Fernet.generate_key()).set("appState", 1)

    with pytest.raises(StoreError):
        JsonFileStore(path, fernet_key=Fernet.generate_key()).get("appState")


def test_store_from_env(monkeypatch, tmp_path):
    path = tmp_path / "env.json"
    monkeypatch.setenv("APPFLOW_STATE_PATH", str(path))
    monkeypatch.delenv("APPFLOW_FERNET_KEY", raising=False)

    kv = store_from_env()
    assert kv.path == path
    kv.set("appState", 0)
    assert path.exists()


def test_store_from_env_bad_key_raises(monkeypatch, tmp_path):
    monkeypatch.setenv("APPFLOW_STATE_PATH", str(tmp_path / "env.json"))
    monkeypatch.setenv("APPFLOW_FERNET_KEY", "not-a-key")

    with pytest.raises(RuntimeError):
        store_from_env()
