import asyncio
import json

import pytest

from presence_client.errors import AuthErrorKind, StorageError
from presence_client.session import SessionManager
from presence_client.storage import AUTH_TOKEN_KEY, BIOMETRIC_ENABLED_KEY, JsonFileStore, MemoryStore


def test_json_store_survives_new_instance(tmp_path):
    path = tmp_path / "state.json"
    JsonFileStore(path).set_string(AUTH_TOKEN_KEY, "tok-1")
    JsonFileStore(path).set_bool(BIOMETRIC_ENABLED_KEY, True)

    reopened = JsonFileStore(path)

    assert reopened.get_string(AUTH_TOKEN_KEY) == "tok-1"
    assert reopened.get_bool(BIOMETRIC_ENABLED_KEY) is True
    assert json.loads(path.read_text(encoding="utf-8")) == {
        AUTH_TOKEN_KEY: "tok-1",
        BIOMETRIC_ENABLED_KEY: True,
    }


def test_json_store_missing_file_reads_empty(tmp_path):
    store = JsonFileStore(tmp_path / "nested" / "state.json")

    assert store.get_string(AUTH_TOKEN_KEY) is None
    store.remove(AUTH_TOKEN_KEY)
    assert not (tmp_path / "nested").exists()


def test_json_store_remove(tmp_path):
    store = JsonFileStore(tmp_path / "state.json")
    store.set_string(AUTH_TOKEN_KEY, "tok-1")

    store.remove(AUTH_TOKEN_KEY)

    assert store.get_string(AUTH_TOKEN_KEY) is None


def test_json_store_types_are_not_mixed(tmp_path):
    store = JsonFileStore(tmp_path / "state.json")
    store.set_bool("flag", True)
    store.set_string("name", "ana")

    assert store.get_string("flag") is None
    assert store.get_bool("name") is None


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_json_store_recovers_from_bad_file(tmp_path, caplog, content):
    path = tmp_path / "state.json"
    path.write_text(content, encoding="utf-8")
    store = JsonFileStore(path)

    assert store.get_string(AUTH_TOKEN_KEY) is None
    assert "Ignoring" in caplog.text

    store.set_string(AUTH_TOKEN_KEY, "tok-2")
    assert json.loads(path.read_text(encoding="utf-8")) == {AUTH_TOKEN_KEY: "tok-2"}


def test_json_store_unreadable_path_raises(tmp_path):
    store = JsonFileStore(tmp_path)

    with pytest.raises(StorageError):
        store.get_string(AUTH_TOKEN_KEY)


def test_memory_store_snapshot_is_a_copy():
    store = MemoryStore({AUTH_TOKEN_KEY: "tok"})
    snapshot = store.snapshot()
    snapshot.clear()

    assert store.get_string(AUTH_TOKEN_KEY) == "tok"


def test_json_store_rejects_unusable_path_as_storage_error(tmp_path):
    store = JsonFileStore(tmp_path / ("a" * 300))

    with pytest.raises(StorageError):
        store.get_string(AUTH_TOKEN_KEY)
    with pytest.raises(StorageError):
        store.set_string(AUTH_TOKEN_KEY, "tok-1")


def test_json_store_binary_garbage_reads_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe\xfa")

    assert JsonFileStore(path).get_string(AUTH_TOKEN_KEY) is None


class _TokenBackend:
    async def login(self, email, password):
        return "tok-1"

    async def validate_token(self, token):
        return True

    async def logout(self, token):
        return None


def test_session_on_unusable_path_fails_closed(tmp_path):
    manager = SessionManager(_TokenBackend(), JsonFileStore(tmp_path / ("a" * 300)))

    state = asyncio.run(manager.restore())
    ok = asyncio.run(manager.login("ana@example.com", "secret1"))

    assert state.is_initialized is True
    assert state.is_authenticated is False
    assert ok is False
    assert manager.state.error is AuthErrorKind.STORAGE_ERROR
    assert manager.state.is_authenticated is False
