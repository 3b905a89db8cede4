"""Unit tests for credential stores and the store factory."""

import json

import pytest

from liaison.contexts.storage import (
    FileCredentialStore,
    MemoryCredentialStore,
    get_credential_store,
)
from liaison.contexts.storage import getter

BLOB = 'JSESSIONID="ajax:1"; Path=/, li_at=abc'


class TestMemoryCredentialStore:
    def test_set_get_delete(self) -> None:
        store = MemoryCredentialStore()
        assert store.get("a@example.com") is None

        store.set("a@example.com", BLOB)
        assert store.get("a@example.com") == BLOB

        assert store.delete("a@example.com") is True
        assert store.get("a@example.com") is None
        assert store.delete("a@example.com") is False

    def test_initial_contents(self) -> None:
        initial = {"a@example.com": BLOB}
        store = MemoryCredentialStore(initial)
        store.set("b@example.com", "x=1")

        assert store.get("a@example.com") == BLOB
        assert "b@example.com" not in initial

    def test_accounts_are_separate(self) -> None:
        store = MemoryCredentialStore()
        store.set("a@example.com", "x=1")
        store.set("b@example.com", "x=2")
        assert store.get("a@example.com") == "x=1"
        assert store.get("b@example.com") == "x=2"


class TestFileCredentialStore:
    def test_round_trip(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path / "sessions")
        store.set("user@example.com", BLOB)

        assert store.get("user@example.com") == BLOB

        with open(store.path_for("user@example.com"), encoding="utf-8") as f:
            document = json.load(f)
        assert document["cookies"] == BLOB
        assert "updated_at" in document

    def test_overwrite(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        store.set("user@example.com", "old=1")
        store.set("user@example.com", "new=1")

        assert store.get("user@example.com") == "new=1"
        # no temporary files left behind
        assert [p.name for p in tmp_path.iterdir()] == ["user@example.com.json"]

    def test_filename_is_sanitized(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        path = store.path_for("../evil/user name@example.com")

        assert path.parent == tmp_path
        assert path.name == ".._evil_user_name@example.com.json"

    def test_missing_file(self, tmp_path) -> None:
        assert FileCredentialStore(tmp_path).get("nobody@example.com") is None

    def test_corrupt_file_is_ignored(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        store.path_for("user@example.com").write_text("{not json", encoding="utf-8")
        assert store.get("user@example.com") is None

    def test_document_without_cookies_is_ignored(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        store.path_for("user@example.com").write_text(json.dumps({"updated_at": "now"}), encoding="utf-8")
        assert store.get("user@example.com") is None

    def test_delete(self, tmp_path) -> None:
        store = FileCredentialStore(tmp_path)
        store.set("user@example.com", BLOB)

        assert store.delete("user@example.com") is True
        assert not store.path_for("user@example.com").exists()
        assert store.delete("user@example.com") is False


class TestGetCredentialStore:
    def test_explicit_backends(self, tmp_path) -> None:
        assert isinstance(get_credential_store("memory"), MemoryCredentialStore)

        store = get_credential_store("file", directory=tmp_path)
        assert isinstance(store, FileCredentialStore)
        assert store.directory == tmp_path

    def test_backend_name_is_case_insensitive(self) -> None:
        assert isinstance(get_credential_store("MEMORY"), MemoryCredentialStore)

    def test_environment_default(self, monkeypatch) -> None:
        monkeypatch.setattr(getter, "CREDENTIAL_BACKEND", "memory")
        assert isinstance(get_credential_store(), MemoryCredentialStore)

    def test_unsupported_backend(self) -> None:
        with pytest.raises(ValueError, match="Unsupported credential backend"):
            get_credential_store("postgres")
