"""
Unit tests for the storage layer.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from chatdesk.core.exceptions import PersistenceFailure
from chatdesk.models.session import Message, Session, SessionArchive, StopReason
from chatdesk.storage import CredentialStore, LocalStorage, SessionPersistence


class TestLocalStorage:
    """Tests for LocalStorage."""

    @pytest.mark.asyncio
    async def test_save_and_load_text(self, storage):
        assert await storage.save("nested/file.txt", "héllo") is True
        assert await storage.load("nested/file.txt") == "héllo".encode("utf-8")

    @pytest.mark.asyncio
    async def test_save_bytes(self, storage):
        assert await storage.save("blob.bin", b"\x00\x01") is True
        assert await storage.load("blob.bin") == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_load_missing(self, storage):
        assert await storage.load("missing.txt") is None

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_file(self, storage):
        await storage.save("doc.json", "one")
        await storage.save("doc.json", "two")
        assert await storage.load("doc.json") == b"two"
        assert not (storage.base_dir / "doc.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, storage):
        assert await storage.save("../escape.txt", "nope") is False
        with pytest.raises(ValueError):
            await storage.load("../escape.txt")
        with pytest.raises(ValueError):
            storage.resolve("../escape.txt")

    def test_resolve_inside_base(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        assert storage.resolve("exports/a.md") == str(tmp_path.resolve() / "exports" / "a.md")


class TestSessionPersistence:
    """Tests for the archive document."""

    @pytest.mark.asyncio
    async def test_absent_document_is_empty_archive(self, persistence):
        archive = await persistence.load()
        assert archive.sessions == {}
        assert archive.active_session_id is None

    @pytest.mark.asyncio
    async def test_round_trip(self, persistence):
        session = Session(session_id="1", title="t", messages=[
            Message.user("q"),
            Message.assistant("a", StopReason.LENGTH_TRUNCATED),
        ])
        archive = SessionArchive(sessions={"1": session}, active_session_id="1")
        assert await persistence.save(archive) is True
        assert await persistence.load() == archive

    @pytest.mark.asyncio
    async def test_document_shape(self, persistence, storage):
        session = Session(session_id="1", title="t", messages=[Message.user("q")])
        await persistence.save(SessionArchive(sessions={"1": session}, active_session_id="1"))
        data = json.loads(await storage.load("chat_history.json"))
        assert data["version"] == 1
        assert data["active_session_id"] == "1"
        assert data["sessions"]["1"]["messages"][0] == {
            "role": "user", "content": "q", "stop_reason": None, "truncated": False,
        }

    @pytest.mark.asyncio
    async def test_corrupt_document(self, persistence, storage):
        await storage.save("chat_history.json", '{"sessions": 5}')
        with pytest.raises(PersistenceFailure):
            await persistence.load()
        assert await storage.load("chat_history.json.corrupt") == b'{"sessions": 5}'
        assert persistence.writable is True

    @pytest.mark.asyncio
    async def test_corrupt_document_not_overwritten_without_backup(self, persistence, storage):
        await storage.save("chat_history.json", "{broken")
        with patch.object(storage, "save", AsyncMock(return_value=False)):
            with pytest.raises(PersistenceFailure):
                await persistence.load()

        assert persistence.writable is False
        assert await persistence.save(SessionArchive()) is False
        assert await storage.load("chat_history.json") == b"{broken"

    @pytest.mark.asyncio
    async def test_unreadable_document(self, persistence):
        with patch.object(persistence.storage, "load", AsyncMock(side_effect=PermissionError("denied"))):
            with pytest.raises(PersistenceFailure):
                await persistence.load()
        assert persistence.writable is False


class TestCredentialStore:
    """Tests for the API key store."""

    @pytest.mark.asyncio
    async def test_unset(self, credentials):
        assert await credentials.get() is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, credentials, storage):
        await credentials.set("  sk-ant-123  ")
        assert await credentials.get() == "sk-ant-123"

        reopened = CredentialStore(storage, "credentials.json")
        assert await reopened.get() == "sk-ant-123"

    @pytest.mark.asyncio
    async def test_blank_rejected(self, credentials):
        with pytest.raises(ValueError):
            await credentials.set("   ")
        assert await credentials.get() is None

    @pytest.mark.asyncio
    async def test_fallback(self, storage):
        store = CredentialStore(storage, "credentials.json", fallback="sk-env")
        assert await store.get() == "sk-env"
        await store.set("sk-saved")
        assert await store.get() == "sk-saved"

    @pytest.mark.asyncio
    async def test_unreadable_file_ignored(self, storage):
        await storage.save("credentials.json", "not json")
        store = CredentialStore(storage, "credentials.json", fallback="sk-env")
        assert await store.get() == "sk-env"
