"""
Shared test fixtures and configuration.
"""

import os
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

# Set test environment variables before importing app modules
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/chatdesk_test_data")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")

from chatdesk.core.engine import ConversationEngine
from chatdesk.core.session_store import SessionStore
from chatdesk.llm.base import DeltaAccumulator, StreamResult, Transport
from chatdesk.storage import CredentialStore, LocalStorage, SessionPersistence


class FakeTransport(Transport):
    """Replays canned events through the real accumulator."""

    name = "fake"

    def __init__(self, deltas: List[str], stop_reason: Optional[str] = "end_turn",
                 error: Optional[Exception] = None, **kwargs):
        super().__init__(api_key="test-key")
        self.deltas = deltas
        self.stop_reason = stop_reason
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def stream(self, messages, model, capability, system=None, on_progress=None) -> StreamResult:
        self.calls.append({"messages": messages, "model": model, "capability": capability, "system": system})
        accumulator = DeltaAccumulator(on_progress)
        for delta in self.deltas:
            accumulator.handle_event({"type": "content_block_delta", "delta": {"type": "text_delta", "text": delta}})
        if self.error is not None:
            raise self.error
        accumulator.handle_event({"type": "message_delta", "delta": {"stop_reason": self.stop_reason}})
        return accumulator.result()


class FakeTransportFactory:
    """Stands in for create_transport and remembers what it built."""

    def __init__(self, deltas=None, stop_reason="end_turn", error=None):
        self.deltas = deltas if deltas is not None else ["Hello", " there"]
        self.stop_reason = stop_reason
        self.error = error
        self.created: List[FakeTransport] = []

    def __call__(self, capability, api_key, **kwargs) -> FakeTransport:
        transport = FakeTransport(self.deltas, self.stop_reason, self.error)
        self.created.append(transport)
        return transport


class Clock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "data"))


@pytest.fixture
def persistence(storage):
    return SessionPersistence(storage, "chat_history.json")


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(persistence, clock):
    return SessionStore(persistence, clock=clock)


@pytest.fixture
def credentials(storage):
    return CredentialStore(storage, "credentials.json")


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest_asyncio.fixture
async def engine(store, credentials, transport_factory):
    await credentials.set("sk-ant-test-key")
    await store.load()
    return ConversationEngine(
        store,
        credentials,
        model="claude-3-5-sonnet-latest",
        system_prompt="system prompt",
        transport_factory=transport_factory,
    )
