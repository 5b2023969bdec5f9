"""
Conversation Engine - Drives one streamed exchange at a time against the active session.
"""

import logging
import time
from typing import Callable, List, Optional, Tuple

from ..llm.base import ProgressCallback, StreamResult, Transport
from ..llm.capabilities import ModelCapability, get_capability
from ..llm.factory import create_transport
from ..models.session import Message, Role
from .exceptions import CredentialsMissing, IngestionBusy, TransportError
from .export import ExportResult, FileSaver, export_session
from .rendering import flatten_messages, highlight
from .search import MatchSpan, SearchIndex, TextNode
from .session_store import SessionStore
from ..storage.credential_store import CredentialStore

logger = logging.getLogger(__name__)

TransportFactory = Callable[..., Transport]


class ConversationEngine:
    """
    Ties the session store, the transports and the search index together.

    All state lives on the instance; several engines can run side by side.
    Only one reply streams at a time and it cannot be cancelled by the user.
    """

    def __init__(
        self,
        store: SessionStore,
        credentials: CredentialStore,
        model: str = "claude-3-7-sonnet-latest",
        system_prompt: Optional[str] = None,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        timeout: Optional[float] = 600.0,
        transport_factory: TransportFactory = create_transport,
        search_index: Optional[SearchIndex] = None,
    ):
        self.store = store
        self.credentials = credentials
        self.model = model
        self.system_prompt = system_prompt
        self.base_url = base_url
        self.api_version = api_version
        self.timeout = timeout
        self.transport_factory = transport_factory
        self.search_index = search_index or SearchIndex()
        self._in_flight = False
        self._pending_text: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def capability(self) -> ModelCapability:
        return get_capability(self.model)

    def select_model(self, model: str) -> ModelCapability:
        model = (model or "").strip()
        if not model:
            raise ValueError("Model cannot be empty")
        self.model = model
        logger.info(f"Model selected: {model}")
        return self.capability

    # -- sessions ----------------------------------------------------------

    async def new_session(self) -> str:
        session_id = await self.store.create_session()
        self.search_index.invalidate()
        return session_id

    async def select_session(self, session_id: str) -> None:
        """Unknown ids and the already active id are ignored."""
        if session_id == self.store.active_id or session_id not in self.store.sessions:
            return
        await self.store.switch_active(session_id)
        self.search_index.invalidate()

    async def delete_session(self, session_id: str) -> None:
        was_active = session_id == self.store.active_id
        await self.store.delete_session(session_id)
        if was_active:
            self.search_index.invalidate()

    # -- ingestion ---------------------------------------------------------

    async def submit(self, text: str, on_progress: Optional[ProgressCallback] = None) -> Message:
        """
        Send a user message in the active session and stream the reply.

        The user message is recorded before the request is made. The reply is
        appended to the same session once the stream completes; on failure
        nothing but the user message is kept.

        Returns:
            The appended assistant message

        Raises:
            ValueError: if text is blank
            IngestionBusy: if a reply is already streaming
            CredentialsMissing: if no API key is configured
            TransportError: if the remote endpoint fails
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Message cannot be empty")
        if self._in_flight:
            raise IngestionBusy()

        self._in_flight = True
        try:
            api_key = await self.credentials.get()
            if not api_key:
                raise CredentialsMissing()

            session_id = self.store.active_id
            if session_id is None:
                session_id = await self.store.create_session()

            await self.store.append_message(session_id, Message.user(text))
            self.search_index.invalidate()

            result = await self._stream_reply(session_id, api_key, on_progress)

            reply = Message.assistant(result.text, result.stop_reason)
            await self.store.append_message(session_id, reply)
            self.search_index.invalidate()
            return reply
        finally:
            self._pending_text = None
            self._in_flight = False

    async def _stream_reply(self, session_id: str, api_key: str,
                            on_progress: Optional[ProgressCallback]) -> StreamResult:
        capability = self.capability
        transport = self.transport_factory(
            capability,
            api_key,
            base_url=self.base_url,
            api_version=self.api_version,
            timeout=self.timeout,
        )
        history = [m.to_api() for m in self.store.get(session_id).messages]

        def progress(accumulated: str) -> None:
            self._pending_text = accumulated
            self.search_index.invalidate()
            if on_progress is not None:
                on_progress(accumulated)

        start_time = time.time()
        try:
            result = await transport.stream(
                history,
                self.model,
                capability,
                system=self.system_prompt,
                on_progress=progress,
            )
        except TransportError as e:
            logger.warning(
                f"Reply failed: {e}",
                extra={"extra_fields": {
                    "session_id": session_id,
                    "model": self.model,
                    "error_type": type(e).__name__,
                    "status": e.status,
                }}
            )
            raise

        logger.info(
            "Reply received",
            extra={"extra_fields": {
                "session_id": session_id,
                "model": self.model,
                "transport": transport.name,
                "truncated": result.truncated,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            }}
        )
        return result

    # -- search ------------------------------------------------------------

    def rendered_nodes(self) -> List[TextNode]:
        """Text nodes of the active session as displayed, including a reply still streaming."""
        session = self.store.active_session
        messages = list(session.messages) if session is not None else []
        if self._pending_text is not None:
            messages.append(Message(role=Role.ASSISTANT, content=self._pending_text))
        return flatten_messages(messages)

    def search(self, query: str, whole_word: bool = False) -> List[MatchSpan]:
        query = query or ""
        if not query:
            self.search_index.clear()
            return []
        return self.search_index.search(self.rendered_nodes(), query, whole_word)

    def highlights(self) -> List[Tuple[str, str]]:
        """(node_id, markup) for each displayed text node holding a match of the last search."""
        spans = self.search_index.matches
        if not spans:
            return []
        hit = {span.node_id for span in spans}
        return [(node.node_id, highlight(node, spans)) for node in self.rendered_nodes() if node.node_id in hit]

    def search_next(self) -> Optional[MatchSpan]:
        return self.search_index.next()

    def search_previous(self) -> Optional[MatchSpan]:
        return self.search_index.previous()

    # -- export ------------------------------------------------------------

    async def export_session(self, saver: FileSaver, session_id: Optional[str] = None) -> ExportResult:
        session_id = session_id or self.store.active_id
        if session_id is None:
            return ExportResult(success=False, error="No chat to export.")
        return await export_session(self.store.get(session_id), saver)
