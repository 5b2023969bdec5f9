"""
Session Store - Owns the chat sessions, the active-session pointer and their persistence.
"""

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional

from ..models.session import Message, Session, SessionArchive, SessionSummary
from ..storage.session_storage import SessionPersistence
from .exceptions import PersistenceFailure, UnknownSession

logger = logging.getLogger(__name__)

TitleListener = Callable[[str, str], None]
NoticeListener = Callable[[PersistenceFailure], None]


def derive_title(content: str, max_length: int = 30) -> str:
    """First max_length characters of the message, with "..." when cut."""
    if len(content) > max_length:
        return content[:max_length] + "..."
    return content


class SessionStore:
    """
    Single writer of the session collection.

    Every mutation runs under one lock and persists the collection before
    releasing it. Persistence failures are logged and reported to the notice
    listeners; the in-memory collection stays authoritative.
    """

    def __init__(
        self,
        persistence: SessionPersistence,
        default_title: str = "New Chat",
        title_max_length: int = 30,
        clock: Callable[[], float] = time.time,
    ):
        self.persistence = persistence
        self.default_title = default_title
        self.title_max_length = title_max_length
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._active_id: Optional[str] = None
        self._last_id = 0
        self._lock = asyncio.Lock()
        self._title_listeners: List[TitleListener] = []
        self._notice_listeners: List[NoticeListener] = []

    # -- accessors ---------------------------------------------------------

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_session(self) -> Optional[Session]:
        if self._active_id is None:
            return None
        return self._sessions.get(self._active_id)

    @property
    def sessions(self) -> Dict[str, Session]:
        """Read-only view; mutate through the store's operations."""
        return dict(self._sessions)

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSession(session_id)
        return session

    def on_title_changed(self, listener: TitleListener) -> None:
        self._title_listeners.append(listener)

    def on_notice(self, listener: NoticeListener) -> None:
        self._notice_listeners.append(listener)

    # -- operations --------------------------------------------------------

    async def create_session(self) -> str:
        """Create an empty session, make it active and return its id."""
        async with self._lock:
            session_id = self._create_locked()
            await self._persist_locked()
        return session_id

    async def switch_active(self, session_id: str) -> None:
        """
        Make session_id active.

        The previously active session is dropped if it was never used
        (still empty and still titled with the default title).
        """
        async with self._lock:
            if session_id == self._active_id or session_id not in self._sessions:
                return

            previous = self.active_session
            if previous is not None and self._is_untouched(previous):
                logger.debug(f"Discarding unused session {previous.session_id}")
                del self._sessions[previous.session_id]

            self._active_id = session_id
            await self._persist_locked()

    async def append_message(self, session_id: str, message: Message) -> None:
        """
        Append a message; the first message also sets the session title.

        Raises:
            UnknownSession: if session_id does not exist
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise UnknownSession(session_id)

            session.messages.append(message)
            new_title = None
            if len(session.messages) == 1:
                new_title = derive_title(message.content, self.title_max_length)
                session.title = new_title

            await self._persist_locked()

        if new_title is not None:
            for listener in self._title_listeners:
                listener(session_id, new_title)

    async def delete_session(self, session_id: str) -> None:
        """
        Delete a session; unknown ids are ignored.

        Deleting the active session activates the newest remaining one, or a
        fresh session when none remain.
        """
        async with self._lock:
            if session_id not in self._sessions:
                return

            del self._sessions[session_id]
            if session_id == self._active_id:
                self._active_id = None
                if self._sessions:
                    self._active_id = self._newest_id()
                else:
                    self._create_locked()

            await self._persist_locked()

    def list_for_display(self, filter: Optional[str] = None) -> List[SessionSummary]:
        """
        Sessions newest first, optionally filtered.

        A session matches when the case-insensitive filter occurs in its title
        or, failing that, in any of its messages.
        """
        term = (filter or "").strip().lower()
        summaries = []
        for session in sorted(self._sessions.values(), key=lambda s: s.sort_key, reverse=True):
            if term and not self._matches(session, term):
                continue
            summaries.append(SessionSummary(
                session_id=session.session_id,
                title=session.title,
                message_count=len(session.messages),
                is_active=session.session_id == self._active_id,
            ))
        return summaries

    async def persist(self) -> bool:
        async with self._lock:
            return await self._persist_locked()

    async def load(self) -> None:
        """
        Replace the in-memory collection with the persisted one.

        The stored active session is restored when it still exists, otherwise
        the newest session becomes active. An empty or unreadable archive
        leaves a single fresh session. After a failed load that session is
        kept in memory only until the next change.
        """
        async with self._lock:
            loaded = True
            try:
                archive = await self.persistence.load()
            except PersistenceFailure as e:
                logger.error(f"Failed to load chat history: {e}")
                self._notify(e)
                archive = SessionArchive()
                loaded = False

            self._sessions = dict(archive.sessions)
            self._last_id = max((s.sort_key for s in self._sessions.values()), default=0)

            if archive.active_session_id in self._sessions:
                self._active_id = archive.active_session_id
            elif self._sessions:
                self._active_id = self._newest_id()
            else:
                self._active_id = None
                self._create_locked()
                if loaded:
                    await self._persist_locked()

            logger.info(
                "Chat history loaded",
                extra={"extra_fields": {
                    "sessions": len(self._sessions),
                    "active_session_id": self._active_id,
                }}
            )

    # -- internals ---------------------------------------------------------

    def _next_id(self) -> str:
        candidate = int(self._clock() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    def _create_locked(self) -> str:
        session_id = self._next_id()
        self._sessions[session_id] = Session(session_id=session_id, title=self.default_title)
        self._active_id = session_id
        return session_id

    def _newest_id(self) -> str:
        return max(self._sessions.values(), key=lambda s: s.sort_key).session_id

    def _is_untouched(self, session: Session) -> bool:
        return session.is_empty and session.title == self.default_title

    @staticmethod
    def _matches(session: Session, term: str) -> bool:
        if term in session.title.lower():
            return True
        return any(term in message.content.lower() for message in session.messages)

    async def _persist_locked(self) -> bool:
        archive = SessionArchive(sessions=self._sessions, active_session_id=self._active_id)
        ok = await self.persistence.save(archive)
        if not ok:
            failure = PersistenceFailure()
            logger.warning(f"{failure}", extra={"extra_fields": {"path": self.persistence.path}})
            self._notify(failure)
        return ok

    def _notify(self, failure: PersistenceFailure) -> None:
        for listener in self._notice_listeners:
            listener(failure)
