"""
Chat Context - Everything one running client needs, built from Settings.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional

from ..config.settings import Settings
from ..storage.credential_store import CredentialStore
from ..storage.local_storage import LocalStorage
from ..storage.session_storage import SessionPersistence
from .engine import ConversationEngine
from .exceptions import PersistenceFailure
from .export import StorageFileSaver
from .session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class ChatContext:
    """One client instance: its store, credentials, engine and pending notices."""
    settings: Settings
    storage: LocalStorage
    store: SessionStore
    credentials: CredentialStore
    engine: ConversationEngine
    saver: StorageFileSaver
    notices: Deque[str] = field(default_factory=lambda: deque(maxlen=20))

    def drain_notices(self) -> List[str]:
        """Non-blocking notices (e.g. failed saves) accumulated since the last call."""
        drained = list(self.notices)
        self.notices.clear()
        return drained


async def create_context(settings: Settings, storage: Optional[LocalStorage] = None) -> ChatContext:
    """Build a context and load the persisted sessions."""
    storage = storage or LocalStorage(settings.local_storage_path)
    store = SessionStore(
        SessionPersistence(storage, settings.sessions_file),
        default_title=settings.default_session_title,
        title_max_length=settings.title_max_length,
    )
    credentials = CredentialStore(storage, settings.credentials_file, fallback=settings.anthropic_api_key)
    engine = ConversationEngine(
        store,
        credentials,
        model=settings.default_model,
        system_prompt=settings.system_prompt,
        base_url=settings.anthropic_base_url,
        api_version=settings.anthropic_version,
        timeout=settings.llm_timeout,
    )
    context = ChatContext(
        settings=settings,
        storage=storage,
        store=store,
        credentials=credentials,
        engine=engine,
        saver=StorageFileSaver(storage, settings.export_dir),
    )

    def on_notice(failure: PersistenceFailure) -> None:
        context.notices.append(str(failure))

    def on_title(session_id: str, title: str) -> None:
        logger.debug(f"Session {session_id} titled {title!r}")

    store.on_notice(on_notice)
    store.on_title_changed(on_title)
    await store.load()
    return context
