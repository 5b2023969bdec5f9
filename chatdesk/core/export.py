"""
Export - Writes a session out as a Markdown document.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol

from ..models.session import Message, Role, Session
from ..storage.interface import StorageInterface

logger = logging.getLogger(__name__)

EXPORT_CANCELLED = "Export cancelled"
NOTHING_TO_EXPORT = "No chat to export."
DEFAULT_EXPORT_NAME = "claude-chat-export.md"


@dataclass
class ExportResult:
    success: bool
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.error == EXPORT_CANCELLED


class FileSaver(Protocol):
    """Save-file collaborator; returns the written path, or None when the user cancels."""

    async def save(self, suggested_name: str, content: str) -> Optional[str]:
        ...


class StorageFileSaver:
    """Writes exports into a directory of the local storage."""

    def __init__(self, storage: StorageInterface, directory: str = "exports"):
        self.storage = storage
        self.directory = directory

    async def save(self, suggested_name: str, content: str) -> Optional[str]:
        path = f"{self.directory}/{suggested_name}"
        if not await self.storage.save(path, content):
            raise OSError(f"Could not write {path}")
        return self.storage.resolve(path)


def build_export_markdown(title: str, messages: Iterable[Message],
                          exported_at: Optional[datetime] = None) -> str:
    exported_at = exported_at or datetime.now()
    markdown = f"# {title}\n\n"
    markdown += f"Exported on {exported_at.strftime('%Y-%m-%d %H:%M:%S')}\n\n"
    for message in messages:
        heading = "You" if message.role == Role.USER else "Assistant"
        markdown += f"## {heading}\n\n{message.content}\n\n"
    return markdown


def export_filename(session: Session) -> str:
    """A filesystem-safe file name derived from the session title."""
    stem = re.sub(r"[^A-Za-z0-9._-]+", "-", session.title).strip("-.")[:60]
    if not stem:
        return DEFAULT_EXPORT_NAME
    return f"{stem}-{session.session_id}.md"


async def export_session(session: Session, saver: FileSaver,
                         exported_at: Optional[datetime] = None) -> ExportResult:
    """Render session and hand it to saver; never raises for save failures."""
    if session.is_empty:
        return ExportResult(success=False, error=NOTHING_TO_EXPORT)

    content = build_export_markdown(session.title, session.messages, exported_at)
    try:
        path = await saver.save(export_filename(session), content)
    except OSError as e:
        logger.error(f"Export failed for session {session.session_id}: {e}")
        return ExportResult(success=False, error=str(e))

    if path is None:
        return ExportResult(success=False, error=EXPORT_CANCELLED)

    logger.info(f"Chat exported to {path}", extra={"extra_fields": {"session_id": session.session_id}})
    return ExportResult(success=True, path=path)
