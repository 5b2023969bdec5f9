"""
Session Storage - Persists the whole session collection as one JSON document.
"""

import logging

from pydantic import ValidationError

from ..core.exceptions import PersistenceFailure
from ..models.session import SessionArchive
from .interface import StorageInterface

logger = logging.getLogger(__name__)

CORRUPT_SUFFIX = ".corrupt"


class SessionPersistence:
    """
    Reads and writes the SessionArchive document through a StorageInterface.

    A document that cannot be parsed is copied aside before anything is
    written over it. A document that cannot be read at all is never
    overwritten during this run.
    """

    def __init__(self, storage: StorageInterface, path: str = "chat_history.json"):
        """
        Args:
            storage: StorageInterface implementation (typically LocalStorage)
            path: Relative path of the archive document
        """
        self.storage = storage
        self.path = path
        self.writable = True

    @property
    def corrupt_path(self) -> str:
        return self.path + CORRUPT_SUFFIX

    async def load(self) -> SessionArchive:
        """
        Load the archive; an absent document is an empty archive.

        Raises:
            PersistenceFailure: if the document cannot be read or parsed
        """
        try:
            content = await self.storage.load(self.path)
        except OSError as e:
            self.writable = False
            raise PersistenceFailure(f"Could not read {self.path}: {e}") from e

        if content is None:
            return SessionArchive()

        try:
            return SessionArchive.model_validate_json(content)
        except ValidationError as e:
            if await self.storage.save(self.corrupt_path, content):
                logger.warning(f"Unreadable chat history kept as {self.corrupt_path}")
            else:
                self.writable = False
            raise PersistenceFailure(f"Corrupt chat history in {self.path}: {e}") from e

    async def save(self, archive: SessionArchive) -> bool:
        """
        Write the archive.

        Returns:
            bool: True on success; False when the write fails or the existing
            document must be preserved
        """
        if not self.writable:
            logger.warning(f"Not overwriting {self.path}; it could not be loaded or backed up")
            return False

        content = archive.model_dump_json(indent=2)
        ok = await self.storage.save(self.path, content)
        if ok:
            logger.debug(
                "Chat history saved",
                extra={"extra_fields": {
                    "path": self.path,
                    "sessions": len(archive.sessions),
                    "bytes": len(content),
                }}
            )
        return ok
