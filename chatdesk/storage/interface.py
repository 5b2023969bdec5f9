"""
Storage Interface - Abstract base class for all storage implementations.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageInterface(ABC):
    """
    Contract for the key/path based blob storage the engine persists through.
    """

    @abstractmethod
    async def save(self, path: str, content: bytes | str) -> bool:
        """
        Save content to the specified path, replacing any previous content.

        Args:
            path: Relative path (e.g., "chat_history.json")
            content: bytes for binary data or str for UTF-8 text

        Returns:
            bool: True if save was successful, False otherwise
        """
        pass

    @abstractmethod
    async def load(self, path: str) -> Optional[bytes]:
        """
        Load content from the specified path.

        Returns:
            Optional[bytes]: File content, or None if it doesn't exist

        Raises:
            OSError: if the content exists but cannot be read
        """
        pass

    @abstractmethod
    def resolve(self, path: str) -> str:
        """Return a human-readable location for path (shown after exports)."""
        pass
