"""
Local Filesystem Storage Implementation.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import aiofiles

from .interface import StorageInterface

logger = logging.getLogger(__name__)


class LocalStorage(StorageInterface):
    """
    Stores everything under a single base directory.
    Writes go to a temporary sibling first and are moved into place.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Args:
            base_dir: Base directory for all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, path: str) -> Path:
        """Convert relative path to full absolute path within base directory."""
        full_path = (self.base_dir / path).resolve()

        if full_path != self.base_dir and self.base_dir not in full_path.parents:
            raise ValueError(f"Invalid path: {path} - path traversal detected")

        return full_path

    def resolve(self, path: str) -> str:
        return str(self._get_full_path(path))

    async def save(self, path: str, content: bytes | str) -> bool:
        try:
            full_path = self._get_full_path(path)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = full_path.with_name(full_path.name + ".tmp")

            if isinstance(content, str):
                async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                    await f.write(content)
            else:
                async with aiofiles.open(tmp_path, 'wb') as f:
                    await f.write(content)

            os.replace(tmp_path, full_path)
            return True
        except (OSError, ValueError) as e:
            logger.error(f"Error saving file {path}: {e}", exc_info=True)
            return False

    async def load(self, path: str) -> Optional[bytes]:
        full_path = self._get_full_path(path)
        if not full_path.exists():
            return None

        async with aiofiles.open(full_path, 'rb') as f:
            return await f.read()

