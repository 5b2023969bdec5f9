"""
Credential Store - Keeps the API key configured from the UI.
"""

import json
import logging
from typing import Optional

from ..core.logging_config import mask_secret
from .interface import StorageInterface

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Stores the API key in a small JSON document.
    A key from the environment is used when none has been saved.
    """

    def __init__(self, storage: StorageInterface, path: str = "credentials.json",
                 fallback: Optional[str] = None):
        self.storage = storage
        self.path = path
        self.fallback = fallback or None
        self._cached: Optional[str] = None

    async def get(self) -> Optional[str]:
        """Return the configured key, or None when not configured."""
        if self._cached:
            return self._cached

        try:
            content = await self.storage.load(self.path)
        except OSError as e:
            logger.warning(f"Could not read credentials: {e}")
            content = None

        if content:
            try:
                data = json.loads(content.decode('utf-8'))
                key = data.get("api_key")
            except (UnicodeDecodeError, json.JSONDecodeError, AttributeError):
                logger.warning("Ignoring unreadable credentials file")
                key = None
            if key:
                self._cached = key
                return key

        return self.fallback

    async def set(self, secret: str) -> None:
        """
        Save a new key.

        Raises:
            ValueError: if the key is blank
        """
        secret = (secret or "").strip()
        if not secret:
            raise ValueError("API key cannot be empty.")

        self._cached = secret
        ok = await self.storage.save(self.path, json.dumps({"api_key": secret}))
        if not ok:
            logger.warning("API key kept in memory only; saving credentials failed")
        logger.info(f"API key updated: {mask_secret(secret)}")
