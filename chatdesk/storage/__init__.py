"""Storage module - interface, local implementation and the engine's persistence collaborators."""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .session_storage import SessionPersistence
from .credential_store import CredentialStore

__all__ = ['StorageInterface', 'LocalStorage', 'SessionPersistence', 'CredentialStore']
