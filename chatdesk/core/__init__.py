"""Core module - session store, conversation engine, search and export."""

from .exceptions import (
    ChatDeskError,
    UnknownSession,
    CredentialsMissing,
    IngestionBusy,
    PersistenceFailure,
    MalformedEvent,
    TransportError,
    AuthError,
    BadRequest,
    RateLimited,
    ServiceUnavailable,
)

__all__ = [
    'ChatDeskError',
    'UnknownSession',
    'CredentialsMissing',
    'IngestionBusy',
    'PersistenceFailure',
    'MalformedEvent',
    'TransportError',
    'AuthError',
    'BadRequest',
    'RateLimited',
    'ServiceUnavailable',
]
