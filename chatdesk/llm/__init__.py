"""LLM module - capability table and the two streaming transports."""

from .base import Transport, StreamResult, DeltaAccumulator, classify_http_error
from .capabilities import ModelCapability, CAPABILITY_TABLE, get_capability, list_models
from .managed_transport import ManagedTransport
from .raw_transport import RawTransport
from .factory import create_transport

__all__ = [
    'Transport',
    'StreamResult',
    'DeltaAccumulator',
    'classify_http_error',
    'ModelCapability',
    'CAPABILITY_TABLE',
    'get_capability',
    'list_models',
    'ManagedTransport',
    'RawTransport',
    'create_transport',
]
