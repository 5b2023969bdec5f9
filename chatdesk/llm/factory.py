"""
Transport Factory - Picks the transport a model's capability entry calls for.
"""

from typing import Optional

from .base import Transport
from .capabilities import ModelCapability
from .managed_transport import ManagedTransport
from .raw_transport import RawTransport


def create_transport(
    capability: ModelCapability,
    api_key: str,
    base_url: str = "https://api.anthropic.com",
    api_version: str = "2023-06-01",
    timeout: Optional[float] = 600.0,
) -> Transport:
    """
    Create the transport for a model.

    Models whose capability entry lists required headers use the raw SSE
    transport; every other model goes through the SDK. The choice is static.

    Args:
        capability: Capability entry of the target model
        api_key: API key for the endpoint
        base_url: Endpoint base URL
        api_version: Value of the anthropic-version header
        timeout: Transport timeout in seconds (None for no limit)

    Returns:
        Transport instance

    Raises:
        ValueError: if api_key is empty
    """
    if not api_key:
        raise ValueError("An API key is required to create a transport")

    params = {
        "api_key": api_key,
        "base_url": base_url,
        "api_version": api_version,
        "timeout": timeout,
    }
    if capability.needs_raw_transport:
        return RawTransport(**params)
    return ManagedTransport(**params)
