"""
Raw SSE transport - streams the Messages endpoint over a plain httpx request.
Used for models whose capability entry requires extra request headers.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ..core.exceptions import ServiceUnavailable, TransportError
from .base import (
    DeltaAccumulator,
    ProgressCallback,
    StreamResult,
    Transport,
    classify_http_error,
    consume_sse_lines,
)
from .capabilities import ModelCapability

logger = logging.getLogger(__name__)


class RawTransport(Transport):
    """
    Opens one chunked POST and parses the SSE body line by line.
    """

    name = "raw"

    def __init__(self, api_key: str, base_url: str = "https://api.anthropic.com",
                 api_version: str = "2023-06-01", timeout: Optional[float] = 600.0,
                 http_transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(api_key, base_url, api_version, timeout)
        self._http_transport = http_transport

    def _get_headers(self, capability: ModelCapability) -> Dict[str, str]:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
            "accept": "text/event-stream",
        }
        headers.update(capability.headers)
        return headers

    async def stream(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        capability: ModelCapability,
        system: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StreamResult:
        start_time = time.time()
        url = f"{self.base_url}/v1/messages"
        payload = self._build_payload(messages, model, capability, system)
        self._log_start(payload)

        accumulator = DeltaAccumulator(on_progress)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._http_transport) as client:
                async with client.stream("POST", url, json=payload,
                                         headers=self._get_headers(capability)) as response:
                    if response.is_error:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        raise classify_http_error(response.status_code, body)

                    skipped = await consume_sse_lines(response.aiter_lines(), accumulator)

        except TransportError as e:
            self._log_failed(model, e, (time.time() - start_time) * 1000)
            raise
        except httpx.HTTPError as e:
            error = ServiceUnavailable(detail=str(e))
            self._log_failed(model, error, (time.time() - start_time) * 1000)
            raise error from e

        result = accumulator.result()
        if skipped:
            logger.warning(f"Skipped {skipped} malformed event line(s) from model={model}")
        self._log_done(model, result, (time.time() - start_time) * 1000)
        return result
