"""
Managed transport - streams through the official anthropic SDK.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic

from ..core.exceptions import ServiceUnavailable, TransportError
from .base import (
    DeltaAccumulator,
    ProgressCallback,
    StreamResult,
    Transport,
    classify_http_error,
    classify_stream_error,
    consume_sse_lines,
)
from .capabilities import ModelCapability

logger = logging.getLogger(__name__)


def _classify_sdk_error(error: APIStatusError) -> TransportError:
    body = error.body
    if isinstance(body, dict):
        inner = body.get("error")
        # Errors raised from inside a 200 stream carry the event's error.type
        if error.status_code < 400 and isinstance(inner, dict) and inner.get("type"):
            return classify_stream_error(inner)
        body_text = json.dumps(body)
    elif body is not None:
        body_text = str(body)
    else:
        body_text = error.message
    return classify_http_error(error.status_code, body_text)


class ManagedTransport(Transport):
    """
    Sends the request through the SDK and reads the streamed body itself, so
    events go through the same line parser and accumulator the raw transport
    uses. Automatic retries are disabled.
    """

    name = "managed"

    def __init__(self, api_key: str, base_url: str = "https://api.anthropic.com",
                 api_version: str = "2023-06-01", timeout: Optional[float] = 600.0,
                 http_transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(api_key, base_url, api_version, timeout)
        self._http_transport = http_transport

    def _initialize_client(self) -> AsyncAnthropic:
        http_client = None
        if self._http_transport is not None:
            http_client = httpx.AsyncClient(transport=self._http_transport, timeout=self.timeout)
        return AsyncAnthropic(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
            default_headers={"anthropic-version": self.api_version},
            http_client=http_client,
        )

    async def stream(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        capability: ModelCapability,
        system: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StreamResult:
        start_time = time.time()
        payload = self._build_payload(messages, model, capability, system)
        self._log_start(payload)

        accumulator = DeltaAccumulator(on_progress)
        client = self._initialize_client()

        try:
            async with client.messages.with_streaming_response.create(**payload) as response:
                skipped = await consume_sse_lines(response.iter_lines(), accumulator)
        except TransportError as e:
            self._log_failed(model, e, (time.time() - start_time) * 1000)
            raise
        except APIStatusError as e:
            error = _classify_sdk_error(e)
            self._log_failed(model, error, (time.time() - start_time) * 1000)
            raise error from e
        except (APIConnectionError, httpx.HTTPError) as e:
            error = ServiceUnavailable(detail=str(e))
            self._log_failed(model, error, (time.time() - start_time) * 1000)
            raise error from e
        finally:
            await client.close()

        result = accumulator.result()
        if skipped:
            logger.warning(f"Skipped {skipped} malformed event line(s) from model={model}")
        self._log_done(model, result, (time.time() - start_time) * 1000)
        return result
