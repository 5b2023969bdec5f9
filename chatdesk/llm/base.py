"""
Transport Base - Shared contract for streaming a reply from the Messages endpoint.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from ..core.exceptions import (
    AuthError,
    BadRequest,
    MalformedEvent,
    RateLimited,
    ServiceUnavailable,
    TransportError,
)
from ..models.session import StopReason
from .capabilities import ModelCapability

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

CONTENT_DELTA = "content_block_delta"
MESSAGE_DELTA = "message_delta"
ERROR_EVENT = "error"
DATA_PREFIX = "data:"


@dataclass
class StreamResult:
    """Outcome of one streamed reply."""
    text: str
    stop_reason: Optional[StopReason] = None
    raw_stop_reason: Optional[str] = None

    @property
    def truncated(self) -> bool:
        return self.stop_reason == StopReason.LENGTH_TRUNCATED


class DeltaAccumulator:
    """
    Assembles text deltas and remembers the stop reason.
    Each delta triggers the progress callback with the full text so far.
    """

    def __init__(self, on_progress: Optional[ProgressCallback] = None):
        self._text = ""
        self._on_progress = on_progress
        self.raw_stop_reason: Optional[str] = None

    @property
    def text(self) -> str:
        return self._text

    def add_text(self, fragment: Optional[str]) -> None:
        if not fragment:
            return
        self._text += fragment
        if self._on_progress is not None:
            self._on_progress(self._text)

    def set_stop_reason(self, stop_reason: Optional[str]) -> None:
        if stop_reason:
            self.raw_stop_reason = stop_reason

    def handle_event(self, event: Dict[str, Any]) -> None:
        """
        Apply one decoded event dict.

        Raises:
            TransportError: for an in-stream error event
        """
        kind = event.get("type")
        if kind == CONTENT_DELTA:
            delta = event.get("delta") or {}
            if delta.get("type", "text_delta") == "text_delta":
                self.add_text(delta.get("text"))
        elif kind == MESSAGE_DELTA:
            delta = event.get("delta") or {}
            self.set_stop_reason(delta.get("stop_reason"))
        elif kind == ERROR_EVENT:
            raise classify_stream_error(event.get("error") or {})

    def result(self) -> StreamResult:
        return StreamResult(
            text=self._text,
            stop_reason=StopReason.from_wire(self.raw_stop_reason),
            raw_stop_reason=self.raw_stop_reason,
        )


def parse_sse_line(line: str) -> Optional[Dict[str, Any]]:
    """
    Decode one SSE line.

    Returns:
        The event dict for a data line, None for any other line

    Raises:
        MalformedEvent: if a data line does not hold a JSON object
    """
    if not line.startswith(DATA_PREFIX):
        return None
    data_str = line[len(DATA_PREFIX):].strip()
    if not data_str or data_str == "[DONE]":
        return None
    try:
        event = json.loads(data_str)
    except json.JSONDecodeError as e:
        raise MalformedEvent(f"Unparseable event: {data_str[:200]}") from e
    if not isinstance(event, dict):
        raise MalformedEvent(f"Event is not an object: {data_str[:200]}")
    return event


async def consume_sse_lines(lines: AsyncIterator[str], accumulator: DeltaAccumulator) -> int:
    """
    Feed an SSE body into accumulator line by line.
    Lines that fail to parse are skipped; they never abort the stream.

    Returns:
        Number of skipped lines
    """
    skipped = 0
    async for line in lines:
        try:
            event = parse_sse_line(line)
        except MalformedEvent as e:
            skipped += 1
            logger.debug(f"Skipping event line: {e}")
            continue
        if event is not None:
            accumulator.handle_event(event)
    return skipped


def extract_error_detail(body: str) -> Optional[str]:
    """Pull error.message out of an error body, falling back to the raw text."""
    if not body:
        return None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return body.strip()[:500] or None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        for key in ("message", "detail"):
            if payload.get(key):
                return str(payload[key])
    return body.strip()[:500]


def classify_http_error(status: int, body: str = "") -> TransportError:
    """Map an HTTP status and error body onto the transport error taxonomy."""
    detail = extract_error_detail(body)
    if status == 401:
        return AuthError(status=status, detail=detail)
    if status == 400:
        return BadRequest(status=status, detail=detail)
    if status == 429:
        return RateLimited(status=status, detail=detail)
    if status >= 500:
        return ServiceUnavailable(status=status, detail=detail)
    return TransportError(status=status, detail=detail)


def classify_stream_error(error: Dict[str, Any]) -> TransportError:
    """Map an in-stream error event (error.type) onto the taxonomy."""
    error_type = error.get("type")
    detail = error.get("message")
    if error_type == "authentication_error":
        return AuthError(status=401, detail=detail)
    if error_type == "invalid_request_error":
        return BadRequest(status=400, detail=detail)
    if error_type == "rate_limit_error":
        return RateLimited(status=429, detail=detail)
    if error_type in ("overloaded_error", "api_error"):
        return ServiceUnavailable(detail=detail)
    return TransportError(detail=detail)


class Transport(ABC):
    """
    A way of streaming one reply. Implementations differ only in wire
    mechanics; both report through the same accumulator rules.
    """

    name = "transport"

    def __init__(self, api_key: str, base_url: str = "https://api.anthropic.com",
                 api_version: str = "2023-06-01", timeout: Optional[float] = 600.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout

    @abstractmethod
    async def stream(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        capability: ModelCapability,
        system: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StreamResult:
        """
        Stream one assistant reply.

        Args:
            messages: [{"role", "content"}] in conversational order
            model: Model identifier
            capability: Capability entry for the model
            system: System preamble
            on_progress: Called with the accumulated text after each delta

        Returns:
            StreamResult with the assembled text and stop reason

        Raises:
            TransportError: on any remote or connection failure
        """
        pass

    def _build_payload(self, messages: List[Dict[str, Any]], model: str,
                       capability: ModelCapability, system: Optional[str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "max_tokens": capability.max_output_tokens,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
            "stream": True,
        }
        if system:
            payload["system"] = system
        return payload

    def _log_start(self, payload: Dict[str, Any]) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"LLM stream starting: transport={self.name}, model={payload['model']}, "
                f"max_tokens={payload['max_tokens']}, {len(payload['messages'])} messages"
            )

    def _log_done(self, model: str, result: StreamResult, duration_ms: float) -> None:
        logger.info(
            "LLM stream completed",
            extra={"extra_fields": {
                "transport": self.name,
                "model": model,
                "stop_reason": result.raw_stop_reason,
                "truncated": result.truncated,
                "content_length": len(result.text),
                "duration_ms": round(duration_ms, 2),
            }}
        )

    def _log_failed(self, model: str, error: Exception, duration_ms: float) -> None:
        logger.error(
            f"LLM stream failed: {error}",
            exc_info=True,
            extra={"extra_fields": {
                "transport": self.name,
                "model": model,
                "duration_ms": round(duration_ms, 2),
                "error": str(error),
                "status": getattr(error, "status", None),
            }}
        )
