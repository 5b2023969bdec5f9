"""
Chat API endpoints - Send messages and search the open conversation.
"""

import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ..core.context import ChatContext
from ..core.exceptions import ChatDeskError, CredentialsMissing, IngestionBusy
from ..core.search import MatchSpan
from .deps import error_payload, get_context

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    content: str


def _sse(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def _span(span: Optional[MatchSpan]) -> Optional[dict]:
    if span is None:
        return None
    return {"node_id": span.node_id, "start": span.start, "end": span.end,
            "text": span.text, "current": span.current}


def _search_state(context: ChatContext) -> dict:
    index = context.engine.search_index
    return {
        "query": index.query,
        "count": index.count,
        "current_index": index.current_index,
        "current": _span(index.current),
        "matches": [_span(s) for s in index.matches],
        "highlights": [{"node_id": node_id, "html": markup} for node_id, markup in context.engine.highlights()],
    }


@router.post("/message")
async def send_message(
    message: ChatRequest,
    stream: bool = Query(False, description="Enable streaming output"),
    context: ChatContext = Depends(get_context),
):
    """
    Send a message in the active session and get Claude's reply.

    Returns:
        The assistant message (stream=false) or a Server-Sent Events stream
        of progress/done/error events (stream=true)
    """
    engine = context.engine

    if not stream:
        reply = await engine.submit(message.content)
        return {
            "session_id": context.store.active_id,
            "message": reply.model_dump(mode="json"),
            "notices": context.drain_notices(),
        }

    # Fail fast with a proper status before the stream starts
    if engine.in_flight:
        raise IngestionBusy()
    if not await context.credentials.get():
        raise CredentialsMissing()

    async def event_generator():
        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(
            engine.submit(message.content, on_progress=lambda text: queue.put_nowait(text))
        )
        task.add_done_callback(lambda _: queue.put_nowait(None))

        # The reply keeps streaming into the session even if the client goes away.
        while True:
            text = await queue.get()
            if text is None:
                break
            yield _sse({"type": "progress", "content": text})

        try:
            reply = task.result()
        except ChatDeskError as e:
            yield _sse({"type": "error", **error_payload(e)})
            return
        except ValueError as e:
            yield _sse({"type": "error", "detail": str(e), "error": "ValueError"})
            return

        yield _sse({
            "type": "done",
            "session_id": context.store.active_id,
            "message": reply.model_dump(mode="json"),
            "notices": context.drain_notices(),
        })

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


@router.get("/search")
async def search(
    q: str = Query("", description="Text to find in the open conversation"),
    whole_word: bool = Query(False),
    context: ChatContext = Depends(get_context),
):
    context.engine.search(q, whole_word)
    return _search_state(context)


@router.post("/search/next")
async def search_next(context: ChatContext = Depends(get_context)):
    context.engine.search_next()
    return _search_state(context)


@router.post("/search/previous")
async def search_previous(context: ChatContext = Depends(get_context)):
    context.engine.search_previous()
    return _search_state(context)
