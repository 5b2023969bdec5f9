"""
Session API endpoints - List, create, select, delete and export chats.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..core.context import ChatContext
from ..core.rendering import flatten_session, render_message
from ..models.session import SessionSummary
from .deps import get_context

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=List[SessionSummary])
async def list_sessions(
    filter: Optional[str] = Query(None, description="Case-insensitive title/content filter"),
    context: ChatContext = Depends(get_context),
):
    """Sessions newest first."""
    return context.store.list_for_display(filter)


@router.post("", status_code=201)
async def create_session(context: ChatContext = Depends(get_context)):
    session_id = await context.engine.new_session()
    return {"session_id": session_id, "notices": context.drain_notices()}


@router.get("/{session_id}")
async def get_session(session_id: str, context: ChatContext = Depends(get_context)):
    """
    Full session with each message rendered for display, plus the text
    nodes search results refer to.

    Raises:
        UnknownSession: mapped to 404
    """
    session = context.store.get(session_id)
    return {
        "session_id": session.session_id,
        "title": session.title,
        "is_active": session.session_id == context.store.active_id,
        "messages": [
            {**message.model_dump(mode="json"), "html": render_message(message)}
            for message in session.messages
        ],
        "nodes": [{"node_id": node.node_id, "text": node.text} for node in flatten_session(session)],
    }


@router.post("/{session_id}/activate")
async def activate_session(session_id: str, context: ChatContext = Depends(get_context)):
    """
    Raises:
        UnknownSession: mapped to 404
    """
    context.store.get(session_id)
    await context.engine.select_session(session_id)
    return {"active_session_id": context.store.active_id, "notices": context.drain_notices()}


@router.delete("/{session_id}")
async def delete_session(session_id: str, context: ChatContext = Depends(get_context)):
    """Unknown ids are ignored; the response always names the active session."""
    await context.engine.delete_session(session_id)
    return {"active_session_id": context.store.active_id, "notices": context.drain_notices()}


@router.post("/{session_id}/export")
async def export_session(session_id: str, context: ChatContext = Depends(get_context)):
    context.store.get(session_id)
    result = await context.engine.export_session(context.saver, session_id)
    return {"success": result.success, "path": result.path, "error": result.error}
