"""
Settings API endpoints - API key and model selection.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..core.context import ChatContext
from ..llm.capabilities import list_models
from .deps import get_context

router = APIRouter(prefix="/settings", tags=["settings"])


class ApiKeyUpdate(BaseModel):
    api_key: str


class ModelUpdate(BaseModel):
    model: str


@router.get("")
async def get_settings(context: ChatContext = Depends(get_context)):
    capability = context.engine.capability
    return {
        "api_key_configured": bool(await context.credentials.get()),
        "model": context.engine.model,
        "max_output_tokens": capability.max_output_tokens,
        "transport": "raw" if capability.needs_raw_transport else "managed",
    }


@router.put("/api-key")
async def save_api_key(update: ApiKeyUpdate, context: ChatContext = Depends(get_context)):
    try:
        await context.credentials.set(update.api_key)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"api_key_configured": True}


@router.put("/model")
async def select_model(update: ModelUpdate, context: ChatContext = Depends(get_context)):
    try:
        capability = context.engine.select_model(update.model)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"model": capability.model, "max_output_tokens": capability.max_output_tokens}


@router.get("/models")
async def get_models():
    return [
        {"model": cap.model, "label": cap.label, "max_output_tokens": cap.max_output_tokens}
        for cap in list_models()
    ]
