"""
ChatDesk - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import chat_router, sessions_router, settings_router
from .api.deps import chatdesk_error_handler
from .config import Settings, settings as default_settings
from .core.context import create_context
from .core.exceptions import ChatDeskError
from .core.logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application for the given settings."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        app.state.context = await create_context(settings)
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        logger.info(f"Storage path: {settings.local_storage_path}")
        logger.info(f"Model: {settings.default_model}")
        yield
        logger.info(f"Shutting down {settings.app_name}")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-session chat client for Claude with streaming replies and search",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.log_api_requests:
        app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(ChatDeskError, chatdesk_error_handler)

    app.include_router(settings_router)
    app.include_router(sessions_router)
    app.include_router(chat_router)

    @app.get("/")
    async def root():
        return {
            "app": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check():
        context = app.state.context
        return {
            "status": "healthy",
            "sessions": len(context.store.sessions),
            "version": settings.app_version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chatdesk.main:app",
        host="127.0.0.1",
        port=8000,
        reload=default_settings.debug
    )
