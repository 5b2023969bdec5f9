"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "ChatDesk"
    app_version: str = "1.0.0"
    debug: bool = False

    # Storage
    local_storage_path: str = "./data"
    sessions_file: str = "chat_history.json"
    credentials_file: str = "credentials.json"
    export_dir: str = "exports"

    # Remote endpoint
    anthropic_api_key: Optional[str] = None  # used when no key was saved from the UI
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"
    default_model: str = "claude-3-7-sonnet-latest"
    system_prompt: str = (
        "You are Claude, an AI assistant made by Anthropic. "
        "You're running in a custom chat app."
    )
    llm_timeout: Optional[float] = 600.0  # None leaves the deadline to the transport

    # Sessions
    default_session_title: str = "New Chat"
    title_max_length: int = 30

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/chatdesk.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all local API requests/responses

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
