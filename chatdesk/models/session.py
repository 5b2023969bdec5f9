"""
Session Models - Defines structures for chat sessions and their messages.
"""

from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class Role(str, Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"


class StopReason(str, Enum):
    """Why the assistant's reply ended."""
    NORMAL = "normal"
    LENGTH_TRUNCATED = "length_truncated"
    OTHER = "other"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> Optional["StopReason"]:
        """Map the endpoint's stop_reason string onto the stored enum."""
        if value is None:
            return None
        if value == "end_turn":
            return cls.NORMAL
        if value == "max_tokens":
            return cls.LENGTH_TRUNCATED
        return cls.OTHER


class Message(BaseModel):
    """A single chat message."""
    role: Role
    content: str
    stop_reason: Optional[StopReason] = None  # assistant messages only
    truncated: bool = False

    model_config = {"frozen": True}

    @staticmethod
    def user(content: str) -> "Message":
        return Message(role=Role.USER, content=content)

    @staticmethod
    def assistant(content: str, stop_reason: Optional[StopReason] = None) -> "Message":
        """Create a finalized assistant reply; truncated follows the stop reason."""
        return Message(
            role=Role.ASSISTANT,
            content=content,
            stop_reason=stop_reason,
            truncated=stop_reason == StopReason.LENGTH_TRUNCATED,
        )

    def to_api(self) -> Dict[str, Any]:
        """Request shape: role and content only."""
        return {"role": self.role.value, "content": self.content}


class Session(BaseModel):
    """One conversation thread."""
    session_id: str
    title: str
    messages: List[Message] = Field(default_factory=list)

    @property
    def sort_key(self) -> int:
        return int(self.session_id)

    @property
    def is_empty(self) -> bool:
        return not self.messages


class SessionSummary(BaseModel):
    """Sidebar entry for a session."""
    session_id: str
    title: str
    message_count: int = 0
    is_active: bool = False


class SessionArchive(BaseModel):
    """The persisted session collection."""
    version: int = 1
    sessions: Dict[str, Session] = Field(default_factory=dict)
    active_session_id: Optional[str] = None
