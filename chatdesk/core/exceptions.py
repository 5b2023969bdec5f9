"""
Error taxonomy for the conversation engine.
"""

from typing import Optional


class ChatDeskError(Exception):
    """Base class for all ChatDesk errors."""

    user_message = "An unexpected error occurred."

    def __str__(self) -> str:
        text = super().__str__()
        return text or self.user_message


class UnknownSession(ChatDeskError):
    """An operation referenced a session id that does not exist."""

    user_message = "Chat not found."

    def __init__(self, session_id: str):
        super().__init__(f"Unknown session: {session_id}")
        self.session_id = session_id


class CredentialsMissing(ChatDeskError):
    """No API key has been configured yet."""

    user_message = "No API key configured. Please add one in settings."


class IngestionBusy(ChatDeskError):
    """A reply is already streaming; only one may be in flight."""

    user_message = "Please wait for the current reply to finish."


class PersistenceFailure(ChatDeskError):
    """The session collection could not be read from or written to storage."""

    user_message = "Failed to save chat history. Changes are kept for this session only."


class MalformedEvent(ChatDeskError):
    """A single streamed event line could not be parsed."""

    user_message = "Received a malformed event from the server."


class TransportError(ChatDeskError):
    """The remote endpoint failed; terminates the in-flight ingestion."""

    user_message = "An error occurred while communicating with Claude."

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None,
                 detail: Optional[str] = None):
        super().__init__(message or self.user_message)
        self.status = status
        self.detail = detail


class AuthError(TransportError):
    """HTTP 401: the endpoint rejected the API key."""

    user_message = "Invalid API key. Please check your settings."


class BadRequest(TransportError):
    """HTTP 400, surfaced with the server's detail when present."""

    user_message = "Bad request"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = 400,
                 detail: Optional[str] = None):
        super().__init__(message or f"Bad request: {detail or 'Unknown error'}", status, detail)


class RateLimited(TransportError):
    """HTTP 429."""

    user_message = "Rate limit exceeded. Please try again later."


class ServiceUnavailable(TransportError):
    """HTTP 5xx or a connection failure."""

    user_message = "Claude service is currently unavailable. Please try again later."
