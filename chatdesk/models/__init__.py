"""Models module."""

from .session import Role, StopReason, Message, Session, SessionSummary, SessionArchive

__all__ = ['Role', 'StopReason', 'Message', 'Session', 'SessionSummary', 'SessionArchive']
