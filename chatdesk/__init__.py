"""ChatDesk - a multi-session chat client for Claude."""

__version__ = "1.0.0"
