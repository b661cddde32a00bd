"""Session-scoped storage for the wizard."""

from .session_store import SessionStore

__all__ = ['SessionStore']
