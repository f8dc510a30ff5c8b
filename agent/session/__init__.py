"""Session store exports."""

from agent.session.store import Session, SessionStore

__all__ = ["Session", "SessionStore"]
