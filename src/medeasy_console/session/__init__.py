"""Console authentication session."""

from medeasy_console.session.store import Session, SessionStore, describe_auth_status

__all__ = ["Session", "SessionStore", "describe_auth_status"]
