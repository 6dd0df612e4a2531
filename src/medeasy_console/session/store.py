"""Authentication session held by the console and mirrored to local storage."""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable

from medeasy_console.storage.local_storage import LocalStorage
from medeasy_console.utils.serialization import json_default

logger = logging.getLogger(__name__)

SessionObserver = Callable[["Session"], None]

# Failures of the durable side never interrupt the in-memory flow.
_STORAGE_ERRORS = (sqlite3.Error, OSError)


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of the bearer token and the user profile it belongs to."""

    token: str | None = field(default=None, repr=False)
    user: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "user", MappingProxyType(dict(self.user)))

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def __repr__(self) -> str:
        return (
            f"Session(authenticated={self.authenticated}, "
            f"username={self.user.get('username')!r}, role={self.user.get('role')!r})"
        )


def describe_auth_status(session: Session) -> str:
    """Status line shown next to the console header."""
    if not session.authenticated:
        return "Not Authenticated"
    username = session.user.get("username") or "User"
    role = session.user.get("role") or "unknown"
    return f"Authenticated as {username} ({role})"


class SessionStore:
    """Single owner of the console session.

    ``set`` swaps token and user in one assignment, so readers never see one
    without the other. The initial value is rehydrated from ``storage``;
    anything missing or malformed there yields the empty session.
    """

    def __init__(
        self,
        storage: LocalStorage | None,
        *,
        token_key: str = "medeasy_token",
        user_key: str = "medeasy_user",
    ) -> None:
        self._storage = storage
        self._token_key = token_key
        self._user_key = user_key
        self._observers: list[SessionObserver] = []
        self._session = self._load()

    def _load(self) -> Session:
        if self._storage is None:
            return Session()
        try:
            token = self._storage.get_item(self._token_key)
            raw_user = self._storage.get_item(self._user_key)
        except _STORAGE_ERRORS as exc:
            logger.warning("Local storage read failed, starting without a session: %s", exc)
            return Session()

        if not token or raw_user is None:
            return Session()
        try:
            user = json.loads(raw_user)
        except ValueError:
            logger.warning("Stored user profile is not valid JSON, ignoring stored session")
            return Session()
        if not isinstance(user, dict):
            logger.warning("Stored user profile is not an object, ignoring stored session")
            return Session()
        return Session(token=token, user=user)

    def get(self) -> Session:
        return self._session

    def set(self, token: str, user: Mapping[str, Any] | None) -> Session:
        session = Session(token=token, user=user or {})
        self._session = session
        self._persist(session)
        self._notify(session)
        return session

    def clear(self) -> None:
        self._session = Session()
        if self._storage is not None:
            try:
                self._storage.remove_item(self._token_key)
                self._storage.remove_item(self._user_key)
            except _STORAGE_ERRORS as exc:
                logger.warning("Local storage clear failed: %s", exc)
        self._notify(self._session)

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Register ``observer`` for session changes; returns an unsubscribe hook."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _persist(self, session: Session) -> None:
        if self._storage is None:
            return
        try:
            raw_user = json.dumps(dict(session.user), default=json_default)
            self._storage.set_items(
                {self._token_key: session.token or "", self._user_key: raw_user}
            )
        except (TypeError, ValueError, *_STORAGE_ERRORS) as exc:
            logger.warning("Local storage write failed: %s", exc)

    def _notify(self, session: Session) -> None:
        for observer in list(self._observers):
            try:
                observer(session)
            except Exception:
                logger.exception("Session observer failed")
