"""Application context assembly."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from functools import lru_cache

from medeasy_console.config import Settings, load_settings
from medeasy_console.forms.pipeline import SubmissionPipeline
from medeasy_console.forms.registry import FormRuleRegistry, build_registry
from medeasy_console.logs.recorder import RequestLogger
from medeasy_console.session.store import SessionStore
from medeasy_console.storage.local_storage import (
    LocalStorage,
    MemoryLocalStorage,
    SqliteLocalStorage,
)
from medeasy_console.transport.dispatcher import HttpDispatcher

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application-wide dependency container.

    Initialized once at startup and cached for the lifetime of the process.
    """

    settings: Settings
    storage: LocalStorage
    session_store: SessionStore
    request_logger: RequestLogger
    dispatcher: HttpDispatcher
    registry: FormRuleRegistry
    pipeline: SubmissionPipeline

    def close(self) -> None:
        """Release the durable storage handle; safe to call more than once."""
        if isinstance(self.storage, SqliteLocalStorage):
            self.storage.close()


def open_storage(path: str) -> LocalStorage:
    """Open durable storage, degrading to memory when it is unavailable."""
    try:
        return SqliteLocalStorage(path)
    except (sqlite3.Error, OSError) as exc:
        logger.warning(
            "Local storage at %s unavailable, session will not survive restarts: %s",
            path,
            exc,
        )
        return MemoryLocalStorage()


def build_app_context(settings: Settings) -> AppContext:
    registry = build_registry(settings.forms.rules_path)
    storage = open_storage(settings.storage.path)
    session_store = SessionStore(
        storage,
        token_key=settings.storage.token_key,
        user_key=settings.storage.user_key,
    )
    request_logger = RequestLogger()
    dispatcher = HttpDispatcher(
        settings.api.base_url,
        session_store,
        request_logger,
        timeout_seconds=settings.api.timeout_seconds,
    )
    pipeline = SubmissionPipeline(
        registry,
        dispatcher,
        session_store,
        single_flight=settings.console.single_flight,
    )
    return AppContext(
        settings=settings,
        storage=storage,
        session_store=session_store,
        request_logger=request_logger,
        dispatcher=dispatcher,
        registry=registry,
        pipeline=pipeline,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the cached application context."""
    return build_app_context(load_settings())
