"""Entrypoint for the MedEasy API console."""

from __future__ import annotations

import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from medeasy_console import __version__
from medeasy_console.config import load_settings
from medeasy_console.logging_utils import get_logger


def run_entrypoint() -> None:
    """Serve the console over HTTP."""
    settings = load_settings()
    logger = get_logger(__name__)
    from medeasy_console.transport.http_server import create_http_app

    try:
        import uvicorn
    except ImportError as exc:
        raise RuntimeError("uvicorn is required to serve the console") from exc

    logger.info("Starting MedEasy API console v%s", __version__)
    logger.info("Forwarding submissions to %s", settings.api.base_url)
    app = create_http_app()
    uvicorn.run(
        app,
        host=settings.console.host,
        port=settings.console.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
