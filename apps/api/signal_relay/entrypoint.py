"""Run the signaling relay under uvicorn."""
from __future__ import annotations

import logging

import uvicorn

from .core.config import settings
from .main import app

logger = logging.getLogger(__name__)


def run() -> None:
    """Console entrypoint: serve the app on the configured host and port."""

    logger.info("Starting signaling relay on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
