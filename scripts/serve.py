#!/usr/bin/env python
"""Entry point for serving the TrialScribe API."""

from __future__ import annotations

import logging

import uvicorn

from app.deps import get_settings


def main() -> None:
    """Configure logging and run the API on the configured host and port."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
