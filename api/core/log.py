"""
Logging setup shared by the API process.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    numeric = logging.getLevelName((level or "INFO").upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    # basicConfig is a no-op once uvicorn (or a test runner) installed handlers.
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)
