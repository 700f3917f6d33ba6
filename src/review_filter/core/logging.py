"""Process-wide logging setup."""
from __future__ import annotations

import logging

from review_filter.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once from ``LOG_LEVEL``."""
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("review_filter").setLevel(resolved)
