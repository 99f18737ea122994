"""Logging configuration."""
import logging
import sys
from typing import Optional

from app.core.config import settings

QUIET_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite", "sqlalchemy.engine")


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging.

    Call-session logs carry a bracketed tag and the session id, e.g.
    ``[CALL SESSION] Status changed: connecting -> active - session: 3f2a...``.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Client libraries log every request at INFO
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
