"""Logging configuration."""
import logging
import sys
from typing import Optional

from app.core.config import settings

# Client libraries kept at WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "twilio", "aiosqlite")


def setup_logging(level: Optional[str] = None) -> None:
    """Configure application logging once, at startup."""
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"[LOGGING] Configured at {level_name}")
