"""Runtime settings read from the environment and an optional .env file."""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from rich.logging import RichHandler

from auralearn.db import DEFAULT_DB_PATH

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_POLL_SECONDS = 3.0

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    db_path: str = DEFAULT_DB_PATH
    poll_seconds: float = DEFAULT_POLL_SECONDS
    log_level: str = "WARNING"


def _poll_seconds(value: Optional[str]) -> float:
    if not value:
        return DEFAULT_POLL_SECONDS
    try:
        seconds = float(value)
    except ValueError:
        seconds = 0.0
    if not seconds > 0:
        logger.warning("Ignoring AURALEARN_POLL_SECONDS=%r, using %s", value, DEFAULT_POLL_SECONDS)
        return DEFAULT_POLL_SECONDS
    return seconds


def load_settings(env_file: Optional[str] = None) -> Settings:
    load_dotenv(env_file)
    api_key = (
        os.getenv("GEMINI_API_KEY")
        or os.getenv("GOOGLE_API_KEY")
        or os.getenv("API_KEY")
    )
    return Settings(
        api_key=api_key or None,
        model=os.getenv("AURALEARN_MODEL", DEFAULT_MODEL),
        db_path=os.path.expanduser(os.getenv("AURALEARN_DB", DEFAULT_DB_PATH)),
        poll_seconds=_poll_seconds(os.getenv("AURALEARN_POLL_SECONDS")),
        log_level=os.getenv("AURALEARN_LOG_LEVEL", "WARNING").upper(),
    )


def configure_logging(level: str = "WARNING", console=None) -> None:
    """Route log records through rich so they share the app's console."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
