"""
Configuration - environment-driven settings for memory-app.

Reads a `.env` file (if present) and exposes helpers for the database URL,
test mode and logging level.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment
load_dotenv()

# Configuration
DB_DIR = Path(__file__).resolve().parent.parent / "logs"
DB_NAME = "memory_app.db"
TEST_DB_NAME = "memory_app_test.db"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_database_url() -> str:
    """
    Get the database URL from environment variables.

    MEMORY_DATABASE_URL wins when set. Otherwise a SQLite file under logs/
    is used, with a separate file in test mode.

    Returns:
        SQLAlchemy database URL
    """
    url = os.getenv("MEMORY_DATABASE_URL")
    if url:
        return url

    db_name = TEST_DB_NAME if is_test_mode() else DB_NAME
    return f"sqlite:///{DB_DIR / db_name}"


def get_log_level() -> int:
    """Resolve MEMORY_LOG_LEVEL to a logging level (default INFO)."""
    name = os.getenv("MEMORY_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: int | None = None) -> None:
    """
    Configure root logging for scripts.
    """
    logging.basicConfig(
        level=level if level is not None else get_log_level(),
        format=LOG_FORMAT,
    )
