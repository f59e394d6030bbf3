"""
Logging setup.

Configures loguru sinks for workers and scripts.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from app.config.settings import settings


def setup_logging(component: str = "worker", level: str | None = None) -> None:
    """
    Configure logger with stderr and a rotating file sink.

    Args:
        component: Name written in the startup line
        level: Override for settings.log_level
    """
    level = level or settings.log_level

    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(
        settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        level=level,
        encoding="utf-8",
    )

    logger.info(f"Starting robot ledger {component}...")
