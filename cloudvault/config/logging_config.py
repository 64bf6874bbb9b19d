"""
Logging Configuration

Configures the root logger once at process start (web app and Celery worker).
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)s] - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger for the application.

    Args:
        level: Level name such as "INFO" or "DEBUG"
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    # Silence noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
