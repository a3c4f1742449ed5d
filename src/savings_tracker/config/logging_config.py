"""Logging configuration."""

import logging
import sys

from savings_tracker.config.settings import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging() -> None:
    """
    Configure application logging.

    Always logs to stdout; additionally appends to ``<data_dir>/logs/savings.log``
    when ``log_to_file`` is enabled.
    """
    settings = get_settings()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_to_file:
        handlers.append(
            logging.FileHandler(settings.get_log_dir() / "savings.log", encoding="utf-8")
        )

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format=LOG_FORMAT,
        handlers=handlers,
    )

    # Over-allocation and missing-rate warnings come from these loggers
    logging.getLogger("savings_tracker.services").setLevel(
        getattr(logging, settings.service_log_level.upper())
    )

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
