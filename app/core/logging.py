"""Logging setup."""

import logging

from app.core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: Settings) -> None:
    """Configure root logging from settings.

    Noisy client libraries are kept at WARNING unless debug is enabled.
    """
    logging.basicConfig(level=config.log_level.value, format=LOG_FORMAT)
    logging.getLogger().setLevel(config.log_level.value)

    if not config.debug:
        for name in ("httpx", "httpcore", "sqlalchemy.engine"):
            logging.getLogger(name).setLevel(logging.WARNING)
