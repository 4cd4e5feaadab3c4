from __future__ import annotations

import logging.config

from quoteversation.core.config import settings


def configure_logging(level: str | None = None) -> None:
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
            },
            "handlers": {
                "console": {"class": "logging.StreamHandler", "formatter": "default"},
            },
            "loggers": {
                "quoteversation": {"level": (level or settings.log_level).upper(), "propagate": True},
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
        }
    )
