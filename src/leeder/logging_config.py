from __future__ import annotations

import logging

from leeder.config import get_settings

# Chatty below WARNING; only surfaced when running at DEBUG.
NOISY_LOGGERS = ("sqlalchemy.engine", "passlib")

_LOG_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=f"%(asctime)s %(levelname)s [{settings.app_env}] [%(name)s] %(message)s",
    )
    if level_name != "DEBUG":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    _LOG_CONFIGURED = True
