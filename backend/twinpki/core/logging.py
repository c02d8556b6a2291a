import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from twinpki.core.config import Settings, settings

LOGGER_NAME = "twinpki"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(LOGGER_NAME)
logger.propagate = False  # avoid double logging if root logger is configured elsewhere


def configure_logging(config: Optional[Settings] = None) -> logging.Logger:
    """
    Rebuild the handlers of the application logger from LOG_LEVEL, LOG_FILE,
    LOG_MAX_BYTES and LOG_BACKUP_COUNT. Console output is always on; the
    rotating file handler is added when LOG_FILE is set and can be opened.
    """
    config = config or settings
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if config.LOG_FILE:
        log_file = Path(config.LOG_FILE)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=config.LOG_MAX_BYTES,
                backupCount=config.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning(f"Logging to console only, cannot open {log_file}: {e}")
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Return the application logger or a child logger.
    Usage:
        log = get_logger("pki.builder")
    """
    if not name:
        return logger
    if name.startswith(f"{LOGGER_NAME}."):
        name = name[len(LOGGER_NAME) + 1:]
    return logger.getChild(name)


if not logger.handlers:
    configure_logging()


__all__ = ["logger", "configure_logging", "get_logger"]
