import logging
import logging.handlers
import sys
import os
from typing import Optional
from pulsecare.core.config import settings

# Loggers whose output is only useful at WARNING and above
QUIET_LOGGERS = ("uvicorn.error", "httpx", "httpcore", "multipart")


class RequestIDFilter(logging.Filter):
    """Guarantee a request_id attribute so formats may reference it."""

    def filter(self, record):
        record.request_id = getattr(record, 'request_id', 'N/A')
        return True


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _file_handler(formatter: logging.Formatter) -> Optional[logging.Handler]:
    """Rotating file handler outside debug mode, None otherwise."""
    if settings.DEBUG:
        return None

    log_dir = os.path.dirname(settings.LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        settings.LOG_FILE,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    handler.setFormatter(formatter)
    handler.setLevel(_level(settings.LOG_LEVEL))
    return handler


def setup_logging() -> logging.Logger:
    """
    Configure the root logger for the service.

    Console output always; a rotating file in production. Engine modules
    under pulsecare.services get their own level so per-donor decisions can
    be traced at DEBUG without turning up every library logger.
    """
    formatter = logging.Formatter(settings.LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(_level(settings.LOG_LEVEL))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    root_logger.addHandler(console_handler)

    file_handler = _file_handler(formatter)
    if file_handler is not None:
        root_logger.addHandler(file_handler)

    engine_level = settings.ENGINE_LOG_LEVEL or settings.LOG_LEVEL
    logging.getLogger("pulsecare.services").setLevel(_level(engine_level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    request_id_filter = RequestIDFilter()
    for handler in root_logger.handlers:
        handler.addFilter(request_id_filter)

    return root_logger

# Initialize logging
logger = setup_logging()
