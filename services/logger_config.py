# services/logger_config.py
import logging
from logging.handlers import RotatingFileHandler
import os
from config import settings

# Libraries that log every request or model load at INFO
NOISY_LOGGERS = ("urllib3", "sentence_transformers", "httpx", "multipart")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


def _file_handler(formatter: logging.Formatter) -> logging.Handler:
    log_dir = os.path.dirname(settings.LOG_FILE_PATH)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    handler = RotatingFileHandler(
        settings.LOG_FILE_PATH,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging() -> logging.Logger:
    """
    Configure the service logger.

    Everything goes to the rotating log file; the console only shows
    `settings.CONSOLE_LOG_LEVEL` and above. Safe to call more than once.
    """
    logger = logging.getLogger(settings.LOGGER_NAME)
    if logger.hasHandlers():
        logger.handlers.clear()
    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(LOG_FORMAT)

    try:
        logger.addHandler(_file_handler(formatter))
    except OSError as e:
        # Read-only checkouts still get console logging
        print(f"Error setting up file logger: {e}")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(settings.CONSOLE_LOG_LEVEL)
    logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(
        f"Logging configured (file: {settings.LOG_FILE_PATH}, console: {settings.CONSOLE_LOG_LEVEL})"
    )
    return logger
