"""Root logging setup: a daily-rotated file under ~/.puasa/logs plus the console."""

import logging
import os
from logging.handlers import TimedRotatingFileHandler

LOG_DIR = os.path.join(os.path.expanduser("~"), ".puasa", "logs")
LOG_FILE = "puasa.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_BACKUPS = 7


def setup_logging(level=logging.INFO, log_dir: str = LOG_DIR) -> str:
    """Configure the root logger and return the log file path."""
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, LOG_FILE)
    formatter = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    # Replace, not stack, handlers when called again
    root.handlers.clear()

    file_handler = TimedRotatingFileHandler(
        log_path, when="midnight", backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    console_handler = logging.StreamHandler()
    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger(__name__).info("[LOG] Logging to %s", log_path)
    return log_path
