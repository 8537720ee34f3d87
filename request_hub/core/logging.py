import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from request_hub.core.config import Settings, settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def log_file_path(config: Settings = settings) -> Path:
    """Where the rotating log lives; a relative ``log_file`` is resolved against ``data_dir``."""
    path = Path(config.log_file)
    if not path.is_absolute():
        path = Path(config.data_dir) / path
    return path


def build_handlers(config: Settings = settings) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)

    log_path = log_file_path(config)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config.log_max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )

    console_handler = logging.StreamHandler()

    handlers: list[logging.Handler] = [console_handler, file_handler]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: Settings = settings, target: Optional[logging.Logger] = None) -> None:
    logger = target if target is not None else logging.getLogger()
    # Uvicorn and pytest install their own handlers; leave those alone.
    if logger.handlers:
        return

    logger.setLevel(config.log_level.upper())
    for handler in build_handlers(config):
        logger.addHandler(handler)
