import logging
import sys
from datetime import datetime

from chorequest.config import Config


def setup_logging() -> None:
    """
    Configure application-wide logging with console and optional file handlers.

    Outputs to stdout and, when Config.LOG_TO_FILE is set, to a dated log file
    in the logs/ directory. Log level determined by Config.LOG_LEVEL.
    Safe to call more than once; handlers are only attached the first time.
    """
    log_level = getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if getattr(root_logger, "_chorequest_configured", False):
        return

    log_format = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    if Config.LOG_TO_FILE:
        Config.LOGS_DIR.mkdir(exist_ok=True)
        log_file = Config.LOGS_DIR / f"chorequest_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(log_format)
        root_logger.addHandler(file_handler)

    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('aiosqlite').setLevel(logging.WARNING)

    root_logger._chorequest_configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module name.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Service initialized")
    """
    return logging.getLogger(name)


setup_logging()
