"""Logging configuration for Moneybook.

Sets up logging to both file (with date-based naming) and console.
"""

import logging
from datetime import date
from config import Config


def setup_logging(config: Config) -> logging.Logger:
    """Set up application logging with file and console handlers.

    Args:
        config: Application configuration containing log settings.

    Returns:
        Configured logger instance.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("moneybook")
    logger.setLevel(config.log_level)

    # Clear any existing handlers (in case this is called multiple times)
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter("%(levelname)s - %(message)s")

    # File handler - logs to moneybook-{date}.log
    log_filename = f"moneybook-{date.today().isoformat()}.log"
    file_handler = logging.FileHandler(config.log_dir / log_filename)
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(detailed_formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(config.log_level)
    console_handler.setFormatter(console_formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """Get the application logger, or one of its children.

    Args:
        name: Optional child name (e.g. "categories" gives "moneybook.categories").

    Returns:
        The moneybook logger instance.
    """
    if name:
        return logging.getLogger(f"moneybook.{name}")
    return logging.getLogger("moneybook")
