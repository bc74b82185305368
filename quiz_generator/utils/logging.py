"""
Centralized logging configuration for the quiz generator.
"""

import logging
from pathlib import Path
from datetime import datetime
from typing import Optional

PACKAGE_LOGGER_PREFIX = "quiz_generator"


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually __name__)
        level: Optional logging level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        if level is None:
            level = logging.INFO
        logger.setLevel(level)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

        # Prevent propagation to root logger
        logger.propagate = False
    elif level is not None:
        logger.setLevel(level)

    return logger


def set_verbose_logging(enabled: bool) -> None:
    """
    Switch every quiz_generator logger between DEBUG and INFO.

    Args:
        enabled: True for DEBUG output (correction details, raw previews)
    """
    level = logging.DEBUG if enabled else logging.INFO
    manager = logging.Logger.manager
    for name, candidate in list(manager.loggerDict.items()):
        if not isinstance(candidate, logging.Logger):
            continue
        if name == PACKAGE_LOGGER_PREFIX or name.startswith(PACKAGE_LOGGER_PREFIX + "."):
            candidate.setLevel(level)


def setup_file_logging(log_dir: str = "logs", log_file: Optional[str] = None) -> Path:
    """
    Set up file logging for all quiz_generator loggers.

    Args:
        log_dir: Directory to store log files
        log_file: Optional specific log file name

    Returns:
        Path of the log file
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    if log_file is None:
        log_file = f"quiz_generator_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    file_path = log_path / log_file

    file_handler = logging.FileHandler(file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)

    # Detailed format for file
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_handler.setFormatter(file_formatter)

    # Package loggers do not propagate, so attach to each of them
    manager = logging.Logger.manager
    for name, candidate in list(manager.loggerDict.items()):
        if not isinstance(candidate, logging.Logger):
            continue
        if name == PACKAGE_LOGGER_PREFIX or name.startswith(PACKAGE_LOGGER_PREFIX + "."):
            candidate.addHandler(file_handler)

    return file_path
