import logging
import sys

from chronoplan.config.settings import get_settings


def setup_logging(level=None):
    """Configure application-wide logging. Safe to call more than once."""
    settings = get_settings()
    if level is None:
        level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level)

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Console handler, installed once
    for handler in root_logger.handlers:
        if getattr(handler, "_chronoplan", False):
            handler.setLevel(level)
            return root_logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler._chronoplan = True
    root_logger.addHandler(console_handler)

    return root_logger
