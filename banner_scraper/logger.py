"""
Logging configuration for the banner scraper.
"""

import logging
import sys

from banner_scraper.config import config

# Create logger
logger = logging.getLogger('banner_scraper')
logger.setLevel(config.LOG_LEVEL.upper())

if not logger.handlers:
    # Console handler with formatting
    console = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-5s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )
    console.setFormatter(formatter)

    logger.addHandler(console)


def get_logger(name):
    """Get a child logger for a specific component."""
    return logger.getChild(name)
