#!/usr/bin/env python3
"""
Configuration Management
=======================

Centralized configuration for the banner scraper.
"""

import os
from typing import Dict, Any
from dotenv import load_dotenv

from banner_scraper.models import RetryPolicy

# Load environment variables from .env file
script_dir = os.path.dirname(os.path.abspath(__file__))
env_path = os.path.join(os.path.dirname(script_dir), '.env')
load_dotenv(env_path)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class Config:
    """Application configuration"""

    # Server Configuration
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 3000))
    DEBUG = _flag('DEBUG', 'False')

    # Storage Configuration
    DATA_DIR = os.getenv('DATA_DIR', 'scraped_data')
    DATABASE_PATH = os.getenv('DATABASE_PATH', os.path.join(DATA_DIR, 'scraped_data.db'))
    AUTO_SAVE_SELECTIONS = _flag('AUTO_SAVE_SELECTIONS', 'True')

    # Browser Configuration
    HEADLESS = _flag('HEADLESS', 'True')
    # A human has to see the page to annotate it
    INTERACTIVE_HEADLESS = _flag('INTERACTIVE_HEADLESS', 'False')
    VIEWPORT_WIDTH = int(os.getenv('VIEWPORT_WIDTH', 1200))
    VIEWPORT_HEIGHT = int(os.getenv('VIEWPORT_HEIGHT', 850))

    # Navigation / readiness (all times in ms)
    NAV_MAX_ATTEMPTS = int(os.getenv('NAV_MAX_ATTEMPTS', 3))
    NAV_TIMEOUT_MS = int(os.getenv('NAV_TIMEOUT_MS', 90000))
    NAV_BACKOFF_MS = int(os.getenv('NAV_BACKOFF_MS', 1000))
    BODY_WAIT_MS = int(os.getenv('BODY_WAIT_MS', 30000))
    IMAGE_SETTLE_MS = int(os.getenv('IMAGE_SETTLE_MS', 10000))

    # Lazy-load scrolling
    SCROLL_STEP_PX = int(os.getenv('SCROLL_STEP_PX', 500))
    SCROLL_INTERVAL_MS = int(os.getenv('SCROLL_INTERVAL_MS', 300))
    SCROLL_MAX_STEPS = int(os.getenv('SCROLL_MAX_STEPS', 200))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def retry_policy(cls) -> RetryPolicy:
        """Navigation retry policy built from the environment."""
        return RetryPolicy(
            max_attempts=cls.NAV_MAX_ATTEMPTS,
            per_attempt_timeout_ms=cls.NAV_TIMEOUT_MS,
            backoff_ms=cls.NAV_BACKOFF_MS,
        )

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return {
            'host': cls.HOST,
            'port': cls.PORT,
            'debug': cls.DEBUG,
            'data_dir': cls.DATA_DIR,
            'database_path': cls.DATABASE_PATH,
            'auto_save_selections': cls.AUTO_SAVE_SELECTIONS,
            'headless': cls.HEADLESS,
            'interactive_headless': cls.INTERACTIVE_HEADLESS,
            'viewport': [cls.VIEWPORT_WIDTH, cls.VIEWPORT_HEIGHT],
            'nav_max_attempts': cls.NAV_MAX_ATTEMPTS,
            'nav_timeout_ms': cls.NAV_TIMEOUT_MS,
            'body_wait_ms': cls.BODY_WAIT_MS,
            'image_settle_ms': cls.IMAGE_SETTLE_MS,
        }


# Global config instance
config = Config()
