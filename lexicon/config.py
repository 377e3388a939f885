#!/usr/bin/env python3
"""
Centralized Configuration Management for the Lexicon System
Manages scraper, search and logging settings
"""

import logging
import os
from typing import Any, Dict


class LexiconConfig:
    """Centralized configuration for the lexicon system"""

    # Scraper Settings
    SCRAPER = {
        'base_url': 'https://www.oxfordlearnersdictionaries.com/definition/english',
        'max_pages': 5,
        'delay_seconds': 0.4,
        'timeout': 30.0,
        'user_agent': (
            'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
            '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
        ),
        'accept_language': 'en-US,en;q=0.9',
    }

    # Search Settings
    SEARCH = {
        'default_per_page': 100,
        'max_per_page': 500,
    }

    # Logging Configuration
    LOGGING = {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    }

    @classmethod
    def get_scraper_config(cls) -> Dict[str, Any]:
        """Get scraper configuration"""
        return cls.SCRAPER.copy()

    @classmethod
    def from_env(cls) -> 'LexiconConfig':
        """Create configuration from environment variables"""
        config = cls()

        if os.getenv('SCRAPER_BASE_URL'):
            cls.SCRAPER['base_url'] = os.getenv('SCRAPER_BASE_URL').rstrip('/')
        if os.getenv('SCRAPER_MAX_PAGES'):
            cls.SCRAPER['max_pages'] = int(os.getenv('SCRAPER_MAX_PAGES'))
        if os.getenv('SCRAPER_DELAY'):
            cls.SCRAPER['delay_seconds'] = float(os.getenv('SCRAPER_DELAY'))
        if os.getenv('SCRAPER_TIMEOUT'):
            cls.SCRAPER['timeout'] = float(os.getenv('SCRAPER_TIMEOUT'))
        if os.getenv('LOG_LEVEL'):
            cls.LOGGING['level'] = os.getenv('LOG_LEVEL').upper()

        return config


# Global configuration instance
config = LexiconConfig.from_env()


def configure_logging(level: str = None):
    """Configure root logging from the LOGGING settings"""
    logging.basicConfig(
        level=getattr(logging, (level or config.LOGGING['level']).upper(), logging.INFO),
        format=config.LOGGING['format'],
    )


def validate_config():
    """Validate configuration settings"""
    errors = []

    scraper = config.SCRAPER
    if not scraper.get('base_url', '').startswith(('http://', 'https://')):
        errors.append(f"Invalid scraper base URL: {scraper.get('base_url')}")
    if scraper.get('max_pages', 0) < 1:
        errors.append("Scraper max_pages must be at least 1")
    if scraper.get('delay_seconds', 0) < 0:
        errors.append("Scraper delay cannot be negative")
    if scraper.get('timeout', 0) <= 0:
        errors.append("Scraper timeout must be positive")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
