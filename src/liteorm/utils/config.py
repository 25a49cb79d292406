"""
liteorm - Configuration Management
Handles environment configuration with python-dotenv for local development.

Every setting can be overridden through an environment variable (or a local
.env file). Values are read once at import time into module constants, the
same way the rest of the package consumes them.
"""

import logging
import os
from typing import Optional
from dotenv import load_dotenv

# Load .env file for local development
load_dotenv()


class Config:
    """
    Configuration manager reading from the process environment.

    Example:
        >>> config = Config()
        >>> config.get_int('LITEORM_CACHE_TTL_SECONDS', 60)
        60
    """

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Fetch configuration value from the environment.

        Args:
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return os.getenv(key, default)

    def get_int(self, key: str, default: int) -> int:
        """
        Get configuration value as integer.

        Args:
            key: Configuration key name
            default: Default value if key not found or conversion fails

        Returns:
            Integer value or default
        """
        value = self.get(key, str(default))
        try:
            return int(value)
        except (ValueError, TypeError) as e:
            # Log warning but don't crash - use default instead
            logging.warning(
                f"Invalid integer for config key '{key}': '{value}'. "
                f"Using default={default}. Error: {e}"
            )
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        """
        Get configuration value as boolean.

        Args:
            key: Configuration key name
            default: Default value if key not found

        Returns:
            Boolean value or default
        """
        value = self.get(key, str(default))
        if value is None:
            return default
        return value.lower() in ('true', '1', 'yes', 'on')


# Global configuration instance
config = Config()


# Database configuration
DB_PATH = config.get('LITEORM_DB_PATH', ':memory:')

# Logging configuration
LOG_LEVEL = config.get('LITEORM_LOG_LEVEL', 'WARNING')
SQL_LOG_MAX = config.get_int('LITEORM_SQL_LOG_MAX', 100)

# Error messages ('en' or 'zh')
ERROR_LOCALE = config.get('LITEORM_ERROR_LOCALE', 'en')

# Timestamp format for auto-stamped columns
TIME_FORMAT = config.get('LITEORM_TIME_FORMAT', 'datetime')

# Query result cache (disabled unless asked for)
CACHE_ENABLED = config.get_bool('LITEORM_CACHE_ENABLED', False)
CACHE_TTL_SECONDS = config.get_int('LITEORM_CACHE_TTL_SECONDS', 60)
CACHE_MAX_SIZE = config.get_int('LITEORM_CACHE_MAX_SIZE', 1000)
