"""Configuration settings and environment variables.

This module loads values from environment variables (including a .env file)
and provides small helpers to safely parse integers and booleans while
stripping inline comments. This avoids crashes when a .env value contains
an inline comment like:

    BCRYPT_ROUNDS=12 # cost factor

The helpers fall back to defaults and emit warnings when parsing fails.
"""

import os
import logging
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

_logger = logging.getLogger(__name__)


def _strip_inline_comment(val: str) -> str:
    """Strip an inline comment from a string and trim whitespace/quotes.

    Example: "12 # cost factor" -> "12"
    """
    if val is None:
        return ''
    # Split on first '#' to remove inline comments
    val = val.split('#', 1)[0]
    val = val.strip()
    # Remove surrounding single/double quotes if present
    if (val.startswith('"') and val.endswith('"')) or (
        val.startswith("'") and val.endswith("'")
    ):
        val = val[1:-1]
    return val


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    stripped = _strip_inline_comment(raw)
    return stripped if stripped != '' else default


def _get_int_env(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (ValueError, TypeError):
        _logger.warning("Invalid integer for %s: %r, falling back to %s", name, raw, default)
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except (ValueError, TypeError):
        _logger.warning("Invalid number for %s: %r, falling back to %s", name, raw, default)
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw = _get_env(name)
    if raw is None:
        return default
    return raw.lower() in ['true', '1', 'on', 'yes']


def _get_list_env(name: str, default: List[str]) -> List[str]:
    raw = _get_env(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(',') if item.strip()]


class Config:
    """Base configuration class with default settings."""

    # Flask settings
    SECRET_KEY = _get_env('SECRET_KEY') or 'dev-secret-key-change-in-production'
    LOG_LEVEL = _get_env('LOG_LEVEL', 'INFO')

    # MongoDB settings
    MONGO_URI = _get_env('MONGO_URI') or 'mongodb://localhost:27017/'
    MONGO_DB = _get_env('MONGO_DB') or 'forum'
    USERS_COLLECTION = _get_env('USERS_COLLECTION') or 'users'
    # Upper bound for each existence check and for the final insert
    STORE_TIMEOUT_SECONDS = _get_float_env('STORE_TIMEOUT_SECONDS', 5.0)
    # Unique indexes on users are the authoritative duplicate guard
    ENSURE_INDEXES_ON_STARTUP = _get_bool_env('ENSURE_INDEXES_ON_STARTUP', True)

    # Password hashing: explicit bcrypt cost, never the library default
    BCRYPT_ROUNDS = _get_int_env('BCRYPT_ROUNDS', 12)

    # Optional profile fields copied from the registration payload onto the
    # stored user document.
    REGISTRATION_PROFILE_FIELDS = _get_list_env(
        'REGISTRATION_PROFILE_FIELDS', ['first_name', 'last_name', 'gender']
    )


class DevelopmentConfig(Config):
    """Development configuration with debug mode enabled."""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration with security settings."""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration with test database."""
    TESTING = True
    MONGO_DB = 'forum_test'
    # Minimum bcrypt cost keeps the suite fast
    BCRYPT_ROUNDS = 4
    ENSURE_INDEXES_ON_STARTUP = False


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(env: Optional[str] = None):
    """Return the config class for ``env`` (or FLASK_ENV / APP_ENV)."""
    name = env or _get_env('APP_ENV') or _get_env('FLASK_ENV') or 'default'
    return config.get(name.lower(), config['default'])
