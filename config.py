"""
Application configuration module.

This module defines configuration classes for the different environments
(development, testing, production) of the load-generation control
service.  Values are loaded from environment variables, optionally seeded
from a ``.env`` file, with sensible defaults.

Key Concepts Demonstrated:
- Class-based configuration with inheritance for DRY defaults
- Environment-variable overrides for 12-factor app deployability
- Separate testing configuration with short request timeouts
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Populate os.environ from a local .env file (existing variables win).
load_dotenv()


def _optional_int(name: str) -> int | None:
    """Read an optional integer environment variable; empty means unset."""
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else None


class Config:
    """
    Base (shared) configuration for the control service.

    All environment-specific classes inherit from ``Config`` so common
    defaults only need to be stated once.
    """

    # Interface and port the control API listens on.
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("PORT", "9632"))

    # Value of the Access-Control-Allow-Origin header on every response.
    CORS_ALLOWED_ORIGIN: str = os.environ.get("CORS_ALLOWED_ORIGIN", "*")

    # Per-request timeout (seconds) used when a job payload omits one.
    DEFAULT_REQUEST_TIMEOUT: float = float(os.environ.get("DEFAULT_REQUEST_TIMEOUT", "5"))

    # Cap on simultaneously in-flight requests per run.  None keeps the
    # unbounded one-worker-per-tick fan-out.
    MAX_IN_FLIGHT: int | None = _optional_int("MAX_IN_FLIGHT")

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    """
    Test-suite overrides.

    The default request timeout is reduced to 1 second so tests that
    simulate unresponsive targets complete quickly.
    """

    DEBUG: bool = True
    TESTING: bool = True
    DEFAULT_REQUEST_TIMEOUT: float = float(os.environ.get("TEST_DEFAULT_REQUEST_TIMEOUT", "1"))
    MAX_IN_FLIGHT: int | None = _optional_int("TEST_MAX_IN_FLIGHT")


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG: bool = False
    TESTING: bool = False


# Configuration mapping for easy access
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Get the configuration class for the specified environment.

    Args:
        env: Environment name (development, testing, production).
             If None, uses FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment, or
        ``DevelopmentConfig`` if the key is unrecognised.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
