"""
Flask application factory for the load-generation control service.

The service exposes a small HTTP API that starts load-test runs against a
single target, serves their metrics and stops them.  The load engine
itself lives in ``engine_app.engine``; this module wires configuration,
logging, CORS and the run registry around it.

Key Concepts Demonstrated:
- Application Factory pattern (create_app) for flexible configuration
- Blueprint registration for modular route organisation
- Per-application state via ``app.extensions`` instead of module globals
"""

from __future__ import annotations

import logging

from flask import Flask
from flask_cors import CORS

from config import get_config

from .registry import RunRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
CORS_ALLOWED_HEADERS = ["Content-Type", "Authorization"]


def _register_cors(app: Flask) -> None:
    """Allow browser clients from the configured origin to drive the API."""
    CORS(
        app,
        origins=app.config["CORS_ALLOWED_ORIGIN"],
        methods=CORS_ALLOWED_METHODS,
        allow_headers=CORS_ALLOWED_HEADERS,
        send_wildcard=True,
    )


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     If None, uses FLASK_ENV environment variable.

    Returns:
        Configured Flask application with an empty run registry.
    """
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)
    logging.getLogger("engine_app").setLevel(app.config["LOG_LEVEL"])

    logger.info("Creating app with config: %s", config_class.__name__)

    app.extensions["run_registry"] = RunRegistry()
    _register_cors(app)

    from .routes import control_bp

    app.register_blueprint(control_bp)
    return app
