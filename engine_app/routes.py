"""
Control API for load-test runs.

Operators start a run, poll its metrics and stop it early through these
endpoints.  One run may be active at a time; the single "current run" slot
lives in the ``RunRegistry`` stored on the application.

Endpoints:
    POST /attack    - Start a run (``/test`` is an alias for the same engine)
    GET  /metrics   - Snapshot of the latest run's metrics
    POST /stop      - Stop the active run
    GET  /health    - Service health check

Run payload (JSON)::

    {"target": "http://host/path", "rate": 10,
     "duration": 30000000000, "timeout": 5000000000}

``duration`` and ``timeout`` are integer nanoseconds.

Key Concepts Demonstrated:
- Blueprint-based route organisation
- Mapping a domain exception taxonomy onto HTTP status codes
- JSON error bodies for every failure path, never stack traces
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request

from .engine import LoadEngine
from .errors import ConfigurationError, NoActiveRunError, RunInProgressError
from .models import LoadTestConfig
from .registry import RunRegistry

logger = logging.getLogger(__name__)

control_bp = Blueprint("control", __name__)

REGISTRY_EXTENSION = "run_registry"


# =====================================================================
# Helper Functions
# =====================================================================


def get_registry() -> RunRegistry:
    """Return the run registry attached to the current application."""
    return current_app.extensions[REGISTRY_EXTENSION]


def _metrics_payload(engine: LoadEngine) -> dict[str, Any]:
    payload = engine.get_metrics().to_dict()
    payload["run"] = engine.name
    payload["state"] = engine.state.value
    payload["running"] = engine.is_running
    return payload


# =====================================================================
# Endpoints
# =====================================================================


@control_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """Shallow liveness probe for the control service itself."""
    return jsonify({"status": "healthy", "service": "cry-engine"}), 200


@control_bp.route("/attack", methods=["POST"])
@control_bp.route("/test", methods=["POST"])
def start_run() -> tuple[Response, int]:
    """
    Start a new load-test run.

    Returns:
        202 with the accepted configuration, 400 for an invalid payload,
        or 409 while another run is still active.
    """
    data = request.get_json(silent=True)
    if data is None:
        logger.warning("%s rejected: body is not valid JSON", request.path)
        return jsonify({"error": "Request body must be valid JSON"}), 400

    try:
        config = LoadTestConfig.from_payload(
            data,
            default_timeout=current_app.config["DEFAULT_REQUEST_TIMEOUT"],
            max_in_flight=current_app.config.get("MAX_IN_FLIGHT"),
        )
    except ConfigurationError as exc:
        logger.warning("%s rejected: %s", request.path, exc)
        return jsonify({"error": str(exc)}), 400

    try:
        engine = get_registry().launch(config)
    except RunInProgressError as exc:
        logger.warning("%s rejected: %s", request.path, exc)
        return jsonify({"error": str(exc)}), 409

    return (
        jsonify({"status": "started", "run": engine.name, "config": config.to_dict()}),
        202,
    )


@control_bp.route("/metrics", methods=["GET"])
def get_metrics() -> tuple[Response, int]:
    """
    Return the metrics of the latest run.

    Finished runs stay readable until the next run replaces them; the
    ``running`` flag tells pollers when to stop polling.
    """
    engine = get_registry().current()
    if engine is None:
        return jsonify({"error": "No active attack"}), 404
    return jsonify(_metrics_payload(engine)), 200


@control_bp.route("/stop", methods=["POST"])
def stop_run() -> tuple[Response, int]:
    """Stop the active run and return its metrics at the moment of stopping."""
    try:
        engine = get_registry().stop()
    except NoActiveRunError as exc:
        return jsonify({"error": str(exc)}), 404

    logger.info("Run '%s' stopped via control API", engine.name)
    return jsonify(_metrics_payload(engine)), 200


# =====================================================================
# Error Handlers
# =====================================================================


@control_bp.app_errorhandler(404)
def not_found(error: Exception) -> tuple[Response, int]:
    """Handle 404 Not Found errors."""
    return jsonify({"error": "Resource not found"}), 404


@control_bp.app_errorhandler(405)
def method_not_allowed(error: Exception) -> tuple[Response, int]:
    """Handle 405 Method Not Allowed errors."""
    return jsonify({"error": "Method not allowed"}), 405


@control_bp.app_errorhandler(500)
def internal_error(error: Exception) -> tuple[Response, int]:
    """Handle 500 Internal Server errors."""
    logger.error("Internal server error: %s", error)
    return jsonify({"error": "Internal server error"}), 500
