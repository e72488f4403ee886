"""
Shared pytest fixtures for the load-engine test suite.

Provides the Flask control app and test client, a real local target
server for end-to-end timing tests, and lightweight fakes that stand in
for ``requests.Session`` so unit tests never touch the network.

Key SDET Concepts Demonstrated:
- Fixture scoping (session vs. function) for performance and isolation
- A threaded live server as a controllable system dependency
- Stub objects that satisfy the ``requests`` interface contract
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Generator

import pytest
from flask import Flask, Response, request
from werkzeug.serving import make_server

os.environ["FLASK_ENV"] = "testing"
os.environ["TEST_DEFAULT_REQUEST_TIMEOUT"] = "1"

from engine_app import create_app
from tests.helpers import FakeSession


# -----------------------------------------------------------------------------
# Control API Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="function")
def app():
    """
    Provide a fresh control app per test.

    Function scope (rather than session) gives every test an empty run
    registry, so a run left over from one test can never cause a 409 in
    the next.  Any run still active at teardown is stopped.
    """
    application = create_app("testing")
    yield application

    registry = application.extensions["run_registry"]
    engine = registry.active()
    if engine is not None:
        engine.stop()
    registry.join(timeout=5)


@pytest.fixture(scope="function")
def client(app):
    """Provide a Flask test client scoped to a single test function."""
    with app.test_client() as test_client:
        yield test_client


# -----------------------------------------------------------------------------
# Live Target Server
# -----------------------------------------------------------------------------

def _build_target_app() -> Flask:
    target = Flask("load_target")

    @target.route("/ok")
    def ok():
        return "OK", 200

    @target.route("/fail")
    def fail():
        return "boom", 500

    @target.route("/slow")
    def slow():
        time.sleep(float(request.args.get("seconds", "0.3")))
        return "slow OK", 200

    @target.route("/hang")
    def hang():
        # Outlives any per-request timeout used by the tests.
        time.sleep(float(request.args.get("seconds", "2")))
        return "too late", 200

    @target.route("/drip")
    def drip():
        # Headers arrive at once; the body trickles in one byte per interval.
        seconds = float(request.args.get("seconds", "2"))
        interval = float(request.args.get("interval", "0.25"))

        def generate():
            for _ in range(int(seconds / interval)):
                time.sleep(interval)
                yield b"."

        return Response(generate(), mimetype="text/plain")

    return target


@pytest.fixture(scope="session")
def target_server() -> Generator[str, None, None]:
    """
    Start a threaded HTTP target on an ephemeral port for the session.

    Yields:
        str: Base URL of the running server, without a trailing slash.
    """
    server = make_server("127.0.0.1", 0, _build_target_app(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{server.server_port}"

    server.shutdown()


# -----------------------------------------------------------------------------
# requests Fakes
# -----------------------------------------------------------------------------

@pytest.fixture
def fake_session() -> FakeSession:
    """A fake session whose requests all succeed with HTTP 200."""
    return FakeSession()
