"""
Request worker: one outbound GET, timed and classified.

Each tick of the scheduler runs one ``RequestWorker`` call on its own
thread.  The worker never retries and never raises for per-request
failures; every attempt ends as exactly one atomic update of the metrics
store.

Key Concepts Demonstrated:
- Shared ``requests.Session`` for connection pooling across workers
- Monotonic-clock latency measurement
- Always draining and closing the response so the connection is reusable
"""

from __future__ import annotations

import logging
import time

import requests

from .metrics import MetricsStore
from .models import Outcome

logger = logging.getLogger(__name__)

# Chunk size used while discarding response bodies.
DRAIN_CHUNK_SIZE = 64 * 1024


def classify_status(status_code: int) -> Outcome:
    """Map an HTTP status code to an outcome: anything >= 400 is an error."""
    return Outcome.ERROR if status_code >= 400 else Outcome.SUCCESS


class RequestWorker:
    """
    Callable that performs a single GET against the run's target.

    Args:
        target: URL to request.
        timeout: Per-request deadline in seconds.  It bounds connecting,
            every read and the whole exchange including the body.
        store: Metrics store that receives the outcome.
        session: HTTP session shared by all workers of the run.
    """

    def __init__(
        self,
        target: str,
        timeout: float,
        store: MetricsStore,
        session: requests.Session,
    ) -> None:
        self.target = target
        self.timeout = timeout
        self.store = store
        self.session = session

    def __call__(self) -> Outcome:
        started = time.perf_counter()
        try:
            outcome = self._fetch(started + self.timeout)
        except requests.RequestException as exc:
            # Transport failures (timeout, refused, DNS) count as errors.
            logger.debug("GET %s failed: %s", self.target, exc)
            outcome = Outcome.ERROR
        except Exception:
            # Every dispatched request is recorded exactly once.
            logger.exception("GET %s failed unexpectedly", self.target)
            outcome = Outcome.ERROR
        latency = time.perf_counter() - started

        self.store.record(outcome, latency)
        return outcome

    def _fetch(self, deadline: float) -> Outcome:
        # requests only bounds connect and each individual read, so the
        # total deadline is enforced while the body is drained.
        timeout = (self.timeout, self.timeout)
        with self.session.get(self.target, timeout=timeout, stream=True) as response:
            # Discard the body regardless of status so the pooled
            # connection can be reused.
            for _ in response.iter_content(chunk_size=DRAIN_CHUNK_SIZE):
                if time.perf_counter() > deadline:
                    logger.debug(
                        "GET %s exceeded its %.3fs deadline", self.target, self.timeout
                    )
                    return Outcome.ERROR
            logger.debug("GET %s -> %s", self.target, response.status_code)
            return classify_status(response.status_code)
