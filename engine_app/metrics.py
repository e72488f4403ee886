"""
Thread-safe metrics store for a single load-test run.

Every mutation and every read goes through one ``threading.Lock`` held for
the minimum critical section, so a reader can never observe ``requests``
incremented without the matching success or error increment.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from .models import Metrics, Outcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MetricsStore:
    """Mutable counters and timestamps of one run, guarded by a single lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests = 0
        self._successes = 0
        self._errors = 0
        self._total_latency = 0.0
        self._started_at: datetime | None = None
        self._ended_at: datetime | None = None
        self._in_flight = 0
        self._skipped = 0

    def mark_started(self, at: datetime | None = None) -> None:
        with self._lock:
            self._started_at = at or _utcnow()

    def mark_finished(self, at: datetime | None = None) -> bool:
        """
        Record the end timestamp.

        Only the first call has an effect; later calls leave the recorded
        value untouched.

        Returns:
            ``True`` if this call recorded the end timestamp.
        """
        with self._lock:
            if self._ended_at is not None:
                return False
            self._ended_at = at or _utcnow()
            return True

    def mark_dispatched(self) -> None:
        with self._lock:
            self._in_flight += 1

    def mark_skipped(self) -> None:
        with self._lock:
            self._skipped += 1

    def record(self, outcome: Outcome, latency: float) -> None:
        """
        Apply one complete request outcome as a single atomic update.

        Args:
            outcome: Whether the request succeeded or failed.
            latency: Wall-clock seconds from dispatch to completion.
        """
        with self._lock:
            self._requests += 1
            self._total_latency += latency
            if outcome is Outcome.SUCCESS:
                self._successes += 1
            else:
                self._errors += 1
            if self._in_flight > 0:
                self._in_flight -= 1

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def snapshot(self) -> Metrics:
        """Return a consistent copy of every field, taken under the lock."""
        with self._lock:
            return Metrics(
                requests=self._requests,
                successes=self._successes,
                errors=self._errors,
                total_latency=self._total_latency,
                started_at=self._started_at,
                ended_at=self._ended_at,
                in_flight=self._in_flight,
                skipped=self._skipped,
            )
