"""
Data model for load-test runs.

Defines the immutable run configuration, the metrics snapshot returned to
callers, and the enumerations for request outcomes and engine lifecycle
states.

Key Concepts Demonstrated:
- Frozen dataclasses as value objects with constructor-time validation
- ``str, Enum`` inheritance for JSON-friendly enumeration values
- Timezone-aware datetime handling (UTC normalisation)
- Serialisation helper (``to_dict``) for JSON API responses
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from .errors import ConfigurationError

NANOSECONDS_PER_SECOND = 1_000_000_000


class Outcome(str, Enum):
    """Classification of one completed request."""

    SUCCESS = "success"
    ERROR = "error"


class EngineState(str, Enum):
    """
    Lifecycle states of a load engine.

    Transitions only go forward: ``IDLE -> RUNNING -> STOPPED`` (or
    ``IDLE -> STOPPED`` when stopped before starting).  ``STOPPED`` is
    terminal.
    """

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def _is_number(value: Any) -> bool:
    # bool is an int subclass, but True is not a duration.
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class LoadTestConfig:
    """
    Immutable configuration of one load-test run.

    Attributes:
        target: Absolute ``http``/``https`` URL every request is sent to.
        rate: Requests per second; must be a positive integer.
        duration: Total run time in seconds.
        timeout: Per-request deadline in seconds.
        max_in_flight: Optional cap on concurrently in-flight requests.
            ``None`` keeps unbounded fan-out.

    Raises:
        ConfigurationError: If any field is invalid.  Validation runs in
            the constructor so an invalid configuration never reaches an
            engine.
    """

    target: str
    rate: int
    duration: float
    timeout: float
    max_in_flight: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.target, str) or not self.target.strip():
            raise ConfigurationError("'target' is required")
        try:
            parsed = urlparse(self.target)
        except ValueError as exc:
            raise ConfigurationError("'target' must be an absolute http(s) URL") from exc
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError("'target' must be an absolute http(s) URL")

        if isinstance(self.rate, bool) or not isinstance(self.rate, int):
            raise ConfigurationError("'rate' must be an integer")
        if self.rate <= 0:
            raise ConfigurationError("'rate' must be greater than zero")

        for field_name in ("duration", "timeout"):
            value = getattr(self, field_name)
            if not _is_number(value) or value <= 0:
                raise ConfigurationError(f"'{field_name}' must be a positive duration")

        if self.max_in_flight is not None:
            if (
                isinstance(self.max_in_flight, bool)
                or not isinstance(self.max_in_flight, int)
                or self.max_in_flight < 1
            ):
                raise ConfigurationError("'max_in_flight' must be a positive integer")

    @property
    def period(self) -> float:
        """Seconds between two consecutive ticks."""
        return 1.0 / self.rate

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        default_timeout: float,
        max_in_flight: int | None = None,
    ) -> LoadTestConfig:
        """
        Build a configuration from a control-API JSON payload.

        ``duration`` and ``timeout`` are integer nanoseconds on the wire,
        matching the format existing clients already send.

        Args:
            payload: The deserialised JSON request body.
            default_timeout: Per-request timeout in seconds used when the
                payload omits ``timeout``.
            max_in_flight: Concurrency cap applied to the run.

        Returns:
            A validated ``LoadTestConfig``.

        Raises:
            ConfigurationError: If the payload is not an object, a field
                is missing, or a value has the wrong type.
        """
        if not isinstance(payload, dict):
            raise ConfigurationError("Request body must be a JSON object")

        for field_name in ("target", "rate", "duration"):
            if payload.get(field_name) is None:
                raise ConfigurationError(f"'{field_name}' is required")

        duration_ns = payload["duration"]
        timeout_ns = payload.get("timeout")
        if not _is_number(duration_ns):
            raise ConfigurationError("'duration' must be a number of nanoseconds")
        if timeout_ns is not None and not _is_number(timeout_ns):
            raise ConfigurationError("'timeout' must be a number of nanoseconds")

        timeout = (
            timeout_ns / NANOSECONDS_PER_SECOND if timeout_ns is not None else default_timeout
        )
        return cls(
            target=payload["target"],
            rate=payload["rate"],
            duration=duration_ns / NANOSECONDS_PER_SECOND,
            timeout=timeout,
            max_in_flight=max_in_flight,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise back to the wire format (durations in nanoseconds)."""
        return {
            "target": self.target,
            "rate": self.rate,
            "duration": int(round(self.duration * NANOSECONDS_PER_SECOND)),
            "timeout": int(round(self.timeout * NANOSECONDS_PER_SECOND)),
            "max_in_flight": self.max_in_flight,
        }


@dataclass(frozen=True)
class Metrics:
    """
    Point-in-time snapshot of a run's counters.

    Attributes:
        requests: Completed requests (successes plus errors).
        successes: Requests that completed with a status below 400.
        errors: Transport failures and responses with status 400 or above.
        total_latency: Sum of per-request latencies, in seconds.
        started_at: When the run started (UTC), or ``None`` if never started.
        ended_at: When the run terminated (UTC), or ``None`` while running.
        in_flight: Requests dispatched but not yet recorded.
        skipped: Ticks not dispatched because the concurrency cap was reached.
    """

    requests: int = 0
    successes: int = 0
    errors: int = 0
    total_latency: float = 0.0
    started_at: datetime | None = None
    ended_at: datetime | None = None
    in_flight: int = 0
    skipped: int = 0

    @property
    def average_latency(self) -> float:
        """Mean latency in seconds, ``0.0`` before the first request completes."""
        if not self.requests:
            return 0.0
        return self.total_latency / self.requests

    @staticmethod
    def _to_utc_iso(value: datetime | None) -> str | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the snapshot to a JSON-serialisable dictionary.

        Keys ``success``, ``error_count`` and ``total_latency`` (integer
        nanoseconds) keep the shape existing dashboards poll for.
        """
        return {
            "requests": self.requests,
            "success": self.successes,
            "error_count": self.errors,
            "total_latency": int(round(self.total_latency * NANOSECONDS_PER_SECOND)),
            "average_latency_ms": round(self.average_latency * 1000, 3),
            "start_time": self._to_utc_iso(self.started_at),
            "end_time": self._to_utc_iso(self.ended_at),
            "in_flight": self.in_flight,
            "skipped": self.skipped,
        }
