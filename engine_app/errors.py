"""
Exception taxonomy for the load-generation engine.

Only configuration-time and lifecycle-misuse errors are raised to callers.
Per-request failures (timeouts, refused connections, HTTP >= 400) never
appear here: they are absorbed into the error counter of the run metrics.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all errors raised by the engine and its registry."""


class ConfigurationError(EngineError, ValueError):
    """A load-test configuration or job payload failed validation."""


class EngineAlreadyStartedError(EngineError):
    """``start()`` was called on an engine that has already left the idle state."""


class RunInProgressError(EngineError):
    """A new run was requested while another one is still active."""


class NoActiveRunError(EngineError):
    """An operation needed an active run but none is running."""
