"""
Registry of the control surface's "current run".

The control API allows one active run at a time.  ``RunRegistry`` owns that
single, lock-guarded slot so the engine itself stays free of global state.
The slot keeps the most recent engine after it finishes so its final
metrics remain readable until the next run replaces it.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable

import requests

from .engine import LoadEngine
from .errors import EngineAlreadyStartedError, NoActiveRunError, RunInProgressError
from .models import EngineState, LoadTestConfig

logger = logging.getLogger(__name__)


def _is_active(engine: LoadEngine | None) -> bool:
    # A freshly launched engine may still be idle for an instant before its
    # thread calls start(); it already owns the slot.
    return engine is not None and engine.state is not EngineState.STOPPED


class RunRegistry:
    """
    Single-slot holder of the latest load engine.

    Args:
        session_factory: Optional factory for the HTTP session handed to
            each new engine.  When omitted each engine creates (and later
            closes) its own session.
    """

    def __init__(self, session_factory: Callable[[], requests.Session] | None = None) -> None:
        self._lock = threading.Lock()
        self._engine: LoadEngine | None = None
        self._thread: threading.Thread | None = None
        self._session_factory = session_factory
        self._run_ids = itertools.count(1)

    def launch(self, config: LoadTestConfig) -> LoadEngine:
        """
        Create an engine for ``config`` and start it on a background thread.

        Raises:
            RunInProgressError: If the current engine has not stopped yet.
        """
        with self._lock:
            if _is_active(self._engine):
                raise RunInProgressError("Attack already in progress")

            name = f"run-{next(self._run_ids)}"
            session = self._session_factory() if self._session_factory else None
            engine = LoadEngine(config, session=session, name=name)
            thread = threading.Thread(target=self._run, args=(engine,), name=name, daemon=True)
            self._engine = engine
            self._thread = thread
            thread.start()

        logger.info("Launched run '%s' against %s", name, config.target)
        return engine

    @staticmethod
    def _run(engine: LoadEngine) -> None:
        try:
            engine.start()
        except EngineAlreadyStartedError:
            # Stopped through the registry before the thread got to start().
            logger.info("Run '%s' was stopped before it started", engine.name)
        except Exception:
            logger.exception("Run '%s' failed", engine.name)

    def current(self) -> LoadEngine | None:
        """Return the latest engine, running or finished."""
        with self._lock:
            return self._engine

    def active(self) -> LoadEngine | None:
        """Return the latest engine only while it has not stopped."""
        engine = self.current()
        return engine if _is_active(engine) else None

    def stop(self) -> LoadEngine:
        """
        Stop the active run.

        Returns:
            The engine that was stopped.

        Raises:
            NoActiveRunError: If no run is currently active.
        """
        engine = self.active()
        if engine is None:
            raise NoActiveRunError("No active attack")
        engine.stop()
        return engine

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the latest run's thread to finish; ``True`` if it did."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()
