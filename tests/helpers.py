"""
Test helpers shared by the engine test suites.

Includes a polling helper for asserting on asynchronous outcomes and
lightweight fakes for ``requests.Session`` so unit tests never open a
socket.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it returns True or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class FakeResponse:
    """Stand-in for a streamed ``requests.Response`` that tracks draining."""

    def __init__(self, status_code: int = 200, chunks: tuple[bytes, ...] = (b"OK",)):
        self.status_code = status_code
        self._chunks = chunks
        self.consumed = 0
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        for chunk in self._chunks:
            self.consumed += 1
            yield chunk

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FakeSession:
    """
    Stand-in for ``requests.Session``.

    ``get`` either raises ``error`` or returns a ``FakeResponse`` with
    ``status_code`` whose body is streamed as ``chunks``.  When ``gate``
    is given, every call blocks until the gate is set, simulating
    requests that are still in flight.
    """

    def __init__(
        self,
        status_code: int = 200,
        error: Exception | None = None,
        gate=None,
        chunks: tuple[bytes, ...] = (b"OK",),
    ):
        self.status_code = status_code
        self.chunks = chunks
        self.error = error
        self.gate = gate
        self.calls: list[dict] = []
        self.responses: list[FakeResponse] = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, **kwargs):
        with self._lock:
            self.calls.append({"url": url, **kwargs})
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        response = FakeResponse(self.status_code, self.chunks)
        with self._lock:
            self.responses.append(response)
        return response

    def close(self) -> None:
        self.closed = True

