"""
Single-flight coordination for bulk checks.

At most one bulk check may run at a time. A second request while one is in
flight is rejected immediately; there is no queueing.
"""

from __future__ import annotations

import threading


class GuardToken:
    """
    Proof that a bulk check is in progress.

    Use as a context manager so the guard is released on every exit path.
    Releasing twice is harmless.
    """

    def __init__(self, guard: SingleFlightGuard):
        self._guard: SingleFlightGuard | None = guard

    @property
    def active(self) -> bool:
        return self._guard is not None

    def release(self) -> None:
        guard, self._guard = self._guard, None
        if guard is not None:
            guard._release()

    def __enter__(self) -> GuardToken:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __del__(self) -> None:
        self.release()


class SingleFlightGuard:
    """
    Process-wide mutual exclusion flag for bulk operations.

    Construct one at startup and share it with every orchestrator.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def try_acquire(self) -> GuardToken | None:
        """
        Atomically test-and-set the flag.

        Returns:
            A live GuardToken if the flag was free, otherwise None
        """
        with self._lock:
            if self._running:
                return None
            self._running = True
        return GuardToken(self)

    def _release(self) -> None:
        with self._lock:
            self._running = False
