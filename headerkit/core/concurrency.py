"""
Synchronization primitives for the install fan-out.

The finalization step of an install runs several independent tasks at once
(legacy file copy, marker write, import library download). Two small
primitives coordinate them:

- CompletionGate: a one-shot latch. The first call to fire() records the
  outcome; every later call is a no-op.
- JoinCounter: a wait-group initialized to the number of scheduled tasks.
  Reaching zero means every task has settled.

Usage:
    gate = CompletionGate()
    counter = JoinCounter(len(tasks))
    ...
    # in each task's completion callback
    if error:
        gate.fire(error)
    counter.settle()
"""

import threading
from typing import Optional


class CompletionGate:
    """
    One-shot completion latch.

    Holds either nothing (still open), a success outcome or the first error.
    Thread-safe: fire() checks and sets the fired flag under a lock before
    recording anything.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: Optional[BaseException] = None

    def fire(self, error: Optional[BaseException] = None) -> bool:
        """
        Record the outcome if the gate is still open.

        Args:
            error: The failure, or None for success

        Returns:
            True if this call fired the gate, False if it had already fired
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._error = error
            self._event.set()
            return True

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the gate fires. Returns False on timeout."""
        return self._event.wait(timeout)


class JoinCounter:
    """
    Counter of outstanding sub-operations.

    Initialized to the exact number of scheduled operations; each settles
    exactly once. wait() returns when the count reaches zero.
    """

    def __init__(self, count: int):
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        self._count = count
        self._cond = threading.Condition()

    @property
    def outstanding(self) -> int:
        with self._cond:
            return self._count

    def settle(self) -> int:
        """
        Mark one operation as settled.

        Returns:
            Remaining outstanding operations

        Raises:
            RuntimeError: If called more times than the initial count
        """
        with self._cond:
            if self._count == 0:
                raise RuntimeError("settle() called with no outstanding operations")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()
            return self._count

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every operation has settled. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout)


__all__ = ["CompletionGate", "JoinCounter"]
