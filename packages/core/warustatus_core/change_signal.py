"""Coalescing wake-up between the scheduler and its single consumer."""

from __future__ import annotations

import threading


class ChangeSignal:
    """Notify, don't enqueue.

    Any number of ``notify()`` calls made before the consumer gets around to
    ``wait_and_clear()`` collapse into a single wake. The consumer is then
    expected to read the current state of every slot rather than replay
    individual publications.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = False

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending

    def notify(self) -> None:
        with self._cond:
            self._pending = True
            self._cond.notify_all()

    def wait_and_clear(self, timeout: float | None = None) -> bool:
        """Block until a notify is pending, then clear it.

        Returns ``False`` if ``timeout`` elapsed with nothing pending.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._pending, timeout=timeout):
                return False
            self._pending = False
            return True
