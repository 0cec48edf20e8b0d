"""Latest-value broadcast cell shared between the scheduler and the renderer."""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class LatestValueSlot(Generic[T]):
    """Holds the most recent value of one metric together with a version.

    Value and version are stored as one tuple and swapped by a single
    reference assignment, so readers take no lock and never see a value
    paired with the wrong version. The lock only orders publishers.
    """

    def __init__(self, initial: T, name: str = "") -> None:
        self.name = name
        self._publish_lock = threading.Lock()
        self._state: tuple[T, int] = (initial, 0)

    def publish(self, value: T) -> int:
        with self._publish_lock:
            version = self._state[1] + 1
            self._state = (value, version)
        return version

    def read(self) -> T:
        return self._state[0]

    def snapshot(self) -> tuple[T, int]:
        return self._state

    @property
    def version(self) -> int:
        return self._state[1]

    def view(self) -> SlotView[T]:
        return SlotView(self)

    def __repr__(self) -> str:
        value, version = self._state
        return f"LatestValueSlot(name={self.name!r}, version={version}, value={value!r})"


class SlotView(Generic[T]):
    """Read-only handle on a slot; consumers never get the publish side."""

    __slots__ = ("_slot",)

    def __init__(self, slot: LatestValueSlot[T]) -> None:
        self._slot = slot

    @property
    def name(self) -> str:
        return self._slot.name

    def read(self) -> T:
        return self._slot.read()

    def snapshot(self) -> tuple[T, int]:
        return self._slot.snapshot()

    @property
    def version(self) -> int:
        return self._slot.version
