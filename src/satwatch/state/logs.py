"""Bounded, append-only per-asset logs."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class BoundedLog(Generic[T]):
    """Append-only sequence capped at ``capacity`` entries.

    Appending beyond capacity evicts the oldest entry (strict FIFO).
    """

    __slots__ = ("_entries",)

    def __init__(self, capacity: int, entries: Iterable[T] = ()) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._entries: deque[T] = deque(entries, maxlen=capacity)

    @property
    def capacity(self) -> int:
        maxlen = self._entries.maxlen
        assert maxlen is not None  # noqa: S101
        return maxlen

    def append(self, entry: T) -> T | None:
        """Append *entry*; return the evicted entry, if any."""
        evicted = self._entries[0] if len(self._entries) == self.capacity else None
        self._entries.append(entry)
        return evicted

    def all(self) -> list[T]:
        """All retained entries, oldest first."""
        return list(self._entries)

    def latest(self) -> T | None:
        return self._entries[-1] if self._entries else None

    def copy(self) -> BoundedLog[T]:
        """Shallow copy; entries are immutable and shared."""
        return BoundedLog(self.capacity, self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"BoundedLog(capacity={self.capacity}, size={len(self._entries)})"
