"""Bounded, insertion-ordered store of accepted logcat entries."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Iterator, Tuple

from config.constants import LogcatConstants

from .models import LogcatEntry


class EntryBuffer:
    """FIFO buffer that evicts the oldest entry once capacity is reached.

    Writes come from the stream-consuming thread only; readers on any thread
    get a snapshot taken under the lock, never a half-applied push.
    """

    def __init__(self, capacity: int = LogcatConstants.DEFAULT_MAX_ENTRIES) -> None:
        if capacity <= 0:
            raise ValueError(f'Entry buffer capacity must be positive, got {capacity}')
        self._capacity = capacity
        self._entries: Deque[LogcatEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._evicted_count = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted_count(self) -> int:
        return self._evicted_count

    def push(self, entry: LogcatEntry) -> None:
        with self._lock:
            if len(self._entries) == self._capacity:
                self._evicted_count += 1
            self._entries.append(entry)

    def clear(self) -> None:
        """Drop every retained entry (the device-side buffer is untouched)."""
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> Tuple[LogcatEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[LogcatEntry]:
        return iter(self.snapshot())
