"""
Polarization Stream Processing Engine - Inter-Stage Channel

Single-producer/single-consumer FIFO connecting adjacent pipeline stages.
"""

from __future__ import annotations

import queue
import threading
import time
from collections import deque
from typing import Generic, TypeVar

from polstream.core.errors import ChannelDisconnected

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised by ``recv`` once the channel is closed and fully drained."""


class Channel(Generic[T]):
    """
    Ordered, closable queue between two pipeline stages.

    Implements the producer-consumer hand-off for one stage boundary:
    - Producer: ``send`` items in arrival order, ``close`` at end of stream
    - Consumer: ``recv`` with a bounded wait so it can poll for cancellation

    Features:
    - Unbounded by default (``maxsize=0``)
    - Optional bound with overflow handling (``"block"`` or ``"drop_oldest"``)
    - ``close`` wakes every blocked sender and receiver
    - Items still queued at close time remain readable

    Usage:
        ch = Channel(name="pca->filter")

        # Producer thread
        ch.send(sample)
        ch.close()

        # Consumer thread
        try:
            item = ch.recv(timeout=0.1)
        except queue.Empty:
            ...  # nothing yet, check cancellation and retry
        except ChannelClosed:
            ...  # upstream finished
    """

    def __init__(self, maxsize: int = 0, overflow_policy: str = "block", name: str = ""):
        """
        Initialize the channel.

        Args:
            maxsize: Maximum queued items (0 = unbounded).
            overflow_policy: How to handle a full bounded channel ("block" or "drop_oldest").
            name: Label used in logs and status reports.
        """
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        if overflow_policy not in ("block", "drop_oldest"):
            raise ValueError(f"Unknown overflow policy: {overflow_policy}")

        self._maxsize = maxsize
        self._overflow_policy = overflow_policy
        self._name = name
        self._items: deque[T] = deque()
        self._closed = False

        # Statistics
        self._sent = 0
        self._received = 0
        self._dropped = 0

        # Threading
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def send(self, item: T, timeout: float | None = None) -> None:
        """
        Append an item.

        Args:
            item: Value to enqueue.
            timeout: Maximum wait on a full channel with "block" policy (None = forever).

        Raises:
            ChannelDisconnected: If the channel has been closed.
            TimeoutError: If a blocking send did not get room in time.
        """
        with self._not_full:
            if self._closed:
                raise ChannelDisconnected(f"Channel {self._name!r} is closed", channel=self._name)

            if self._maxsize:
                deadline = None if timeout is None else time.monotonic() + timeout
                while len(self._items) >= self._maxsize:
                    if self._overflow_policy == "drop_oldest":
                        self._items.popleft()
                        self._dropped += 1
                        continue
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        raise TimeoutError(f"Timeout sending on channel {self._name!r}")
                    self._not_full.wait(remaining)
                    if self._closed:
                        raise ChannelDisconnected(
                            f"Channel {self._name!r} closed while sending", channel=self._name
                        )

            self._items.append(item)
            self._sent += 1
            self._not_empty.notify()

    def recv(self, timeout: float | None = None) -> T:
        """
        Pop the oldest item.

        Args:
            timeout: Maximum wait for an item (None = forever).

        Returns:
            The oldest queued item.

        Raises:
            queue.Empty: If nothing arrived within ``timeout``.
            ChannelClosed: If the channel is closed and drained.
        """
        with self._not_empty:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._items:
                if self._closed:
                    raise ChannelClosed(self._name)
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise queue.Empty
                self._not_empty.wait(remaining)

            item = self._items.popleft()
            self._received += 1
            self._not_full.notify()
            return item

    def close(self) -> None:
        """Mark end of stream and wake all waiters. Idempotent."""
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def get_status(self) -> dict:
        """Get channel statistics."""
        with self._lock:
            return {
                "name": self._name,
                "queued": len(self._items),
                "sent": self._sent,
                "received": self._received,
                "dropped": self._dropped,
                "closed": self._closed,
                "maxsize": self._maxsize,
            }
