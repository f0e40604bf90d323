"""
Thread-safe data structures for the worker pool.
"""

import queue
import threading
from typing import Any, Optional


class _Closed:
    """Sentinel marking the end of a closed queue."""

    def __repr__(self) -> str:
        return "<CLOSED>"


CLOSED = _Closed()


class QueueClosedError(RuntimeError):
    """Raised when putting into a closed queue."""
    pass


class ThreadSafeCounter:
    """Thread-safe counter with atomic operations."""

    def __init__(self, initial_value: int = 0):
        """
        Initialize counter with initial value.

        Args:
            initial_value: Starting value for the counter
        """
        self._value = initial_value
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """
        Atomically increment counter and return new value.

        Args:
            amount: Amount to increment by (default: 1)

        Returns:
            New counter value after increment
        """
        with self._lock:
            self._value += amount
            return self._value

    def get_value(self) -> int:
        """Get current counter value."""
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"ThreadSafeCounter(value={self.get_value()})"


class ThreadSafeQueue:
    """
    Thread-safe FIFO hand-off between producers and consumers.

    ``close(consumers)`` enqueues one ``CLOSED`` sentinel per consumer after
    the real items, so every consumer drains what was queued before it and
    then sees the end of the stream exactly once. Items put after close are
    rejected. The closed check and the enqueue happen under one lock, so an
    accepted item can never land behind a sentinel.
    """

    def __init__(self, maxsize: int = 0):
        """
        Initialize thread-safe queue.

        Args:
            maxsize: Maximum queue size (0 for unlimited)
        """
        self._queue = queue.Queue(maxsize)
        self._lock = threading.Lock()
        self._closed = False

    def put(self, item: Any, timeout: Optional[float] = None) -> None:
        """
        Put item into queue.

        Args:
            item: Item to put in queue
            timeout: Optional timeout in seconds

        Raises:
            queue.Full: If queue is full and timeout expires
            QueueClosedError: If the queue has been closed
        """
        with self._lock:
            if self._closed:
                raise QueueClosedError("put() on a closed queue")
            self._queue.put(item, timeout=timeout)

    def get(self, timeout: Optional[float] = None) -> Any:
        """
        Get item from queue.

        Args:
            timeout: Optional timeout in seconds

        Returns:
            Next item, or ``CLOSED`` once the queue is closed and drained

        Raises:
            queue.Empty: If queue is empty and timeout expires
        """
        return self._queue.get(timeout=timeout)

    def close(self, consumers: int = 1) -> None:
        """
        Close the queue for writing and wake ``consumers`` readers.

        Args:
            consumers: Number of consumers that will read the end marker
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for _ in range(consumers):
                self._queue.put(CLOSED)
