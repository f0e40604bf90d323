"""
Single-consumer aggregation of probe results.
"""

import threading
from datetime import datetime
from typing import Callable, List, Optional

from ollama_checker.utils.logging import get_logger
from .models import ProbeResult, RunSummary
from .thread_safe import ThreadSafeQueue, CLOSED


logger = get_logger(__name__)

# on_progress(result, processed, expected, failed)
ProgressHook = Callable[[ProbeResult, int, int, int], None]


class ResultAggregator:
    """
    Drains the result queue on one thread and keeps the run counters.

    Only the consumer thread touches the counters while the run is in
    progress; they are read by other threads after ``join()``.
    """

    def __init__(self, result_queue: ThreadSafeQueue, expected_total: int,
                 on_progress: Optional[ProgressHook] = None):
        self.result_queue = result_queue
        self.expected_total = expected_total
        self.on_progress = on_progress

        self.processed = 0
        self.succeeded = 0
        self.failed = 0
        self.successful_results: List[ProbeResult] = []
        self.failed_results: List[ProbeResult] = []

        self.started_at = datetime.now()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the consumer thread."""
        self._thread = threading.Thread(target=self.run, name="ResultAggregator", daemon=True)
        self._thread.start()

    def run(self) -> None:
        """Consume results until the queue is closed."""
        while True:
            item = self.result_queue.get()
            if item is CLOSED:
                break
            self.consume(item)

        logger.debug(f"Aggregator finished: {self.processed} results")

    def consume(self, result: ProbeResult) -> None:
        """Account for one probe result and emit a progress observation."""
        self.processed += 1
        if result.healthy:
            self.succeeded += 1
            self.successful_results.append(result)
        else:
            self.failed += 1
            self.failed_results.append(result)

        if self.on_progress is not None:
            try:
                self.on_progress(result, self.processed, self.expected_total, self.failed)
            except Exception as e:
                logger.warning(f"Progress hook failed: {e}")

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the consumer thread.

        Returns:
            True if the consumer finished
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def build_summary(self, requested: Optional[int] = None, cancelled: bool = False) -> RunSummary:
        """Build the final run summary. Call only after the consumer has finished."""
        return RunSummary(
            requested=self.expected_total if requested is None else requested,
            total=self.processed,
            succeeded=self.succeeded,
            failed=self.failed,
            successful_results=list(self.successful_results),
            failed_results=list(self.failed_results),
            cancelled=cancelled,
            started_at=self.started_at,
            completed_at=datetime.now()
        )
