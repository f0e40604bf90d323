"""
Health check controller.
Wires the job queue, worker pool and aggregator together for one run.
"""

import threading
import time
from typing import List, Optional, Sequence, TYPE_CHECKING

from ollama_checker.config import CheckerConfig
from ollama_checker.utils.errors import PoolError
from ollama_checker.utils.logging import get_logger
from .aggregator import ResultAggregator, ProgressHook
from .models import RunSummary
from .pool_sizer import WorkerStrategy, build_pool_config
from .thread_pool import ThreadPoolManager
from .thread_safe import ThreadSafeQueue

if TYPE_CHECKING:
    from ollama_checker.probes.prober import Prober


logger = get_logger(__name__)


class HealthCheckController:
    """
    Runs one health check over a list of endpoints.

    Without a deadline every endpoint is probed exactly once. With
    ``config.run.deadline_seconds`` set, or after ``cancel()``, workers stop
    claiming new endpoints; probes already in flight finish on their own
    request timeout and are counted, and endpoints never claimed are
    reported as abandoned in the summary.

    A controller can be run again once a run has returned. Every run gets a
    fresh cancel event, so a cancellation or deadline ends that run only; a
    ``cancel()`` issued between runs applies to the next one.
    """

    def __init__(self,
                 config: Optional[CheckerConfig] = None,
                 prober: Optional["Prober"] = None,
                 strategy: Optional[WorkerStrategy] = None,
                 on_progress: Optional[ProgressHook] = None):
        """
        Initialize controller.

        Args:
            config: Checker configuration
            prober: Prober to use (one is created per run if omitted)
            strategy: Worker-count strategy (defaults to the configured one)
            on_progress: Progress hook called by the aggregator after each result
        """
        self.config = config or CheckerConfig()
        self.prober = prober
        self.strategy = strategy
        self.on_progress = on_progress

        self._cancel_event = threading.Event()
        self._pool: Optional[ThreadPoolManager] = None
        self._deadline_reached = False
        self._run_lock = threading.Lock()

    def cancel(self) -> None:
        """Request cancellation of the current run, or of the next one between runs. Safe to call from signal handlers."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def deadline_reached(self) -> bool:
        return self._deadline_reached

    def get_pool_stats(self) -> dict:
        return self._pool.get_pool_stats() if self._pool else {}

    def run(self, endpoints: Sequence[str]) -> RunSummary:
        """
        Probe all endpoints and return the aggregated summary.

        Args:
            endpoints: Endpoint base URLs, each dispatched once

        Raises:
            PoolError: If another run on this controller is still in progress
            ValidationError: If the worker strategy yields an out-of-range pool size
        """
        if not self._run_lock.acquire(blocking=False):
            raise PoolError("A run is already in progress on this controller")

        try:
            self._deadline_reached = False
            return self._run(endpoints)
        finally:
            self._cancel_event = threading.Event()
            self._run_lock.release()

    def _run(self, endpoints: Sequence[str]) -> RunSummary:
        endpoints: List[str] = list(endpoints)
        task_count = len(endpoints)

        if task_count == 0:
            logger.info("No endpoints to check")
            summary = RunSummary(requested=0)
            summary.completed_at = summary.started_at
            return summary

        pool_config = build_pool_config(task_count, self.config, self.strategy)
        logger.info(f"Starting check: {task_count} endpoints, {pool_config.worker_count} workers")

        # Import here to avoid circular import
        from ollama_checker.probes.prober import Prober

        owns_prober = self.prober is None
        prober = self.prober or Prober(self.config.probe, pool_size=pool_config.worker_count)

        # Capacities cover every item plus close markers, so puts never block
        job_queue = ThreadSafeQueue(maxsize=task_count + pool_config.worker_count)
        result_queue = ThreadSafeQueue(maxsize=task_count + 1)

        aggregator = ResultAggregator(result_queue, task_count, self.on_progress)
        pool = ThreadPoolManager(pool_config)
        pool.initialize(job_queue, result_queue, prober.probe, self._cancel_event)
        self._pool = pool

        try:
            aggregator.start()
            pool.create_workers()
            pool.start_workers()

            for endpoint in endpoints:
                job_queue.put(endpoint)
            job_queue.close(consumers=pool_config.worker_count)

            self._wait_for_workers(pool, pool_config.queue_poll_interval)
        finally:
            result_queue.close()
            if not aggregator.join(pool_config.shutdown_grace):
                logger.error("Result aggregator did not finish within the grace period")
            if owns_prober:
                prober.close()

        summary = aggregator.build_summary(requested=task_count, cancelled=self._cancel_event.is_set())
        logger.info(
            f"Check finished: {summary.succeeded} healthy, {summary.failed} unhealthy, "
            f"{summary.abandoned} abandoned"
        )
        logger.debug(f"Pool stats: {pool.get_pool_stats()}")
        return summary

    def _wait_for_workers(self, pool: ThreadPoolManager, poll_interval: float) -> bool:
        """Join the pool, enforcing the run deadline and explicit cancellation."""
        deadline_seconds = self.config.run.deadline_seconds
        deadline_at = None if deadline_seconds is None else time.monotonic() + deadline_seconds

        while pool.is_running():
            if self._cancel_event.is_set():
                logger.warning("Run cancelled, waiting for in-flight probes")
                return pool.shutdown_workers()

            if deadline_at is not None and time.monotonic() >= deadline_at:
                self._deadline_reached = True
                logger.warning(f"Run deadline of {deadline_seconds}s reached, abandoning unclaimed endpoints")
                self._cancel_event.set()
                return pool.shutdown_workers()

            wait = poll_interval
            if deadline_at is not None:
                wait = min(wait, max(deadline_at - time.monotonic(), 0.0))
            pool.wait_for_completion(wait)

        return True
