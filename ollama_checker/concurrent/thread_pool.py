"""
Thread pool manager for the concurrent health checker.
"""

import dataclasses
import threading
import time
import traceback
from typing import List, Dict, Optional, Callable, Any
from queue import Empty

from ollama_checker.utils.logging import get_logger
from ollama_checker.utils.errors import PoolError
from .models import PoolConfig, ProbeResult, WorkerStatus, WorkerState
from .thread_safe import ThreadSafeQueue, ThreadSafeCounter, QueueClosedError, CLOSED


logger = get_logger(__name__)

ProbeFunction = Callable[[str, threading.Event], ProbeResult]


class WorkerThread(threading.Thread):
    """Worker that pulls endpoints from the job queue and probes them."""

    def __init__(
        self,
        worker_id: str,
        job_queue: ThreadSafeQueue,
        result_queue: ThreadSafeQueue,
        cancel_event: threading.Event,
        config: PoolConfig,
        probe_fn: ProbeFunction,
        claimed_counter: Optional[ThreadSafeCounter] = None
    ):
        """
        Initialize worker thread.

        Args:
            worker_id: Unique identifier for this worker
            job_queue: Queue to pull endpoints from
            result_queue: Queue to push probe results to
            cancel_event: Run-wide cancellation signal
            config: Pool configuration
            probe_fn: Function probing a single endpoint
            claimed_counter: Shared count of endpoints claimed by the pool
        """
        super().__init__(name=f"CheckerWorker-{worker_id}", daemon=True)

        self.worker_id = worker_id
        self.job_queue = job_queue
        self.result_queue = result_queue
        self.cancel_event = cancel_event
        self.config = config
        self.probe_fn = probe_fn
        self.claimed_counter = claimed_counter

        self.status = WorkerStatus(worker_id=worker_id)
        self.logger = get_logger(f"{__name__}.{worker_id}")

    def run(self) -> None:
        """Main worker loop: claim, probe, hand off, until closed or cancelled."""
        self.logger.debug(f"Worker {self.worker_id} starting")
        self.status.state = WorkerState.IDLE
        self.status.update_activity()

        try:
            while not self.cancel_event.is_set():
                endpoint = self._get_next_job()
                if endpoint is None:
                    continue
                if endpoint is CLOSED:
                    break

                self._process_job(endpoint)
        finally:
            self.status.state = WorkerState.STOPPED
            self.status.update_activity()
            self.logger.debug(
                f"Worker {self.worker_id} stopped after {self.status.probes_completed} probes"
            )

    def _get_next_job(self) -> Any:
        """
        Get next endpoint from the job queue.

        Returns:
            Endpoint string, ``CLOSED``, or None on poll timeout
        """
        try:
            return self.job_queue.get(timeout=self.config.queue_poll_interval)
        except Empty:
            return None

    def _process_job(self, endpoint: str) -> None:
        """Probe one endpoint and push exactly one result for it."""
        if self.claimed_counter is not None:
            self.claimed_counter.increment()

        self.status.start_probe(endpoint)
        start_time = time.monotonic()

        try:
            result = self.probe_fn(endpoint, self.cancel_event)
        except Exception as e:
            self.logger.error(f"Worker {self.worker_id} probe of {endpoint} raised: {e}")
            self.logger.debug(traceback.format_exc())
            result = ProbeResult.failure(
                endpoint,
                f"worker error: {e}",
                elapsed=time.monotonic() - start_time
            )

        result = dataclasses.replace(result, worker_id=self.worker_id)
        self.status.finish_probe(result.healthy)
        try:
            self.result_queue.put(result)
        except QueueClosedError:
            self.logger.warning(f"Result for {endpoint} dropped, the run was already finalized")


class ThreadPoolManager:
    """Manager for the fixed-size worker pool."""

    def __init__(self, config: PoolConfig):
        """
        Initialize thread pool manager.

        Args:
            config: Pool configuration
        """
        self.config = config
        self.logger = get_logger(__name__)

        self._workers: Dict[str, WorkerThread] = {}
        self._job_queue: Optional[ThreadSafeQueue] = None
        self._result_queue: Optional[ThreadSafeQueue] = None
        self._probe_fn: Optional[ProbeFunction] = None
        self._cancel_event = threading.Event()

        self._claimed = ThreadSafeCounter()
        self._lock = threading.RLock()

    def initialize(
        self,
        job_queue: ThreadSafeQueue,
        result_queue: ThreadSafeQueue,
        probe_fn: ProbeFunction,
        cancel_event: Optional[threading.Event] = None
    ) -> None:
        """
        Initialize thread pool with required components.

        Args:
            job_queue: Queue of endpoints
            result_queue: Queue receiving probe results
            probe_fn: Function probing a single endpoint
            cancel_event: Shared cancellation signal (a private one is used if omitted)
        """
        self._job_queue = job_queue
        self._result_queue = result_queue
        self._probe_fn = probe_fn
        if cancel_event is not None:
            self._cancel_event = cancel_event

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def create_workers(self, count: Optional[int] = None) -> List[WorkerThread]:
        """
        Create worker threads.

        Args:
            count: Number of workers to create (defaults to config.worker_count)

        Returns:
            List of created worker threads

        Raises:
            PoolError: If components are not initialized
        """
        if self._job_queue is None or self._result_queue is None or self._probe_fn is None:
            raise PoolError("ThreadPoolManager not properly initialized")

        worker_count = count or self.config.worker_count

        with self._lock:
            created_workers = []
            for i in range(worker_count):
                worker_id = f"worker_{i}"
                worker = WorkerThread(
                    worker_id=worker_id,
                    job_queue=self._job_queue,
                    result_queue=self._result_queue,
                    cancel_event=self._cancel_event,
                    config=self.config,
                    probe_fn=self._probe_fn,
                    claimed_counter=self._claimed
                )
                self._workers[worker_id] = worker
                created_workers.append(worker)

            self.logger.info(f"Created {len(created_workers)} workers")
            return created_workers

    def start_workers(self) -> None:
        """Start all created worker threads."""
        with self._lock:
            if not self._workers:
                raise PoolError("No workers created")

            for worker in self._workers.values():
                worker.start()

            self.logger.info(f"Started {len(self._workers)} workers")

    def wait_for_completion(self, timeout: Optional[float] = None) -> bool:
        """
        Join all workers.

        Args:
            timeout: Overall time budget in seconds (None waits indefinitely)

        Returns:
            True if every worker finished within the budget
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        for worker in list(self._workers.values()):
            remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
            worker.join(remaining)

        return not self.is_running()

    def cancel(self) -> None:
        """Signal all workers to stop claiming new jobs."""
        if not self._cancel_event.is_set():
            self.logger.warning("Cancellation requested, workers stop claiming jobs")
            self._cancel_event.set()

    def shutdown_workers(self, timeout: Optional[float] = None) -> bool:
        """
        Cancel the pool and wait for workers to exit.

        In-flight probes are not interrupted; they finish on their own
        request timeout. Workers still alive after ``timeout`` (default
        ``config.shutdown_grace``) are left behind as daemon threads.

        Returns:
            True if all workers exited within the grace period
        """
        self.cancel()
        grace = self.config.shutdown_grace if timeout is None else timeout
        finished = self.wait_for_completion(grace)

        if not finished:
            stuck = [w.worker_id for w in self._workers.values() if w.is_alive()]
            self.logger.warning(f"Workers still running after {grace:.1f}s grace: {', '.join(stuck)}")

        return finished

    def is_running(self) -> bool:
        """True if any worker is still alive."""
        with self._lock:
            return any(worker.is_alive() for worker in self._workers.values())

    def get_pool_stats(self) -> Dict[str, Any]:
        """
        Get thread pool statistics.

        Returns:
            Dictionary with pool statistics
        """
        with self._lock:
            worker_states = {state.value: 0 for state in WorkerState}
            for worker in self._workers.values():
                worker_states[worker.status.state.value] += 1

            return {
                "total_workers": len(self._workers),
                "alive_workers": sum(1 for w in self._workers.values() if w.is_alive()),
                "worker_states": worker_states,
                "jobs_claimed": self._claimed.get_value(),
                "probes_healthy": sum(w.status.probes_healthy for w in self._workers.values()),
                "probes_unhealthy": sum(w.status.probes_unhealthy for w in self._workers.values()),
                "cancelled": self._cancel_event.is_set()
            }
