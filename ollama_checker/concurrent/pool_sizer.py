"""
Worker count policies.

The default policy scales the pool linearly with the batch (one worker per
two endpoints) inside a fixed floor and ceiling, so tiny batches are not
over-threaded and large batches do not fan out unbounded against remote
services.
"""

from typing import Callable, Optional, TYPE_CHECKING

from ollama_checker.utils.errors import ConfigurationError
from .models import PoolConfig, MIN_WORKERS, MAX_WORKERS

if TYPE_CHECKING:
    from ollama_checker.config import CheckerConfig


WorkerStrategy = Callable[[int], int]


def size_workers(task_count: int, min_workers: int = MIN_WORKERS, max_workers: int = MAX_WORKERS) -> int:
    """
    Map a task count to a worker count.

    Args:
        task_count: Number of endpoints to probe
        min_workers: Lower bound of the pool
        max_workers: Upper bound of the pool

    Returns:
        ``clamp(task_count // 2, min_workers, max_workers)``
    """
    return max(min_workers, min(task_count // 2, max_workers))


def dynamic_strategy(min_workers: int = MIN_WORKERS, max_workers: int = MAX_WORKERS) -> WorkerStrategy:
    """Strategy that sizes the pool from the task count."""
    def strategy(task_count: int) -> int:
        return size_workers(task_count, min_workers, max_workers)
    return strategy


def fixed_strategy(worker_count: int) -> WorkerStrategy:
    """Strategy that always returns the same worker count."""
    def strategy(task_count: int) -> int:
        return worker_count
    return strategy


def strategy_from_config(config: "CheckerConfig") -> WorkerStrategy:
    """Pick the worker strategy named by ``config.pool.strategy``."""
    pool = config.pool
    if pool.strategy == "dynamic":
        return dynamic_strategy(pool.min_workers, pool.max_workers)
    if pool.strategy == "fixed":
        return fixed_strategy(pool.fixed_workers)
    raise ConfigurationError(f"Unknown worker strategy: {pool.strategy}", {"strategy": pool.strategy})


def build_pool_config(
    task_count: int,
    config: "CheckerConfig",
    strategy: Optional[WorkerStrategy] = None
) -> PoolConfig:
    """
    Compute the pool configuration for a run.

    Raises:
        ValidationError: If the strategy yields a worker count outside the bounds
    """
    strategy = strategy or strategy_from_config(config)

    return PoolConfig(
        worker_count=strategy(task_count),
        request_timeout=config.probe.request_timeout,
        max_retries=config.probe.max_retries,
        retry_backoff=config.probe.retry_backoff,
        queue_poll_interval=config.pool.queue_poll_interval,
        shutdown_grace=config.pool.shutdown_grace,
        min_workers=config.pool.min_workers,
        max_workers=config.pool.max_workers
    )
