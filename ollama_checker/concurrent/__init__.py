"""
Concurrent health check framework.

Main Components:
- HealthCheckController: Run orchestration (queues, pool, aggregator, deadline)
- ThreadPoolManager: Worker thread lifecycle management
- ResultAggregator: Single consumer of probe results
- size_workers: Worker count policy
"""

from .models import (
    ModelDescriptor,
    ProbeResult,
    PoolConfig,
    RunSummary,
    WorkerStatus,
    WorkerState
)

from .thread_safe import (
    ThreadSafeCounter,
    ThreadSafeQueue,
    QueueClosedError,
    CLOSED
)

from .pool_sizer import (
    size_workers,
    dynamic_strategy,
    fixed_strategy,
    build_pool_config
)

from .aggregator import ResultAggregator
from .thread_pool import ThreadPoolManager, WorkerThread
from .controller import HealthCheckController

__all__ = [
    # Core models
    'ModelDescriptor',
    'ProbeResult',
    'PoolConfig',
    'RunSummary',
    'WorkerStatus',
    'WorkerState',

    # Thread-safe utilities
    'ThreadSafeCounter',
    'ThreadSafeQueue',
    'QueueClosedError',
    'CLOSED',

    # Pool sizing
    'size_workers',
    'dynamic_strategy',
    'fixed_strategy',
    'build_pool_config',

    # Main components
    'ResultAggregator',
    'ThreadPoolManager',
    'WorkerThread',
    'HealthCheckController'
]
