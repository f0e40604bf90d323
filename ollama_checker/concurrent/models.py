"""
Data models for the concurrent health checker.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
from datetime import datetime
from enum import Enum

from ollama_checker.utils.errors import ValidationError


MIN_WORKERS = 3
MAX_WORKERS = 20


class WorkerState(Enum):
    """Worker thread state."""
    IDLE = "idle"
    WORKING = "working"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ModelDescriptor:
    """One entry of the ``models`` array returned by ``/api/tags``."""
    name: str
    digest: str = ""
    modified_at: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelDescriptor":
        """
        Build a descriptor from decoded JSON.

        Raises:
            ValueError: If the entry is not an object or has wrongly typed fields
        """
        if not isinstance(data, dict):
            raise ValueError(f"model descriptor must be an object, got {type(data).__name__}")

        name = data.get("name") or ""
        digest = data.get("digest") or ""
        if not isinstance(name, str) or not isinstance(digest, str):
            raise ValueError("model name and digest must be strings")

        size = data.get("size")
        if size is not None and (isinstance(size, bool) or not isinstance(size, int)):
            raise ValueError("model size must be an integer")

        modified_at = data.get("modified_at")
        if modified_at is not None and not isinstance(modified_at, str):
            raise ValueError("model modified_at must be a string")

        return cls(name=name, digest=digest, modified_at=modified_at, size=size)

    def is_valid(self, require_digest: bool = False) -> bool:
        """A descriptor counts when it has a name (and a digest in strict mode)."""
        if not self.name:
            return False
        if require_digest and not self.digest:
            return False
        return True


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one endpoint. Handed off, never mutated."""
    endpoint: str
    healthy: bool
    error: Optional[str] = None
    models: List[str] = field(default_factory=list)
    status_code: Optional[int] = None
    attempts: int = 0
    elapsed: float = 0.0
    worker_id: Optional[str] = None

    @property
    def retries(self) -> int:
        """Number of retries performed after the first attempt."""
        return max(self.attempts - 1, 0)

    @classmethod
    def failure(cls, endpoint: str, error: str, **kwargs) -> "ProbeResult":
        """Build an unhealthy result."""
        return cls(endpoint=endpoint, healthy=False, error=error, **kwargs)

    @classmethod
    def success(cls, endpoint: str, models: List[str], **kwargs) -> "ProbeResult":
        """Build a healthy result."""
        return cls(endpoint=endpoint, healthy=True, error=None, models=list(models), **kwargs)


@dataclass
class PoolConfig:
    """Per-run worker pool configuration, computed once from the task count."""
    worker_count: int
    request_timeout: float = 5.0
    max_retries: int = 3
    retry_backoff: float = 0.5
    queue_poll_interval: float = 0.2
    shutdown_grace: float = 30.0
    min_workers: int = MIN_WORKERS
    max_workers: int = MAX_WORKERS

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Raises:
            ValidationError: If configuration is invalid
        """
        errors = []

        if self.min_workers < 1:
            errors.append("min_workers must be at least 1")

        if self.min_workers > self.max_workers:
            errors.append("min_workers must not exceed max_workers")

        if not (self.min_workers <= self.worker_count <= self.max_workers):
            errors.append(
                f"worker_count must be between {self.min_workers} and {self.max_workers}"
            )

        if self.request_timeout <= 0:
            errors.append("request_timeout must be positive")

        if self.max_retries < 0:
            errors.append("max_retries must not be negative")

        if self.retry_backoff < 0:
            errors.append("retry_backoff must not be negative")

        if self.queue_poll_interval <= 0:
            errors.append("queue_poll_interval must be positive")

        if self.shutdown_grace < 0:
            errors.append("shutdown_grace must not be negative")

        if errors:
            raise ValidationError(
                "Pool configuration validation failed",
                {"errors": errors}
            )


@dataclass
class WorkerStatus:
    """Status information for a worker thread."""
    worker_id: str
    state: WorkerState = WorkerState.IDLE
    current_endpoint: Optional[str] = None
    probes_healthy: int = 0
    probes_unhealthy: int = 0
    last_activity: datetime = field(default_factory=datetime.now)

    def update_activity(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = datetime.now()

    def start_probe(self, endpoint: str) -> None:
        """Mark worker as probing an endpoint."""
        self.state = WorkerState.WORKING
        self.current_endpoint = endpoint
        self.update_activity()

    def finish_probe(self, healthy: bool) -> None:
        """Mark the current probe as finished."""
        self.state = WorkerState.IDLE
        self.current_endpoint = None
        if healthy:
            self.probes_healthy += 1
        else:
            self.probes_unhealthy += 1
        self.update_activity()

    @property
    def probes_completed(self) -> int:
        return self.probes_healthy + self.probes_unhealthy


@dataclass
class RunSummary:
    """Overall result of a health check run."""
    requested: int
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    successful_results: List[ProbeResult] = field(default_factory=list)
    failed_results: List[ProbeResult] = field(default_factory=list)
    cancelled: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def abandoned(self) -> int:
        """Endpoints that were never processed because the run was cancelled."""
        return max(self.requested - self.total, 0)

    def get_success_rate(self) -> float:
        """Get success rate of processed endpoints as percentage."""
        if self.total == 0:
            return 0.0
        return (self.succeeded / self.total) * 100.0

    def get_execution_time(self) -> Optional[float]:
        """Get run duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested": self.requested,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "abandoned": self.abandoned,
            "cancelled": self.cancelled,
            "success_rate": round(self.get_success_rate(), 2),
            "execution_time": self.get_execution_time(),
            "healthy_endpoints": [r.endpoint for r in self.successful_results],
        }
