"""
Executor Data Models

Request/Response models for code execution.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)"""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExecutionRequest:
    """Code execution request"""

    # Source text, may be empty
    code: str

    # Language tag, any string is accepted until dispatch
    language: str

    # Metadata
    execution_id: str = field(default_factory=lambda: str(uuid4()))


@dataclass
class ExecutionResult:
    """
    Code execution result.

    ``success`` is authoritative: a failed run may still carry partial
    output, and a successful run always has an empty error.
    """

    success: bool
    output: str = ""
    error: str = ""

    @classmethod
    def ok(cls, output: str = "") -> "ExecutionResult":
        """Successful result with captured output"""
        return cls(success=True, output=output, error="")

    @classmethod
    def failure(cls, error: str, output: str = "") -> "ExecutionResult":
        """Failed result, optionally preserving partial output"""
        return cls(success=False, output=output, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
        }


@dataclass
class HealthStatus:
    """Scheduler health status"""

    healthy: bool
    message: str = ""

    # Slot pool
    max_workers: int = 0
    in_flight: int = 0
    available_slots: int = 0

    # Cached runtime availability per language tag
    runtimes: Dict[str, bool] = field(default_factory=dict)

    shut_down: bool = False

    # Last check timestamp
    last_check: datetime = field(default_factory=_utcnow)

    @property
    def utilization(self) -> float:
        """Slot utilization ratio (0.0 - 1.0)"""
        if self.max_workers == 0:
            return 0.0
        return self.in_flight / self.max_workers

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "healthy": self.healthy,
            "message": self.message,
            "max_workers": self.max_workers,
            "in_flight": self.in_flight,
            "available_slots": self.available_slots,
            "utilization": self.utilization,
            "runtimes": self.runtimes,
            "shut_down": self.shut_down,
            "last_check": self.last_check.isoformat(),
        }


@dataclass
class ExecutorMetrics:
    """Scheduler execution metrics"""

    # Execution counts
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    timeout_executions: int = 0
    unsupported_executions: int = 0
    unavailable_executions: int = 0

    # Latency stats (milliseconds)
    avg_execution_time_ms: float = 0.0
    min_execution_time_ms: float = 0.0
    max_execution_time_ms: float = 0.0
    p50_execution_time_ms: float = 0.0
    p95_execution_time_ms: float = 0.0
    p99_execution_time_ms: float = 0.0

    # Admission wait (milliseconds)
    avg_queue_time_ms: float = 0.0

    # Timestamps
    first_execution_at: Optional[datetime] = None
    last_execution_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Execution success rate (0.0 - 1.0)"""
        if self.total_executions == 0:
            return 0.0
        return self.successful_executions / self.total_executions

    def record_latencies(self, execution_times: List[float], queue_times: List[float]) -> None:
        """Recompute latency stats from recent samples"""
        if execution_times:
            self.avg_execution_time_ms = sum(execution_times) / len(execution_times)
            self.min_execution_time_ms = min(execution_times)
            self.max_execution_time_ms = max(execution_times)

            sorted_times = sorted(execution_times)
            n = len(sorted_times)
            self.p50_execution_time_ms = sorted_times[n // 2]
            self.p95_execution_time_ms = sorted_times[int(n * 0.95)]
            self.p99_execution_time_ms = sorted_times[int(n * 0.99)]

        if queue_times:
            self.avg_queue_time_ms = sum(queue_times) / len(queue_times)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "total_executions": self.total_executions,
            "successful_executions": self.successful_executions,
            "failed_executions": self.failed_executions,
            "timeout_executions": self.timeout_executions,
            "unsupported_executions": self.unsupported_executions,
            "unavailable_executions": self.unavailable_executions,
            "success_rate": self.success_rate,
            "avg_execution_time_ms": self.avg_execution_time_ms,
            "min_execution_time_ms": self.min_execution_time_ms,
            "max_execution_time_ms": self.max_execution_time_ms,
            "p50_execution_time_ms": self.p50_execution_time_ms,
            "p95_execution_time_ms": self.p95_execution_time_ms,
            "p99_execution_time_ms": self.p99_execution_time_ms,
            "avg_queue_time_ms": self.avg_queue_time_ms,
            "first_execution_at": self.first_execution_at.isoformat() if self.first_execution_at else None,
            "last_execution_at": self.last_execution_at.isoformat() if self.last_execution_at else None,
        }
