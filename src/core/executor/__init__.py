"""
Executor Layer

Bounded, deadline-enforcing execution of code snippets in short-lived
interpreter processes. Supports Python 3 and (when installed) Node.js.
"""

from .interface import BaseRunner, Language
from .models import ExecutionRequest, ExecutionResult, HealthStatus, ExecutorMetrics
from .registry import RunnerRegistry
from .scheduler import ExecutionScheduler
from .availability import is_available, probe_runners
from .staging import staged_source
from .exceptions import (
    ExecutorError,
    StagingError,
    UnsupportedLanguageError,
    RuntimeNotAvailableError,
    RunnerNotFoundError,
    ExecutionTimeoutError,
)

__all__ = [
    # Interface
    "BaseRunner",
    "Language",
    # Models
    "ExecutionRequest",
    "ExecutionResult",
    "HealthStatus",
    "ExecutorMetrics",
    # Registry & Scheduler
    "RunnerRegistry",
    "ExecutionScheduler",
    # Availability & staging
    "is_available",
    "probe_runners",
    "staged_source",
    # Exceptions
    "ExecutorError",
    "StagingError",
    "UnsupportedLanguageError",
    "RuntimeNotAvailableError",
    "RunnerNotFoundError",
    "ExecutionTimeoutError",
]
