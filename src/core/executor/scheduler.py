"""
Execution Scheduler

Admission control and deadline enforcement in front of the runner registry.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from .interface import BaseRunner, Language
from .models import ExecutionRequest, ExecutionResult, ExecutorMetrics, HealthStatus
from .registry import RunnerRegistry
from .exceptions import ExecutionTimeoutError
from ..metrics import EXECUTIONS_TOTAL, EXECUTION_DURATION, IN_FLIGHT, QUEUE_WAIT, language_label
from ..posthog_client import report_runner_defect

logger = logging.getLogger(__name__)

# Latency samples kept for percentile calculation
MAX_SAMPLES = 1000

KNOWN_LANGUAGES = {language.value for language in Language}


class ExecutionScheduler:
    """
    Bounded pool of concurrent executions with an overall deadline.

    At most ``max_workers`` executions hold a slot at any instant; further
    requests wait for one to free up. Each admitted request races its
    dispatch against ``timeout`` seconds. When the deadline wins, the
    dispatch task is cancelled and the runner kills its interpreter.

    execute() never raises: every outcome, including timeouts and runner
    defects, comes back as an ExecutionResult.

    Example:
        scheduler = ExecutionScheduler(
            timeout=10,
            max_workers=4,
            runners=[PythonRunner("python3"), NodeRunner("node")],
        )

        result = await scheduler.execute("print('hello')", "python3")
        # ExecutionResult(success=True, output='hello\\n', error='')

        await scheduler.shutdown()
    """

    def __init__(
        self,
        timeout: float = 30,
        max_workers: int = 10,
        runners: Optional[Iterable[BaseRunner]] = None,
        registry: Optional[RunnerRegistry] = None,
        availability: Optional[Dict[Language, bool]] = None,
        probe_timeout: float = 5.0,
    ):
        """
        Initialize scheduler.

        Args:
            timeout: Overall deadline per request, in seconds
            max_workers: Size of the slot pool
            runners: Runners to register (ignored when registry is given)
            registry: Prebuilt runner registry
            availability: Precomputed runtime availability (probed when None)
            probe_timeout: Per-probe timeout in seconds

        Raises:
            ValueError: If timeout or max_workers is not positive
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")

        self.timeout = timeout
        self.max_workers = max_workers

        self.registry = registry or RunnerRegistry(
            runners or (),
            availability=availability,
            probe_timeout=probe_timeout,
        )

        self._slots = asyncio.Semaphore(max_workers)
        self._in_flight = 0
        self._reserved = 0  # permits taken by shutdown
        self._drain: Optional[asyncio.Future] = None
        self._shut_down = False

        # Metrics tracking
        self._metrics = ExecutorMetrics()
        self._execution_times: List[float] = []
        self._queue_times: List[float] = []

    @property
    def in_flight(self) -> int:
        """Executions currently holding a slot"""
        return self._in_flight

    @property
    def available_slots(self) -> int:
        """Slots not held by an execution or by shutdown"""
        if self._shut_down:
            return 0
        return self.max_workers - self._in_flight - self._reserved

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def supported_languages(self) -> Dict[str, bool]:
        """Registered language tags and whether their runtime is available"""
        return self.registry.availability

    async def execute(self, code: str, language: str) -> ExecutionResult:
        """
        Execute code under admission control and the overall deadline.

        Args:
            code: Source text, may be empty
            language: Language tag, e.g. "python3" or "nodejs"

        Returns:
            ExecutionResult with success flag, output and error
        """
        request = ExecutionRequest(code=code, language=language)

        if self._shut_down:
            logger.warning(f"[{request.execution_id}] Rejected, executor is shut down")
            return ExecutionResult.failure("Executor has been shut down")

        queued_at = time.perf_counter()

        async with self._slots:
            admitted_at = time.perf_counter()
            self._in_flight += 1
            IN_FLIGHT.inc()
            logger.debug(
                f"[{request.execution_id}] Admitted {language!r} "
                f"({self._in_flight}/{self.max_workers} slots in use)"
            )

            try:
                result, outcome = await self._run_with_deadline(request)
            finally:
                self._in_flight -= 1
                IN_FLIGHT.dec()

        finished_at = time.perf_counter()
        self._record(
            request,
            outcome,
            execution_time_ms=(finished_at - admitted_at) * 1000,
            queue_time_ms=(admitted_at - queued_at) * 1000,
        )
        return result

    async def _run_with_deadline(self, request: ExecutionRequest) -> Tuple[ExecutionResult, str]:
        """Race dispatch against the overall deadline"""
        try:
            result = await asyncio.wait_for(
                self.registry.dispatch(request.code, request.language),
                timeout=self.timeout,
            )
            return result, "success" if result.success else "failure"

        except asyncio.TimeoutError:
            error = ExecutionTimeoutError(
                self.timeout,
                language=request.language,
                execution_id=request.execution_id,
            )
            logger.warning(f"[{request.execution_id}] {error.message}")
            return error.to_result(), "timeout"

        except Exception as e:
            logger.error(
                f"[{request.execution_id}] Execution failed unexpectedly: {e}",
                exc_info=True,
            )
            report_runner_defect(e, execution_id=request.execution_id, language=request.language)
            return ExecutionResult.failure(f"Internal execution error: {e}"), "error"

    def _record(
        self,
        request: ExecutionRequest,
        outcome: str,
        execution_time_ms: float,
        queue_time_ms: float,
    ) -> None:
        """Update execution metrics"""
        label = language_label(request.language, KNOWN_LANGUAGES)
        EXECUTIONS_TOTAL.labels(language=label, outcome=outcome).inc()
        EXECUTION_DURATION.labels(language=label).observe(execution_time_ms / 1000)
        QUEUE_WAIT.observe(queue_time_ms / 1000)

        self._metrics.total_executions += 1
        if outcome == "success":
            self._metrics.successful_executions += 1
        else:
            self._metrics.failed_executions += 1
        if outcome == "timeout":
            self._metrics.timeout_executions += 1

        self._execution_times.append(execution_time_ms)
        self._queue_times.append(queue_time_ms)

        # Keep only recent samples
        if len(self._execution_times) > MAX_SAMPLES:
            self._execution_times = self._execution_times[-MAX_SAMPLES:]
            self._queue_times = self._queue_times[-MAX_SAMPLES:]

        now = datetime.now(timezone.utc)
        if self._metrics.first_execution_at is None:
            self._metrics.first_execution_at = now
        self._metrics.last_execution_at = now

    async def shutdown(self) -> None:
        """
        Wait until no execution is in flight.

        Acquires every slot, so it returns only after all admitted
        executions have released theirs. In-flight work is not cancelled.
        New execute() calls are not locked out while this waits; callers
        stop submitting before shutting down.

        Concurrent and repeated calls all wait on the same drain.
        """
        if self._drain is None:
            logger.info(
                f"Shutting down scheduler, waiting for {self._in_flight} in-flight executions"
            )
            self._drain = asyncio.ensure_future(self._drain_slots())

        # A cancelled caller must not abort the drain other callers wait on
        await asyncio.shield(self._drain)

    async def _drain_slots(self) -> None:
        while self._reserved < self.max_workers:
            await self._slots.acquire()
            self._reserved += 1

        self._shut_down = True
        logger.info("Scheduler shut down, no executions in flight")

    async def health_check(self) -> HealthStatus:
        """Check scheduler health"""
        runtimes = self.registry.availability
        missing = [tag for tag, available in runtimes.items() if not available]

        if self._shut_down:
            message = "Shut down"
        elif missing:
            message = f"Unavailable runtimes: {', '.join(missing)}"
        else:
            message = "OK"

        return HealthStatus(
            healthy=not self._shut_down,
            message=message,
            max_workers=self.max_workers,
            in_flight=self._in_flight,
            available_slots=self.available_slots,
            runtimes=runtimes,
            shut_down=self._shut_down,
        )

    async def get_metrics(self) -> ExecutorMetrics:
        """Get execution metrics"""
        self._metrics.record_latencies(self._execution_times, self._queue_times)
        self._metrics.unsupported_executions = self.registry.rejections["unsupported"]
        self._metrics.unavailable_executions = self.registry.rejections["unavailable"]
        return self._metrics
