"""
Tests for execution scheduler.
"""

import asyncio
import sys
import time
from unittest.mock import patch

import pytest

from core.executor.interface import Language
from core.executor.registry import RunnerRegistry
from core.executor.runners import NodeRunner, PythonRunner
from core.executor.scheduler import ExecutionScheduler

from conftest import BrokenRunner, FakeRunner

AVAILABLE = {Language.PYTHON3: True, Language.NODEJS: False}


def make_scheduler(runner, timeout=10, max_workers=2):
    return ExecutionScheduler(
        timeout=timeout,
        max_workers=max_workers,
        runners=[runner],
        availability=AVAILABLE,
    )


class TestSchedulerConstruction:
    """Test ExecutionScheduler construction."""

    @pytest.mark.parametrize("timeout", [0, -1])
    def test_invalid_timeout(self, timeout):
        """Test non-positive timeouts are rejected."""
        with pytest.raises(ValueError, match="timeout must be positive"):
            ExecutionScheduler(timeout=timeout, max_workers=1, availability=AVAILABLE)

    @pytest.mark.parametrize("max_workers", [0, -3])
    def test_invalid_max_workers(self, max_workers):
        """Test non-positive pool sizes are rejected."""
        with pytest.raises(ValueError, match="max_workers must be positive"):
            ExecutionScheduler(timeout=1, max_workers=max_workers, availability=AVAILABLE)

    def test_initial_state(self, scheduler):
        """Test a fresh scheduler has every slot free."""
        assert scheduler.in_flight == 0
        assert scheduler.available_slots == 2
        assert scheduler.is_shut_down is False

    def test_prebuilt_registry(self, fake_runner):
        """Test an injected registry is used as-is."""
        registry = RunnerRegistry([fake_runner], availability=AVAILABLE)
        scheduler = ExecutionScheduler(timeout=1, max_workers=1, registry=registry)

        assert scheduler.registry is registry

    def test_probes_once_at_construction(self, python_runner, node_runner):
        """Test availability is probed when not supplied."""
        with patch(
            "core.executor.registry.probe_runners",
            return_value={Language.PYTHON3: True, Language.NODEJS: True},
        ) as probe:
            scheduler = ExecutionScheduler(
                timeout=1,
                max_workers=1,
                runners=[python_runner, node_runner],
                probe_timeout=3.0,
            )

        probe.assert_called_once()
        assert scheduler.supported_languages() == {"python3": True, "nodejs": True}

    def test_supported_languages(self, scheduler):
        """Test supported languages report availability."""
        assert scheduler.supported_languages() == {"python3": True, "nodejs": False}


class TestSchedulerExecute:
    """Test execute with fake runners."""

    @pytest.mark.asyncio
    async def test_execute_success(self, fake_runner):
        """Test a successful dispatch is returned unchanged."""
        scheduler = make_scheduler(fake_runner)

        result = await scheduler.execute("print('hello')", "python3")

        assert result.success is True
        assert result.output == "Hello, World!\n"
        assert result.error == ""
        assert scheduler.in_flight == 0

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        """Test no more than max_workers executions run at once."""
        runner = FakeRunner(delay=0.2)
        scheduler = make_scheduler(runner, max_workers=2)

        results = await asyncio.gather(
            *[scheduler.execute(f"print({i})", "python3") for i in range(5)]
        )

        assert all(r.success for r in results)
        assert runner.max_active == 2
        assert runner.completed == 5

    @pytest.mark.asyncio
    async def test_waiting_request_admitted_when_slot_frees(self):
        """Test an over-capacity request waits rather than failing."""
        runner = FakeRunner(delay=0.3)
        scheduler = make_scheduler(runner, max_workers=1)

        start = time.monotonic()
        first, second = await asyncio.gather(
            scheduler.execute("a", "python3"),
            scheduler.execute("b", "python3"),
        )
        elapsed = time.monotonic() - start

        assert first.success and second.success
        assert elapsed >= 0.55
        assert runner.max_active == 1

    @pytest.mark.asyncio
    async def test_deadline_exceeded(self):
        """Test the overall deadline returns promptly and cancels dispatch."""
        runner = FakeRunner(delay=5)
        scheduler = make_scheduler(runner, timeout=0.2)

        start = time.monotonic()
        result = await scheduler.execute("import time; time.sleep(5)", "python3")
        elapsed = time.monotonic() - start

        assert result.success is False
        assert result.output == ""
        assert result.error == "Code execution timed out (>0.2 seconds)"
        assert elapsed < 1
        assert runner.cancelled == 1
        assert scheduler.in_flight == 0

    @pytest.mark.asyncio
    async def test_deadline_message_whole_seconds(self):
        """Test whole-second deadlines render without a fraction."""
        runner = FakeRunner(delay=5)
        scheduler = make_scheduler(runner, timeout=1)

        result = await scheduler.execute("x", "python3")

        assert result.error == "Code execution timed out (>1 seconds)"

    @pytest.mark.asyncio
    async def test_unsupported_language(self, fake_runner):
        """Test unknown tags fail without invoking a runner."""
        scheduler = make_scheduler(fake_runner)

        result = await scheduler.execute("print('hello')", "unsupported-xyz")

        assert result.success is False
        assert result.error == "Unsupported language: unsupported-xyz"
        assert fake_runner.calls == []

    @pytest.mark.asyncio
    async def test_nodejs_unavailable(self, python_runner, node_runner):
        """Test a missing Node.js runtime fails before anything is staged."""
        scheduler = ExecutionScheduler(
            timeout=5,
            max_workers=1,
            runners=[python_runner, node_runner],
            availability=AVAILABLE,
        )

        with patch("core.executor.interface.staged_source") as staged:
            result = await scheduler.execute("console.log('hi')", "nodejs")

        staged.assert_not_called()
        assert result.success is False
        assert result.error == "Node.js is not installed or not available"

    @pytest.mark.asyncio
    async def test_runner_defect_contained(self):
        """Test a raising runner becomes a failed result and frees its slot."""
        scheduler = make_scheduler(BrokenRunner(), max_workers=1)

        with patch("core.executor.scheduler.report_runner_defect") as capture:
            result = await scheduler.execute("print(1)", "python3")

        assert result.success is False
        assert result.error == "Internal execution error: runner exploded"
        capture.assert_called_once()
        assert isinstance(capture.call_args.args[0], RuntimeError)
        assert scheduler.in_flight == 0
        assert scheduler.available_slots == 1

    @pytest.mark.asyncio
    async def test_caller_cancellation_releases_slot(self):
        """Test a cancelled caller does not leak its slot."""
        runner = FakeRunner(delay=5)
        scheduler = make_scheduler(runner, max_workers=1)

        task = asyncio.ensure_future(scheduler.execute("x", "python3"))
        await asyncio.sleep(0.05)
        assert scheduler.in_flight == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert scheduler.in_flight == 0
        assert runner.cancelled == 1

        runner.delay = 0
        result = await asyncio.wait_for(scheduler.execute("y", "python3"), timeout=1)
        assert result.success is True


class TestSchedulerShutdown:
    """Test shutdown draining."""

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight(self):
        """Test shutdown returns only after running executions finish."""
        runner = FakeRunner(delay=0.3)
        scheduler = make_scheduler(runner, max_workers=2)

        tasks = [
            asyncio.ensure_future(scheduler.execute(str(i), "python3"))
            for i in range(2)
        ]
        await asyncio.sleep(0.05)
        assert scheduler.in_flight == 2

        await scheduler.shutdown()

        assert runner.completed == 2
        assert scheduler.in_flight == 0
        assert all(task.done() for task in tasks)
        assert all(task.result().success for task in tasks)

    @pytest.mark.asyncio
    async def test_shutdown_idle(self, fake_runner):
        """Test shutdown with nothing in flight returns immediately."""
        scheduler = make_scheduler(fake_runner)

        await asyncio.wait_for(scheduler.shutdown(), timeout=1)

        assert scheduler.is_shut_down is True
        assert scheduler.available_slots == 0

    @pytest.mark.asyncio
    async def test_shutdown_idempotent(self, fake_runner):
        """Test a second shutdown does not block."""
        scheduler = make_scheduler(fake_runner)

        await scheduler.shutdown()
        await asyncio.wait_for(scheduler.shutdown(), timeout=1)

        assert scheduler.is_shut_down is True

    @pytest.mark.asyncio
    async def test_concurrent_shutdowns_share_drain(self):
        """Test overlapping shutdowns both return once the pool drains."""
        runner = FakeRunner(delay=0.2)
        scheduler = make_scheduler(runner, max_workers=2)

        task = asyncio.ensure_future(scheduler.execute("x", "python3"))
        await asyncio.sleep(0.05)

        await asyncio.wait_for(
            asyncio.gather(scheduler.shutdown(), scheduler.shutdown()),
            timeout=2,
        )

        assert scheduler.is_shut_down is True
        assert task.result().success is True

    @pytest.mark.asyncio
    async def test_cancelled_shutdown_caller_keeps_drain(self):
        """Test the drain continues for other callers when one gives up."""
        runner = FakeRunner(delay=0.3)
        scheduler = make_scheduler(runner, max_workers=1)

        asyncio.ensure_future(scheduler.execute("x", "python3"))
        await asyncio.sleep(0.05)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(scheduler.shutdown(), timeout=0.05)

        await asyncio.wait_for(scheduler.shutdown(), timeout=2)
        assert scheduler.is_shut_down is True

    @pytest.mark.asyncio
    async def test_available_slots_while_draining(self):
        """Test permits held by a pending shutdown are not reported free."""
        runner = FakeRunner(delay=0.3)
        scheduler = make_scheduler(runner, max_workers=2)

        asyncio.ensure_future(scheduler.execute("x", "python3"))
        await asyncio.sleep(0.05)

        drain = asyncio.ensure_future(scheduler.shutdown())
        await asyncio.sleep(0.05)

        assert scheduler.in_flight == 1
        assert scheduler.available_slots == 0
        health = await scheduler.health_check()
        assert health.available_slots == 0

        await drain

    @pytest.mark.asyncio
    async def test_execute_after_shutdown(self, fake_runner):
        """Test requests after shutdown fail instead of waiting forever."""
        scheduler = make_scheduler(fake_runner)
        await scheduler.shutdown()

        result = await asyncio.wait_for(scheduler.execute("x", "python3"), timeout=1)

        assert result.success is False
        assert result.error == "Executor has been shut down"
        assert fake_runner.calls == []


class TestSchedulerHealthAndMetrics:
    """Test health_check and get_metrics."""

    @pytest.mark.asyncio
    async def test_health_check(self, scheduler):
        """Test health reports pool state and missing runtimes."""
        health = await scheduler.health_check()

        assert health.healthy is True
        assert health.max_workers == 2
        assert health.available_slots == 2
        assert health.runtimes == {"python3": True, "nodejs": False}
        assert health.message == "Unavailable runtimes: nodejs"

    @pytest.mark.asyncio
    async def test_health_check_all_available(self, fake_runner):
        """Test health message with every runtime present."""
        health = await make_scheduler(fake_runner).health_check()

        assert health.message == "OK"

    @pytest.mark.asyncio
    async def test_health_after_shutdown(self, scheduler):
        """Test health reflects shutdown."""
        await scheduler.shutdown()

        health = await scheduler.health_check()

        assert health.healthy is False
        assert health.shut_down is True
        assert health.message == "Shut down"

    @pytest.mark.asyncio
    async def test_metrics(self):
        """Test execution counters by outcome."""
        runner = FakeRunner(delay=0.5)
        scheduler = make_scheduler(runner, timeout=0.1)

        await scheduler.execute("x", "python3")
        await scheduler.execute("x", "cobol")

        runner.delay = 0
        await scheduler.execute("x", "python3")

        metrics = await scheduler.get_metrics()

        assert metrics.total_executions == 3
        assert metrics.successful_executions == 1
        assert metrics.failed_executions == 2
        assert metrics.timeout_executions == 1
        assert metrics.unsupported_executions == 1
        assert metrics.unavailable_executions == 0
        assert metrics.first_execution_at is not None
        assert metrics.max_execution_time_ms >= metrics.min_execution_time_ms


class TestSchedulerWithPython:
    """End-to-end tests against the real interpreter."""

    @pytest.mark.asyncio
    async def test_hello_world(self, scheduler, sample_code):
        """Test stdout round trip."""
        result = await scheduler.execute(sample_code["python"], "python3")

        assert result.success is True
        assert result.output == "Hello, World!\n"

    @pytest.mark.asyncio
    async def test_repeated_requests_identical(self, scheduler):
        """Test deterministic code yields identical results."""
        code = "print(sum(range(10)))"

        first = await scheduler.execute(code, "python3")
        second = await scheduler.execute(code, "python3")

        assert first == second
        assert first.output == "45\n"

    @pytest.mark.asyncio
    async def test_error_output(self, scheduler, sample_code):
        """Test tracebacks surface in the error field."""
        result = await scheduler.execute(sample_code["python_error"], "python3")

        assert result.success is False
        assert "ValueError: Test error" in result.error

    @pytest.mark.asyncio
    async def test_deadline_kills_interpreter(self, tmp_path):
        """Test the overall deadline stops the child process."""
        marker = tmp_path / "still-running"
        code = f"import time; time.sleep(1.5); open({str(marker)!r}, 'w').write('x')"
        scheduler = ExecutionScheduler(
            timeout=0.3,
            max_workers=1,
            runners=[PythonRunner(sys.executable, timeout=30)],
            availability=AVAILABLE,
        )

        result = await scheduler.execute(code, "python3")
        assert result.error == "Code execution timed out (>0.3 seconds)"

        await asyncio.sleep(2)
        assert not marker.exists()

    @pytest.mark.asyncio
    async def test_concurrent_python(self, sample_code):
        """Test several interpreters run side by side."""
        scheduler = ExecutionScheduler(
            timeout=10,
            max_workers=3,
            runners=[PythonRunner(sys.executable), NodeRunner("node")],
            availability=AVAILABLE,
        )

        results = await asyncio.gather(
            *[scheduler.execute(f"print({i})", "python3") for i in range(6)]
        )

        assert [r.output for r in results] == [f"{i}\n" for i in range(6)]
