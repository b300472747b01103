"""
Pytest configuration and fixtures for Codepool tests
"""

import asyncio
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

# Settings are cached on first use, so configure them before any import
os.environ.setdefault("CODEPOOL_API_KEY", "test-api-key-12345")
os.environ.setdefault("CODEPOOL_PYTHON_BINARY", sys.executable)

from core.executor.interface import BaseRunner, Language  # noqa: E402
from core.executor.models import ExecutionResult  # noqa: E402


class FakeRunner(BaseRunner):
    """Runner that sleeps instead of spawning a process and records concurrency."""

    language = Language.PYTHON3
    display_name = "Fake"

    def __init__(self, delay=0.0, output="Hello, World!\n", language=None, optional=False):
        super().__init__("fake-interpreter", timeout=30)
        if language is not None:
            self.language = language
        self.optional = optional
        self.delay = delay
        self.output = output
        self.calls = []
        self.active = 0
        self.max_active = 0
        self.completed = 0
        self.cancelled = 0

    def build_command(self, script_path):
        return [self.binary, str(script_path)]

    async def run(self, code):
        self.calls.append(code)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.active -= 1
        self.completed += 1
        return ExecutionResult.ok(self.output)


class BrokenRunner(FakeRunner):
    """Runner with a defect: raises instead of returning a result."""

    async def run(self, code):
        raise RuntimeError("runner exploded")


@pytest.fixture
def api_key():
    """Test API key"""
    return os.environ["CODEPOOL_API_KEY"]


@pytest.fixture
def auth_headers(api_key):
    """Authentication headers for API requests"""
    return {"X-API-Key": api_key}


@pytest.fixture
def sample_code():
    """Sample code for testing."""
    return {
        "python": "print('Hello, World!')",
        "python_error": "raise ValueError('Test error')",
        "python_exit": "import sys; print('before exit'); sys.exit(3)",
        "python_timeout": "import time; time.sleep(30)",
        "python_partial_timeout": "import time; print('partial', flush=True); time.sleep(30)",
        "node": "console.log('Hello, World!');",
    }


# ============== Executor Fixtures ==============


@pytest.fixture
def fake_runner():
    """Fast fake runner for python3."""
    return FakeRunner()


@pytest.fixture
def slow_runner():
    """Fake runner that takes 0.3s per execution."""
    return FakeRunner(delay=0.3)


@pytest.fixture
def python_runner():
    """Real Python runner using the interpreter running the tests."""
    from core.executor.runners import PythonRunner

    return PythonRunner(sys.executable, timeout=10)


@pytest.fixture
def node_runner():
    """Node.js runner; availability is injected by the tests."""
    from core.executor.runners import NodeRunner

    return NodeRunner("node", timeout=10)


@pytest.fixture
def availability():
    """Availability with Node.js missing."""
    return {Language.PYTHON3: True, Language.NODEJS: False}


@pytest.fixture
def scheduler(python_runner, node_runner, availability):
    """Scheduler backed by the real Python runner."""
    from core.executor.scheduler import ExecutionScheduler

    return ExecutionScheduler(
        timeout=10,
        max_workers=2,
        runners=[python_runner, node_runner],
        availability=availability,
    )


@pytest.fixture
def client(scheduler):
    """FastAPI test client wired to the test scheduler"""
    from main import app
    from core.executor_setup import get_scheduler

    app.dependency_overrides[get_scheduler] = lambda: scheduler
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
