"""
Executor Setup

Build the execution scheduler from settings.
"""

import asyncio
import logging
from typing import List, Optional

from .config import Settings, get_settings
from .executor import BaseRunner, ExecutionScheduler
from .executor.runners import NodeRunner, PythonRunner

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[ExecutionScheduler] = None


def build_runners(settings: Settings) -> List[BaseRunner]:
    """Create one runner per supported language"""
    return [
        PythonRunner(
            settings.python_binary,
            timeout=settings.runner_timeout,
            staging_dir=settings.staging_dir,
        ),
        NodeRunner(
            settings.node_binary,
            timeout=settings.runner_timeout,
            staging_dir=settings.staging_dir,
        ),
    ]


def setup_scheduler(settings: Optional[Settings] = None) -> ExecutionScheduler:
    """
    Set up the scheduler based on configuration.

    Runtime availability is probed here, once for the process lifetime.

    Args:
        settings: Settings instance (uses default if None)

    Returns:
        Configured ExecutionScheduler
    """
    global _scheduler

    settings = settings or get_settings()

    if settings.runner_timeout > settings.execution_timeout:
        logger.warning(
            f"runner_timeout ({settings.runner_timeout}s) exceeds execution_timeout "
            f"({settings.execution_timeout}s); the overall deadline will fire first"
        )

    _scheduler = ExecutionScheduler(
        timeout=settings.execution_timeout,
        max_workers=settings.max_workers,
        runners=build_runners(settings),
        probe_timeout=settings.probe_timeout,
    )

    logger.info(
        f"Scheduler ready: max_workers={settings.max_workers}, "
        f"timeout={settings.execution_timeout}s, runtimes={_scheduler.supported_languages()}"
    )
    return _scheduler


async def start_scheduler(settings: Optional[Settings] = None) -> ExecutionScheduler:
    """
    Set up the scheduler from a running event loop.

    Availability probes block on `<binary> --version`, so they run in a
    worker thread instead of on the loop.
    """
    return await asyncio.to_thread(setup_scheduler, settings)


async def cleanup_scheduler() -> None:
    """Drain the scheduler on shutdown"""
    if _scheduler is None:
        return

    # The drained instance stays installed so late requests are refused
    logger.info("Draining scheduler")
    await _scheduler.shutdown()
    logger.info("Scheduler cleanup complete")


def get_scheduler() -> ExecutionScheduler:
    """Get the global scheduler, creating it on first use"""
    if _scheduler is None:
        return setup_scheduler()

    return _scheduler
