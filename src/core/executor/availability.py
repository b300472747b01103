"""
Runtime Availability

Startup probes for interpreter binaries. Results are cached by the
registry for the lifetime of the process and never re-checked.
"""

import logging
import subprocess
from typing import Dict, Iterable

from .interface import BaseRunner, Language

logger = logging.getLogger(__name__)


def is_available(binary: str, timeout: float = 5.0) -> bool:
    """
    Check whether an interpreter binary can be invoked.

    Runs ``<binary> --version`` and reports whether it completed with
    exit status 0.

    Args:
        binary: Executable name or path
        timeout: Seconds to wait for the version query

    Returns:
        True if the binary is usable
    """
    try:
        subprocess.run(
            [binary, "--version"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Probe of {binary} failed: {e}")
        return False
    return True


def probe_runners(
    runners: Iterable[BaseRunner],
    timeout: float = 5.0,
) -> Dict[Language, bool]:
    """
    Probe the runtimes of optional runners.

    Non-optional runners are assumed present and are not probed.

    Args:
        runners: Runners to check
        timeout: Per-probe timeout in seconds

    Returns:
        Availability per language
    """
    availability: Dict[Language, bool] = {}

    for runner in runners:
        if not runner.optional:
            availability[runner.language] = True
            continue

        available = is_available(runner.binary, timeout=timeout)
        availability[runner.language] = available

        if available:
            logger.info(f"{runner.display_name} runtime available ({runner.binary})")
        else:
            logger.warning(
                f"{runner.display_name} runtime not available ({runner.binary}); "
                f"'{runner.language.value}' requests will be rejected"
            )

    return availability
