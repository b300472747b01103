"""
Base Runner Interface

Abstract base class for all language runners.
A runner stages source text in a temporary file and runs one interpreter
process against it under its own deadline.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .models import ExecutionResult
from .exceptions import StagingError
from .staging import staged_source

logger = logging.getLogger(__name__)

# Seconds to wait for pipes to drain after the interpreter was killed
KILL_DRAIN_TIMEOUT = 2.0


class Language(str, Enum):
    """Recognized language tags"""

    PYTHON3 = "python3"
    NODEJS = "nodejs"

    @classmethod
    def parse(cls, tag: str) -> Optional["Language"]:
        """Return the matching language, or None for an unrecognized tag"""
        try:
            return cls(tag)
        except ValueError:
            return None


class BaseRunner(ABC):
    """
    Abstract base class for language runners.

    Subclasses declare their language and interpreter and implement
    build_command(); staging, process handling and result mapping are
    shared.

    Example:
        class PythonRunner(BaseRunner):
            language = Language.PYTHON3
            display_name = "Python"
            file_suffix = ".py"

            def build_command(self, script_path):
                return [self.binary, str(script_path)]

        result = await PythonRunner("python3").run("print('hello')")
    """

    language: Language
    display_name: str
    file_suffix: str = ""
    # Optional runtimes are probed once and may be reported as unavailable
    optional: bool = False

    def __init__(
        self,
        binary: str,
        timeout: float = 30,
        staging_dir: Optional[str] = None,
    ):
        """
        Initialize runner.

        Args:
            binary: Interpreter executable name or path
            timeout: Internal deadline for the interpreter process, in seconds
            staging_dir: Directory for staged source files (system temp dir if None)
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.binary = binary
        self.timeout = timeout
        self.staging_dir = staging_dir

    @abstractmethod
    def build_command(self, script_path: Path) -> List[str]:
        """
        Build the interpreter command line.

        Args:
            script_path: Path of the staged source file

        Returns:
            Command and arguments to execute
        """
        pass

    async def run(self, code: str) -> ExecutionResult:
        """
        Stage and execute code.

        Args:
            code: Source text, written verbatim

        Returns:
            ExecutionResult; failures are reported as values

        Raises:
            asyncio.CancelledError: When the caller stops waiting. The child
                process is killed before the cancellation propagates.
        """
        try:
            with staged_source(
                code,
                prefix=f"{self.language.value}-",
                suffix=self.file_suffix,
                directory=self.staging_dir,
            ) as script_path:
                return await self._run_process(self.build_command(script_path))
        except StagingError as e:
            logger.warning(f"Staging failed for {self.language.value}: {e}")
            return e.to_result()

    async def _run_process(self, args: List[str]) -> ExecutionResult:
        """Run the interpreter and map its exit status to a result"""
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.warning(f"Failed to start {args[0]}: {e}")
            return ExecutionResult.failure(str(e))

        communicate = asyncio.ensure_future(process.communicate())

        try:
            done, _ = await asyncio.wait({communicate}, timeout=self.timeout)
        except asyncio.CancelledError:
            self._kill(process)
            communicate.cancel()
            raise

        timed_out = not done
        if timed_out:
            logger.info(
                f"{self.display_name} process {process.pid} exceeded {self.timeout}s, killing"
            )
            self._kill(process)

        try:
            stdout, stderr = await asyncio.wait_for(
                communicate,
                timeout=KILL_DRAIN_TIMEOUT if timed_out else None,
            )
        except asyncio.TimeoutError:
            # Pipes held open by a grandchild of the killed process
            stdout, stderr = b"", b""

        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        error = stderr.decode("utf-8", errors="replace") if stderr else ""

        if timed_out:
            notice = f"signal: killed (runner timeout of {self.timeout:g}s exceeded)"
            return ExecutionResult.failure(
                f"{error}\n{notice}" if error else notice,
                output=output,
            )

        if process.returncode != 0:
            return ExecutionResult.failure(
                error or f"Process exited with code {process.returncode}",
                output=output,
            )

        return ExecutionResult.ok(output)

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        """Kill the interpreter if it is still running"""
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
