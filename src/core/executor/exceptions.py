"""
Executor Exceptions

Custom exceptions for executor operations.
Each kind is turned into a failed ExecutionResult at the boundary where
it occurs; none of them reach the caller of ExecutionScheduler.execute().
"""

from typing import Optional

from .models import ExecutionResult


class ExecutorError(Exception):
    """Base exception for executor errors"""

    def __init__(self, message: str, language: Optional[str] = None):
        self.message = message
        self.language = language
        super().__init__(message)

    def to_result(self) -> ExecutionResult:
        """Convert to a failed execution result"""
        return ExecutionResult.failure(self.message)


class StagingError(ExecutorError):
    """Raised when the temporary source file cannot be created or written"""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class UnsupportedLanguageError(ExecutorError):
    """Raised when no runner handles the requested language tag"""

    def __init__(self, language: str):
        super().__init__(f"Unsupported language: {language}", language=language)


class RuntimeNotAvailableError(ExecutorError):
    """Raised when an optional interpreter is not installed on the host"""

    def __init__(self, language: str, display_name: str):
        self.display_name = display_name
        super().__init__(
            f"{display_name} is not installed or not available",
            language=language,
        )


class RunnerNotFoundError(ExecutorError):
    """Raised when a runner is looked up for an unregistered language"""

    def __init__(self, language: str):
        super().__init__(f"Runner not registered: {language}", language=language)


class ExecutionTimeoutError(ExecutorError):
    """Raised when the overall deadline elapses before dispatch completes"""

    def __init__(
        self,
        timeout: float,
        language: Optional[str] = None,
        execution_id: Optional[str] = None,
    ):
        self.timeout = timeout
        self.execution_id = execution_id
        super().__init__(
            f"Code execution timed out (>{timeout:g} seconds)",
            language=language,
        )
