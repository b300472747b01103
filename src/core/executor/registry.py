"""
Runner Registry

Maps language tags to runners and dispatches source text to them.
Holds the runtime availability computed once at construction.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from .interface import BaseRunner, Language
from .models import ExecutionResult
from .exceptions import (
    ExecutorError,
    RunnerNotFoundError,
    RuntimeNotAvailableError,
    UnsupportedLanguageError,
)
from .availability import probe_runners
from ..metrics import DISPATCH_REJECTIONS

logger = logging.getLogger(__name__)


class RunnerRegistry:
    """
    Registry of language runners.

    Dispatch has no concurrency of its own; admission and deadlines
    belong to the scheduler.

    Example:
        registry = RunnerRegistry([PythonRunner("python3"), NodeRunner("node")])

        result = await registry.dispatch("print('hi')", "python3")
        result = await registry.dispatch("x", "cobol")  # Unsupported language: cobol
    """

    def __init__(
        self,
        runners: Iterable[BaseRunner] = (),
        availability: Optional[Dict[Language, bool]] = None,
        probe_timeout: float = 5.0,
    ):
        """
        Initialize registry.

        Args:
            runners: Runners to register
            availability: Precomputed availability (probed when None)
            probe_timeout: Per-probe timeout in seconds
        """
        self._runners: Dict[Language, BaseRunner] = {}
        for runner in runners:
            self.register(runner)

        if availability is None:
            availability = probe_runners(self._runners.values(), timeout=probe_timeout)
        self._availability: Dict[Language, bool] = dict(availability)

        self.rejections: Counter = Counter()

    def register(self, runner: BaseRunner) -> None:
        """
        Register a runner for its language.

        Args:
            runner: Runner instance
        """
        self._runners[runner.language] = runner
        logger.info(f"Registered runner for language: {runner.language.value}")

    def unregister(self, language: Language) -> None:
        """
        Unregister a runner.

        Args:
            language: Language to unregister
        """
        if language in self._runners:
            del self._runners[language]
            logger.info(f"Unregistered runner for language: {language.value}")

    def get(self, language: Language) -> BaseRunner:
        """
        Get runner for language.

        Raises:
            RunnerNotFoundError: If language not registered
        """
        if language not in self._runners:
            raise RunnerNotFoundError(language.value)

        return self._runners[language]

    def get_or_none(self, language: Language) -> Optional[BaseRunner]:
        """Get runner for language, returning None if not found"""
        return self._runners.get(language)

    def is_registered(self, language: Language) -> bool:
        """Check if language is registered"""
        return language in self._runners

    def is_available(self, language: Language) -> bool:
        """Check cached runtime availability (unprobed runners count as available)"""
        return self._availability.get(language, True)

    def get_available_languages(self) -> List[Language]:
        """Get list of registered languages"""
        return list(self._runners.keys())

    @property
    def availability(self) -> Dict[str, bool]:
        """Availability per registered language tag"""
        return {
            language.value: self.is_available(language)
            for language in self._runners
        }

    def resolve(self, language: str) -> BaseRunner:
        """
        Find the runner able to execute a language tag.

        Raises:
            UnsupportedLanguageError: If the tag is unknown or has no runner
            RuntimeNotAvailableError: If the runner's runtime is missing
        """
        parsed = Language.parse(language)
        if parsed is None or parsed not in self._runners:
            raise UnsupportedLanguageError(language)

        runner = self._runners[parsed]
        if runner.optional and not self.is_available(parsed):
            raise RuntimeNotAvailableError(language, runner.display_name)

        return runner

    async def dispatch(self, code: str, language: str) -> ExecutionResult:
        """
        Run code with the runner for a language tag.

        Args:
            code: Source text
            language: Language tag, any string

        Returns:
            ExecutionResult; rejections are reported as failed results
        """
        try:
            runner = self.resolve(language)
        except UnsupportedLanguageError as e:
            self._reject("unsupported", e)
            return e.to_result()
        except RuntimeNotAvailableError as e:
            self._reject("unavailable", e)
            return e.to_result()

        logger.debug(f"Dispatching to {runner.display_name} runner")
        return await runner.run(code)

    def _reject(self, reason: str, error: ExecutorError) -> None:
        self.rejections[reason] += 1
        DISPATCH_REJECTIONS.labels(reason=reason).inc()
        logger.info(f"Rejected request: {error.message}")
