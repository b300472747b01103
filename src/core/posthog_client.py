"""
PostHog Error Reporting

Only defects are reported: a runner that raised instead of returning a
result, or an exception that escaped an API handler. Timeouts, unsupported
languages and failing snippets are ordinary results and never reach here.
"""

import logging
from typing import Any, Dict, Optional

from posthog import Posthog

from .config import Settings

logger = logging.getLogger(__name__)

SERVICE = "codepool"


class PostHogClient:
    """Process-wide PostHog client, disabled unless an API key is configured"""

    _instance: Optional[Posthog] = None

    @classmethod
    def initialize(cls, settings: Settings) -> None:
        """Create the client on application startup"""
        if not settings.posthog_api_key:
            logger.info("CODEPOOL_POSTHOG_API_KEY not set, error reporting disabled")
            return

        cls._instance = Posthog(
            project_api_key=settings.posthog_api_key,
            host=settings.posthog_host,
            on_error=lambda error, items: logger.error(f"PostHog delivery failed: {error}"),
        )
        logger.info(f"Reporting defects to PostHog at {settings.posthog_host}")

    @classmethod
    def is_enabled(cls) -> bool:
        return cls._instance is not None

    @classmethod
    def report(
        cls,
        exception: BaseException,
        distinct_id: str,
        properties: Dict[str, Any],
    ) -> None:
        """
        Queue an $exception event.

        Events are sent by the PostHog consumer thread; nothing here
        waits on the network.
        """
        if cls._instance is None:
            return

        try:
            cls._instance.capture(
                distinct_id=distinct_id,
                event="$exception",
                properties={
                    "service": SERVICE,
                    "error_type": type(exception).__name__,
                    "error_message": str(exception),
                    **properties,
                },
            )
        except Exception as e:
            logger.error(f"Failed to queue exception for PostHog: {e}")

    @classmethod
    def shutdown(cls) -> None:
        """Flush queued events and drop the client"""
        if cls._instance is None:
            return

        try:
            cls._instance.shutdown()
        finally:
            cls._instance = None


def report_runner_defect(exception: BaseException, execution_id: str, language: str) -> None:
    """Report a runner that raised instead of returning a result"""
    PostHogClient.report(
        exception,
        distinct_id=execution_id,
        properties={"stage": "dispatch", "execution_id": execution_id, "language": language},
    )


def report_unhandled_error(exception: BaseException, path: str) -> None:
    """Report an exception that escaped an API handler"""
    PostHogClient.report(
        exception,
        distinct_id=SERVICE,
        properties={"stage": "api", "path": path},
    )
