"""
Prometheus metrics for the execution scheduler
"""
from prometheus_client import Counter, Gauge, Histogram

EXECUTIONS_TOTAL = Counter(
    "codepool_executions_total",
    "Completed execution requests",
    ["language", "outcome"],  # outcome: success, failure, timeout, error
)

EXECUTION_DURATION = Histogram(
    "codepool_execution_duration_seconds",
    "Time from admission to result",
    ["language"],
)

QUEUE_WAIT = Histogram(
    "codepool_queue_wait_seconds",
    "Time spent waiting for a free slot",
)

IN_FLIGHT = Gauge(
    "codepool_executions_in_flight",
    "Executions currently holding a slot",
)

DISPATCH_REJECTIONS = Counter(
    "codepool_dispatch_rejections_total",
    "Requests rejected before a runner was invoked",
    ["reason"],  # reason: unsupported, unavailable
)


def language_label(language: str, known) -> str:
    """Bound label cardinality: unknown tags share one label"""
    return language if language in known else "unsupported"
