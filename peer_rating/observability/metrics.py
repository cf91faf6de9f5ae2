"""Prometheus metrics for rating triggers and Slack gateway calls."""

from __future__ import annotations

import threading
from typing import Final

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from peer_rating.config.logging_config import get_logger

logger = get_logger(__name__)

RATING_REQUESTS_TOTAL: Final[Counter] = Counter(
    "rating_requests_total",
    "Rating request triggers by outcome",
    labelnames=("outcome",),
)

RATING_SUBMISSIONS_TOTAL: Final[Counter] = Counter(
    "rating_submissions_total",
    "Rating submission triggers by outcome",
    labelnames=("outcome",),
)

SLACK_GATEWAY_ERRORS_TOTAL: Final[Counter] = Counter(
    "slack_gateway_errors_total",
    "Slack API calls that failed after retries",
    labelnames=("operation",),
)

PENDING_RATING_REQUESTS: Final[Gauge] = Gauge(
    "rating_requests_pending",
    "Rating requests awaiting a submission",
)

TRIGGER_DURATION_SECONDS: Final[Histogram] = Histogram(
    "rating_trigger_duration_seconds",
    "Time spent handling a rating trigger",
    labelnames=("trigger",),
)

_EXPORTER_LOCK = threading.Lock()
_EXPORTER_STARTED = False


def ensure_metrics_exporter(port: int) -> None:
    """Start Prometheus HTTP exporter once per process."""

    global _EXPORTER_STARTED
    with _EXPORTER_LOCK:
        if _EXPORTER_STARTED:
            return

        try:
            start_http_server(port)
        except OSError as exc:
            logger.error(
                "metrics_exporter_start_failed",
                port=port,
                error=str(exc),
            )
            raise

        _EXPORTER_STARTED = True
        logger.info("metrics_exporter_started", port=port)


__all__ = [
    "PENDING_RATING_REQUESTS",
    "RATING_REQUESTS_TOTAL",
    "RATING_SUBMISSIONS_TOTAL",
    "SLACK_GATEWAY_ERRORS_TOTAL",
    "TRIGGER_DURATION_SECONDS",
    "ensure_metrics_exporter",
]
