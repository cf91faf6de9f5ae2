#!/usr/bin/env python3
"""Peer rating Slack bot entrypoint.

Loads settings, configures logging and metrics, wires the coordinator into a
Bolt app and serves it until interrupted.
"""

import sys

from peer_rating.config.logging_config import get_logger, setup_logging
from peer_rating.config.settings import get_settings
from peer_rating.observability.metrics import ensure_metrics_exporter
from peer_rating.presentation.slack_app import build_app, build_coordinator, run_app


def main() -> int:
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)
    logger = get_logger("peer_rating.app")

    if settings.metrics_enabled:
        ensure_metrics_exporter(settings.metrics_port)

    coordinator = build_coordinator(settings)
    app = build_app(settings, coordinator)

    logger.info(
        "peer_rating_bot_starting",
        rate_limit_max_requests=settings.rate_limit_max_requests,
        rate_limit_window_seconds=settings.rate_limit_window_seconds,
        socket_mode=settings.socket_mode,
    )
    try:
        run_app(app, settings)
    except KeyboardInterrupt:
        logger.info("peer_rating_bot_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
