"""Slack Bolt wiring: `/rate` command and rating picker actions.

Every listener acknowledges first; outcomes are reported afterwards as
ephemeral replies through the response URL.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Final

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler

from peer_rating.adapters.slack_gateway import SlackGateway
from peer_rating.config.logging_config import bind_context, get_logger, unbind_context
from peer_rating.config.settings import Settings
from peer_rating.domain.exceptions import PeerRatingError
from peer_rating.domain.rating_constants import (
    STAR_RATING_ACTION_ID,
    SUBMIT_RATING_ACTION_ID,
)
from peer_rating.presentation.trigger_parsing import (
    parse_rate_command,
    parse_submit_action,
)
from peer_rating.services.admission_controller import AdmissionController
from peer_rating.services.rating_registry import RatingRegistry
from peer_rating.use_cases.rating_coordinator import (
    RequestCoordinator,
    user_message_for,
)

__all__ = [
    "RATE_COMMAND",
    "build_app",
    "build_coordinator",
    "handle_rate_command",
    "handle_star_selection",
    "handle_submit_action",
    "register_handlers",
    "run_app",
]

logger = get_logger(__name__)

RATE_COMMAND: Final[str] = "/rate"
UNEXPECTED_ERROR_MESSAGE: Final[str] = (
    "⚠️ An unexpected error occurred. Please try again."
)

Ack = Callable[..., Any]
Respond = Callable[..., Any]


def handle_rate_command(
    coordinator: RequestCoordinator,
    *,
    ack: Ack,
    command: dict[str, Any],
    respond: Respond,
) -> None:
    """Acknowledge a `/rate` command and reply with the outcome."""

    ack()
    bind_context(trigger="rate_command", user_id=command.get("user_id"))
    try:
        trigger = parse_rate_command(command)
        outcome = coordinator.request_rating(trigger)
        message = outcome.message
    except PeerRatingError as error:
        message = user_message_for(error)
    except Exception:
        logger.exception("rate_command_failed", channel_id=command.get("channel_id"))
        message = UNEXPECTED_ERROR_MESSAGE
    finally:
        unbind_context("trigger", "user_id")

    respond(response_type="ephemeral", text=message)


def handle_submit_action(
    coordinator: RequestCoordinator,
    *,
    ack: Ack,
    body: dict[str, Any],
    respond: Respond,
) -> None:
    """Acknowledge a submit click and reply to the reviewer with the outcome."""
    ack()
    bind_context(trigger="submit_rating", user_id=(body.get("user") or {}).get("id"))
    try:
        trigger = parse_submit_action(body)
        bind_context(rating_id=trigger.rating_id)
        outcome = coordinator.submit_rating(trigger)
        message = outcome.message
    except PeerRatingError as error:
        message = user_message_for(error)
    except Exception:
        logger.exception("submit_rating_failed")
        message = UNEXPECTED_ERROR_MESSAGE
    finally:
        unbind_context("trigger", "user_id", "rating_id")

    respond(response_type="ephemeral", replace_original=False, text=message)


def handle_star_selection(*, ack: Ack) -> None:
    """Acknowledge a radio selection; the score is read on submit."""

    ack()


def register_handlers(app: App, coordinator: RequestCoordinator) -> None:
    """Attach rating listeners to a Bolt app."""

    @app.command(RATE_COMMAND)
    def _rate_command(ack: Ack, command: dict[str, Any], respond: Respond) -> None:
        handle_rate_command(coordinator, ack=ack, command=command, respond=respond)

    @app.action(SUBMIT_RATING_ACTION_ID)
    def _submit_rating(ack: Ack, body: dict[str, Any], respond: Respond) -> None:
        handle_submit_action(coordinator, ack=ack, body=body, respond=respond)

    @app.action(STAR_RATING_ACTION_ID)
    def _star_rating(ack: Ack) -> None:
        handle_star_selection(ack=ack)


def build_coordinator(settings: Settings) -> RequestCoordinator:
    """Create the registry, admission controller and gateway for one process."""

    gateway = SlackGateway(
        settings.slack_bot_token.get_secret_value(),
        max_retries=settings.slack_max_retries,
        announcement_timezone=settings.announcement_timezone,
    )
    admission = AdmissionController(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    return RequestCoordinator(RatingRegistry(), admission, gateway)


def build_app(
    settings: Settings,
    coordinator: RequestCoordinator,
    *,
    token_verification_enabled: bool = True,
) -> App:
    """Create a Bolt app with rating listeners registered.

    Raises:
        ValueError: If serving HTTP without a signing secret
    """
    if settings.socket_mode:
        app = App(
            token=settings.slack_bot_token.get_secret_value(),
            request_verification_enabled=False,
            token_verification_enabled=token_verification_enabled,
        )
    else:
        if settings.slack_signing_secret is None:
            raise ValueError("SLACK_SIGNING_SECRET is required unless SLACK_APP_TOKEN is set")
        app = App(
            token=settings.slack_bot_token.get_secret_value(),
            signing_secret=settings.slack_signing_secret.get_secret_value(),
            token_verification_enabled=token_verification_enabled,
        )

    register_handlers(app, coordinator)
    return app


def run_app(app: App, settings: Settings) -> None:
    """Serve the app via Socket Mode or Bolt's HTTP server until interrupted."""

    if settings.slack_app_token is not None:
        logger.info("slack_app_starting", mode="socket")
        SocketModeHandler(app, settings.slack_app_token.get_secret_value()).start()
        return

    logger.info("slack_app_starting", mode="http", port=settings.port)
    app.start(port=settings.port)
