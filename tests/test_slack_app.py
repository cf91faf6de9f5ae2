"""Tests for the Bolt listener functions and app construction."""

from typing import Any
from unittest.mock import Mock

import pytest
from slack_bolt import App

from peer_rating.config.settings import Settings
from peer_rating.presentation import slack_app
from peer_rating.use_cases.rating_coordinator import RequestCoordinator


@pytest.fixture(autouse=True)
def _clean_slack_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SLACK_SIGNING_SECRET", "SLACK_APP_TOKEN"):
        monkeypatch.delenv(name, raising=False)


def _command(**overrides: Any) -> dict[str, Any]:
    command = {
        "command": "/rate",
        "user_id": "U1",
        "channel_id": "C1",
        "channel_name": "general",
        "text": "",
    }
    command.update(overrides)
    return command


def test_rate_command_acks_then_responds(coordinator: RequestCoordinator, gateway: Any) -> None:
    ack, respond = Mock(), Mock()

    slack_app.handle_rate_command(coordinator, ack=ack, command=_command(), respond=respond)

    ack.assert_called_once_with()
    respond.assert_called_once_with(response_type="ephemeral", text="✅ Rating request posted.")
    assert len(gateway.posted_requests) == 1


def test_rate_command_reports_validation_error(coordinator: RequestCoordinator) -> None:
    ack, respond = Mock(), Mock()

    slack_app.handle_rate_command(
        coordinator, ack=ack, command=_command(user_id=""), respond=respond
    )

    ack.assert_called_once_with()
    assert respond.call_args.kwargs["text"].startswith("⚠️")


def test_rate_command_hides_unexpected_errors() -> None:
    broken = Mock(spec=RequestCoordinator)
    broken.request_rating.side_effect = RuntimeError("boom")
    ack, respond = Mock(), Mock()

    slack_app.handle_rate_command(broken, ack=ack, command=_command(), respond=respond)

    ack.assert_called_once_with()
    respond.assert_called_once_with(
        response_type="ephemeral", text=slack_app.UNEXPECTED_ERROR_MESSAGE
    )


def test_submit_action_records_rating(
    coordinator: RequestCoordinator, gateway: Any, submit_body: Any
) -> None:
    slack_app.handle_rate_command(
        coordinator, ack=Mock(), command=_command(), respond=Mock()
    )
    request = gateway.posted_requests[0][1]
    ack, respond = Mock(), Mock()

    slack_app.handle_submit_action(
        coordinator, ack=ack, body=submit_body(request.id, "U2", "3"), respond=respond
    )

    ack.assert_called_once_with()
    respond.assert_called_once_with(
        response_type="ephemeral",
        replace_original=False,
        text="✅ You rated <@U1> 3 ⭐⭐⭐",
    )
    assert len(gateway.announcements) == 1


def test_submit_action_without_selection(coordinator: RequestCoordinator, submit_body: Any) -> None:
    respond = Mock()

    slack_app.handle_submit_action(
        coordinator, ack=Mock(), body=submit_body("abc", "U2", None), respond=respond
    )

    assert "select a star rating" in respond.call_args.kwargs["text"]


def test_star_selection_only_acks() -> None:
    ack = Mock()

    slack_app.handle_star_selection(ack=ack)

    ack.assert_called_once_with()


def test_build_app_requires_signing_secret_for_http(coordinator: RequestCoordinator) -> None:
    settings = Settings(slack_bot_token="xoxb-test")

    with pytest.raises(ValueError, match="SLACK_SIGNING_SECRET"):
        slack_app.build_app(settings, coordinator, token_verification_enabled=False)


@pytest.mark.parametrize(
    "secrets",
    [
        {"slack_signing_secret": "signing-secret"},
        {"slack_app_token": "xapp-test"},
    ],
)
def test_build_app_registers_listeners(
    coordinator: RequestCoordinator, secrets: dict[str, str]
) -> None:
    settings = Settings(slack_bot_token="xoxb-test", **secrets)

    app = slack_app.build_app(settings, coordinator, token_verification_enabled=False)

    assert isinstance(app, App)
    assert settings.socket_mode is ("slack_app_token" in secrets)
