"""Tests for Slack payload parsing into rating triggers."""

from typing import Any

import pytest

from peer_rating.domain.exceptions import ValidationError
from peer_rating.domain.models import MessageRef
from peer_rating.presentation.trigger_parsing import (
    parse_rate_command,
    parse_submit_action,
)


def test_channel_command_uses_channel_as_hint() -> None:
    trigger = parse_rate_command(
        {"user_id": "U1", "channel_id": "C1", "channel_name": "general", "text": ""}
    )

    assert trigger.requester_id == "U1"
    assert trigger.hint.channel_id == "C1"
    assert trigger.hint.is_direct_message is False
    assert trigger.hint.target_text is None


def test_direct_message_command_keeps_target_text() -> None:
    trigger = parse_rate_command(
        {
            "user_id": "U1",
            "channel_id": "D024BE91L",
            "channel_name": "directmessage",
            "text": "  <@U2|bob>  ",
        }
    )

    assert trigger.hint.is_direct_message is True
    assert trigger.hint.target_text == "<@U2|bob>"


@pytest.mark.parametrize(
    "command",
    [
        {"channel_id": "C1", "text": ""},
        {"user_id": "U1", "text": ""},
        {"user_id": "", "channel_id": ""},
    ],
)
def test_command_without_requester_or_channel_is_invalid(command: dict[str, Any]) -> None:
    with pytest.raises(ValidationError):
        parse_rate_command(command)


def test_submit_action_reads_id_score_and_affordance(submit_body: Any) -> None:
    trigger = parse_submit_action(submit_body("abc123", "U2", "5"))

    assert trigger.rating_id == "abc123"
    assert trigger.reviewer_id == "U2"
    assert trigger.score == 5
    assert trigger.affordance == MessageRef(channel_id="C1", ts="1700000000.000001")


def test_submit_without_selection_asks_for_rating(submit_body: Any) -> None:
    with pytest.raises(ValidationError, match="select a star rating"):
        parse_submit_action(submit_body("abc123", "U2", None))


def test_submit_with_non_numeric_score_is_invalid(submit_body: Any) -> None:
    with pytest.raises(ValidationError):
        parse_submit_action(submit_body("abc123", "U2", "five"))


def test_submit_out_of_range_score_passes_through(submit_body: Any) -> None:
    # Range checking belongs to the registry
    trigger = parse_submit_action(submit_body("abc123", "U2", "7"))

    assert trigger.score == 7


def test_submit_without_button_action_is_invalid(submit_body: Any) -> None:
    body = submit_body("abc123", "U2", "3")
    body["actions"] = [{"action_id": "star_rating", "block_id": "abc123"}]

    with pytest.raises(ValidationError):
        parse_submit_action(body)


def test_submit_falls_back_to_message_and_channel(submit_body: Any) -> None:
    body = submit_body("abc123", "U2", "3")
    del body["container"]

    trigger = parse_submit_action(body)

    assert trigger.affordance == MessageRef(channel_id="C1", ts="1700000000.000001")


def test_submit_without_message_has_no_affordance(submit_body: Any) -> None:
    body = submit_body("abc123", "U2", "3")
    for key in ("container", "message", "channel"):
        del body[key]

    assert parse_submit_action(body).affordance is None
