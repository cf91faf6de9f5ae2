"""Slack payload parsing into validated rating triggers.

Raw slash-command and block-action payloads stop here; everything past this
module works with typed trigger models.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from peer_rating.domain.exceptions import ValidationError
from peer_rating.domain.models import (
    DestinationHint,
    MessageRef,
    RatingRequestTrigger,
    SubmitRatingTrigger,
)
from peer_rating.domain.rating_constants import (
    STAR_RATING_ACTION_ID,
    SUBMIT_RATING_ACTION_ID,
)
from peer_rating.services.mention_parser import is_direct_message

__all__ = ["parse_rate_command", "parse_submit_action"]


def parse_rate_command(command: dict[str, Any]) -> RatingRequestTrigger:
    """Build a request trigger from a `/rate` slash-command payload.

    Args:
        command: Bolt `command` payload

    Returns:
        Validated trigger

    Raises:
        ValidationError: If the requester or channel is missing
    """
    user_id = command.get("user_id") or ""
    channel_id = command.get("channel_id") or ""
    if not user_id or not channel_id:
        raise ValidationError("Could not tell where to post the rating request.")

    try:
        return RatingRequestTrigger(
            requester_id=user_id,
            hint=DestinationHint(
                channel_id=channel_id,
                is_direct_message=is_direct_message(
                    channel_id, command.get("channel_name")
                ),
                target_text=command.get("text"),
            ),
        )
    except PydanticValidationError as exc:
        raise ValidationError("Could not read the /rate command.") from exc


def parse_submit_action(body: dict[str, Any]) -> SubmitRatingTrigger:
    """Build a submission trigger from a `submit_rating` block-action payload.

    The submit button value is the rating id. The star selection is read from
    the state of the block carrying that button.

    Args:
        body: Bolt `body` payload for the block action

    Returns:
        Validated trigger

    Raises:
        ValidationError: If the action, user or star selection is missing or malformed
    """
    reviewer_id = (body.get("user") or {}).get("id") or ""
    action = next(
        (
            candidate
            for candidate in body.get("actions") or []
            if candidate.get("action_id") == SUBMIT_RATING_ACTION_ID
        ),
        None,
    )
    if action is None or not reviewer_id:
        raise ValidationError("Could not read the rating submission.")

    rating_id = action.get("value") or ""
    block_id = action.get("block_id") or rating_id
    if not rating_id:
        raise ValidationError("This rating request is missing its reference.")

    block_state = ((body.get("state") or {}).get("values") or {}).get(block_id) or {}
    selected = (block_state.get(STAR_RATING_ACTION_ID) or {}).get("selected_option")
    if not selected:
        raise ValidationError("Please select a star rating before submitting.")

    try:
        score = int(selected.get("value"))
    except (TypeError, ValueError) as exc:
        raise ValidationError("That star rating could not be read.") from exc

    return SubmitRatingTrigger(
        rating_id=rating_id,
        reviewer_id=reviewer_id,
        score=score,
        affordance=_affordance_ref(body),
    )


def _affordance_ref(body: dict[str, Any]) -> MessageRef | None:
    container = body.get("container") or {}
    channel_id = container.get("channel_id") or (body.get("channel") or {}).get("id")
    ts = container.get("message_ts") or (body.get("message") or {}).get("ts")
    if not channel_id or not ts:
        return None
    return MessageRef(channel_id=channel_id, ts=ts)
