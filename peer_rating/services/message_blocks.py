"""Block Kit builders for rating messages.

The interactive affordance carries the request id verbatim: it is the
`block_id` of the actions block and the `value` of the submit button.
"""

from datetime import datetime
from typing import Any

import pytz

from peer_rating.domain.models import RatingRequest
from peer_rating.domain.rating_constants import (
    MAX_SCORE,
    MIN_SCORE,
    STAR_EMOJI,
    STAR_RATING_ACTION_ID,
    SUBMIT_RATING_ACTION_ID,
)


def stars(score: int) -> str:
    """Render a score as a row of star emoji.

    Example:
        >>> stars(3)
        '⭐⭐⭐'
    """
    return STAR_EMOJI * score


def format_rating_date(completed_at: datetime, tz_name: str = "UTC") -> str:
    """Format a submission timestamp for display.

    Args:
        completed_at: Timezone-aware datetime
        tz_name: Target timezone

    Returns:
        Formatted date string

    Example:
        >>> dt = datetime(2025, 10, 15, 8, 0, tzinfo=pytz.UTC)
        >>> format_rating_date(dt, "Europe/Amsterdam")
        '15.10.2025 10:00'
    """
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return completed_at.astimezone(pytz.UTC).strftime("%d.%m.%Y %H:%M UTC")
    return completed_at.astimezone(tz).strftime("%d.%m.%Y %H:%M")


def rating_request_text(request: RatingRequest) -> str:
    """Notification fallback text for a rating request."""

    if request.bound_reviewer_id:
        return (
            f"<@{request.requester_id}> has requested a rating "
            f"from <@{request.bound_reviewer_id}>!"
        )
    return f"<@{request.requester_id}> has requested a rating!"


def build_rating_request_blocks(request: RatingRequest) -> list[dict[str, Any]]:
    """Build the interactive star picker for a pending request.

    Args:
        request: Pending rating request

    Returns:
        Block list with a section and an actions block tagged with the request id
    """
    options = [
        {
            "text": {"type": "plain_text", "text": stars(score)},
            "value": str(score),
        }
        for score in range(MIN_SCORE, MAX_SCORE + 1)
    ]

    return [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": rating_request_text(request)},
        },
        {
            "type": "actions",
            "block_id": request.id,
            "elements": [
                {
                    "type": "radio_buttons",
                    "action_id": STAR_RATING_ACTION_ID,
                    "options": options,
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Submit Rating"},
                    "action_id": SUBMIT_RATING_ACTION_ID,
                    "value": request.id,
                    "style": "primary",
                },
            ],
        },
    ]


def rating_announcement_text(request: RatingRequest) -> str:
    """Plain-text summary of a completed rating."""

    score = request.score or 0
    return (
        f"<@{request.requester_id}> received a {score}{STAR_EMOJI} rating "
        f"from <@{request.reviewer_id}>"
    )


def build_announcement_blocks(
    request: RatingRequest, tz_name: str = "UTC"
) -> list[dict[str, Any]]:
    """Build the immutable announcement posted after a rating is submitted.

    Args:
        request: Completed rating request
        tz_name: Timezone for the fallback date text

    Returns:
        Block list with a date context and the rating summary
    """
    if request.score is None or request.reviewer_id is None:
        raise ValueError("Announcement requires a completed rating request")

    completed_at = request.completed_at or request.created_at
    epoch = int(completed_at.timestamp())
    fallback = format_rating_date(completed_at, tz_name)

    return [
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": (
                        f"Rating submitted on <!date^{epoch}^{{date_short_pretty}} "
                        f"at {{time}}|{fallback}>"
                    ),
                }
            ],
        },
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"<@{request.requester_id}> received a {request.score} "
                    f"{stars(request.score)} rating from <@{request.reviewer_id}>"
                ),
            },
        },
    ]
