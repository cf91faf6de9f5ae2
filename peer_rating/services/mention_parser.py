"""Reviewer reference parsing for `/rate` command text.

Turns whatever the requester typed after `/rate` into a typed reference the
gateway can resolve: a user id, an email, or a username.
"""

import re
from enum import Enum
from typing import Final, NamedTuple

from peer_rating.domain.rating_constants import (
    DIRECT_MESSAGE_CHANNEL_NAME,
    DIRECT_MESSAGE_CHANNEL_PREFIX,
)

USER_MENTION_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^<@([UW][A-Z0-9]+)(?:\|[^>]*)?>$"
)
"""Slack escaped mention (e.g., <@U123ABC> or <@U123ABC|jane>)."""

USER_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[UW][A-Z0-9]{6,}$")
"""Bare Slack user id typed without mention formatting."""

MAILTO_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^<mailto:([^|>]+)(?:\|[^>]*)?>$", flags=re.IGNORECASE
)
"""Slack auto-linked email (e.g., <mailto:jane@example.com|jane@example.com>)."""

EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[^@\s<>]+@[^@\s<>]+\.[^@\s<>]+$")


class ReferenceKind(str, Enum):
    """How a reviewer was named."""

    USER_ID = "user_id"
    EMAIL = "email"
    USERNAME = "username"


class ReviewerReference(NamedTuple):
    kind: ReferenceKind
    value: str


def parse_reviewer_reference(text: str) -> ReviewerReference | None:
    """Classify command text as a reviewer reference.

    Mentions, ids and emails are read from the first token; anything else is
    treated as a username or display name and keeps its inner spaces.

    Args:
        text: Raw command text

    Returns:
        Reference, or None when the text is empty

    Example:
        >>> parse_reviewer_reference("<@U0123ABC|jane>")
        ReviewerReference(kind=<ReferenceKind.USER_ID: 'user_id'>, value='U0123ABC')
        >>> parse_reviewer_reference("@jane.doe").value
        'jane.doe'
    """
    tokens = text.strip().split()
    if not tokens:
        return None
    token = tokens[0]

    mention = USER_MENTION_PATTERN.match(token)
    if mention:
        return ReviewerReference(ReferenceKind.USER_ID, mention.group(1))

    mailto = MAILTO_PATTERN.match(token)
    if mailto:
        return ReviewerReference(ReferenceKind.EMAIL, mailto.group(1).lower())

    if EMAIL_PATTERN.match(token):
        return ReviewerReference(ReferenceKind.EMAIL, token.lower())

    if USER_ID_PATTERN.match(token):
        return ReviewerReference(ReferenceKind.USER_ID, token)

    username = text.strip().lstrip("@").strip()
    if not username:
        return None
    return ReviewerReference(ReferenceKind.USERNAME, username.lower())


def is_direct_message(channel_id: str, channel_name: str | None = None) -> bool:
    """Return True if the command was issued from a direct-message conversation."""

    if channel_name == DIRECT_MESSAGE_CHANNEL_NAME:
        return True
    return channel_id.startswith(DIRECT_MESSAGE_CHANNEL_PREFIX)
