"""Rating rules and admission limits.

Score bounds and the default admission window are business rules shared by
the registry, the admission controller and the Slack presentation layer.
"""

from typing import Final

MIN_SCORE: Final[int] = 1
"""Lowest star rating a reviewer can submit."""

MAX_SCORE: Final[int] = 5
"""Highest star rating a reviewer can submit."""

DEFAULT_RATE_LIMIT_MAX_REQUESTS: Final[int] = 5
"""Rating requests a single requester may create per window.

Business rule: a requester reaching this count inside the window is refused
new requests until the oldest one ages out. Submissions are never limited.
"""

DEFAULT_RATE_LIMIT_WINDOW_SECONDS: Final[int] = 15 * 60
"""Sliding window length for admission (15 minutes)."""

STAR_EMOJI: Final[str] = "⭐"

# Block Kit identifiers
STAR_RATING_ACTION_ID: Final[str] = "star_rating"
SUBMIT_RATING_ACTION_ID: Final[str] = "submit_rating"

DIRECT_MESSAGE_CHANNEL_NAME: Final[str] = "directmessage"
DIRECT_MESSAGE_CHANNEL_PREFIX: Final[str] = "D"
