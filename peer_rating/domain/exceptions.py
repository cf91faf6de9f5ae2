"""Custom exception hierarchy for the peer rating bot.

Every failure a trigger can end in belongs to exactly one RatingErrorKind.
The coordinator matches on the kind to build the user-facing reply.
"""

from enum import Enum


class RatingErrorKind(str, Enum):
    """Closed set of failure kinds for rating triggers."""

    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    SELF_RATING = "self_rating"
    INVALID_SCORE = "invalid_score"
    REVIEWER_MISMATCH = "reviewer_mismatch"
    GATEWAY = "gateway"


class PeerRatingError(Exception):
    """Base exception for all application errors."""

    kind: RatingErrorKind


class ValidationError(PeerRatingError):
    """Missing or malformed targeting information or score selection."""

    kind = RatingErrorKind.VALIDATION


class RateLimitExceededError(PeerRatingError):
    """Requester has used up their admission window."""

    kind = RatingErrorKind.RATE_LIMITED

    def __init__(self, requester_id: str, retry_after: float | None = None) -> None:
        """Initialize with the limited requester and optional seconds until retry."""
        self.requester_id = requester_id
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {requester_id}. Retry after: {retry_after}s"
        )


class RatingNotFoundError(PeerRatingError):
    """No rating request exists for the given id."""

    kind = RatingErrorKind.NOT_FOUND

    def __init__(self, rating_id: str) -> None:
        self.rating_id = rating_id
        super().__init__(f"Rating request not found: {rating_id!r}")


class InvalidStateError(PeerRatingError):
    """Rating request has already been completed."""

    kind = RatingErrorKind.INVALID_STATE

    def __init__(self, rating_id: str) -> None:
        self.rating_id = rating_id
        super().__init__(f"Rating request already completed: {rating_id}")


class SelfRatingNotAllowedError(PeerRatingError):
    """Reviewer is the same user who requested the rating."""

    kind = RatingErrorKind.SELF_RATING


class InvalidScoreError(PeerRatingError):
    """Score outside the allowed star range."""

    kind = RatingErrorKind.INVALID_SCORE

    def __init__(self, score: int) -> None:
        self.score = score
        super().__init__(f"Invalid score: {score}")


class ReviewerMismatchError(PeerRatingError):
    """Request is bound to a different reviewer."""

    kind = RatingErrorKind.REVIEWER_MISMATCH


class GatewayError(PeerRatingError):
    """Slack API communication errors."""

    kind = RatingErrorKind.GATEWAY

    def __init__(self, message: str = "", *, error_code: str | None = None) -> None:
        """Initialize with the Slack error code when one was returned."""
        self.error_code = error_code
        super().__init__(message or f"Slack API error: {error_code}")


class ChannelAccessError(GatewayError):
    """Bot cannot see or post to the destination channel."""


class UserNotFoundError(GatewayError):
    """Mention, username or email did not resolve to a Slack user."""


class SlackRateLimitError(GatewayError):
    """Slack API rate limit exceeded."""

    def __init__(self, retry_after: int | None = None) -> None:
        """Initialize with optional retry_after seconds."""
        self.retry_after = retry_after
        super().__init__(
            f"Slack rate limit exceeded. Retry after: {retry_after}s",
            error_code="ratelimited",
        )
