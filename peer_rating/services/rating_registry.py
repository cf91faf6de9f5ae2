"""In-memory registry of rating requests.

Single source of truth for pending and completed requests. Completion is a
read-check-write under one lock, so concurrent submissions for the same id
cannot both succeed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from threading import Lock
from uuid import uuid4

from peer_rating.config.logging_config import get_logger
from peer_rating.domain.exceptions import (
    InvalidScoreError,
    InvalidStateError,
    RatingNotFoundError,
    ReviewerMismatchError,
    SelfRatingNotAllowedError,
)
from peer_rating.domain.models import RatingRequest, RatingStatus
from peer_rating.domain.rating_constants import MAX_SCORE, MIN_SCORE

__all__ = ["RatingRegistry"]

logger = get_logger(__name__)

IdFactory = Callable[[], str]


def _new_rating_id() -> str:
    return uuid4().hex


class RatingRegistry:
    """Owns all rating requests keyed by id."""

    def __init__(self, id_factory: IdFactory | None = None) -> None:
        """Initialize an empty registry.

        Args:
            id_factory: Optional id generator (defaults to uuid4 hex)
        """
        self._id_factory = id_factory or _new_rating_id
        self._requests: dict[str, RatingRequest] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)

    def create(
        self,
        requester_id: str,
        destination: str,
        bound_reviewer_id: str | None = None,
    ) -> RatingRequest:
        """Create a pending rating request.

        Admission is the caller's responsibility; creation always succeeds.

        Args:
            requester_id: User asking to be rated
            destination: Channel or DM the affordance will be posted to
            bound_reviewer_id: Optional user who alone may submit the rating

        Returns:
            The stored request
        """
        with self._lock:
            rating_id = self._id_factory()
            while rating_id in self._requests:
                rating_id = self._id_factory()

            request = RatingRequest(
                id=rating_id,
                requester_id=requester_id,
                destination=destination,
                bound_reviewer_id=bound_reviewer_id,
            )
            self._requests[rating_id] = request

        logger.debug(
            "rating_request_stored",
            rating_id=rating_id,
            requester_id=requester_id,
            destination=destination,
        )
        return request

    def get(self, rating_id: str) -> RatingRequest:
        """Look up a request by id.

        Raises:
            RatingNotFoundError: If the id is unknown
        """
        with self._lock:
            request = self._requests.get(rating_id)
        if request is None:
            raise RatingNotFoundError(rating_id)
        return request

    def complete(self, rating_id: str, reviewer_id: str, score: int) -> RatingRequest:
        """Record a reviewer's score and mark the request completed.

        Checks run in a fixed order: existence, state, reviewer, score. A
        failed check leaves the stored request untouched.

        Args:
            rating_id: Request id from the affordance
            reviewer_id: User submitting the rating
            score: Star rating

        Returns:
            The completed request

        Raises:
            RatingNotFoundError: Unknown id
            InvalidStateError: Request already completed
            SelfRatingNotAllowedError: Reviewer is the requester
            ReviewerMismatchError: Request is bound to another reviewer
            InvalidScoreError: Score outside MIN_SCORE..MAX_SCORE
        """
        with self._lock:
            current = self._requests.get(rating_id)
            if current is None:
                raise RatingNotFoundError(rating_id)
            if current.status != RatingStatus.PENDING:
                raise InvalidStateError(rating_id)
            if reviewer_id == current.requester_id:
                raise SelfRatingNotAllowedError("You cannot rate yourself")
            if (
                current.bound_reviewer_id is not None
                and reviewer_id != current.bound_reviewer_id
            ):
                raise ReviewerMismatchError(
                    "Only the requested reviewer can submit this rating"
                )
            if isinstance(score, bool) or not MIN_SCORE <= score <= MAX_SCORE:
                raise InvalidScoreError(score)

            completed = current.model_copy(
                update={
                    "reviewer_id": reviewer_id,
                    "score": score,
                    "status": RatingStatus.COMPLETED,
                    "completed_at": datetime.now(UTC),
                }
            )
            self._requests[rating_id] = completed

        return completed

    def pending_count(self) -> int:
        """Number of requests still awaiting a rating."""

        with self._lock:
            return sum(1 for request in self._requests.values() if request.is_pending)
