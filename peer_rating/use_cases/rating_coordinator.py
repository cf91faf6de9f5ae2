"""Rating coordinator use case.

Drives a rating request from the `/rate` command to a posted star picker, and
a submission from the picker to a recorded, announced rating. Every failure
is mapped to a user-facing reply by its error kind.
"""

import time
from collections.abc import Callable
from typing import Final

from prometheus_client import Counter

from peer_rating.config.logging_config import get_logger
from peer_rating.domain.exceptions import (
    ChannelAccessError,
    GatewayError,
    PeerRatingError,
    RateLimitExceededError,
    RatingErrorKind,
    UserNotFoundError,
    ValidationError,
)
from peer_rating.domain.models import (
    RatingRequest,
    RatingRequestTrigger,
    SubmitRatingTrigger,
    TriggerOutcome,
)
from peer_rating.domain.protocols import (
    AdmissionControllerProtocol,
    MessagingGatewayProtocol,
    RatingRegistryProtocol,
)
from peer_rating.observability.metrics import (
    PENDING_RATING_REQUESTS,
    RATING_REQUESTS_TOTAL,
    RATING_SUBMISSIONS_TOTAL,
    TRIGGER_DURATION_SECONDS,
)
from peer_rating.services.message_blocks import stars

logger = get_logger(__name__)

Clock = Callable[[], float]

MISSING_REVIEWER_MESSAGE: Final[str] = (
    "Please provide the username who should rate you (e.g. `/rate @username`)"
)
SELF_REVIEWER_MESSAGE: Final[str] = "Please @mention a valid user to rate (you cannot rate yourself)"
GENERIC_GATEWAY_MESSAGE: Final[str] = (
    "⚠️ Something went wrong talking to Slack. Please try again, "
    "or contact your workspace admin if it keeps happening."
)

USER_MESSAGES: Final[dict[RatingErrorKind, str]] = {
    RatingErrorKind.RATE_LIMITED: "⚠️ Rate limit exceeded. Please try again later.",
    RatingErrorKind.NOT_FOUND: (
        "⚠️ Rating request not found. It may be from before the bot restarted."
    ),
    RatingErrorKind.INVALID_STATE: "⚠️ This request has already been rated.",
    RatingErrorKind.SELF_RATING: "⚠️ You cannot rate yourself.",
    RatingErrorKind.INVALID_SCORE: "⚠️ Ratings must be between 1 and 5 stars.",
    RatingErrorKind.REVIEWER_MISMATCH: (
        "⚠️ Only the requested reviewer can submit this rating."
    ),
    RatingErrorKind.GATEWAY: GENERIC_GATEWAY_MESSAGE,
}


def user_message_for(error: PeerRatingError) -> str:
    """Translate a failure into the reply shown to the acting user.

    Args:
        error: Any rating error

    Returns:
        Message text for an ephemeral reply
    """
    kind = error.kind
    if kind == RatingErrorKind.VALIDATION:
        return f"⚠️ {error}"
    if kind == RatingErrorKind.RATE_LIMITED and isinstance(error, RateLimitExceededError):
        if error.retry_after:
            minutes = max(1, round(error.retry_after / 60))
            return (
                "⚠️ Rate limit exceeded. "
                f"Please try again in about {minutes} minute{'s' if minutes != 1 else ''}."
            )
    if isinstance(error, UserNotFoundError):
        return "⚠️ Invalid user mentioned. Please make sure you @mention a valid user."
    if isinstance(error, ChannelAccessError):
        return (
            "⚠️ I can't post in this conversation. "
            "Invite me to the channel first, then try again."
        )
    return USER_MESSAGES[kind]


class RequestCoordinator:
    """Coordinates admission, the registry and the messaging gateway."""

    def __init__(
        self,
        registry: RatingRegistryProtocol,
        admission: AdmissionControllerProtocol,
        gateway: MessagingGatewayProtocol,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._admission = admission
        self._gateway = gateway
        self._clock = clock or time.monotonic

    def request_rating(self, trigger: RatingRequestTrigger) -> TriggerOutcome:
        """Handle a `/rate` command.

        Steps: resolve destination, admit (check and record), create, deliver.
        Delivery failure is reported but the request stays pending.

        Args:
            trigger: Validated command

        Returns:
            Outcome with the reply for the requester
        """
        with TRIGGER_DURATION_SECONDS.labels(trigger="request_rating").time():
            requester_id = trigger.requester_id
            try:
                destination, reviewer_id = self._resolve_destination(trigger)

                now = self._clock()
                if not self._admission.admit(requester_id, now):
                    raise RateLimitExceededError(
                        requester_id,
                        retry_after=self._admission.retry_after(requester_id, now),
                    )

                request = self._registry.create(
                    requester_id, destination, bound_reviewer_id=reviewer_id
                )
            except PeerRatingError as error:
                return self._reject(RATING_REQUESTS_TOTAL, "rating_request_rejected", error)

            PENDING_RATING_REQUESTS.set(self._registry.pending_count())

            logger.info(
                "rating_request_created",
                rating_id=request.id,
                requester_id=requester_id,
                destination=destination,
                bound_reviewer_id=reviewer_id,
            )

            try:
                self._gateway.post_rating_request(destination, request)
            except GatewayError as error:
                logger.error(
                    "rating_affordance_delivery_failed",
                    rating_id=request.id,
                    destination=destination,
                    error=str(error),
                    error_code=error.error_code,
                )
                RATING_REQUESTS_TOTAL.labels(outcome="delivery_failed").inc()
                return TriggerOutcome(
                    ok=False,
                    message=user_message_for(error),
                    request=request,
                    error_kind=error.kind,
                )

            RATING_REQUESTS_TOTAL.labels(outcome="created").inc()
            if reviewer_id:
                message = f"✅ Rating request sent to <@{reviewer_id}>"
            else:
                message = "✅ Rating request posted."
            return TriggerOutcome(ok=True, message=message, request=request)

    def submit_rating(self, trigger: SubmitRatingTrigger) -> TriggerOutcome:
        """Handle a click on the submit button.

        The registry transition is the only step that can fail the trigger.
        Announcement and retraction happen afterwards on a best-effort basis.

        Args:
            trigger: Validated submission

        Returns:
            Outcome with the reply for the reviewer
        """
        with TRIGGER_DURATION_SECONDS.labels(trigger="submit_rating").time():
            try:
                request = self._registry.complete(
                    trigger.rating_id, trigger.reviewer_id, trigger.score
                )
            except PeerRatingError as error:
                return self._reject(
                    RATING_SUBMISSIONS_TOTAL, "rating_submission_rejected", error
                )

            PENDING_RATING_REQUESTS.set(self._registry.pending_count())

            logger.info(
                "rating_completed",
                rating_id=request.id,
                requester_id=request.requester_id,
                reviewer_id=request.reviewer_id,
                score=request.score,
            )
            RATING_SUBMISSIONS_TOTAL.labels(outcome="completed").inc()

            message = self._announce(request)
            self._retract(trigger)
            return TriggerOutcome(ok=True, message=message, request=request)

    def _resolve_destination(
        self, trigger: RatingRequestTrigger
    ) -> tuple[str, str | None]:
        hint = trigger.hint
        if hint.is_direct_message:
            if hint.target_text is None:
                raise ValidationError(MISSING_REVIEWER_MESSAGE)
            reviewer_id = self._gateway.find_user(hint.target_text)
            if reviewer_id == trigger.requester_id:
                raise ValidationError(SELF_REVIEWER_MESSAGE)
            return self._gateway.open_dm_channel(reviewer_id), reviewer_id

        if not self._gateway.verify_channel_access(hint.channel_id):
            raise ChannelAccessError(
                f"No access to channel {hint.channel_id}",
                error_code="channel_not_found",
            )
        return hint.channel_id, None

    def _announce(self, request: RatingRequest) -> str:
        score = request.score or 0
        try:
            self._gateway.post_rating_announcement(request)
        except GatewayError as error:
            logger.error(
                "rating_announcement_failed",
                rating_id=request.id,
                destination=request.destination,
                error=str(error),
                error_code=error.error_code,
            )
            return (
                f"✅ Your {score} {stars(score)} rating was recorded, "
                "but I couldn't post the announcement."
            )
        return f"✅ You rated <@{request.requester_id}> {score} {stars(score)}"

    def _retract(self, trigger: SubmitRatingTrigger) -> None:
        if trigger.affordance is None:
            return
        try:
            self._gateway.delete_message(trigger.affordance)
        except GatewayError as error:
            logger.warning(
                "rating_affordance_retraction_failed",
                rating_id=trigger.rating_id,
                channel_id=trigger.affordance.channel_id,
                ts=trigger.affordance.ts,
                error=str(error),
            )

    def _reject(
        self, counter: Counter, event: str, error: PeerRatingError
    ) -> TriggerOutcome:
        counter.labels(outcome=error.kind.value).inc()
        log = logger.warning if error.kind == RatingErrorKind.GATEWAY else logger.info
        log(event, error_kind=error.kind.value, error=str(error))
        return TriggerOutcome(
            ok=False, message=user_message_for(error), error_kind=error.kind
        )
