"""Slack Web API adapter implementing the messaging gateway."""

import time
from collections.abc import Callable, Iterator
from typing import Any, Final

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError

from peer_rating.config.logging_config import get_logger
from peer_rating.domain.exceptions import (
    ChannelAccessError,
    GatewayError,
    SlackRateLimitError,
    UserNotFoundError,
)
from peer_rating.domain.models import MessageRef, RatingRequest
from peer_rating.observability.metrics import SLACK_GATEWAY_ERRORS_TOTAL
from peer_rating.services.mention_parser import (
    ReferenceKind,
    parse_reviewer_reference,
)
from peer_rating.services.message_blocks import (
    build_announcement_blocks,
    build_rating_request_blocks,
    rating_announcement_text,
    rating_request_text,
)

logger = get_logger(__name__)

SleepCallable = Callable[[float], None]

DEFAULT_SLACK_MAX_RETRIES: Final[int] = 3
DEFAULT_SLACK_PAGE_SIZE: Final[int] = 200
DEFAULT_RETRY_AFTER_SECONDS: Final[int] = 10

NO_ACCESS_ERRORS: Final[frozenset[str]] = frozenset(
    {"channel_not_found", "not_in_channel", "is_archived"}
)
USER_MISSING_ERRORS: Final[frozenset[str]] = frozenset(
    {"user_not_found", "users_not_found"}
)
NON_RETRYABLE_ERRORS: Final[frozenset[str]] = (
    NO_ACCESS_ERRORS
    | USER_MISSING_ERRORS
    | frozenset(
        {
            "invalid_auth",
            "not_authed",
            "missing_scope",
            "message_not_found",
            "cant_delete_message",
            "user_not_visible",
            "cannot_dm_bot",
        }
    )
)


def _api_error(operation: str, error_code: str | None) -> GatewayError:
    message = f"Slack {operation} failed: {error_code}"
    if error_code in NO_ACCESS_ERRORS:
        return ChannelAccessError(message, error_code=error_code)
    return GatewayError(message, error_code=error_code)


class SlackGateway:
    """Slack API client for posting, retracting and resolving rating targets."""

    def __init__(
        self,
        bot_token: str,
        *,
        max_retries: int = DEFAULT_SLACK_MAX_RETRIES,
        announcement_timezone: str = "UTC",
        page_size: int = DEFAULT_SLACK_PAGE_SIZE,
        client: Any | None = None,
        sleep: SleepCallable | None = None,
    ) -> None:
        """Initialize Slack gateway.

        Args:
            bot_token: Slack bot user OAuth token
            max_retries: Maximum attempts for transient errors
            announcement_timezone: Timezone for announcement fallback dates
            page_size: Page size for users/conversations listing
            client: Optional pre-built WebClient (useful for testing)
            sleep: Optional sleep override (useful for testing)
        """
        self.client = client or WebClient(token=bot_token)
        self._max_retries = max(max_retries, 1)
        self._announcement_timezone = announcement_timezone
        self._page_size = page_size
        self._sleep = sleep or time.sleep

    def verify_channel_access(self, channel_id: str) -> bool:
        """Check that the bot can see a channel.

        Args:
            channel_id: Slack channel ID

        Returns:
            False when Slack reports the channel as unknown or inaccessible

        Raises:
            GatewayError: On other API communication errors
        """
        try:
            self._call("conversations_info", channel=channel_id)
        except GatewayError as error:
            if error.error_code in NO_ACCESS_ERRORS:
                logger.info(
                    "slack_channel_not_accessible",
                    channel_id=channel_id,
                    error_code=error.error_code,
                )
                return False
            raise
        return True

    def open_dm_channel(self, user_id: str) -> str:
        """Return an existing DM channel with the user, opening one if needed.

        Args:
            user_id: Slack user ID

        Returns:
            DM channel ID

        Raises:
            ChannelAccessError: If Slack does not return a channel
            GatewayError: On API communication errors
        """
        for channel in self._paginate("conversations_list", "channels", types="im"):
            if channel.get("user") == user_id and channel.get("id"):
                return str(channel["id"])

        response = self._call("conversations_open", users=user_id)
        channel_id = (response.get("channel") or {}).get("id")
        if not channel_id:
            raise ChannelAccessError(
                f"Failed to open DM channel with {user_id}",
                error_code="channel_not_found",
            )

        logger.info("slack_dm_channel_opened", user_id=user_id, channel_id=channel_id)
        return str(channel_id)

    def find_user(self, text: str) -> str:
        """Resolve mention text, email or username to a Slack user ID.

        Args:
            text: Reviewer reference typed after the command

        Returns:
            Slack user ID

        Raises:
            UserNotFoundError: If no active user matches
            GatewayError: On API communication errors
        """
        reference = parse_reviewer_reference(text)
        if reference is None:
            raise UserNotFoundError("No user given", error_code="user_not_found")

        try:
            if reference.kind == ReferenceKind.USER_ID:
                response = self._call("users_info", user=reference.value)
                user = response.get("user") or {}
            elif reference.kind == ReferenceKind.EMAIL:
                response = self._call("users_lookupByEmail", email=reference.value)
                user = response.get("user") or {}
            else:
                user = self._find_user_by_name(reference.value) or {}
        except GatewayError as error:
            if error.error_code in USER_MISSING_ERRORS:
                raise UserNotFoundError(
                    f"User not found: {reference.value}",
                    error_code=error.error_code,
                ) from error
            raise

        if not user.get("id") or user.get("deleted"):
            raise UserNotFoundError(
                f"User not found: {reference.value}", error_code="user_not_found"
            )
        return str(user["id"])

    def post_rating_request(self, destination: str, request: RatingRequest) -> MessageRef:
        """Post the interactive star picker for a pending request.

        Args:
            destination: Channel or DM ID
            request: Pending rating request

        Returns:
            Reference to the posted message

        Raises:
            GatewayError: On API communication errors
        """
        response = self._call(
            "chat_postMessage",
            channel=destination,
            text=rating_request_text(request),
            blocks=build_rating_request_blocks(request),
            unfurl_links=False,
            unfurl_media=False,
        )
        return self._message_ref(response, destination)

    def post_rating_announcement(self, request: RatingRequest) -> MessageRef:
        """Post the immutable rating summary to the request destination."""

        response = self._call(
            "chat_postMessage",
            channel=request.destination,
            text=rating_announcement_text(request),
            blocks=build_announcement_blocks(request, self._announcement_timezone),
        )
        return self._message_ref(response, request.destination)

    def post_message(self, channel_id: str, text: str) -> MessageRef:
        """Post a plain-text message."""

        response = self._call("chat_postMessage", channel=channel_id, text=text)
        return self._message_ref(response, channel_id)

    def delete_message(self, ref: MessageRef) -> None:
        """Delete a previously posted message."""

        self._call("chat_delete", channel=ref.channel_id, ts=ref.ts)

    def _find_user_by_name(self, name: str) -> dict[str, Any] | None:
        needle = name.lower()
        for member in self._paginate("users_list", "members"):
            if member.get("deleted"):
                continue
            profile = member.get("profile") or {}
            candidates = (
                member.get("name"),
                profile.get("display_name"),
                profile.get("real_name"),
            )
            if any(candidate and candidate.lower() == needle for candidate in candidates):
                return member
        return None

    def _paginate(
        self, operation: str, key: str, **params: Any
    ) -> Iterator[dict[str, Any]]:
        cursor: str | None = None
        while True:
            page_params = dict(params, limit=self._page_size)
            if cursor:
                page_params["cursor"] = cursor

            response = self._call(operation, **page_params)
            yield from response.get(key) or []

            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                return

    def _message_ref(self, response: Any, fallback_channel: str) -> MessageRef:
        ts = response.get("ts")
        if not ts:
            raise GatewayError("Slack did not return a message timestamp")
        return MessageRef(channel_id=response.get("channel") or fallback_channel, ts=ts)

    def _call(self, operation: str, **params: Any) -> Any:
        """Invoke a WebClient method with retry handling.

        Rate limits honor Retry-After; other transient failures back off
        exponentially. Known permanent errors fail immediately.
        """
        method = getattr(self.client, operation)
        attempt = 0
        while True:
            try:
                response = method(**params)
            except SlackApiError as error:
                error_code = error.response.get("error")
                attempt += 1

                if error_code == "ratelimited":
                    retry_after = int(
                        error.response.headers.get(
                            "Retry-After", DEFAULT_RETRY_AFTER_SECONDS
                        )
                    )
                    logger.warning(
                        "slack_rate_limited",
                        operation=operation,
                        retry_after_seconds=retry_after,
                        attempt=attempt,
                        max_retries=self._max_retries,
                    )
                    if attempt >= self._max_retries:
                        SLACK_GATEWAY_ERRORS_TOTAL.labels(operation=operation).inc()
                        raise SlackRateLimitError(retry_after=retry_after) from error
                    self._sleep(retry_after)
                    continue

                if error_code in NON_RETRYABLE_ERRORS or attempt >= self._max_retries:
                    SLACK_GATEWAY_ERRORS_TOTAL.labels(operation=operation).inc()
                    raise _api_error(operation, error_code) from error

                self._backoff(operation, attempt, str(error))
                continue
            except (SlackClientError, OSError) as error:
                attempt += 1
                if attempt >= self._max_retries:
                    SLACK_GATEWAY_ERRORS_TOTAL.labels(operation=operation).inc()
                    raise GatewayError(
                        f"Slack {operation} failed after {self._max_retries} attempts: {error}"
                    ) from error
                self._backoff(operation, attempt, str(error))
                continue

            if not response.get("ok", False):
                SLACK_GATEWAY_ERRORS_TOTAL.labels(operation=operation).inc()
                raise _api_error(operation, response.get("error"))
            return response

    def _backoff(self, operation: str, attempt: int, error: str) -> None:
        backoff_seconds = 2**attempt
        logger.warning(
            "slack_api_retry",
            operation=operation,
            error=error,
            attempt=attempt,
            max_retries=self._max_retries,
            backoff_seconds=backoff_seconds,
        )
        self._sleep(backoff_seconds)
