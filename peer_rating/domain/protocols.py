"""Protocol definitions for dependency inversion.

These abstract interfaces define contracts that adapters must implement.
"""

from typing import Protocol

from peer_rating.domain.models import MessageRef, RatingRequest


class MessagingGatewayProtocol(Protocol):
    """Protocol for chat platform interactions needed by the coordinator."""

    def verify_channel_access(self, channel_id: str) -> bool:
        """Check that the bot can see and post to a channel.

        Args:
            channel_id: Channel ID

        Returns:
            True if accessible, False if the channel is unknown to the bot

        Raises:
            GatewayError: On API communication errors
        """
        ...

    def open_dm_channel(self, user_id: str) -> str:
        """Find or open a direct-message conversation with a user.

        Args:
            user_id: User ID

        Returns:
            DM channel ID

        Raises:
            GatewayError: If the conversation cannot be opened
        """
        ...

    def find_user(self, text: str) -> str:
        """Resolve mention text, username or email to a user ID.

        Args:
            text: `<@U123>`, `@name`, display name or email

        Returns:
            User ID

        Raises:
            UserNotFoundError: If no user matches
        """
        ...

    def post_rating_request(self, destination: str, request: RatingRequest) -> MessageRef:
        """Post the interactive star picker tagged with the request id.

        Args:
            destination: Channel or DM ID
            request: Pending rating request

        Returns:
            Reference to the posted message

        Raises:
            GatewayError: On API communication errors
        """
        ...

    def post_rating_announcement(self, request: RatingRequest) -> MessageRef:
        """Announce a completed rating in the request destination.

        Raises:
            GatewayError: On API communication errors
        """
        ...

    def post_message(self, channel_id: str, text: str) -> MessageRef:
        """Post a plain follow-up message.

        Raises:
            GatewayError: On API communication errors
        """
        ...

    def delete_message(self, ref: MessageRef) -> None:
        """Delete a previously posted message.

        Raises:
            GatewayError: On API communication errors
        """
        ...


class RatingRegistryProtocol(Protocol):
    """Protocol for the rating request store."""

    def create(
        self,
        requester_id: str,
        destination: str,
        bound_reviewer_id: str | None = None,
    ) -> RatingRequest: ...

    def get(self, rating_id: str) -> RatingRequest: ...

    def complete(self, rating_id: str, reviewer_id: str, score: int) -> RatingRequest: ...

    def pending_count(self) -> int: ...


class AdmissionControllerProtocol(Protocol):
    """Protocol for per-requester rate limiting."""

    def is_limited(self, requester_id: str, now: float) -> bool: ...

    def record(self, requester_id: str, now: float) -> None: ...

    def admit(self, requester_id: str, now: float) -> bool: ...

    def retry_after(self, requester_id: str, now: float) -> float | None: ...
