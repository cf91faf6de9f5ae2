"""Domain models for the peer rating bot.

All models use Pydantic v2 for validation and serialization.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from peer_rating.domain.exceptions import RatingErrorKind


class RatingStatus(str, Enum):
    """Lifecycle status of a rating request."""

    PENDING = "pending"
    COMPLETED = "completed"


class RatingRequest(BaseModel):
    """A request by one user to be rated by a peer.

    Records are immutable; the registry swaps in an updated copy on completion.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque unique request id")
    requester_id: str = Field(..., description="User who asked to be rated")
    destination: str = Field(
        ..., description="Channel or DM conversation the affordance is posted to"
    )
    bound_reviewer_id: str | None = Field(
        default=None,
        description="Only this user may submit the rating (None = anyone but the requester)",
    )
    reviewer_id: str | None = Field(default=None, description="User who rated")
    score: int | None = Field(default=None, description="Submitted star rating")
    status: RatingStatus = Field(default=RatingStatus.PENDING)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = Field(default=None)

    @property
    def is_pending(self) -> bool:
        return self.status == RatingStatus.PENDING


class MessageRef(BaseModel):
    """Reference to a posted Slack message (channel + ts)."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    ts: str


class DestinationHint(BaseModel):
    """Where the requester invoked the command and whom they named."""

    model_config = ConfigDict(frozen=True)

    channel_id: str = Field(..., min_length=1)
    is_direct_message: bool = False
    target_text: str | None = Field(
        default=None, description="Mention, username or email of the reviewer"
    )

    @field_validator("target_text")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class RatingRequestTrigger(BaseModel):
    """Validated `/rate` invocation."""

    model_config = ConfigDict(frozen=True)

    requester_id: str = Field(..., min_length=1)
    hint: DestinationHint


class SubmitRatingTrigger(BaseModel):
    """Validated click on the submit button of a rating affordance."""

    model_config = ConfigDict(frozen=True)

    rating_id: str = Field(..., min_length=1)
    reviewer_id: str = Field(..., min_length=1)
    score: int
    affordance: MessageRef | None = Field(
        default=None, description="Message to retract once the rating is recorded"
    )


class TriggerOutcome(BaseModel):
    """Result of handling a trigger, ready for the presentation layer."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    message: str
    request: RatingRequest | None = None
    error_kind: RatingErrorKind | None = None
