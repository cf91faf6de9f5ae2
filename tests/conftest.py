"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from peer_rating.domain.exceptions import (
    ChannelAccessError,
    GatewayError,
    UserNotFoundError,
)
from peer_rating.domain.models import MessageRef, RatingRequest
from peer_rating.services.admission_controller import AdmissionController
from peer_rating.services.rating_registry import RatingRegistry
from peer_rating.use_cases.rating_coordinator import RequestCoordinator


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubGateway:
    """In-memory messaging gateway recording every call."""

    def __init__(self) -> None:
        self.inaccessible_channels: set[str] = set()
        self.users: dict[str, str] = {"<@U2>": "U2", "@bob": "U2", "<@U1>": "U1"}
        self.dm_channels: dict[str, str] = {"U2": "D_U2"}
        self.posted_requests: list[tuple[str, RatingRequest]] = []
        self.announcements: list[RatingRequest] = []
        self.messages: list[tuple[str, str]] = []
        self.deleted: list[MessageRef] = []
        self.post_error: GatewayError | None = None
        self.announce_error: GatewayError | None = None
        self.delete_error: GatewayError | None = None
        self.dm_error: GatewayError | None = None
        self._ts = 0

    def verify_channel_access(self, channel_id: str) -> bool:
        return channel_id not in self.inaccessible_channels

    def open_dm_channel(self, user_id: str) -> str:
        if self.dm_error is not None:
            raise self.dm_error
        try:
            return self.dm_channels[user_id]
        except KeyError as exc:
            raise ChannelAccessError(
                f"no DM with {user_id}", error_code="channel_not_found"
            ) from exc

    def find_user(self, text: str) -> str:
        try:
            return self.users[text]
        except KeyError as exc:
            raise UserNotFoundError(
                f"User not found: {text}", error_code="user_not_found"
            ) from exc

    def post_rating_request(self, destination: str, request: RatingRequest) -> MessageRef:
        if self.post_error is not None:
            raise self.post_error
        self.posted_requests.append((destination, request))
        return self._ref(destination)

    def post_rating_announcement(self, request: RatingRequest) -> MessageRef:
        if self.announce_error is not None:
            raise self.announce_error
        self.announcements.append(request)
        return self._ref(request.destination)

    def post_message(self, channel_id: str, text: str) -> MessageRef:
        self.messages.append((channel_id, text))
        return self._ref(channel_id)

    def delete_message(self, ref: MessageRef) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(ref)

    def _ref(self, channel_id: str) -> MessageRef:
        self._ts += 1
        return MessageRef(channel_id=channel_id, ts=f"1700000000.{self._ts:06d}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> RatingRegistry:
    return RatingRegistry()


@pytest.fixture
def admission() -> AdmissionController:
    return AdmissionController(max_requests=5, window_seconds=15 * 60)


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def coordinator(
    registry: RatingRegistry,
    admission: AdmissionController,
    gateway: StubGateway,
    clock: FakeClock,
) -> RequestCoordinator:
    return RequestCoordinator(registry, admission, gateway, clock=clock)


def _submit_body(
    rating_id: str,
    user_id: str,
    score: str | None = "4",
    *,
    channel_id: str = "C1",
    message_ts: str = "1700000000.000001",
) -> dict[str, Any]:
    """Build a block_actions payload for a submit click."""

    selected: dict[str, Any] | None = (
        {"text": {"type": "plain_text", "text": "⭐"}, "value": score}
        if score is not None
        else None
    )
    return {
        "type": "block_actions",
        "user": {"id": user_id},
        "container": {
            "type": "message",
            "channel_id": channel_id,
            "message_ts": message_ts,
        },
        "channel": {"id": channel_id},
        "message": {"ts": message_ts},
        "state": {
            "values": {
                rating_id: {
                    "star_rating": {
                        "type": "radio_buttons",
                        "selected_option": selected,
                    }
                }
            }
        },
        "actions": [
            {
                "type": "button",
                "action_id": "submit_rating",
                "block_id": rating_id,
                "value": rating_id,
            }
        ],
    }


@pytest.fixture
def submit_body() -> Any:
    """Factory for submit-click payloads."""

    return _submit_body
