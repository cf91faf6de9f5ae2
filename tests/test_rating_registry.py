"""Tests for the in-memory rating registry."""

from __future__ import annotations

import threading

import pytest

from peer_rating.domain.exceptions import (
    InvalidScoreError,
    InvalidStateError,
    RatingNotFoundError,
    ReviewerMismatchError,
    SelfRatingNotAllowedError,
)
from peer_rating.domain.models import RatingStatus
from peer_rating.services.rating_registry import RatingRegistry


def test_create_stores_pending_request(registry: RatingRegistry) -> None:
    request = registry.create("U1", "C1")

    assert request.status == RatingStatus.PENDING
    assert request.requester_id == "U1"
    assert request.destination == "C1"
    assert request.reviewer_id is None
    assert request.score is None
    assert len(registry) == 1
    assert registry.get(request.id) == request


def test_create_returns_distinct_ids(registry: RatingRegistry) -> None:
    ids = {registry.create("U1", "C1").id for _ in range(200)}

    assert len(ids) == 200
    assert len(registry) == 200


def test_create_skips_colliding_ids() -> None:
    generated = iter(["same", "same", "other"])
    registry = RatingRegistry(id_factory=lambda: next(generated))

    first = registry.create("U1", "C1")
    second = registry.create("U1", "C1")

    assert first.id == "same"
    assert second.id == "other"


def test_get_unknown_id_raises_not_found(registry: RatingRegistry) -> None:
    created = registry.create("U1", "C1")

    with pytest.raises(RatingNotFoundError):
        registry.get(created.id + "x")


def test_complete_records_reviewer_and_score(registry: RatingRegistry) -> None:
    request = registry.create("U1", "C1")

    completed = registry.complete(request.id, "U2", 4)

    assert completed.status == RatingStatus.COMPLETED
    assert completed.reviewer_id == "U2"
    assert completed.score == 4
    assert completed.completed_at is not None
    assert registry.get(request.id) == completed
    assert registry.pending_count() == 0


def test_second_completion_is_rejected_and_keeps_first(registry: RatingRegistry) -> None:
    request = registry.create("U1", "C1")
    registry.complete(request.id, "U2", 4)

    with pytest.raises(InvalidStateError):
        registry.complete(request.id, "U3", 1)

    stored = registry.get(request.id)
    assert stored.reviewer_id == "U2"
    assert stored.score == 4


def test_self_rating_is_rejected(registry: RatingRegistry) -> None:
    request = registry.create("U1", "C1")

    with pytest.raises(SelfRatingNotAllowedError):
        registry.complete(request.id, "U1", 5)

    assert registry.get(request.id).status == RatingStatus.PENDING


@pytest.mark.parametrize("score", [0, 6, -1, 100])
def test_out_of_range_score_is_rejected(registry: RatingRegistry, score: int) -> None:
    request = registry.create("U1", "C1")

    with pytest.raises(InvalidScoreError):
        registry.complete(request.id, "U2", score)

    stored = registry.get(request.id)
    assert stored.status == RatingStatus.PENDING
    assert stored.score is None


def test_complete_unknown_id_mutates_nothing(registry: RatingRegistry) -> None:
    request = registry.create("U1", "C1")

    with pytest.raises(RatingNotFoundError):
        registry.complete("garbage", "U2", 3)

    assert registry.get(request.id).status == RatingStatus.PENDING
    assert len(registry) == 1


def test_bound_request_only_accepts_bound_reviewer(registry: RatingRegistry) -> None:
    request = registry.create("U1", "D_U2", bound_reviewer_id="U2")

    with pytest.raises(ReviewerMismatchError):
        registry.complete(request.id, "U3", 3)
    assert registry.get(request.id).status == RatingStatus.PENDING

    completed = registry.complete(request.id, "U2", 3)
    assert completed.reviewer_id == "U2"


def test_concurrent_completions_have_one_winner(registry: RatingRegistry) -> None:
    request = registry.create("U1", "C1")
    reviewers = [f"U{n}" for n in range(2, 12)]
    barrier = threading.Barrier(len(reviewers))
    winners: list[str] = []
    losers: list[str] = []
    lock = threading.Lock()

    def _submit(reviewer_id: str) -> None:
        barrier.wait()
        try:
            registry.complete(request.id, reviewer_id, 5)
        except InvalidStateError:
            with lock:
                losers.append(reviewer_id)
        else:
            with lock:
                winners.append(reviewer_id)

    threads = [threading.Thread(target=_submit, args=(r,)) for r in reviewers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1
    assert len(losers) == len(reviewers) - 1
    assert registry.get(request.id).reviewer_id == winners[0]
