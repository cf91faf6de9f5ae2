"""Sliding-window admission control for new rating requests."""

from __future__ import annotations

from collections import deque
from threading import Lock

from peer_rating.config.logging_config import get_logger
from peer_rating.domain.rating_constants import (
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
)

__all__ = ["AdmissionController"]

logger = get_logger(__name__)


class AdmissionController:
    """Per-requester sliding-window counter.

    The controller only measures. Callers check `is_limited` and call
    `record` when admitted; `record` itself never refuses. `admit` does both
    under one lock hold.
    """

    def __init__(
        self,
        *,
        max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_requests = max_requests
        self._window_seconds = float(window_seconds)
        self._timestamps: dict[str, deque[float]] = {}
        self._lock = Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def is_limited(self, requester_id: str, now: float) -> bool:
        """Prune expired timestamps and report whether the requester is at the limit."""

        with self._lock:
            in_window = len(self._prune(requester_id, now))

        limited = in_window >= self._max_requests
        if limited:
            logger.info(
                "admission_limited",
                requester_id=requester_id,
                in_window=in_window,
                max_requests=self._max_requests,
            )
        return limited

    def record(self, requester_id: str, now: float) -> None:
        """Append a request-creation instant for the requester."""

        with self._lock:
            self._timestamps.setdefault(requester_id, deque()).append(now)

    def admit(self, requester_id: str, now: float) -> bool:
        """Check and record in one step.

        Overlapping triggers from one requester cannot both pass the check
        before either records.

        Returns:
            True if admitted and recorded, False if limited
        """
        with self._lock:
            in_window = len(self._prune(requester_id, now))
            if in_window < self._max_requests:
                self._timestamps.setdefault(requester_id, deque()).append(now)
                return True

        logger.info(
            "admission_limited",
            requester_id=requester_id,
            in_window=in_window,
            max_requests=self._max_requests,
        )
        return False

    def retry_after(self, requester_id: str, now: float) -> float | None:
        """Seconds until the requester is admitted again, or None if not limited."""

        with self._lock:
            bucket = self._prune(requester_id, now)
            if len(bucket) < self._max_requests:
                return None
            # Admission reopens once enough of the oldest entries expire.
            blocking = bucket[len(bucket) - self._max_requests]
            return max(self._window_seconds - (now - blocking), 0.0)

    def _prune(self, requester_id: str, now: float) -> deque[float]:
        bucket = self._timestamps.get(requester_id)
        if bucket is None:
            return deque()
        while bucket and now - bucket[0] >= self._window_seconds:
            bucket.popleft()
        if not bucket:
            del self._timestamps[requester_id]
        return bucket
