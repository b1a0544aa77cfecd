"""Error taxonomy shared by the ingestion and aggregation pipeline."""

from __future__ import annotations


class QuizTrackError(Exception):
    """Base class for quiztrack errors."""


class ValidationError(QuizTrackError):
    """Malformed tracking or stats input (maps to HTTP 400)."""

    def __init__(self, message: str, field_name: str | None = None) -> None:
        self.message = message
        self.field_name = field_name
        super().__init__(message)


class RateLimitError(QuizTrackError):
    """Client fingerprint exceeded the sliding-window event budget (HTTP 429)."""

    def __init__(self, max_events: int, window_seconds: int) -> None:
        self.max_events = max_events
        self.window_seconds = window_seconds
        self.retry_after_seconds = window_seconds
        super().__init__(f"Rate limit exceeded: max {max_events} events per {window_seconds}s")


class StoreUnavailableError(QuizTrackError):
    """Durable store is down, misconfigured, or not configured at all."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Store unavailable: {reason}")


class AggregationError(QuizTrackError):
    """Aggregation query failed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Aggregation failed: {reason}")


class QueryTimeoutError(AggregationError):
    """Precise aggregation query exceeded its deadline."""


class QueryUnsupportedError(AggregationError):
    """Store lacks the precise aggregation source (view or function)."""
