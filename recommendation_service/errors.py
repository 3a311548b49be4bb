"""
Error types raised by the recommendation service.

Only ``ValidationError`` and ``SessionNotFound`` ever reach callers. The
remaining types are used internally to signal conditions the service
recovers from (cold start, slow scoring passes, superseded refreshes).
"""


class RecommendationError(Exception):
    """Base class for recommendation service errors."""


class ValidationError(RecommendationError, ValueError):
    """Malformed interaction or out-of-range setting. Raised before any state changes."""


class SessionNotFound(RecommendationError, KeyError):
    """No active session exists for the given user."""


class ColdStartCondition(RecommendationError):
    """User has neither history nor declared preferences; handled by a fallback strategy."""


class ComputationTimeout(RecommendationError):
    """A scoring pass exceeded its deadline."""


class StaleRequestSuperseded(RecommendationError):
    """An in-flight refresh was discarded because a newer request arrived."""
