"""Core request pipeline pieces: rate limiting, client IP, validation, analytics."""

from contactrelay.core.analytics import AnalyticsSnapshot, SubmissionAnalytics, country_for_ip
from contactrelay.core.client_ip import get_client_ip
from contactrelay.core.rate_limiter import ClientRateState, RateLimiter
from contactrelay.core.validation import ContactSubmission, sanitize, validate_submission

__all__ = [
    "AnalyticsSnapshot",
    "ClientRateState",
    "ContactSubmission",
    "RateLimiter",
    "SubmissionAnalytics",
    "country_for_ip",
    "get_client_ip",
    "sanitize",
    "validate_submission",
]
