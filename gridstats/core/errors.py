# gridstats/core/errors.py
from __future__ import annotations


class RateLimitExceeded(Exception):
    """
    Raised by a tenant limiter's guard() when the current window is spent.
    `retry_at` is the window's resetAt in epoch milliseconds.
    """

    status = 429

    def __init__(self, retry_at: float, key: str | None = None):
        super().__init__("rate_limit_exceeded")
        self.retry_at = retry_at
        self.key = key


class InvalidTeamIdError(ValueError):
    pass


class PreferenceValidationError(ValueError):
    def __init__(self, field: str, value, reason: str):
        super().__init__(f"{field}={value!r}: {reason}")
        self.field = field
        self.value = value
