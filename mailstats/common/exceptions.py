"""
Custom exceptions for MailStats.
"""

from typing import Any


class MailStatsError(Exception):
    """Base exception for MailStats."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigError(MailStatsError):
    """Configuration related errors."""

    pass


# ==================== Cache ====================


class CacheError(MailStatsError):
    """Cache related errors."""

    pass


class CacheReadError(CacheError):
    """Reading cached statistics failed."""

    pass


class CacheWriteError(CacheError):
    """Writing statistics to the cache failed."""

    pass


# ==================== Upstream API ====================


class ApiError(MailStatsError):
    """Upstream Acelle API call failed."""

    pass


class AuthError(ApiError):
    """Upstream rejected every authentication strategy, or credentials are missing."""

    pass


class ApiTimeoutError(ApiError):
    """Upstream did not answer within the configured timeout."""

    pass


class NetworkError(ApiError):
    """Connection-level failure talking to upstream."""

    pass


class UpstreamStatusError(ApiError):
    """Upstream answered with an unexpected HTTP status."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        super().__init__(message or f"Upstream returned HTTP {status_code}", details)


class MalformedResponseError(ApiError):
    """Upstream body is not JSON or carries no recognizable statistics."""

    pass


# ==================== Resolution ====================


class InvalidCampaignReferenceError(MailStatsError):
    """Campaign has no UID to resolve statistics for."""

    pass
