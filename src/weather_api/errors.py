"""Exception types shared by the service layers."""

from typing import Dict, Optional


class WeatherServiceError(Exception):
    """Base class for errors raised by the weather service."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(WeatherServiceError):
    """Raised when a repository lookup matches nothing."""

    status_code = 404


class UpstreamError(WeatherServiceError):
    """Raised when the weather provider fails or returns an unusable payload."""

    status_code = 502


class StorageError(WeatherServiceError):
    """Raised when the relational store fails for a reason other than not-found."""

    status_code = 500


class CacheError(WeatherServiceError):
    """Raised by cache backends. Callers log it and carry on."""

    status_code = 500


class CacheMissError(CacheError):
    """Raised when a cache key is absent."""


class AuthenticationError(WeatherServiceError):
    """Raised for bad credentials or an invalid bearer token."""

    status_code = 401
