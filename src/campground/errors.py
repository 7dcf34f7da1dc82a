"""Exceptions raised by the Campground client."""

from typing import Optional


class CampgroundError(Exception):
    """Base exception for Campground client errors."""


class APIError(CampgroundError):
    """Raised when a request to the Campground API fails.
    
    Covers transport failures, non-2xx responses and success responses
    whose body is not JSON. ``status_code`` is None for transport failures.
    """
    
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigError(CampgroundError):
    """Raised for unknown or invalid configuration values."""
