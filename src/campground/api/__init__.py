"""REST client for the Campground API."""

from .client import DEFAULT_API_URL, SESSION_COOKIE, CampgroundClient

__all__ = [
    "DEFAULT_API_URL",
    "SESSION_COOKIE",
    "CampgroundClient",
]
