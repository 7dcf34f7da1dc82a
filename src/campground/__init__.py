"""Campground - client-side hierarchy cache for the Campground API."""

__version__ = "0.1.0"
