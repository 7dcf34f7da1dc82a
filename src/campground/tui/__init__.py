"""Textual dashboard for Campground."""

from campground.tui.app import CampgroundApp

__all__ = ["CampgroundApp"]
