"""Campground configuration management.

Handles persistent settings stored in ~/.campground/config.json
"""

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Optional

from campground.api import DEFAULT_API_URL
from campground.errors import ConfigError
from campground.polling import DEFAULT_POLL_INTERVAL


# Default configuration values
DEFAULT_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_THEME = "textual-dark"
DEFAULT_EXPORT_FORMAT = "yaml"  # yaml, json


@dataclass
class ViewState:
    """Dashboard state restored on the next launch."""

    # Path of the last detail view, e.g. "/projects/<id>"
    last_path: Optional[str] = None

    # Active organization when closed
    last_organization_id: Optional[str] = None


@dataclass
class CampgroundConfig:
    """Campground client configuration."""

    # Server
    api_url: str = DEFAULT_API_URL
    session_token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    # Scan progress polling
    poll_interval: float = DEFAULT_POLL_INTERVAL

    # Output
    log_level: str = DEFAULT_LOG_LEVEL
    theme: str = DEFAULT_THEME
    export_format: str = DEFAULT_EXPORT_FORMAT

    # View state - stores last dashboard state for restoration
    view_state: Optional[ViewState] = None

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the config file."""
        return Path.home() / ".campground" / "config.json"

    @classmethod
    def load(cls) -> "CampgroundConfig":
        """Load configuration from file, or return defaults if not found."""
        config_path = cls.get_config_path()

        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                # Only use known fields to avoid issues with old config versions
                known_fields = {f.name for f in fields(cls)}
                filtered_data = {k: v for k, v in data.items() if k in known_fields}

                # Handle nested ViewState
                view_state_data = filtered_data.get("view_state")
                if isinstance(view_state_data, dict):
                    view_state_fields = {f.name for f in fields(ViewState)}
                    filtered_data["view_state"] = ViewState(
                        **{k: v for k, v in view_state_data.items() if k in view_state_fields}
                    )
                elif view_state_data is not None:
                    filtered_data["view_state"] = None

                return cls(**filtered_data)
            except (json.JSONDecodeError, AttributeError, TypeError, ValueError):
                # Invalid config, return defaults
                pass

        return cls()

    def save(self) -> None:
        """Save configuration to file."""
        config_path = self.get_config_path()

        # Ensure directory exists
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)

    def reset(self) -> None:
        """Reset configuration to defaults."""
        for f in fields(self):
            setattr(self, f.name, f.default)

    def set_value(self, key: str, value: str) -> Any:
        """Set a scalar setting from its string form.

        Args:
            key: Setting name, e.g. "api_url" or "poll_interval"
            value: New value as typed on the command line

        Returns:
            The converted value that was stored

        Raises:
            ConfigError: If the key is unknown or the value does not convert
        """
        if key not in SETTABLE_KEYS:
            raise ConfigError(f"Unknown setting: {key}. Choose from: {', '.join(sorted(SETTABLE_KEYS))}")

        converter = SETTABLE_KEYS[key]
        try:
            converted = converter(value)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {key}: {value}") from e

        if key == "export_format" and converted not in dict(EXPORT_FORMAT_OPTIONS):
            raise ConfigError(f"export_format must be one of: {', '.join(dict(EXPORT_FORMAT_OPTIONS))}")
        if key in ("timeout", "poll_interval") and converted <= 0:
            raise ConfigError(f"{key} must be greater than zero")

        setattr(self, key, converted)
        return converted

    def save_view_state(
        self,
        last_path: Optional[str] = None,
        last_organization_id: Optional[str] = None,
    ) -> None:
        """Save the current view state for restoration on next launch."""
        self.view_state = ViewState(
            last_path=last_path,
            last_organization_id=last_organization_id,
        )
        self.save()


def _optional_str(value: str) -> Optional[str]:
    return value or None


SETTABLE_KEYS = {
    "api_url": str,
    "session_token": _optional_str,
    "timeout": float,
    "poll_interval": float,
    "log_level": str.upper,
    "theme": str,
    "export_format": str.lower,
}

EXPORT_FORMAT_OPTIONS = [
    ("yaml", "YAML (.yaml)"),
    ("json", "JSON (.json)"),
]
