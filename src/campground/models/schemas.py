"""Enums and pydantic payloads for the Campground hierarchy."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class HierarchyLevel(str, Enum):
    """Levels of the Organization > Company > Team > Project hierarchy."""

    ORGANIZATION = "organization"
    COMPANY = "company"
    TEAM = "team"
    PROJECT = "project"

    @classmethod
    def coerce(cls, value: Any) -> Optional["HierarchyLevel"]:
        """Return the level for a value, or None if it names no level."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def child(self) -> Optional["HierarchyLevel"]:
        """The level nested directly below this one."""
        return _CHILD_LEVEL[self]

    @property
    def collection(self) -> Optional[str]:
        """JSON key holding this level's children (None for projects)."""
        return _COLLECTION_KEY[self]

    @property
    def endpoint(self) -> str:
        """REST collection name, e.g. ``companies`` for company."""
        return _ENDPOINT[self]


_CHILD_LEVEL = {
    HierarchyLevel.ORGANIZATION: HierarchyLevel.COMPANY,
    HierarchyLevel.COMPANY: HierarchyLevel.TEAM,
    HierarchyLevel.TEAM: HierarchyLevel.PROJECT,
    HierarchyLevel.PROJECT: None,
}

_COLLECTION_KEY = {
    HierarchyLevel.ORGANIZATION: "companies",
    HierarchyLevel.COMPANY: "teams",
    HierarchyLevel.TEAM: "projects",
    HierarchyLevel.PROJECT: None,
}

_ENDPOINT = {
    HierarchyLevel.ORGANIZATION: "organizations",
    HierarchyLevel.COMPANY: "companies",
    HierarchyLevel.TEAM: "teams",
    HierarchyLevel.PROJECT: "projects",
}

# Keys that carry nested children rather than node fields
CHILD_COLLECTIONS = frozenset(key for key in _COLLECTION_KEY.values() if key)


class AccountType(str, Enum):
    """Organization plans."""

    STANDARD = "STANDARD"  # Single implicit company, picked by defaultCompanyId
    ENTERPRISE = "ENTERPRISE"  # Many companies, user picks the active one

    @classmethod
    def coerce(cls, value: Any) -> Optional["AccountType"]:
        """Return the account type for a value, or None if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class NameForm(str, Enum):
    """Grammatical form of a hierarchy level label."""

    SINGULAR = "singular"
    PLURAL = "plural"


class ScanStatus(str, Enum):
    """Lifecycle states of a DAST scan job."""

    PENDING = "PENDING"
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_active(self) -> bool:
        """Whether the scan is still waiting or running."""
        return self in ACTIVE_SCAN_STATUSES


ACTIVE_SCAN_STATUSES = frozenset({ScanStatus.PENDING, ScanStatus.QUEUED, ScanStatus.RUNNING})


class DisplayName(BaseModel):
    """Custom singular/plural label for one hierarchy level."""

    singular: Optional[str] = None
    plural: Optional[str] = None


class HierarchyDisplayNames(BaseModel):
    """Per-organization overlay renaming the hierarchy levels."""

    organization: Optional[DisplayName] = None
    company: Optional[DisplayName] = None
    team: Optional[DisplayName] = None
    project: Optional[DisplayName] = None

    def to_payload(self) -> dict[str, dict[str, str]]:
        """Dump to the JSON object stored on the organization, unset entries omitted."""
        return self.model_dump(exclude_none=True)


class ScanProgress(BaseModel):
    """Progress report for a DAST scan.

    ``is_active`` is read from the ``isActive`` key; when the server omits it,
    it is derived from ``status``. A report with neither counts as active so
    polling continues.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    progress: Optional[float] = None
    status: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    phase: Optional[str] = None
    message: Optional[str] = None

    @model_validator(mode="after")
    def _derive_is_active(self) -> "ScanProgress":
        if self.is_active is None:
            try:
                self.is_active = ScanStatus(self.status).is_active
            except ValueError:
                self.is_active = True
        return self

    @property
    def scan_status(self) -> Optional[ScanStatus]:
        """Status as an enum, or None if missing or unrecognized."""
        try:
            return ScanStatus(self.status)
        except ValueError:
            return None
