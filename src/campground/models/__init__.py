"""Data models for Campground."""

from .schemas import (
    ACTIVE_SCAN_STATUSES,
    CHILD_COLLECTIONS,
    AccountType,
    DisplayName,
    HierarchyDisplayNames,
    HierarchyLevel,
    NameForm,
    ScanProgress,
    ScanStatus,
)

__all__ = [
    "ACTIVE_SCAN_STATUSES",
    "CHILD_COLLECTIONS",
    "AccountType",
    "DisplayName",
    "HierarchyDisplayNames",
    "HierarchyLevel",
    "NameForm",
    "ScanProgress",
    "ScanStatus",
]
