"""Client-side hierarchy cache for Campground."""

from .names import DEFAULT_DISPLAY_NAMES, LEVEL_ICONS, resolve_display_name
from .routing import ROUTABLE_SEGMENTS, parse_entity_path, resolve_path
from .store import HierarchyStore
from .tree import Ancestry, HierarchyNode, HierarchyTree, NodeKey

__all__ = [
    "DEFAULT_DISPLAY_NAMES",
    "LEVEL_ICONS",
    "ROUTABLE_SEGMENTS",
    "Ancestry",
    "HierarchyNode",
    "HierarchyStore",
    "HierarchyTree",
    "NodeKey",
    "parse_entity_path",
    "resolve_display_name",
    "resolve_path",
]
