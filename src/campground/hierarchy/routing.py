"""Resolve deep-link paths like ``/projects/<id>`` against the cached hierarchy."""

from typing import Optional

from campground.hierarchy.tree import Ancestry, HierarchyTree
from campground.models import HierarchyLevel


# Path prefixes that can be resolved, mapped to the level they point at
ROUTABLE_SEGMENTS: dict[str, HierarchyLevel] = {
    "teams": HierarchyLevel.TEAM,
    "projects": HierarchyLevel.PROJECT,
}


def parse_entity_path(pathname: str) -> Optional[tuple[HierarchyLevel, str]]:
    """Extract the level and id from a detail-view path.

    ``/teams/t1`` -> ``(TEAM, "t1")``; ``/projects/p1/findings`` ->
    ``(PROJECT, "p1")``. Paths with fewer than two segments or another prefix
    give None.
    """
    parts = [part for part in (pathname or "").split("/") if part]
    if len(parts) < 2:
        return None

    level = ROUTABLE_SEGMENTS.get(parts[0])
    if level is None:
        return None
    return level, parts[1]


def resolve_path(tree: HierarchyTree, pathname: str) -> Optional[Ancestry]:
    """Find the ancestry of the entity a path points at.

    Returns:
        Ancestry of the first node carrying the path's id, or None when the
        path is not routable or the id is not in the tree.
    """
    parsed = parse_entity_path(pathname)
    if parsed is None:
        return None
    _, node_id = parsed
    return tree.ancestry(node_id)
