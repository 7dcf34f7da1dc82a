"""Arena representation of the Organization > Company > Team > Project forest.

The server returns the hierarchy as nested JSON. Rather than mutating that
nesting in place, nodes are stored flat, keyed by ``(level, id)``, with ordered
child key lists and a parent key per node. Nested dicts in the server's shape
are rebuilt on demand by ``materialize``/``to_payload`` and cached until the
next mutation, so an unchanged tree hands out the same objects.

Lookups by bare id walk the forest depth-first and take the first match. That
is only unambiguous while ids are unique across the whole forest, which the
server is expected to guarantee; ``duplicate_ids`` reports violations.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional

from campground.models import CHILD_COLLECTIONS, HierarchyLevel

logger = logging.getLogger(__name__)

NodeKey = tuple[HierarchyLevel, Any]


@dataclass
class HierarchyNode:
    """A single node in the arena."""

    level: HierarchyLevel
    id: Any
    fields: dict[str, Any]
    parent: Optional[NodeKey] = None
    children: list[NodeKey] = field(default_factory=list)

    @property
    def key(self) -> NodeKey:
        return (self.level, self.id)


@dataclass(frozen=True)
class Ancestry:
    """Keys of the chain from an organization down to a located node."""

    organization: NodeKey
    company: Optional[NodeKey] = None
    team: Optional[NodeKey] = None
    project: Optional[NodeKey] = None

    def get(self, level: HierarchyLevel) -> Optional[NodeKey]:
        """Key of the ancestor at ``level``, if the chain reaches it."""
        return getattr(self, level.value)

    @property
    def target(self) -> NodeKey:
        """The deepest key in the chain, i.e. the node that was looked up."""
        return self.project or self.team or self.company or self.organization


class HierarchyTree:
    """Flat, index-based store for the hierarchy forest."""

    def __init__(self) -> None:
        self._nodes: dict[NodeKey, HierarchyNode] = {}
        self._roots: list[NodeKey] = []
        self._version = 0
        self._views: dict[NodeKey, dict[str, Any]] = {}
        self._payload: Optional[list[dict[str, Any]]] = None

    @classmethod
    def from_payload(cls, organizations: Iterable[Mapping[str, Any]]) -> "HierarchyTree":
        """Build a tree from the nested ``GET /api/v1/hierarchy`` response.

        Args:
            organizations: List of organization objects with nested
                ``companies``/``teams``/``projects``

        Returns:
            A new tree; children keep the order they were received in.
        """
        tree = cls()
        for organization in organizations or []:
            tree._insert(organization, HierarchyLevel.ORGANIZATION, None)

        duplicates = tree.duplicate_ids()
        if duplicates:
            logger.warning(
                f"Hierarchy contains ids shared by several nodes: {sorted(map(str, duplicates))}; "
                "lookups by id resolve to the first match"
            )
        return tree

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        """Counter bumped on every structural or field change."""
        return self._version

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    @property
    def is_empty(self) -> bool:
        return not self._roots

    def roots(self) -> list[HierarchyNode]:
        """Organization nodes in order."""
        return [self._nodes[key] for key in self._roots]

    def node(self, key: NodeKey) -> Optional[HierarchyNode]:
        return self._nodes.get(key)

    def get(self, level: HierarchyLevel, node_id: Any) -> Optional[HierarchyNode]:
        """Exact lookup by level and id."""
        return self._nodes.get((level, node_id))

    def children(self, key: NodeKey) -> list[HierarchyNode]:
        node = self._nodes.get(key)
        if node is None:
            return []
        return [self._nodes[child] for child in node.children]

    def walk(self) -> Iterator[HierarchyNode]:
        """Depth-first pre-order traversal of the whole forest."""
        stack = list(reversed(self._roots))
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: Any, level: Optional[HierarchyLevel] = None) -> Optional[HierarchyNode]:
        """First node in ``walk`` order with this id (and level, if given)."""
        if level is not None:
            return self.get(level, node_id)
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def ancestry(self, node_id: Any) -> Optional[Ancestry]:
        """Locate ``node_id`` and collect its ancestors.

        Returns:
            Ancestry chain for the first match, or None if the id is absent.
        """
        node = self.find(node_id)
        if node is None:
            return None

        chain: dict[str, NodeKey] = {}
        key: Optional[NodeKey] = node.key
        while key is not None:
            chain[key[0].value] = key
            key = self._nodes[key].parent
        return Ancestry(**chain)

    def duplicate_ids(self) -> set[Any]:
        """Ids carried by more than one node, at any levels."""
        counts = Counter(key[1] for key in self._nodes)
        return {node_id for node_id, count in counts.items() if count > 1}

    def materialize(self, key: NodeKey) -> Optional[dict[str, Any]]:
        """Nested dict for one node and its subtree, in the server's shape.

        The result is cached until the tree next changes; treat it as read-only.
        """
        cached = self._views.get(key)
        if cached is not None:
            return cached

        node = self._nodes.get(key)
        if node is None:
            return None

        view = dict(node.fields)
        if node.level.collection:
            view[node.level.collection] = [self.materialize(child) for child in node.children]
        self._views[key] = view
        return view

    def to_payload(self) -> list[dict[str, Any]]:
        """The whole forest as a list of nested organization dicts."""
        if self._payload is None:
            self._payload = [self.materialize(key) for key in self._roots]
        return self._payload

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        item: Mapping[str, Any],
        parent_id: Any = None,
        parent_level: Optional[HierarchyLevel] = None,
    ) -> bool:
        """Append ``item`` under its parent.

        ``parent_id=None`` appends an organization at the root. Otherwise the
        parent is the exact ``(parent_level, parent_id)`` node when a level is
        given, else the first node with ``parent_id``. Nested children carried
        by ``item`` are added with it.

        Returns:
            False, leaving the tree untouched, when the item has no usable
            ``type``, the parent is missing, the item's level does not sit
            directly under the parent, or the item is already present.
        """
        level = HierarchyLevel.coerce(item.get("type"))
        if level is None:
            logger.debug(f"Not adding item without a hierarchy type: {item.get('id')!r}")
            return False

        if parent_id is None:
            if level is not HierarchyLevel.ORGANIZATION:
                logger.debug(f"Only organizations can be added at the root, got {level.value}")
                return False
            parent_key = None
        else:
            parent = self.find(parent_id, parent_level)
            if parent is None:
                logger.debug(f"Parent {parent_id!r} not found, {level.value} not added")
                return False
            if parent.level.child is not level:
                logger.debug(f"A {level.value} cannot be nested under a {parent.level.value}")
                return False
            parent_key = parent.key

        if (level, item.get("id")) in self._nodes:
            logger.warning(f"{level.value} {item.get('id')!r} is already in the hierarchy")
            return False

        added = self._insert(item, level, parent_key)
        if added is None:
            return False
        self._touch()
        return True

    def remove(self, node_id: Any, level: HierarchyLevel) -> bool:
        """Remove a node and its whole subtree. False if it is not present."""
        key = (level, node_id)
        node = self._nodes.get(key)
        if node is None:
            logger.debug(f"{level.value} {node_id!r} not found, nothing removed")
            return False

        if node.parent is None:
            self._roots.remove(key)
        else:
            self._nodes[node.parent].children.remove(key)

        stack = [key]
        while stack:
            current = self._nodes.pop(stack.pop())
            stack.extend(current.children)

        self._touch()
        return True

    def update(self, fields: Mapping[str, Any], level: Optional[HierarchyLevel] = None) -> bool:
        """Shallow-merge ``fields`` into the node with ``fields['id']``.

        Child collections and ``type`` in ``fields`` are ignored; structure only
        changes through ``add``/``remove``.

        Returns:
            False if no node carries that id.
        """
        node = self.find(fields.get("id"), level)
        if node is None and level is not None:
            node = self.find(fields.get("id"))
        if node is None:
            logger.debug(f"Node {fields.get('id')!r} not found, nothing updated")
            return False

        node.fields.update(
            (name, value)
            for name, value in fields.items()
            if name not in CHILD_COLLECTIONS and name not in ("id", "type")
        )
        self._touch()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _insert(
        self,
        payload: Mapping[str, Any],
        level: HierarchyLevel,
        parent_key: Optional[NodeKey],
    ) -> Optional[NodeKey]:
        node_id = payload.get("id")
        if node_id is None:
            logger.warning(f"Skipping {level.value} without an id")
            return None

        key = (level, node_id)
        if key in self._nodes:
            logger.warning(f"Skipping repeated {level.value} {node_id!r}")
            return None

        fields = {name: value for name, value in payload.items() if name not in CHILD_COLLECTIONS}
        fields["type"] = level.value
        node = HierarchyNode(level=level, id=node_id, fields=fields, parent=parent_key)
        self._nodes[key] = node

        if parent_key is None:
            self._roots.append(key)
        else:
            self._nodes[parent_key].children.append(key)

        if level.collection and level.child is not None:
            for child in payload.get(level.collection) or []:
                self._insert(child, level.child, key)
        return key

    def _touch(self) -> None:
        self._version += 1
        self._views.clear()
        self._payload = None
