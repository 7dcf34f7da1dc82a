"""Hierarchy store: the client-side source of truth for the hierarchy.

The store owns a ``HierarchyTree`` plus the active selection (organization,
company, selected item). It is an explicit object handed to whatever UI uses
it; listeners registered with ``subscribe`` are called after each change.

Selections remember a node key and the last snapshot of that node. Reading a
selection returns the live node from the tree while it is still there, so
local mutations show up without refetching. Once the node is gone (removed,
or missing from a newer fetch) the snapshot is returned instead.

Writes are optimistic: after a successful API call the local tree is patched
rather than refetched. Nothing guards against a slow stale response landing
after a newer one, and separate store instances never sync with each other.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from campground.api import CampgroundClient
from campground.errors import CampgroundError
from campground.hierarchy.names import resolve_display_name
from campground.hierarchy.routing import parse_entity_path, resolve_path
from campground.hierarchy.tree import HierarchyTree, NodeKey
from campground.models import (
    CHILD_COLLECTIONS,
    AccountType,
    HierarchyDisplayNames,
    HierarchyLevel,
    NameForm,
)

logger = logging.getLogger(__name__)

Listener = Callable[["HierarchyStore"], None]


@dataclass
class _Selection:
    key: NodeKey
    snapshot: dict[str, Any]


def _fields(item: Mapping[str, Any]) -> dict[str, Any]:
    return {name: value for name, value in item.items() if name not in CHILD_COLLECTIONS}


def _derive_active_company(organization: Optional[Mapping[str, Any]]) -> Optional[dict]:
    """Company to activate for an organization.

    STANDARD organizations use ``defaultCompanyId`` when it names one of their
    companies; everything else gets the first company, or None.
    """
    if not organization:
        return None
    companies = organization.get("companies") or []
    default_id = organization.get("defaultCompanyId")
    if organization.get("accountType") == AccountType.STANDARD and default_id:
        for company in companies:
            if company.get("id") == default_id:
                return company
    return companies[0] if companies else None


class HierarchyStore:
    """State container for the hierarchy tree and the active selection."""

    def __init__(self, client: Optional[CampgroundClient] = None) -> None:
        """Initialize the store.

        Args:
            client: API client used by the network actions. Local operations
                    (selection, add/remove/update) work without one.
        """
        self.client = client
        self._listeners: list[Listener] = []
        self._init_state()

    def _init_state(self) -> None:
        self._tree = HierarchyTree()
        self._active_organization: Optional[_Selection] = None
        self._active_company: Optional[_Selection] = None
        self._selected_item: Optional[_Selection] = None
        self.account_type = AccountType.STANDARD
        self.is_loading = False
        self.error: Optional[str] = None
        self.project_members: list[dict] = []
        self.is_loading_members = False

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(store)`` after every state change.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    @property
    def tree(self) -> HierarchyTree:
        return self._tree

    @property
    def hierarchy(self) -> list[dict]:
        """All organizations with nested companies, teams and projects."""
        return self._tree.to_payload()

    @property
    def active_organization(self) -> Optional[dict]:
        return self._read(self._active_organization)

    @property
    def active_company(self) -> Optional[dict]:
        return self._read(self._active_company)

    @property
    def selected_item(self) -> Optional[dict]:
        return self._read(self._selected_item)

    def get_display_name(
        self,
        level: Union[HierarchyLevel, str],
        form: Union[NameForm, str] = NameForm.SINGULAR,
    ) -> str:
        """Label for a level, honouring the active organization's overlay."""
        organization = self.active_organization
        overlay = organization.get("hierarchyDisplayNames") if organization else None
        return resolve_display_name(level, form, overlay)

    def _read(self, selection: Optional[_Selection]) -> Optional[dict]:
        if selection is None:
            return None
        live = self._tree.materialize(selection.key)
        if live is None:
            return selection.snapshot
        if selection.snapshot.keys() <= live.keys():
            return live
        return {**selection.snapshot, **live}

    def _select(
        self,
        item: Optional[Mapping[str, Any]],
        level: Optional[HierarchyLevel] = None,
    ) -> Optional[_Selection]:
        """Build a selection for an item, working out its level if not given."""
        if item is None:
            return None
        level = level or HierarchyLevel.coerce(item.get("type"))
        if level is None:
            node = self._tree.find(item.get("id"))
            level = node.level if node else HierarchyLevel.ORGANIZATION
        snapshot = dict(item)
        snapshot.setdefault("type", level.value)
        return _Selection(key=(level, item.get("id")), snapshot=snapshot)

    def _select_key(self, key: Optional[NodeKey]) -> Optional[_Selection]:
        if key is None:
            return None
        return _Selection(key=key, snapshot=dict(self._tree.materialize(key) or {}))

    def _pin_selections(self) -> None:
        """Refresh selection snapshots from the tree before nodes may vanish."""
        for selection in (self._active_organization, self._active_company, self._selected_item):
            if selection is not None:
                live = self._tree.materialize(selection.key)
                if live is not None:
                    selection.snapshot = {**selection.snapshot, **live}

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_initial_active_items(self) -> None:
        """Activate the first organization and its derived company.

        Does nothing when the tree is empty or an organization is already active.
        """
        if self._tree.is_empty or self._active_organization is not None:
            return

        organization_key = self._tree.roots()[0].key
        self._activate_organization(self._select_key(organization_key))
        self._notify()

    def set_active_organization(self, organization: Mapping[str, Any]) -> None:
        """Activate an organization, derive its company and select it.

        The company and account type are derived from ``organization`` as
        given, layered over the tree's copy of it. Reads of the active
        organization still come from the tree while the node exists.
        """
        selection = self._select(organization, HierarchyLevel.ORGANIZATION)
        self._activate_organization(selection, organization)
        self._selected_item = selection
        self._notify()

    def _activate_organization(
        self,
        selection: _Selection,
        given: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._active_organization = selection
        organization = {**(self._read(selection) or {}), **(given or {})}
        self._active_company = self._select(
            _derive_active_company(organization), HierarchyLevel.COMPANY
        )
        self.account_type = AccountType.coerce(organization.get("accountType")) or AccountType.STANDARD

    def set_active_company(self, company: Optional[Mapping[str, Any]]) -> None:
        """Activate a company and select it.

        Membership in the active organization is the caller's responsibility.
        """
        selection = self._select(company, HierarchyLevel.COMPANY)
        self._active_company = selection
        self._selected_item = selection
        self._notify()

    def set_selected_item(self, item: Optional[Mapping[str, Any]]) -> None:
        self._selected_item = self._select(item)
        self._notify()

    def set_active_items_from_url(self, pathname: str) -> bool:
        """Activate the organization and company owning the entity in a path.

        Handles ``/teams/<id>`` and ``/projects/<id>``; other paths are ignored.
        When the id is not in the cached tree, falls back to
        ``set_initial_active_items``.

        Returns:
            True if the path was resolved against the tree.
        """
        parsed = parse_entity_path(pathname)
        if parsed is None:
            return False
        level, node_id = parsed

        ancestry = resolve_path(self._tree, pathname)
        if ancestry is None:
            logger.info(f"{level.value} {node_id} not in cached hierarchy, using default selection")
            self.set_initial_active_items()
            return False

        organization = self._select_key(ancestry.organization)
        company_key = ancestry.company
        if company_key is None:
            first = self._tree.children(ancestry.organization)
            company_key = first[0].key if first else None

        self._active_organization = organization
        self._active_company = self._select_key(company_key)
        self._selected_item = self._select_key(ancestry.get(level) or company_key or ancestry.organization)
        self.account_type = (
            AccountType.coerce(organization.snapshot.get("accountType")) or AccountType.STANDARD
        )
        self._notify()
        return True

    def refresh_active_company(self) -> bool:
        """Re-read the active company from the active organization's companies.

        Leaves the current reference untouched when either selection is unset
        or the company is no longer listed.
        """
        organization = self.active_organization
        if self._active_company is None or organization is None:
            return False

        company_id = self._active_company.key[1]
        for company in organization.get("companies") or []:
            if company.get("id") == company_id:
                self._active_company = _Selection(
                    key=(HierarchyLevel.COMPANY, company_id),
                    snapshot={**self._active_company.snapshot, **company},
                )
                self._notify()
                return True
        return False

    # ------------------------------------------------------------------
    # Local mutations
    # ------------------------------------------------------------------

    def add_item(
        self,
        item: Mapping[str, Any],
        parent_id: Any = None,
        parent_type: Union[HierarchyLevel, str, None] = None,
    ) -> bool:
        """Insert a newly created item under its parent.

        ``parent_id=None`` adds an organization at the root. An item without a
        ``type`` takes the level below ``parent_type``.

        Returns:
            False (no change) when the parent cannot be found.
        """
        parent_level = HierarchyLevel.coerce(parent_type)
        if item.get("type") is None and parent_level is not None and parent_level.child:
            item = {**item, "type": parent_level.child.value}

        added = self._tree.add(item, parent_id, parent_level)
        if added:
            self._notify()
        return added

    def remove_item(self, item_id: Any, item_type: Union[HierarchyLevel, str]) -> bool:
        """Remove an item and its subtree. A missing item is a no-op."""
        level = HierarchyLevel.coerce(item_type)
        if level is None:
            return False

        self._pin_selections()
        removed = self._tree.remove(item_id, level)
        if removed:
            self._notify()
        return removed

    def update_item(self, item: Mapping[str, Any]) -> bool:
        """Shallow-merge changed fields into the tree and matching selections.

        An update to the active organization carrying ``accountType`` also
        updates ``account_type``; a STANDARD organization gets its active
        company re-derived.

        Returns:
            True if the tree node or any selection was updated.
        """
        item_id = item.get("id")
        if item_id is None:
            return False

        changed = self._tree.update(item, HierarchyLevel.coerce(item.get("type")))

        fields = {name: value for name, value in _fields(item).items() if name != "type"}
        for selection in (self._selected_item, self._active_organization, self._active_company):
            if selection is not None and selection.key[1] == item_id:
                selection.snapshot.update(fields)
                changed = True

        if self._active_organization is not None and self._active_organization.key[1] == item_id:
            account_type = AccountType.coerce(item.get("accountType"))
            if account_type is not None:
                self.account_type = account_type

            organization = self._read(self._active_organization)
            if organization.get("accountType") == AccountType.STANDARD:
                self._active_company = self._select(
                    _derive_active_company(organization), HierarchyLevel.COMPANY
                )

        if changed:
            self._notify()
        return changed

    def reset(self) -> None:
        """Drop all cached state, e.g. on logout."""
        self._init_state()
        self._notify()

    # ------------------------------------------------------------------
    # Network actions
    # ------------------------------------------------------------------

    def _require_client(self) -> CampgroundClient:
        if self.client is None:
            raise CampgroundError("No API client configured for this store")
        return self.client

    def _begin(self) -> None:
        self.is_loading = True
        self.error = None
        self._notify()

    def _fail(self, error: Exception) -> None:
        self.error = str(error)
        self.is_loading = False
        self._notify()

    def fetch_hierarchy(self) -> None:
        """Replace the tree with ``GET /api/v1/hierarchy``.

        Does not pick a selection; call ``set_initial_active_items`` or
        ``set_active_items_from_url`` afterwards. Existing selections are kept
        by id. On failure the previous tree stays and ``error`` is set.

        Raises:
            CampgroundError: If the request fails
        """
        self._begin()
        try:
            payload = self._require_client().get_hierarchy()
            tree = HierarchyTree.from_payload(payload or [])
        except CampgroundError as e:
            self._fail(e)
            raise

        self._pin_selections()
        self._tree = tree
        self.is_loading = False
        logger.info(f"Loaded hierarchy with {len(tree)} nodes")
        self._notify()

    def fetch_and_set_selected_item(self, item_type: Union[HierarchyLevel, str], item_id: str) -> dict:
        """Load full details for one entity and make it the selected item.

        The previous selection is cleared before the request and is not
        restored if it fails; only ``error`` is left set.

        Raises:
            CampgroundError: If the request fails
        """
        level = HierarchyLevel(item_type)
        self._selected_item = None
        self._begin()
        try:
            data = self._require_client().get_item(level, item_id)
        except CampgroundError as e:
            self._fail(e)
            raise

        item = {**data, "type": level.value}
        self._selected_item = _Selection(key=(level, item.get("id", item_id)), snapshot=item)
        self.is_loading = False
        self._notify()
        return item

    def update_hierarchy_display_names(
        self,
        organization_id: str,
        names: Union[HierarchyDisplayNames, Mapping[str, Any]],
    ) -> dict:
        """Save an organization's level labels and merge the result locally.

        Raises:
            CampgroundError: If the request fails
        """
        if not isinstance(names, HierarchyDisplayNames):
            names = HierarchyDisplayNames.model_validate(names)

        self._begin()
        try:
            updated = self._require_client().update_organization(
                organization_id, {"hierarchyDisplayNames": names.to_payload()}
            )
        except CampgroundError as e:
            self._fail(e)
            raise

        self.is_loading = False
        if not self.update_item({**updated, "id": updated.get("id", organization_id), "type": "organization"}):
            self._notify()
        return updated

    def update_project(self, project_id: str, data: Mapping[str, Any]) -> dict:
        """Save project fields and merge the response locally.

        Raises:
            CampgroundError: If the request fails
        """
        self._begin()
        try:
            updated = self._require_client().update_project(project_id, dict(data))
        except CampgroundError as e:
            self._fail(e)
            raise

        self.is_loading = False
        if not self.update_item({**updated, "id": updated.get("id", project_id), "type": "project"}):
            self._notify()
        return updated

    def fetch_project_members(self, project_id: str) -> list[dict]:
        """Load project members. Failures are logged and keep the old list."""
        self.is_loading_members = True
        self._notify()
        try:
            self.project_members = self._require_client().get_project_members(project_id) or []
        except CampgroundError as e:
            logger.error(f"Failed to fetch members for project {project_id}: {e}")
        finally:
            self.is_loading_members = False
            self._notify()
        return self.project_members
