"""Main Campground TUI application."""

import threading
from typing import Any, Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Footer, Header, Markdown, Static, Tree
from textual.widgets.tree import TreeNode

from campground.config import CampgroundConfig
from campground.errors import CampgroundError
from campground.hierarchy import LEVEL_ICONS, HierarchyStore
from campground.models import CHILD_COLLECTIONS, HierarchyLevel, NameForm


def item_path(level: HierarchyLevel, item_id: Any) -> Optional[str]:
    """Deep-link path for a team or project, None for other levels."""
    if level in (HierarchyLevel.TEAM, HierarchyLevel.PROJECT):
        return f"/{level.endpoint}/{item_id}"
    return None


def describe_item(store: HierarchyStore, item: Optional[dict]) -> str:
    """Render an item as Markdown for the detail panel."""
    if not item:
        return "_Nothing selected._"

    level = HierarchyLevel.coerce(item.get("type")) or HierarchyLevel.ORGANIZATION
    lines = [f"# {LEVEL_ICONS[level]} {item.get('name') or item.get('id')}", ""]
    lines.append(f"*{store.get_display_name(level)}* `{item.get('id')}`")
    lines.append("")

    rows = [
        (name, value)
        for name, value in item.items()
        if name not in CHILD_COLLECTIONS and name not in ("id", "name", "type", "hierarchyDisplayNames")
    ]
    if rows:
        lines.extend(["| Field | Value |", "|---|---|"])
        for name, value in rows:
            lines.append(f"| {name} | {value} |")
        lines.append("")

    if level.collection:
        children = item.get(level.collection) or []
        label = store.get_display_name(level.child, NameForm.PLURAL)
        lines.append(f"## {label} ({len(children)})")
        for child in children:
            lines.append(f"- {child.get('name') or child.get('id')}")

    return "\n".join(lines)


class CampgroundApp(App):
    """Hierarchy browser for Campground."""

    TITLE = "Campground"
    SUB_TITLE = "Application Portfolio Hierarchy"

    CSS = """
    #main-layout {
        height: 1fr;
        width: 100%;
    }

    #sidebar {
        width: 35%;
        min-width: 30;
        max-width: 70;
        height: 100%;
        border-right: solid $primary;
    }

    #hierarchy-tree {
        height: 100%;
        scrollbar-gutter: stable;
    }

    #main-content {
        width: 1fr;
        height: 100%;
        padding: 0 1;
    }

    #active-bar {
        height: 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("o", "activate_organization", "Activate Org"),
    ]

    def __init__(
        self,
        store: Optional[HierarchyStore] = None,
        config: Optional[CampgroundConfig] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.store = store or HierarchyStore()
        self._config = config
        self._rendered: Optional[tuple] = None
        self._unsubscribe = None
        self._ui_thread: Optional[int] = None
        self._last_path: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="sidebar"):
                yield Tree("Organizations", id="hierarchy-tree")
            with VerticalScroll(id="main-content"):
                yield Static("", id="active-bar")
                yield Markdown("", id="item-detail")
        yield Footer()

    def on_mount(self) -> None:
        self._ui_thread = threading.get_ident()
        self._unsubscribe = self.store.subscribe(self._on_store_change)
        self.query_one("#hierarchy-tree", Tree).root.expand()

        if self.store.tree.is_empty and self.store.client is not None:
            self.load_hierarchy()
        else:
            self._restore_selection()
            self.render_store()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_store_change(self, store: HierarchyStore) -> None:
        # Network actions run in worker threads and notify from there
        if threading.get_ident() == self._ui_thread:
            self.render_store()
        else:
            self.call_from_thread(self.render_store)

    @work(exclusive=True, thread=True)
    def load_hierarchy(self) -> None:
        """Fetch the hierarchy and restore the last selection."""
        try:
            self.store.fetch_hierarchy()
        except CampgroundError as e:
            self.call_from_thread(
                self.notify,
                f"Failed to load hierarchy: {e}",
                severity="error",
            )
            return
        self.call_from_thread(self._restore_selection)

    def _restore_selection(self) -> None:
        if self.store.active_organization is not None:
            return

        view_state = self._config.view_state if self._config else None
        if view_state and view_state.last_path:
            if self.store.set_active_items_from_url(view_state.last_path):
                self._last_path = view_state.last_path
                return
        if view_state and view_state.last_organization_id:
            organization = self.store.tree.get(HierarchyLevel.ORGANIZATION, view_state.last_organization_id)
            if organization is not None:
                self.store.set_active_organization(self.store.tree.materialize(organization.key))
                return
        self.store.set_initial_active_items()

    def render_store(self) -> None:
        """Bring the widgets in line with the store."""
        rendered = (self.store.tree, self.store.tree.version)
        if rendered != self._rendered:
            self._build_tree()
            self._rendered = rendered

        organization = self.store.active_organization
        company = self.store.active_company
        parts = []
        if organization:
            parts.append(f"{self.store.get_display_name('organization')}: {organization.get('name')}")
        if company:
            parts.append(f"{self.store.get_display_name('company')}: {company.get('name')}")
        parts.append(self.store.account_type.value)
        if self.store.is_loading:
            parts.append("loading...")
        self.query_one("#active-bar", Static).update(" | ".join(parts))
        self.query_one("#item-detail", Markdown).update(describe_item(self.store, self.store.selected_item))

    def _build_tree(self) -> None:
        tree = self.query_one("#hierarchy-tree", Tree)
        tree.clear()
        tree.root.set_label(self.store.get_display_name("organization", NameForm.PLURAL))
        for organization in self.store.tree.roots():
            self._add_node(tree.root, organization)
        tree.root.expand()

    def _add_node(self, parent: TreeNode, node) -> None:
        label = f"{LEVEL_ICONS[node.level]} {node.fields.get('name') or node.id}"
        data = {"type": node.level.value, "id": node.id}
        if node.level is HierarchyLevel.PROJECT:
            parent.add_leaf(label, data=data)
            return
        branch = parent.add(label, data=data, expand=node.level is not HierarchyLevel.TEAM)
        for child in node.children:
            self._add_node(branch, self.store.tree.node(child))

    @on(Tree.NodeSelected, "#hierarchy-tree")
    def on_hierarchy_tree_selected(self, event: Tree.NodeSelected) -> None:
        """Select the item behind a tree node."""
        data = event.node.data
        if not data:
            return

        level = HierarchyLevel(data["type"])
        item = self.store.tree.materialize((level, data["id"]))
        if item is None:
            return

        if level is HierarchyLevel.ORGANIZATION:
            self.store.set_active_organization(item)
        elif level is HierarchyLevel.COMPANY:
            self.store.set_active_company(item)
        else:
            self.store.set_selected_item(item)
        self._last_path = item_path(level, data["id"])

    def action_activate_organization(self) -> None:
        """Make the organization of the selected item active."""
        selected = self.store.selected_item
        if not selected:
            return
        ancestry = self.store.tree.ancestry(selected.get("id"))
        if ancestry is None:
            return
        organization = self.store.tree.materialize(ancestry.organization)
        self.store.set_active_organization(organization)
        self.notify(f"Active {self.store.get_display_name('organization').lower()}: {organization.get('name')}")

    def action_refresh(self) -> None:
        """Refetch the hierarchy."""
        if self.store.client is None:
            self.notify("No server configured", severity="warning")
            return
        self.load_hierarchy()
        self.notify("Refreshing hierarchy...")

    def _save_view_state(self) -> None:
        if self._config is None:
            return
        organization = self.store.active_organization
        self._config.save_view_state(
            last_path=self._last_path,
            last_organization_id=organization.get("id") if organization else None,
        )

    async def action_quit(self) -> None:
        """Quit the application, saving view state."""
        self._save_view_state()
        self.exit()
