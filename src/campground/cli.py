"""Click CLI for Campground."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import click
from trogon import tui

from campground import __version__
from campground.api import CampgroundClient
from campground.config import EXPORT_FORMAT_OPTIONS, CampgroundConfig
from campground.errors import CampgroundError, ConfigError
from campground.hierarchy import LEVEL_ICONS, HierarchyStore, parse_entity_path, resolve_display_name
from campground.models import HierarchyLevel, ScanProgress
from campground.polling import ProgressPoller


LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


class Settings:
    """Resolved settings for one CLI invocation."""

    def __init__(self, config: CampgroundConfig, api_url: Optional[str], token: Optional[str]):
        self.config = config
        self.api_url = api_url or config.api_url
        self.token = token or config.session_token

    def client(self) -> CampgroundClient:
        return CampgroundClient(self.api_url, session_token=self.token, timeout=self.config.timeout)


def load_store(settings: Settings, client: CampgroundClient) -> HierarchyStore:
    """Fetch the hierarchy into a new store and pick the initial selection."""
    store = HierarchyStore(client)
    try:
        store.fetch_hierarchy()
    except CampgroundError as e:
        click.echo(f"Error fetching hierarchy: {e}", err=True)
        raise SystemExit(1)
    store.set_initial_active_items()
    return store


@tui()
@click.group()
@click.version_option(version=__version__, prog_name="campground")
@click.option("--api-url", envvar="CAMPGROUND_API_URL", help="Campground server URL")
@click.option("--token", envvar="CAMPGROUND_TOKEN", help="Session cookie of a logged-in user")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging verbosity (default from config)",
)
@click.pass_context
def cli(ctx: click.Context, api_url: Optional[str], token: Optional[str], log_level: Optional[str]) -> None:
    """Campground - application portfolio hierarchy client.

    Browse the Organization > Company > Team > Project hierarchy and
    follow scan progress from the terminal.

    Quick start:
        campground dashboard                 Launch interactive TUI dashboard
        campground hierarchy show            Print the hierarchy
        campground hierarchy resolve PATH    Resolve a /teams/ or /projects/ link
        campground scans watch PROJECT SCAN  Follow a DAST scan
    """
    config = CampgroundConfig.load()
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = Settings(config, api_url, token)


@cli.command()
@click.pass_obj
def dashboard(settings: Settings) -> None:
    """Launch the interactive TUI dashboard.

    Hierarchy tree with a detail panel for the selected item.

    Keyboard shortcuts:
        q - Quit
        r - Refresh
        o - Make the selected organization active
    """
    from campground.tui import CampgroundApp

    with settings.client() as client:
        app = CampgroundApp(HierarchyStore(client), config=settings.config)
        app.run()


# =============================================================================
# Hierarchy Commands - Inspect the cached hierarchy
# =============================================================================


@cli.group()
def hierarchy() -> None:
    """Inspect and customize the organization hierarchy."""
    pass


def _echo_node(node: dict, level: HierarchyLevel, overlay: Optional[dict], active_ids: set, depth: int) -> None:
    label = resolve_display_name(level, "singular", overlay)
    marker = " *" if node.get("id") in active_ids else ""
    click.echo(f"{'  ' * depth}{LEVEL_ICONS[level]} {label}: {node.get('name')} ({node.get('id')}){marker}")
    if level.collection and level.child:
        for child in node.get(level.collection) or []:
            _echo_node(child, level.child, overlay, active_ids, depth + 1)


@hierarchy.command("show")
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice(["tree", "yaml", "json"]),
    default="tree",
    help="Output format",
)
@click.pass_obj
def hierarchy_show(settings: Settings, output_format: str) -> None:
    """Print the hierarchy. Active organization and company are marked *."""
    with settings.client() as client:
        store = load_store(settings, client)

    if output_format == "json":
        click.echo(json.dumps(store.hierarchy, indent=2, default=str))
        return
    if output_format == "yaml":
        import yaml
        click.echo(yaml.safe_dump(store.hierarchy, sort_keys=False, allow_unicode=True))
        return

    if not store.hierarchy:
        click.echo("No organizations found.")
        return

    active_ids = {
        item.get("id")
        for item in (store.active_organization, store.active_company)
        if item
    }
    for organization in store.hierarchy:
        _echo_node(
            organization,
            HierarchyLevel.ORGANIZATION,
            organization.get("hierarchyDisplayNames"),
            active_ids,
            0,
        )


@hierarchy.command("resolve")
@click.argument("path")
@click.pass_obj
def hierarchy_resolve(settings: Settings, path: str) -> None:
    """Show which organization and company own a deep link.

    PATH: Detail-view path such as /teams/<id> or /projects/<id>
    """
    if parse_entity_path(path) is None:
        click.echo("Error: PATH must look like /teams/<id> or /projects/<id>.", err=True)
        raise SystemExit(1)

    with settings.client() as client:
        store = HierarchyStore(client)
        try:
            store.fetch_hierarchy()
        except CampgroundError as e:
            click.echo(f"Error fetching hierarchy: {e}", err=True)
            raise SystemExit(1)

    if not store.set_active_items_from_url(path):
        click.echo(f"⚠️  {path} is not in the hierarchy; using the default selection.")

    organization = store.active_organization
    company = store.active_company
    selected = store.selected_item
    if organization is None:
        click.echo("No organizations found.")
        return

    click.echo(f"{store.get_display_name('organization')}: {organization.get('name')} ({organization.get('id')})")
    if company:
        click.echo(f"{store.get_display_name('company')}: {company.get('name')} ({company.get('id')})")
    if selected and selected.get("id") not in (organization.get("id"), company and company.get("id")):
        level = selected.get("type", "item")
        click.echo(f"{store.get_display_name(level)}: {selected.get('name')} ({selected.get('id')})")
    click.echo(f"Account type: {store.account_type.value}")


@hierarchy.command("names")
@click.argument("organization_id")
@click.option(
    "--level", "-l",
    type=click.Choice([level.value for level in HierarchyLevel]),
    required=True,
    help="Hierarchy level to rename",
)
@click.option("--singular", "-s", help="Singular label, e.g. 'Business Unit'")
@click.option("--plural", "-p", help="Plural label, e.g. 'Business Units'")
@click.pass_obj
def hierarchy_names(
    settings: Settings,
    organization_id: str,
    level: str,
    singular: Optional[str],
    plural: Optional[str],
) -> None:
    """Rename a hierarchy level for one organization.

    ORGANIZATION_ID: Organization whose labels change
    """
    if not singular and not plural:
        click.echo("Error: give --singular and/or --plural.", err=True)
        raise SystemExit(1)

    with settings.client() as client:
        store = load_store(settings, client)
        node = store.tree.get(HierarchyLevel.ORGANIZATION, organization_id)
        if node is None:
            click.echo(f"Error: Organization '{organization_id}' not found.", err=True)
            raise SystemExit(1)

        names = dict(node.fields.get("hierarchyDisplayNames") or {})
        entry = dict(names.get(level) or {})
        if singular:
            entry["singular"] = singular
        if plural:
            entry["plural"] = plural
        names[level] = entry

        try:
            store.update_hierarchy_display_names(organization_id, names)
        except CampgroundError as e:
            click.echo(f"Error updating names: {e}", err=True)
            raise SystemExit(1)

    overlay = store.tree.get(HierarchyLevel.ORGANIZATION, organization_id).fields.get("hierarchyDisplayNames")
    click.echo(
        f"✅ {level} is now shown as "
        f"'{resolve_display_name(level, 'singular', overlay)}' / '{resolve_display_name(level, 'plural', overlay)}'"
    )


@hierarchy.command("export")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="File to write")
@click.option(
    "--format", "-f", "export_format",
    type=click.Choice([value for value, _ in EXPORT_FORMAT_OPTIONS]),
    help="Export format (default from config)",
)
@click.option("--no-projects", is_flag=True, help="Stop at teams")
@click.pass_obj
def hierarchy_export(
    settings: Settings,
    output: Optional[Path],
    export_format: Optional[str],
    no_projects: bool,
) -> None:
    """Export the hierarchy snapshot to YAML or JSON."""
    from campground.export import export_hierarchy

    with settings.client() as client:
        store = load_store(settings, client)

    content = export_hierarchy(
        store,
        export_format=export_format or settings.config.export_format,
        output_path=output,
        include_projects=not no_projects,
    )
    if output:
        click.echo(f"✅ Exported hierarchy to {output}")
    else:
        click.echo(content)


# =============================================================================
# Scan Commands - Follow DAST scans
# =============================================================================


@cli.group()
def scans() -> None:
    """Follow DAST scans."""
    pass


@scans.command("watch")
@click.argument("project_id")
@click.argument("scan_id")
@click.option(
    "--interval", "-i",
    type=click.FloatRange(min=0),
    help="Seconds between polls (default from config)",
)
@click.pass_obj
def scans_watch(settings: Settings, project_id: str, scan_id: str, interval: Optional[float]) -> None:
    """Poll a scan's progress until it finishes.

    PROJECT_ID: Project that owns the scan
    SCAN_ID: Scan execution id
    """
    def show_progress(report: ScanProgress) -> None:
        progress = f"{report.progress:.0f}%" if report.progress is not None else "?"
        phase = f" - {report.phase}" if report.phase else ""
        click.echo(f"  {report.status or 'UNKNOWN'} {progress}{phase}")

    def show_complete(finished_scan: str) -> None:
        click.echo(f"✅ Scan {finished_scan} finished")

    with settings.client() as client:
        poller = ProgressPoller(
            client.get_scan_progress,
            scan_id,
            project_id,
            is_active=True,
            on_complete=show_complete,
            interval=settings.config.poll_interval if interval is None else interval,
            on_progress=show_progress,
        )
        click.echo(f"🔄 Watching scan {scan_id} (every {poller.interval:g}s, Ctrl+C to stop)")
        try:
            asyncio.run(poller.run())
        except KeyboardInterrupt:
            click.echo("Stopped watching; the scan keeps running on the server.")
            return

    if poller.status in ("FAILED", "CANCELLED"):
        click.echo(f"Scan ended with status {poller.status}", err=True)
        raise SystemExit(1)


# =============================================================================
# Config Commands
# =============================================================================


@cli.group("config")
def config_group() -> None:
    """Show or change stored settings."""
    pass


@config_group.command("show")
@click.pass_obj
def config_show(settings: Settings) -> None:
    """Print the stored settings."""
    config = settings.config
    click.echo(f"Config file: {config.get_config_path()}")
    click.echo(f"  api_url: {config.api_url}")
    click.echo(f"  session_token: {'set' if config.session_token else 'not set'}")
    click.echo(f"  timeout: {config.timeout}")
    click.echo(f"  poll_interval: {config.poll_interval}")
    click.echo(f"  log_level: {config.log_level}")
    click.echo(f"  theme: {config.theme}")
    click.echo(f"  export_format: {config.export_format}")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_obj
def config_set(settings: Settings, key: str, value: str) -> None:
    """Change one setting.

    KEY: Setting name (api_url, session_token, timeout, poll_interval, ...)
    VALUE: New value
    """
    try:
        stored = settings.config.set_value(key, value)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    settings.config.save()
    shown = "set" if key == "session_token" and stored else stored
    click.echo(f"✅ {key} = {shown}")


@config_group.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_obj
def config_reset(settings: Settings, yes: bool) -> None:
    """Restore default settings."""
    if not yes:
        click.confirm("Reset all settings to defaults?", abort=True)
    settings.config.reset()
    settings.config.save()
    click.echo("✅ Settings reset to defaults")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
