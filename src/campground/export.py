"""Hierarchy export - snapshot files of the cached hierarchy.

An export captures the hierarchy as currently cached by a ``HierarchyStore``,
together with the active selection and the level display names in effect.

Format:
```yaml
campground:
  version: "1.0"
  generated_at: "2026-10-17T10:30:00+00:00"

active:
  organization: "org1"
  company: "c1"
  account_type: "STANDARD"

display_names:
  organization: {singular: "Organization", plural: "Organizations"}
  company: {singular: "Business Unit", plural: "Business Units"}
  team: {singular: "Team", plural: "Teams"}
  project: {singular: "Project", plural: "Projects"}

hierarchy:
  - id: "org1"
    name: "Acme"
    type: "organization"
    companies:
      - id: "c1"
        ...
```
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from campground.hierarchy import HierarchyStore
from campground.models import HierarchyLevel, NameForm


EXPORT_VERSION = "1.0"
EXPORT_FORMATS = ("yaml", "json")


def generate_export(store: HierarchyStore, include_projects: bool = True) -> dict:
    """Build an export dictionary from a store.

    Args:
        store: Store holding the cached hierarchy
        include_projects: Keep project nodes under their teams

    Returns:
        Dictionary in export format
    """
    organization = store.active_organization
    company = store.active_company

    hierarchy = store.hierarchy
    if not include_projects:
        hierarchy = [_without_projects(org) for org in hierarchy]

    return {
        "campground": {
            "version": EXPORT_VERSION,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        },
        "active": {
            "organization": organization.get("id") if organization else None,
            "company": company.get("id") if company else None,
            "account_type": store.account_type.value,
        },
        "display_names": {
            level.value: {
                form.value: store.get_display_name(level, form)
                for form in NameForm
            }
            for level in HierarchyLevel
        },
        "hierarchy": hierarchy,
    }


def _without_projects(organization: dict) -> dict:
    return {
        **organization,
        "companies": [
            {
                **company,
                "teams": [
                    {key: value for key, value in team.items() if key != "projects"}
                    for team in company.get("teams", [])
                ],
            }
            for company in organization.get("companies", [])
        ],
    }


def export_hierarchy(
    store: HierarchyStore,
    export_format: str = "yaml",
    output_path: Optional[Path] = None,
    include_projects: bool = True,
) -> str:
    """Render the export as YAML or JSON.

    Args:
        store: Store holding the cached hierarchy
        export_format: "yaml" or "json"
        output_path: Optional path to write file to
        include_projects: Keep project nodes under their teams

    Returns:
        The rendered export
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {export_format}")

    document = generate_export(store, include_projects=include_projects)

    if export_format == "json":
        content = json.dumps(document, indent=2, default=str)
    else:
        content = yaml.safe_dump(
            document,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=100,
        )

    if output_path:
        output_path.write_text(content, encoding="utf-8")

    return content


def parse_export(path: Path) -> dict:
    """Parse an export file (YAML or JSON; JSON is valid YAML)."""
    content = path.read_text(encoding="utf-8")
    return yaml.safe_load(content)


def validate_export(document: dict) -> tuple[bool, list[str]]:
    """Validate an export dictionary.

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    if "campground" not in document:
        errors.append("Missing required 'campground' section")
    elif "version" not in document["campground"]:
        errors.append("Missing export version")

    if not isinstance(document.get("hierarchy"), list):
        errors.append("Missing required 'hierarchy' list")
    else:
        for index, organization in enumerate(document["hierarchy"]):
            if not isinstance(organization, dict) or "id" not in organization:
                errors.append(f"Organization #{index} has no id")

    return len(errors) == 0, errors
