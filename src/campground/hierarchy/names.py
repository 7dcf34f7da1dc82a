"""Display-name resolution for hierarchy levels.

Each organization may rename the four levels (e.g. "Business Unit" instead of
"Company"). Resolution is total: anything missing falls back to the defaults,
and an unknown level resolves to its own name.
"""

from typing import Any, Mapping, Optional, Union

from campground.models import HierarchyDisplayNames, HierarchyLevel, NameForm


DEFAULT_DISPLAY_NAMES: dict[str, dict[str, str]] = {
    "organization": {"singular": "Organization", "plural": "Organizations"},
    "company": {"singular": "Company", "plural": "Companies"},
    "team": {"singular": "Team", "plural": "Teams"},
    "project": {"singular": "Project", "plural": "Projects"},
}

LEVEL_ICONS: dict[HierarchyLevel, str] = {
    HierarchyLevel.ORGANIZATION: "🏢",
    HierarchyLevel.COMPANY: "🏬",
    HierarchyLevel.TEAM: "👥",
    HierarchyLevel.PROJECT: "📦",
}

Overlay = Union[HierarchyDisplayNames, Mapping[str, Any], None]


def _key(value: Any) -> str:
    if isinstance(value, (HierarchyLevel, NameForm)):
        return value.value
    return str(value)


def resolve_display_name(
    level: Union[HierarchyLevel, str],
    form: Union[NameForm, str] = NameForm.SINGULAR,
    overlay: Overlay = None,
) -> str:
    """Resolve the label for a hierarchy level.

    Args:
        level: Hierarchy level (enum or its string value)
        form: "singular" or "plural"
        overlay: Organization's ``hierarchyDisplayNames`` (dict or model)

    Returns:
        The override when present and non-empty, else the default label,
        else the level string itself.
    """
    level_key = _key(level)
    form_key = _key(form)

    if isinstance(overlay, HierarchyDisplayNames):
        overlay = overlay.to_payload()

    if isinstance(overlay, Mapping):
        names = overlay.get(level_key)
        if isinstance(names, Mapping):
            custom = names.get(form_key)
            if custom:
                return str(custom)

    default: Optional[str] = DEFAULT_DISPLAY_NAMES.get(level_key, {}).get(form_key)
    return default or level_key
