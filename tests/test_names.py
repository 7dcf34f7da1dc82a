"""Tests for hierarchy level display names."""

from campground.hierarchy import DEFAULT_DISPLAY_NAMES, LEVEL_ICONS, resolve_display_name
from campground.models import DisplayName, HierarchyDisplayNames, HierarchyLevel, NameForm


class TestResolveDisplayName:
    """Tests for resolve_display_name."""

    def test_defaults(self) -> None:
        """Test the built-in labels for every level and form."""
        for level in HierarchyLevel:
            for form in NameForm:
                assert resolve_display_name(level, form) == DEFAULT_DISPLAY_NAMES[level.value][form.value]

    def test_default_form_is_singular(self) -> None:
        """Test the form defaults to singular."""
        assert resolve_display_name("company") == "Company"

    def test_override_from_dict(self) -> None:
        """Test an organization overlay replaces the label."""
        overlay = {"company": {"singular": "Business Unit", "plural": "Business Units"}}
        assert resolve_display_name("company", "plural", overlay) == "Business Units"

    def test_override_from_model(self) -> None:
        """Test a HierarchyDisplayNames model works as an overlay."""
        overlay = HierarchyDisplayNames(team=DisplayName(singular="Squad"))
        assert resolve_display_name(HierarchyLevel.TEAM, NameForm.SINGULAR, overlay) == "Squad"

    def test_partial_override_falls_back(self) -> None:
        """Test a missing form in the overlay uses the default."""
        overlay = {"team": {"singular": "Squad"}}
        assert resolve_display_name("team", "plural", overlay) == "Teams"

    def test_empty_override_falls_back(self) -> None:
        """Test an empty string does not replace the default."""
        overlay = {"project": {"singular": ""}}
        assert resolve_display_name("project", "singular", overlay) == "Project"

    def test_malformed_overlay_is_ignored(self) -> None:
        """Test overlays of the wrong shape fall back to defaults."""
        assert resolve_display_name("team", "singular", {"team": "Squad"}) == "Team"
        assert resolve_display_name("team", "singular", "nonsense") == "Team"

    def test_unknown_level_returns_itself(self) -> None:
        """Test resolution is total for unknown levels."""
        assert resolve_display_name("workspace") == "workspace"
        assert resolve_display_name("workspace", "plural", {"workspace": {"plural": "Spaces"}}) == "Spaces"


class TestHierarchyDisplayNames:
    """Tests for the display name overlay model."""

    def test_to_payload_omits_unset(self) -> None:
        """Test unset levels and forms are not sent to the server."""
        names = HierarchyDisplayNames.model_validate({"company": {"singular": "Division"}})
        assert names.to_payload() == {"company": {"singular": "Division"}}


class TestLevelIcons:
    """Tests for the shared level icons."""

    def test_every_level_has_an_icon(self) -> None:
        """Test each level maps to an icon."""
        assert set(LEVEL_ICONS) == set(HierarchyLevel)

    def test_cli_and_dashboard_share_icons(self) -> None:
        """Test the CLI and the dashboard use the same icon table."""
        from campground import cli
        from campground.tui import app

        assert cli.LEVEL_ICONS is LEVEL_ICONS
        assert app.LEVEL_ICONS is LEVEL_ICONS
