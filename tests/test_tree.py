"""Tests for the arena hierarchy tree."""

import logging

import pytest

from campground.hierarchy import Ancestry, HierarchyTree
from campground.models import HierarchyLevel


ORG = HierarchyLevel.ORGANIZATION
COMPANY = HierarchyLevel.COMPANY
TEAM = HierarchyLevel.TEAM
PROJECT = HierarchyLevel.PROJECT


@pytest.fixture
def tree(hierarchy_payload) -> HierarchyTree:
    return HierarchyTree.from_payload(hierarchy_payload)


class TestFromPayload:
    """Tests for building a tree from the server response."""

    def test_counts_every_node(self, tree: HierarchyTree) -> None:
        """Test all organizations, companies, teams and projects are stored."""
        assert len(tree) == 14
        assert not tree.is_empty

    def test_empty_payload(self) -> None:
        """Test an empty response gives an empty tree."""
        tree = HierarchyTree.from_payload([])
        assert tree.is_empty
        assert tree.to_payload() == []

    def test_roots_keep_order(self, tree: HierarchyTree) -> None:
        """Test organizations keep the order they were received in."""
        assert [node.id for node in tree.roots()] == ["org1", "org2", "org3"]

    def test_type_is_stamped_on_each_level(self, tree: HierarchyTree) -> None:
        """Test nodes get a type matching their depth."""
        assert tree.get(ORG, "org1").fields["type"] == "organization"
        assert tree.get(COMPANY, "c1").fields["type"] == "company"
        assert tree.get(TEAM, "t1").fields["type"] == "team"
        assert tree.get(PROJECT, "p1").fields["type"] == "project"

    def test_round_trips_payload_shape(self, tree: HierarchyTree, hierarchy_payload) -> None:
        """Test to_payload rebuilds the nested shape."""
        payload = tree.to_payload()
        assert payload[0]["companies"][0]["teams"][0]["projects"][1]["name"] == "Billing"
        assert payload[1]["companies"][1]["teams"] == []
        assert payload[2]["companies"] == []

    def test_nodes_without_id_are_skipped(self, caplog) -> None:
        """Test a node with no id is dropped with a warning."""
        with caplog.at_level(logging.WARNING):
            tree = HierarchyTree.from_payload([{"name": "Nameless"}, {"id": "org1"}])
        assert len(tree) == 1
        assert "without an id" in caplog.text

    def test_duplicate_ids_warn(self, caplog) -> None:
        """Test ids shared across levels are reported."""
        payload = [{"id": "x", "companies": [{"id": "x", "teams": []}]}]
        with caplog.at_level(logging.WARNING):
            tree = HierarchyTree.from_payload(payload)
        assert tree.duplicate_ids() == {"x"}
        assert "first match" in caplog.text


class TestLookups:
    """Tests for walk, find and ancestry."""

    def test_walk_is_depth_first_pre_order(self, tree: HierarchyTree) -> None:
        """Test traversal visits parents before children, left to right."""
        ids = [node.id for node in tree.walk()]
        assert ids == [
            "org1", "c1", "t1", "p1", "p2", "c2", "t2", "p3",
            "org2", "c3", "t3", "p4", "c4",
            "org3",
        ]

    def test_find_by_id(self, tree: HierarchyTree) -> None:
        """Test bare-id lookup at any depth."""
        assert tree.find("p3").level is PROJECT
        assert tree.find("missing") is None

    def test_find_first_match_wins(self) -> None:
        """Test a shared id resolves to the first node in traversal order."""
        tree = HierarchyTree.from_payload([
            {"id": "dup", "companies": [{"id": "c", "teams": [{"id": "dup", "projects": []}]}]},
        ])
        assert tree.find("dup").level is ORG
        assert tree.find("dup", TEAM).level is TEAM

    def test_ancestry_of_project(self, tree: HierarchyTree) -> None:
        """Test a project's chain reaches its organization."""
        ancestry = tree.ancestry("p3")
        assert ancestry == Ancestry(
            organization=(ORG, "org1"),
            company=(COMPANY, "c2"),
            team=(TEAM, "t2"),
            project=(PROJECT, "p3"),
        )
        assert ancestry.target == (PROJECT, "p3")

    def test_ancestry_of_team(self, tree: HierarchyTree) -> None:
        """Test a team's chain stops at the team."""
        ancestry = tree.ancestry("t3")
        assert ancestry.get(COMPANY) == (COMPANY, "c3")
        assert ancestry.project is None

    def test_ancestry_missing(self, tree: HierarchyTree) -> None:
        """Test an unknown id has no ancestry."""
        assert tree.ancestry("nope") is None

    def test_materialize_is_cached_until_change(self, tree: HierarchyTree) -> None:
        """Test unchanged trees hand out the same view objects."""
        first = tree.materialize((COMPANY, "c1"))
        assert tree.materialize((COMPANY, "c1")) is first
        tree.update({"id": "c1", "name": "Renamed"})
        second = tree.materialize((COMPANY, "c1"))
        assert second is not first
        assert second["name"] == "Renamed"


class TestMutations:
    """Tests for add, remove and update."""

    def test_add_project_under_team(self, tree: HierarchyTree) -> None:
        """Test a project is appended to its team."""
        version = tree.version
        assert tree.add({"id": "p9", "name": "New", "type": "project"}, "t1", TEAM)
        projects = tree.materialize((TEAM, "t1"))["projects"]
        assert [p["id"] for p in projects] == ["p1", "p2", "p9"]
        assert tree.version == version + 1

    def test_add_organization_at_root(self, tree: HierarchyTree) -> None:
        """Test organizations need no parent."""
        assert tree.add({"id": "org9", "type": "organization"})
        assert tree.roots()[-1].id == "org9"
        assert tree.materialize((ORG, "org9"))["companies"] == []

    def test_add_with_nested_children(self, tree: HierarchyTree) -> None:
        """Test children carried by a new item are added too."""
        team = {"id": "t9", "type": "team", "projects": [{"id": "p9"}]}
        assert tree.add(team, "c4", COMPANY)
        assert tree.ancestry("p9").company == (COMPANY, "c4")

    def test_add_missing_parent_is_noop(self, tree: HierarchyTree) -> None:
        """Test an unknown parent leaves the tree unchanged."""
        version = tree.version
        assert not tree.add({"id": "p9", "type": "project"}, "nowhere", TEAM)
        assert tree.version == version
        assert tree.find("p9") is None

    def test_add_wrong_nesting_is_rejected(self, tree: HierarchyTree) -> None:
        """Test a project cannot sit directly under a company."""
        assert not tree.add({"id": "p9", "type": "project"}, "c1", COMPANY)

    def test_add_non_organization_at_root_is_rejected(self, tree: HierarchyTree) -> None:
        """Test only organizations live at the root."""
        assert not tree.add({"id": "c9", "type": "company"})

    def test_add_without_type_is_rejected(self, tree: HierarchyTree) -> None:
        """Test items need a hierarchy type."""
        assert not tree.add({"id": "x"}, "t1", TEAM)

    def test_add_existing_is_rejected(self, tree: HierarchyTree) -> None:
        """Test the same key cannot be added twice."""
        assert not tree.add({"id": "p1", "type": "project"}, "t1", TEAM)

    def test_remove_subtree(self, tree: HierarchyTree) -> None:
        """Test removing a company drops its teams and projects."""
        assert tree.remove("c1", COMPANY)
        assert tree.find("t1") is None
        assert tree.find("p1") is None
        assert len(tree) == 10

    def test_remove_organization(self, tree: HierarchyTree) -> None:
        """Test removing a root."""
        assert tree.remove("org3", ORG)
        assert [node.id for node in tree.roots()] == ["org1", "org2"]

    def test_remove_is_idempotent(self, tree: HierarchyTree) -> None:
        """Test a second removal changes nothing."""
        assert tree.remove("p1", PROJECT)
        payload = tree.to_payload()
        version = tree.version
        assert not tree.remove("p1", PROJECT)
        assert tree.version == version
        assert tree.to_payload() is payload

    def test_remove_needs_matching_level(self, tree: HierarchyTree) -> None:
        """Test the level is part of the identity."""
        assert not tree.remove("p1", TEAM)
        assert tree.find("p1") is not None

    def test_add_then_remove_restores_payload(self, tree: HierarchyTree) -> None:
        """Test add followed by remove leaves an equal forest."""
        before = tree.to_payload()
        tree.add({"id": "t9", "type": "team", "projects": []}, "c2", COMPANY)
        tree.remove("t9", TEAM)
        assert tree.to_payload() == before

    def test_update_merges_fields(self, tree: HierarchyTree) -> None:
        """Test shallow merge keeps untouched fields and structure."""
        assert tree.update({"id": "t1", "name": "Core", "projects": [], "type": "project"})
        team = tree.materialize((TEAM, "t1"))
        assert team["name"] == "Core"
        assert team["type"] == "team"
        assert len(team["projects"]) == 2

    def test_update_falls_back_to_id_lookup(self, tree: HierarchyTree) -> None:
        """Test a wrong level hint still finds the node by id."""
        assert tree.update({"id": "p2", "status": "archived"}, TEAM)
        assert tree.get(PROJECT, "p2").fields["status"] == "archived"

    def test_update_missing_node(self, tree: HierarchyTree) -> None:
        """Test updating an unknown id reports no change."""
        assert not tree.update({"id": "ghost", "name": "x"})
