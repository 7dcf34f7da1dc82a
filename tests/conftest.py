"""Shared fixtures for Campground tests."""

import copy

import pytest

from campground.config import CampgroundConfig
from campground.hierarchy import HierarchyStore


SAMPLE_HIERARCHY = [
    {
        "id": "org1",
        "name": "Acme",
        "accountType": "STANDARD",
        "defaultCompanyId": "c2",
        "hierarchyDisplayNames": {"company": {"singular": "Business Unit", "plural": "Business Units"}},
        "companies": [
            {
                "id": "c1",
                "name": "Acme Labs",
                "teams": [
                    {
                        "id": "t1",
                        "name": "Platform",
                        "projects": [
                            {"id": "p1", "name": "API Gateway"},
                            {"id": "p2", "name": "Billing"},
                        ],
                    },
                ],
            },
            {
                "id": "c2",
                "name": "Acme Retail",
                "teams": [
                    {"id": "t2", "name": "Storefront", "projects": [{"id": "p3", "name": "Checkout"}]},
                ],
            },
        ],
    },
    {
        "id": "org2",
        "name": "Globex",
        "accountType": "ENTERPRISE",
        "companies": [
            {
                "id": "c3",
                "name": "Globex East",
                "teams": [
                    {"id": "t3", "name": "Security", "projects": [{"id": "p4", "name": "Scanner"}]},
                ],
            },
            {"id": "c4", "name": "Globex West", "teams": []},
        ],
    },
    {
        "id": "org3",
        "name": "Initech",
        "accountType": "STANDARD",
        "companies": [],
    },
]


@pytest.fixture
def hierarchy_payload() -> list[dict]:
    """A fresh copy of the sample hierarchy."""
    return copy.deepcopy(SAMPLE_HIERARCHY)


class StaticClient:
    """Stands in for CampgroundClient, serving a fixed hierarchy."""

    def __init__(self, payload: list[dict]):
        self.payload = payload

    def get_hierarchy(self) -> list[dict]:
        return copy.deepcopy(self.payload)


@pytest.fixture
def make_store():
    """Factory for stores loaded from a given hierarchy, nothing selected yet."""
    def _make(payload: list[dict]) -> HierarchyStore:
        store = HierarchyStore(StaticClient(payload))
        store.fetch_hierarchy()
        return store
    return _make


@pytest.fixture
def store(make_store, hierarchy_payload) -> HierarchyStore:
    """Store loaded with the sample hierarchy."""
    return make_store(hierarchy_payload)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config reads and writes inside the test's temporary directory."""
    config_path = tmp_path / ".campground" / "config.json"
    monkeypatch.setattr(
        CampgroundConfig,
        "get_config_path",
        classmethod(lambda cls: config_path),
    )
    monkeypatch.delenv("CAMPGROUND_API_URL", raising=False)
    monkeypatch.delenv("CAMPGROUND_TOKEN", raising=False)
    return config_path
