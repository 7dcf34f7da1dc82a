"""Tests for the Campground REST client."""

import json

import httpx
import pytest
import respx
from httpx import Response

from campground.api import SESSION_COOKIE, CampgroundClient
from campground.errors import APIError
from campground.models import HierarchyLevel


API_URL = "http://campground.test"


@pytest.fixture
def client():
    with CampgroundClient(API_URL, session_token="s%3Aabc") as client:
        yield client


class TestCampgroundClient:
    """Tests for CampgroundClient."""

    def test_context_manager_closes(self) -> None:
        """Test the HTTP client is released on exit."""
        with CampgroundClient(API_URL) as client:
            assert client.client is not None
        assert client._client is None

    def test_base_url_trailing_slash(self) -> None:
        """Test a trailing slash on the base URL is dropped."""
        assert CampgroundClient(f"{API_URL}/").base_url == API_URL

    @respx.mock
    def test_get_hierarchy_sends_session_cookie(self, client: CampgroundClient) -> None:
        """Test the session cookie is sent with requests."""
        route = respx.get(f"{API_URL}/api/v1/hierarchy").mock(
            return_value=Response(200, json=[{"id": "org1", "companies": []}])
        )
        assert client.get_hierarchy() == [{"id": "org1", "companies": []}]
        assert f"{SESSION_COOKIE}=s%3Aabc" in route.calls.last.request.headers["cookie"]

    @respx.mock
    def test_get_item_uses_level_endpoint(self, client: CampgroundClient) -> None:
        """Test each level maps to its REST collection."""
        respx.get(f"{API_URL}/api/v1/companies/c1").mock(return_value=Response(200, json={"id": "c1"}))
        assert client.get_item(HierarchyLevel.COMPANY, "c1") == {"id": "c1"}

    @respx.mock
    def test_get_item_accepts_strings(self, client: CampgroundClient) -> None:
        """Test levels can be given by name."""
        respx.get(f"{API_URL}/api/v1/teams/t1").mock(return_value=Response(200, json={"id": "t1"}))
        assert client.get_item("team", "t1")["id"] == "t1"

    @respx.mock
    def test_update_organization(self, client: CampgroundClient) -> None:
        """Test organization updates are sent as JSON with PUT."""
        route = respx.put(f"{API_URL}/api/v1/organizations/org1").mock(
            return_value=Response(200, json={"id": "org1", "name": "Acme"})
        )
        client.update_organization("org1", {"name": "Acme"})
        assert json.loads(route.calls.last.request.content) == {"name": "Acme"}

    @respx.mock
    def test_get_project_members(self, client: CampgroundClient) -> None:
        """Test project members are listed."""
        respx.get(f"{API_URL}/api/v1/projects/p1/members").mock(
            return_value=Response(200, json=[{"id": "u1"}])
        )
        assert client.get_project_members("p1") == [{"id": "u1"}]

    @respx.mock
    def test_get_scan_progress(self, client: CampgroundClient) -> None:
        """Test progress is parsed into ScanProgress."""
        respx.get(f"{API_URL}/api/v1/projects/p1/dast/scans/s1/progress").mock(
            return_value=Response(200, json={"progress": 42.5, "status": "RUNNING", "isActive": True})
        )
        progress = client.get_scan_progress("p1", "s1")
        assert progress.progress == 42.5
        assert progress.is_active is True

    @respx.mock
    def test_error_uses_server_message(self, client: CampgroundClient) -> None:
        """Test the body's error field becomes the exception message."""
        respx.get(f"{API_URL}/api/v1/hierarchy").mock(
            return_value=Response(401, json={"error": "Not authenticated"})
        )
        with pytest.raises(APIError) as excinfo:
            client.get_hierarchy()
        assert excinfo.value.message == "Not authenticated"
        assert excinfo.value.status_code == 401

    @respx.mock
    def test_error_without_body(self, client: CampgroundClient) -> None:
        """Test a generic message is used when the server gives none."""
        respx.get(f"{API_URL}/api/v1/hierarchy").mock(return_value=Response(500, text="oops"))
        with pytest.raises(APIError, match="Failed to fetch hierarchy data"):
            client.get_hierarchy()

    @respx.mock
    def test_transport_error(self, client: CampgroundClient) -> None:
        """Test connection failures surface as APIError without a status."""
        respx.get(f"{API_URL}/api/v1/hierarchy").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(APIError) as excinfo:
            client.get_hierarchy()
        assert excinfo.value.status_code is None

    @respx.mock
    def test_empty_body(self, client: CampgroundClient) -> None:
        """Test an empty success body decodes to None."""
        respx.put(f"{API_URL}/api/v1/projects/p1").mock(return_value=Response(204))
        assert client.update_project("p1", {"name": "x"}) is None

    @respx.mock
    def test_success_body_not_json(self, client: CampgroundClient) -> None:
        """Test a 2xx body that is not JSON surfaces as APIError."""
        respx.get(f"{API_URL}/api/v1/hierarchy").mock(
            return_value=Response(200, text="<html><body>Sign in</body></html>")
        )
        with pytest.raises(APIError, match="invalid JSON response") as excinfo:
            client.get_hierarchy()
        assert excinfo.value.status_code == 200
