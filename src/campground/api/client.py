"""HTTP client for the Campground REST API.

This module provides functionality to:
- Fetch the full Organization > Company > Team > Project hierarchy
- Read and update individual hierarchy entities
- Read DAST scan progress

Requests are not retried; a failure surfaces immediately as ``APIError``.
"""

import logging
from typing import Any, Optional

import httpx

from campground.errors import APIError
from campground.models import HierarchyLevel, ScanProgress

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001"
SESSION_COOKIE = "connect.sid"


class CampgroundClient:
    """Client for the Campground ``/api/v1`` endpoints."""

    API_PREFIX = "/api/v1"

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        session_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the Campground server (without ``/api/v1``).
            session_token: Value of the session cookie of a logged-in user.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, mainly for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.session_token = session_token
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            cookies = {}
            if self.session_token:
                cookies[SESSION_COOKIE] = self.session_token
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={
                    "Accept": "application/json",
                    "User-Agent": "Campground-Client",
                },
                cookies=cookies,
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "CampgroundClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _request(self, method: str, path: str, failure: str, **kwargs) -> Any:
        """Send a request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path below ``/api/v1``
            failure: Message used when the server gives no ``error`` text
            **kwargs: Additional arguments for httpx

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            APIError: On transport errors, non-2xx responses and bodies
                that are not JSON
        """
        url = f"{self.API_PREFIX}{path}"
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise APIError(f"{failure}: {e}") from e

        if response.is_error:
            message = self._error_message(response) or failure
            logger.error(f"{method} {url} returned {response.status_code}: {message}")
            raise APIError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {url} returned a body that is not JSON")
            raise APIError(f"{failure}: invalid JSON response", status_code=response.status_code) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        """Pull the ``error`` field out of an error body, if there is one."""
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return None

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def get_hierarchy(self) -> list[dict]:
        """Fetch every organization the user can see, fully nested."""
        return self._request("GET", "/hierarchy", "Failed to fetch hierarchy data")

    def get_item(self, level: HierarchyLevel, item_id: str) -> dict:
        """Fetch one organization, company, team or project."""
        level = HierarchyLevel(level)
        return self._request(
            "GET",
            f"/{level.endpoint}/{item_id}",
            f"Failed to fetch {level.value}",
        )

    def update_organization(self, organization_id: str, data: dict) -> dict:
        """Update an organization.

        Args:
            organization_id: Organization id
            data: Fields to change, e.g. ``hierarchyDisplayNames``,
                  ``accountType``, ``defaultCompanyId``

        Returns:
            The updated organization
        """
        return self._request(
            "PUT",
            f"/organizations/{organization_id}",
            "Failed to update organization",
            json=data,
        )

    def update_project(self, project_id: str, data: dict) -> dict:
        """Update a project and return it."""
        return self._request(
            "PUT",
            f"/projects/{project_id}",
            "Failed to update project",
            json=data,
        )

    def get_project_members(self, project_id: str) -> list[dict]:
        """List the members of a project."""
        return self._request(
            "GET",
            f"/projects/{project_id}/members",
            "Failed to fetch project members",
        )

    # ------------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------------

    def get_scan_progress(self, project_id: str, scan_id: str) -> ScanProgress:
        """Fetch the progress of a DAST scan.

        Args:
            project_id: Project that owns the scan
            scan_id: Scan execution id

        Returns:
            ScanProgress with ``progress``, ``status`` and ``is_active``
        """
        data = self._request(
            "GET",
            f"/projects/{project_id}/dast/scans/{scan_id}/progress",
            "Failed to fetch scan progress",
        )
        return ScanProgress.model_validate(data or {})
