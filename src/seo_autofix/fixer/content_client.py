"""Client for the remote content platform's REST API.

Handles:
- Listing published posts and pages
- Updating the title, content or excerpt of a single item
- A pre-flight connectivity/credentials check
"""

import base64
import logging
from typing import Optional

import httpx

from ..models import ContentItem, WebsiteCredentials

logger = logging.getLogger(__name__)

COLLECTIONS = {"post": "posts", "page": "pages"}


class ContentClientError(Exception):
    """Error from the content platform API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ContentConnectionError(ContentClientError):
    """The platform is unreachable or rejected the credentials."""
    pass


class ContentClient:
    """Client for content platform operations."""

    API_PREFIX = "/api/content"

    def __init__(
        self,
        credentials: WebsiteCredentials,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            credentials: Base URL, username and secret of the website
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.credentials = credentials
        self.base_url = credentials.base_url.rstrip("/")
        token = base64.b64encode(
            f"{credentials.username}:{credentials.secret}".encode("utf-8")
        ).decode("ascii")

        self._client = httpx.Client(
            base_url=self.base_url + self.API_PREFIX,
            headers={
                "Authorization": f"Basic {token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def test_connection(self) -> dict:
        """Verify that the platform is reachable and accepts the credentials.

        Raises:
            ContentConnectionError: on network failure or a non-2xx response
        """
        try:
            response = self._client.get("/users/me")
        except httpx.HTTPError as e:
            raise ContentConnectionError(f"Content platform unreachable: {e}") from e

        if response.status_code == 401:
            raise ContentConnectionError(
                "Authentication failed. Check the username and secret.", status_code=401
            )
        if response.status_code == 403:
            raise ContentConnectionError(
                "Access forbidden. The user may not have sufficient permissions.", status_code=403
            )
        if response.status_code == 404:
            raise ContentConnectionError(
                "Content API not found. Check the website URL.", status_code=404
            )
        if not response.is_success:
            raise ContentConnectionError(
                f"HTTP {response.status_code}: {response.text}", status_code=response.status_code
            )

        logger.info(f"Connected to content platform at {self.base_url}")
        return response.json()

    def get_items(self, content_type: str, per_page: int = 50) -> list[ContentItem]:
        """List published items of one collection, most recent first.

        Args:
            content_type: "post" or "page"
            per_page: Page size requested from the platform
        """
        collection = COLLECTIONS[content_type]
        try:
            response = self._client.get(
                f"/{collection}",
                params={"per_page": per_page, "status": "published"},
            )
        except httpx.HTTPError as e:
            raise ContentClientError(f"Failed to fetch {collection}: {e}") from e

        if not response.is_success:
            raise ContentClientError(
                f"Failed to fetch {collection}: {response.status_code}",
                status_code=response.status_code,
            )
        return [ContentItem.from_api(item, content_type) for item in response.json()]

    def update_item(self, content_type: str, item_id: int, data: dict) -> dict:
        """Update title, content and/or excerpt of one item.

        Raises:
            ContentClientError: with the raw response body when the update is rejected
        """
        collection = COLLECTIONS[content_type]
        try:
            response = self._client.post(f"/{collection}/{item_id}", json=data)
        except httpx.HTTPError as e:
            raise ContentClientError(f"Failed to update {content_type} {item_id}: {e}") from e

        if not response.is_success:
            raise ContentClientError(
                f"Failed to update {content_type} {item_id}: {response.text}",
                status_code=response.status_code,
            )
        logger.debug(f"Updated {content_type} {item_id} fields {sorted(data)}")
        return response.json()

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
