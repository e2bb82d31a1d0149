"""Process-lifetime cache of endpoint schema documents"""

import logging
from typing import Any, Dict

import httpx

from .error_handler import SchemaFetchError

logger = logging.getLogger(__name__)


class SchemaCache:
    """Fetches each endpoint's schema at most once per process.

    Only successful fetches are stored; a failed fetch leaves no entry
    behind. Entries are never evicted or refreshed.
    """

    def __init__(self, client: httpx.AsyncClient, host: str):
        self.client = client
        self.host = host
        self._schemas: Dict[str, Any] = {}

    def __contains__(self, endpoint_id: str) -> bool:
        return endpoint_id in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    def schema_url(self, endpoint_id: str) -> str:
        return f"https://{self.host}/api/mcp/schema/{endpoint_id}"

    async def get_or_fetch(self, endpoint_id: str) -> Any:
        """Return the schema document for an endpoint, fetching it on first use

        Args:
            endpoint_id: Endpoint identifier

        Returns:
            The schema document, unwrapped from a ``Data`` envelope if present

        Raises:
            SchemaFetchError: If the platform is unreachable, answers with a
                non-success status or returns something other than JSON
        """
        if endpoint_id in self._schemas:
            return self._schemas[endpoint_id]

        url = self.schema_url(endpoint_id)
        logger.debug(f"Fetching schema for {endpoint_id} from {url}")

        try:
            response = await self.client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise SchemaFetchError(
                f"Failed to fetch schema: {str(e) or type(e).__name__}",
                details={"endpoint_id": endpoint_id, "url": url},
            ) from e

        if not response.is_success:
            raise SchemaFetchError(
                f"Failed to fetch schema: {response.reason_phrase or response.status_code}",
                details={"endpoint_id": endpoint_id, "status_code": response.status_code},
            )

        try:
            response_data = response.json()
        except ValueError as e:
            raise SchemaFetchError(
                f"Failed to fetch schema: response is not valid JSON ({e})",
                details={"endpoint_id": endpoint_id},
            ) from e

        # The platform usually wraps the schema in a Data envelope
        if isinstance(response_data, dict) and response_data.get("Data"):
            schema = response_data["Data"]
        else:
            schema = response_data

        self._schemas[endpoint_id] = schema
        return schema
