"""Proxy Service for forwarding validated tool arguments to platform endpoints"""

import json
import logging
from typing import Any, Dict

import httpx

from .error_handler import ProxyCallError

logger = logging.getLogger(__name__)


class ProxyService:
    """Sends tool calls to the platform's proxy API"""

    def __init__(self, client: httpx.AsyncClient, host: str, debug: bool = False):
        self.client = client
        self.host = host
        self.debug = debug

    def proxy_url(self, endpoint_id: str) -> str:
        return f"https://{self.host}/api/mcp/proxy/{endpoint_id}"

    async def call(self, endpoint_id: str, arguments: Dict[str, Any]) -> Any:
        """Execute an endpoint call

        Args:
            endpoint_id: Endpoint identifier
            arguments: Arguments already validated against the endpoint contract

        Returns:
            The decoded JSON response, unmodified

        Raises:
            ProxyCallError: If the request fails or the platform answers with
                a non-success status
        """
        try:
            response = await self.client.post(
                self.proxy_url(endpoint_id),
                json=arguments,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )

            if not response.is_success:
                raise ProxyCallError(
                    f"API call failed: {response.reason_phrase or response.status_code}",
                    details={"endpoint_id": endpoint_id, "status_code": response.status_code},
                )

            json_response = response.json()

        except ProxyCallError as e:
            logger.error(f"Error calling endpoint {endpoint_id}: {e.message}")
            raise
        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            logger.error(f"Error calling endpoint {endpoint_id}: {message}")
            raise ProxyCallError(message, details={"endpoint_id": endpoint_id}) from e
        except ValueError as e:
            message = f"Invalid JSON response: {e}"
            logger.error(f"Error calling endpoint {endpoint_id}: {message}")
            raise ProxyCallError(message, details={"endpoint_id": endpoint_id}) from e

        if self.debug:
            logger.debug(f"Response from {endpoint_id}: {json.dumps(json_response, indent=2)}")

        return json_response
