"""Per-run gateway context: settings, HTTP client, schema cache and proxy"""

import logging
from typing import Optional

import httpx

from .. import __version__
from ..config import Settings
from .proxy_service import ProxyService
from .schema_cache import SchemaCache

logger = logging.getLogger(__name__)


def create_http_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Shared client carrying the bearer credential for every platform request"""
    return httpx.AsyncClient(
        headers={
            "Authorization": f"Bearer {settings.token}",
            "Accept": "application/json",
            "User-Agent": f"Platform-API-MCP/{__version__}",
        },
        # Remote calls are never timed out here; the MCP client owns cancellation
        timeout=None,
        transport=transport,
    )


class GatewayContext:
    """Everything one process run shares, constructed once and passed around

    Usage:
        async with GatewayContext(settings) as context:
            schema = await context.schema_cache.get_or_fetch("endpoint")
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.client = create_http_client(settings, transport=transport)
        self.schema_cache = SchemaCache(self.client, settings.host)
        self.proxy = ProxyService(self.client, settings.host, debug=settings.debug)

    @property
    def endpoint_ids(self) -> list[str]:
        return self.settings.endpoint_ids

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "GatewayContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
