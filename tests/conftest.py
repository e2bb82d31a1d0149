"""
Test configuration and shared fixtures for the Platform API MCP tests.

The remote platform is replaced by ``FakePlatform``, an ``httpx.MockTransport``
handler that serves canned schemas and proxy responses and records every
request it receives.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from platform_api_mcp.config import Settings
from platform_api_mcp.server import ToolServer
from platform_api_mcp.services.context import GatewayContext
from platform_api_mcp.services.tool_registry import ToolRegistry

TEST_HOST = "platform.test"
TEST_TOKEN = "test-token"

Reply = Union[Tuple[int, Any], Exception]


class FakePlatform:
    """In-memory stand-in for the platform schema and proxy API"""

    def __init__(self):
        self.schemas: Dict[str, Reply] = {}
        self.responses: Dict[str, Reply] = {}
        self.requests: List[httpx.Request] = []

    def add_schema(self, endpoint_id: str, schema: Any, status: int = 200, wrap: bool = False) -> None:
        body = {"Data": schema, "Success": True} if wrap else schema
        self.schemas[endpoint_id] = (status, body)

    def fail_schema(self, endpoint_id: str, error: Exception) -> None:
        self.schemas[endpoint_id] = error

    def add_response(self, endpoint_id: str, body: Any, status: int = 200) -> None:
        self.responses[endpoint_id] = (status, body)

    def fail_call(self, endpoint_id: str, error: Exception) -> None:
        self.responses[endpoint_id] = error

    def requests_to(self, kind: str, endpoint_id: Optional[str] = None) -> List[httpx.Request]:
        prefix = f"/api/mcp/{kind}/"
        if endpoint_id is not None:
            prefix += endpoint_id
        return [r for r in self.requests if r.url.path.startswith(prefix)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.startswith("/api/mcp/schema/"):
            replies = self.schemas
        elif path.startswith("/api/mcp/proxy/"):
            replies = self.responses
        else:
            return httpx.Response(404)

        endpoint_id = path.rsplit("/", 1)[-1]
        reply = replies.get(endpoint_id)
        if reply is None:
            return httpx.Response(404)
        if isinstance(reply, Exception):
            raise reply

        status, body = reply
        if isinstance(body, (str, bytes)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def make_settings(endpoints: str = "weather", **overrides: Any) -> Settings:
    values = {"endpoints": endpoints, "token": TEST_TOKEN, "host": TEST_HOST, "debug": False}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def platform():
    """Fake platform with no endpoints configured"""
    return FakePlatform()


@pytest.fixture
def make_context(platform):
    """Factory for gateway contexts talking to the fake platform"""

    def factory(endpoints: str = "weather", **overrides: Any) -> GatewayContext:
        return GatewayContext(make_settings(endpoints, **overrides), transport=platform.transport)

    return factory


@pytest.fixture
def context(make_context):
    return make_context()


@pytest.fixture
def tool_server():
    return ToolServer()


@pytest.fixture
def weather_schema():
    return {
        "description": "Weather forecast",
        "properties": {
            "city": {"type": "string"},
            "days": {"type": "integer", "minimum": 1, "maximum": 14},
        },
        "required": ["city"],
    }


@pytest.fixture
def registry_factory(make_context, tool_server):
    """Build a registry for a comma-separated endpoint list"""

    def factory(endpoints: str = "weather", **overrides: Any) -> ToolRegistry:
        return ToolRegistry(make_context(endpoints, **overrides), tool_server)

    return factory
