"""Tests for Proxy Service"""

import json
import logging

import httpx
import pytest

from platform_api_mcp.services.error_handler import ProxyCallError
from platform_api_mcp.services.proxy_service import ProxyService

from tests.conftest import TEST_HOST, TEST_TOKEN


class TestProxyService:
    """Test cases for ProxyService"""

    def test_init(self, context):
        """Proxy shares the context's client and host"""
        assert isinstance(context.proxy, ProxyService)
        assert context.proxy.client is context.client
        assert context.proxy.host == TEST_HOST
        assert context.proxy.debug is False

    @pytest.mark.asyncio
    async def test_call_posts_json_arguments(self, platform, context):
        platform.add_response("weather", {"temp": 21})

        result = await context.proxy.call("weather", {"city": "Berlin"})

        assert result == {"temp": 21}
        [request] = platform.requests_to("proxy", "weather")
        assert request.method == "POST"
        assert str(request.url) == f"https://{TEST_HOST}/api/mcp/proxy/weather"
        assert json.loads(request.content) == {"city": "Berlin"}
        assert request.headers["Authorization"] == f"Bearer {TEST_TOKEN}"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_response_returned_verbatim(self, platform, context):
        body = {"Data": {"temp": 21}, "Success": True}
        platform.add_response("weather", body)

        # Only the schema path unwraps Data envelopes
        assert await context.proxy.call("weather", {}) == body

    @pytest.mark.asyncio
    async def test_non_object_response(self, platform, context):
        platform.add_response("list", [1, 2, 3])

        assert await context.proxy.call("list", {}) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_error_status_raises(self, platform, context, caplog):
        platform.add_response("weather", {"error": "nope"}, status=503)

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ProxyCallError) as exc_info:
                await context.proxy.call("weather", {"city": "Berlin"})

        assert str(exc_info.value) == "API call failed: Service Unavailable"
        assert exc_info.value.error_code == "PROXY_CALL_ERROR"
        assert "Error calling endpoint weather" in caplog.text

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, platform, context):
        platform.fail_call("weather", httpx.ReadTimeout("timeout"))

        with pytest.raises(ProxyCallError) as exc_info:
            await context.proxy.call("weather", {})

        assert str(exc_info.value) == "timeout"

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, platform, context):
        platform.add_response("weather", "not json")

        with pytest.raises(ProxyCallError, match="Invalid JSON response"):
            await context.proxy.call("weather", {})

    @pytest.mark.asyncio
    async def test_no_retry(self, platform, context):
        platform.add_response("weather", {}, status=500)

        with pytest.raises(ProxyCallError):
            await context.proxy.call("weather", {})
        assert len(platform.requests_to("proxy")) == 1

    @pytest.mark.asyncio
    async def test_debug_logs_response(self, platform, make_context, caplog):
        context = make_context(debug=True)
        platform.add_response("weather", {"temp": 21})

        with caplog.at_level(logging.DEBUG, logger="platform_api_mcp.services.proxy_service"):
            await context.proxy.call("weather", {})

        assert "Response from weather" in caplog.text
        assert '"temp": 21' in caplog.text
