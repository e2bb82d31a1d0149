"""Tests for the MCP tool server"""

import json
from unittest.mock import AsyncMock

import mcp.types as types
import pytest

from platform_api_mcp.server import (
    SERVER_NAME,
    ToolServer,
    error_result,
    success_result,
)
from platform_api_mcp.services.error_handler import RegistrationError
from platform_api_mcp.services.schema_compiler import compile_schema


@pytest.fixture
def weather_contract(weather_schema):
    return compile_schema(weather_schema, model_name="WeatherArguments")


@pytest.fixture
def handler():
    return AsyncMock(return_value=success_result({"temp": 21}))


class TestEnvelopes:
    def test_success_result(self):
        result = success_result({"temp": 21})
        assert result.content[0].text == json.dumps({"temp": 21}, indent=2)
        assert not result.isError

    def test_success_result_keeps_non_ascii_text(self):
        result = success_result({"city": "München", "note": "日本"})
        assert result.content[0].text == '{\n  "city": "München",\n  "note": "日本"\n}'

    def test_error_result(self):
        result = error_result("timeout")
        assert result.content[0].text == "Error: timeout"
        assert result.isError is True

    def test_error_result_serialization(self):
        data = error_result("timeout").model_dump(exclude_none=True)
        assert data["content"] == [{"type": "text", "text": "Error: timeout"}]
        assert data["isError"] is True


class TestRegistration:
    def test_server_identity(self, tool_server):
        assert tool_server.server.name == SERVER_NAME

    def test_register_tool(self, tool_server, weather_contract, handler):
        tool = tool_server.register_tool("weather", "Weather forecast", weather_contract, handler)

        assert tool_server.tool_names == ["weather"]
        assert tool_server.get_tool("weather") is tool
        assert tool.input_schema["required"] == ["city"]

    def test_duplicate_rejected(self, tool_server, weather_contract, handler):
        tool_server.register_tool("weather", "Weather forecast", weather_contract, handler)

        with pytest.raises(RegistrationError, match="already registered"):
            tool_server.register_tool("weather", "Again", weather_contract, handler)
        assert tool_server.get_tool("weather").description == "Weather forecast"

    def test_empty_name_rejected(self, tool_server, weather_contract, handler):
        with pytest.raises(RegistrationError):
            tool_server.register_tool("", "Nameless", weather_contract, handler)

    @pytest.mark.asyncio
    async def test_list_tools(self, tool_server, weather_contract, handler):
        tool_server.register_tool("weather", "Weather forecast", weather_contract, handler)

        [tool] = await tool_server.list_tools()

        assert isinstance(tool, types.Tool)
        assert tool.name == "weather"
        assert tool.description == "Weather forecast"
        assert set(tool.inputSchema["properties"]) == {"city", "days"}


class TestCallTool:
    @pytest.mark.asyncio
    async def test_valid_call_reaches_handler(self, tool_server, weather_contract, handler):
        tool_server.register_tool("weather", "Weather forecast", weather_contract, handler)

        result = await tool_server.call_tool("weather", {"city": "Berlin"})

        handler.assert_awaited_once_with({"city": "Berlin"})
        assert not result.isError

    @pytest.mark.asyncio
    async def test_invalid_arguments_rejected_before_handler(self, tool_server, weather_contract, handler):
        tool_server.register_tool("weather", "Weather forecast", weather_contract, handler)

        result = await tool_server.call_tool("weather", {"days": 20})

        handler.assert_not_awaited()
        assert result.isError is True
        text = result.content[0].text
        assert text.startswith("Error: Invalid arguments for weather:")
        assert "city" in text
        assert "days" in text

    @pytest.mark.asyncio
    async def test_missing_arguments_treated_as_empty(self, tool_server, handler):
        tool_server.register_tool("ping", "Ping", compile_schema({}), handler)

        await tool_server.call_tool("ping", None)

        handler.assert_awaited_once_with({})

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tool_server):
        result = await tool_server.call_tool("nope", {})

        assert result.isError is True
        assert result.content[0].text == "Error: Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_handler_fault_is_contained(self, tool_server, weather_contract):
        failing = AsyncMock(side_effect=KeyError("missing"))
        tool_server.register_tool("weather", "Weather forecast", weather_contract, failing)

        result = await tool_server.call_tool("weather", {"city": "Berlin"})

        assert result.isError is True
        assert result.content[0].text.startswith("Error: ")

    @pytest.mark.asyncio
    async def test_protocol_request_handler(self, tool_server, weather_contract, handler):
        tool_server.register_tool("weather", "Weather forecast", weather_contract, handler)
        request_handler = tool_server.server.request_handlers[types.CallToolRequest]

        request = types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="weather", arguments={"city": "Berlin"}),
        )
        response = await request_handler(request)

        assert isinstance(response.root, types.CallToolResult)
        assert response.root.content[0].text == json.dumps({"temp": 21}, indent=2)
