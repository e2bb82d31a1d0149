"""
MCP server hosting the platform endpoint tools

Wraps the low-level ``mcp`` server so that every tool call goes through the
same path: look the tool up, validate the arguments against its compiled
contract, run the handler, and turn anything that goes wrong into an
error-flagged result instead of a protocol error.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.stdio import stdio_server
from pydantic import ValidationError

from . import __version__
from .models.tool import CompiledContract
from .services.error_handler import RegistrationError

logger = logging.getLogger(__name__)

SERVER_NAME = "Platform API Gateway"

ToolHandler = Callable[[Dict[str, Any]], Awaitable[types.CallToolResult]]


def success_result(result: Any) -> types.CallToolResult:
    """Envelope for a successful call: the pretty-printed JSON result"""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]
    )


def error_result(message: str) -> types.CallToolResult:
    """Envelope for a failed call"""
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=f"Error: {message}")],
        isError=True,
    )


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "arguments"
        parts.append(f"{location}: {detail.get('msg', 'invalid value')}")
    return "; ".join(parts)


@dataclass(frozen=True)
class RegisteredTool:
    """A tool as exposed to MCP clients"""

    name: str
    description: str
    contract: CompiledContract
    handler: ToolHandler
    input_schema: Dict[str, Any]

    def to_mcp_tool(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema)


class ToolServer:
    """Registers tools and dispatches MCP tool calls to their handlers"""

    def __init__(self, name: str = SERVER_NAME, version: str = __version__):
        self.server = Server(name, version=version)
        self._tools: Dict[str, RegisteredTool] = {}

        self.server.list_tools()(self.list_tools)
        # Installed directly so the handler can return isError results itself
        self.server.request_handlers[types.CallToolRequest] = self._handle_call_tool

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def get_tool(self, name: str) -> Optional[RegisteredTool]:
        return self._tools.get(name)

    def register_tool(
        self,
        name: str,
        description: str,
        contract: CompiledContract,
        handler: ToolHandler,
    ) -> RegisteredTool:
        """Register a tool under a unique name

        Raises:
            RegistrationError: If the name is empty or already registered, or
                the contract cannot be rendered as an input schema
        """
        if not name:
            raise RegistrationError("Tool name must not be empty")
        if name in self._tools:
            raise RegistrationError(f"Tool {name} is already registered", details={"tool": name})

        try:
            input_schema = contract.input_schema()
        except (TypeError, ValueError) as e:
            raise RegistrationError(f"Cannot build input schema for {name}: {e}", details={"tool": name}) from e

        tool = RegisteredTool(
            name=name,
            description=description,
            contract=contract,
            handler=handler,
            input_schema=input_schema,
        )
        self._tools[name] = tool
        return tool

    async def list_tools(self) -> List[types.Tool]:
        return [tool.to_mcp_tool() for tool in self._tools.values()]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> types.CallToolResult:
        """Validate and run a tool call; never raises for tool-level failures"""
        tool = self.get_tool(name)
        if tool is None:
            return error_result(f"Unknown tool: {name}")

        try:
            validated = tool.contract.validate(arguments)
        except ValidationError as e:
            logger.info(f"Rejected call to {name}: {format_validation_error(e)}")
            return error_result(f"Invalid arguments for {name}: {format_validation_error(e)}")

        try:
            return await tool.handler(validated)
        except Exception as e:
            # A defective handler only fails its own invocation
            logger.exception(f"Unhandled error while running tool {name}")
            return error_result(str(e) or type(e).__name__)

    async def _handle_call_tool(self, request: types.CallToolRequest) -> types.ServerResult:
        result = await self.call_tool(request.params.name, request.params.arguments)
        return types.ServerResult(result)

    async def run_stdio(self) -> None:
        """Serve MCP over stdin/stdout until the client disconnects"""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(
                    notification_options=NotificationOptions(tools_changed=True),
                ),
            )
