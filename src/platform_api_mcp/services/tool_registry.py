"""Tool registry: turns configured endpoints into registered MCP tools"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from ..models.schema import SchemaDocument
from ..models.tool import EndpointState, ToolBuildFailure, ToolBuildResult, ToolDefinition
from ..server import ToolHandler, ToolServer, error_result, success_result
from .context import GatewayContext
from .error_handler import ErrorHandler
from .proxy_service import ProxyService
from .schema_compiler import compile_schema

logger = logging.getLogger(__name__)


def contract_model_name(endpoint_id: str) -> str:
    """CamelCase model name derived from an endpoint id"""
    words = [w for w in re.split(r"[^0-9A-Za-z]+", endpoint_id) if w]
    return "".join(w[:1].upper() + w[1:] for w in words) + "Arguments"


def make_handler(proxy: ProxyService, endpoint_id: str) -> ToolHandler:
    """Handler forwarding contract-validated arguments to one endpoint"""

    async def handler(arguments: Dict[str, Any]):
        try:
            result = await proxy.call(endpoint_id, arguments)
        except Exception as e:
            return error_result(str(e) or type(e).__name__)
        return success_result(result)

    return handler


class ToolRegistry:
    """Builds and registers one tool per configured endpoint

    Endpoints are processed one at a time in configured order. A failure for
    one endpoint is recorded and that endpoint skipped; it never affects the
    others.
    """

    def __init__(
        self,
        context: GatewayContext,
        server: ToolServer,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.context = context
        self.server = server
        self.error_handler = error_handler or ErrorHandler()
        self.states: Dict[str, EndpointState] = {
            endpoint_id: EndpointState.UNSTARTED for endpoint_id in context.endpoint_ids
        }

    @property
    def failures(self) -> List[ToolBuildFailure]:
        return self.error_handler.failures

    def _set_state(self, endpoint_id: str, state: EndpointState) -> None:
        # Terminal states are final for the run; a repeated id must not undo its first outcome
        current = self.states.get(endpoint_id)
        if current is not None and current.is_terminal:
            return
        self.states[endpoint_id] = state

    def _fail(self, endpoint_id: str, error: Exception, stage: str) -> ToolBuildFailure:
        failure = self.error_handler.handle_error(endpoint_id, error, stage)
        self._set_state(endpoint_id, EndpointState.FAILED)
        return failure

    async def build_tool(self, endpoint_id: str) -> ToolBuildResult:
        """Fetch and compile one endpoint's schema"""
        logger.info(f"Retrieving schema for {endpoint_id}...")
        self._set_state(endpoint_id, EndpointState.FETCHING)
        try:
            raw_schema = await self.context.schema_cache.get_or_fetch(endpoint_id)
        except Exception as e:
            return self._fail(endpoint_id, e, "fetch")
        self._set_state(endpoint_id, EndpointState.FETCHED)

        self._set_state(endpoint_id, EndpointState.COMPILING)
        try:
            document = SchemaDocument.from_raw(raw_schema)
            contract = compile_schema(document, model_name=contract_model_name(endpoint_id))
        except Exception as e:
            return self._fail(endpoint_id, e, "compile")

        definition = ToolDefinition(
            endpoint_id=endpoint_id,
            description=document.description or f"Tool for {endpoint_id}",
            contract=contract,
            schema=raw_schema if isinstance(raw_schema, dict) else {},
        )
        self._set_state(endpoint_id, EndpointState.READY)
        logger.info(f"Successfully prepared tool definition for {endpoint_id}")
        logger.debug(
            f"Parameters for {endpoint_id}: {contract.parameter_names} (required: {contract.required_names})"
        )
        return definition

    async def build_tools(self) -> List[ToolBuildResult]:
        """Build every configured endpoint, sequentially, never raising"""
        results: List[ToolBuildResult] = []
        for endpoint_id in self.context.endpoint_ids:
            results.append(await self.build_tool(endpoint_id))
        return results

    def register_tools(self, results: List[ToolBuildResult]) -> List[str]:
        """Register every successfully built tool with the server

        Returns:
            Ids of the tools that were registered
        """
        registered: List[str] = []
        for result in results:
            if not isinstance(result, ToolDefinition):
                continue

            endpoint_id = result.endpoint_id
            logger.info(f"Registering tool for {endpoint_id}...")
            self._set_state(endpoint_id, EndpointState.REGISTERING)
            try:
                self.server.register_tool(
                    endpoint_id,
                    result.description,
                    result.contract,
                    make_handler(self.context.proxy, endpoint_id),
                )
            except Exception as e:
                self._fail(endpoint_id, e, "register")
                continue

            self._set_state(endpoint_id, EndpointState.REGISTERED)
            registered.append(endpoint_id)
            logger.info(f"Successfully registered tool for {endpoint_id}")
            if self.context.settings.debug:
                logger.debug(f"Schema for {endpoint_id}: {json.dumps(result.schema, indent=2)}")

        return registered

    async def setup_tools(self) -> List[str]:
        results = await self.build_tools()
        return self.register_tools(results)
