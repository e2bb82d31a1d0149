# Tool domain models
# Compiled parameter contracts, tool definitions and per-endpoint build outcomes

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

from .schema import CompilationWarning, PropertyKind


class EndpointState(str, Enum):
    """Startup lifecycle of a configured endpoint."""

    UNSTARTED = "unstarted"
    FETCHING = "fetching"
    FETCHED = "fetched"
    COMPILING = "compiling"
    READY = "ready"
    REGISTERING = "registering"
    REGISTERED = "registered"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (EndpointState.REGISTERED, EndpointState.FAILED)


@dataclass(frozen=True)
class ParameterInfo:
    """Metadata kept next to a parameter's validator."""

    name: str
    kind: PropertyKind
    required: bool
    description: Optional[str] = None
    default: Any = None
    has_default: bool = False


@dataclass(frozen=True)
class CompiledContract:
    """Validated parameter contract for one endpoint.

    ``model`` is the generated pydantic model that enforces the contract. Its
    fields are aliased to the original parameter names, so callers only ever
    see the names declared by the endpoint schema.
    """

    model: type[BaseModel]
    parameters: Mapping[str, ParameterInfo]
    warnings: tuple[CompilationWarning, ...] = ()

    @property
    def parameter_names(self) -> list[str]:
        return list(self.parameters)

    @property
    def required_names(self) -> list[str]:
        return [name for name, info in self.parameters.items() if info.required]

    def validate(self, arguments: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        """Validate caller arguments and return what should be forwarded.

        Raises ``pydantic.ValidationError`` when the arguments violate the
        contract. Omitted optional parameters are left out, except those with
        a declared default which is filled in.
        """
        instance = self.model.model_validate(dict(arguments or {}))
        validated = instance.model_dump(by_alias=True, exclude_unset=True)
        for name, info in self.parameters.items():
            if info.has_default and name not in validated:
                validated[name] = copy.deepcopy(info.default)
        return validated

    def input_schema(self) -> dict[str, Any]:
        """JSON schema advertised to MCP clients for this contract."""
        schema = self.model.model_json_schema(by_alias=True)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema


@dataclass(frozen=True)
class ToolDefinition:
    """A tool ready to be registered, one per successfully compiled endpoint."""

    endpoint_id: str
    description: str
    contract: CompiledContract
    schema: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolBuildFailure:
    """Why an endpoint did not become a tool."""

    endpoint_id: str
    stage: str
    reason: str


ToolBuildResult = Union[ToolDefinition, ToolBuildFailure]
