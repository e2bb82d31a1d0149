# Schema domain models
# Loosely-typed endpoint schema documents and the property variants they compile from

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, Field

DOCUMENT_SCOPE = "<schema>"


@dataclass(frozen=True)
class CompilationWarning:
    """A single constraint that could not be applied to a property."""

    property_name: str
    message: str

    def __str__(self) -> str:
        return f"{self.property_name}: {self.message}"


class SchemaDocument(BaseModel):
    """Description of one endpoint's callable parameters.

    Documents arrive from the remote platform with no guarantees about their
    shape, so they are normally built through :meth:`from_raw`, which keeps
    whatever is usable and records the rest as warnings.
    """

    description: Optional[str] = None
    properties: dict[str, Any] = Field(default_factory=dict)
    required: Optional[list[str]] = None
    coercion_warnings: list[CompilationWarning] = Field(default_factory=list, exclude=True)

    @classmethod
    def from_raw(cls, data: Any) -> "SchemaDocument":
        warnings: list[CompilationWarning] = []

        if not isinstance(data, dict):
            warnings.append(CompilationWarning(DOCUMENT_SCOPE, f"expected an object, got {type(data).__name__}"))
            return cls(coercion_warnings=warnings)

        description = data.get("description")
        if description is not None and not isinstance(description, str):
            warnings.append(CompilationWarning(DOCUMENT_SCOPE, "ignoring non-string description"))
            description = None

        properties = data.get("properties")
        if properties is None:
            properties = {}
        elif not isinstance(properties, dict):
            warnings.append(CompilationWarning(DOCUMENT_SCOPE, "ignoring 'properties' that is not an object"))
            properties = {}

        required = data.get("required")
        if required is not None and not (
            isinstance(required, list) and all(isinstance(name, str) for name in required)
        ):
            warnings.append(CompilationWarning(DOCUMENT_SCOPE, "ignoring 'required' that is not a list of names"))
            required = None

        return cls(
            description=description or None,
            properties=dict(properties),
            required=required,
            coercion_warnings=warnings,
        )

    def is_required(self, name: str) -> bool:
        return self.required is not None and name in self.required


class PropertyKind(str, Enum):
    """Validator families a property can compile to."""

    STRING = "string"
    EMAIL = "email"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    ENUM = "enum"
    ANY = "any"


@dataclass(frozen=True)
class StringProperty:
    kind: ClassVar[PropertyKind] = PropertyKind.STRING
    format: Optional[str] = None
    pattern: Optional[str] = None


@dataclass(frozen=True)
class EmailProperty:
    kind: ClassVar[PropertyKind] = PropertyKind.EMAIL


@dataclass(frozen=True)
class NumberProperty:
    kind: ClassVar[PropertyKind] = PropertyKind.NUMBER
    integer: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None


@dataclass(frozen=True)
class BooleanProperty:
    kind: ClassVar[PropertyKind] = PropertyKind.BOOLEAN


@dataclass(frozen=True)
class ArrayProperty:
    kind: ClassVar[PropertyKind] = PropertyKind.ARRAY
    item_kind: PropertyKind = PropertyKind.ANY
    min_items: Optional[int] = None
    max_items: Optional[int] = None


@dataclass(frozen=True)
class EnumProperty:
    kind: ClassVar[PropertyKind] = PropertyKind.ENUM
    values: tuple[Any, ...] = ()


@dataclass(frozen=True)
class AnyProperty:
    kind: ClassVar[PropertyKind] = PropertyKind.ANY


PropertySpec = Union[
    StringProperty,
    EmailProperty,
    NumberProperty,
    BooleanProperty,
    ArrayProperty,
    EnumProperty,
    AnyProperty,
]
