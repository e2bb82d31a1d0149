"""Compile endpoint schema documents into validated parameter contracts.

A schema document is the loosely-typed JSON-Schema subset served by the
platform for each endpoint. Compilation happens in two steps:

1. every property node is classified into one :mod:`..models.schema`
   variant (``StringProperty``, ``NumberProperty``, ...), dropping any
   constraint that cannot be applied and recording a warning for it;
2. every variant is turned into a pydantic annotation and the whole set is
   assembled into a model with :func:`pydantic.create_model`.

Compilation is pure: no I/O, and the same document always yields an
equivalent contract.
"""

import json
import logging
import re
from typing import Annotated, Any, Callable, Literal, Optional, Union

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BeforeValidator, ConfigDict, Field, create_model

from ..models.schema import (
    AnyProperty,
    ArrayProperty,
    BooleanProperty,
    CompilationWarning,
    EmailProperty,
    EnumProperty,
    NumberProperty,
    PropertyKind,
    PropertySpec,
    SchemaDocument,
    StringProperty,
)
from ..models.tool import CompiledContract, ParameterInfo
from .error_handler import SchemaCompilationError

logger = logging.getLogger(__name__)

DATE_FORMATS = ("date-time", "date")

# Element kinds an array can be narrowed to; anything else accepts any element
ARRAY_ITEM_KINDS = {
    "string": PropertyKind.STRING,
    "number": PropertyKind.NUMBER,
    "boolean": PropertyKind.BOOLEAN,
}

_ITEM_ANNOTATIONS = {
    PropertyKind.STRING: str,
    PropertyKind.NUMBER: float,
    PropertyKind.BOOLEAN: bool,
    PropertyKind.ANY: Any,
}

CONTRACT_CONFIG = ConfigDict(strict=True, extra="ignore", populate_by_name=False)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_literal_value(value: Any) -> bool:
    return value is None or isinstance(value, str)


def classify_property(name: str, node: Any) -> tuple[PropertySpec, list[CompilationWarning]]:
    """Pick the validator variant for one property node.

    ``enum`` wins over any declared ``type``. Constraints that are malformed
    are dropped with a warning; they never make classification fail.
    """
    warnings: list[CompilationWarning] = []

    if not isinstance(node, dict):
        warnings.append(CompilationWarning(name, "property definition is not an object, accepting any value"))
        return AnyProperty(), warnings

    if "enum" in node:
        values = node["enum"]
        if not isinstance(values, list):
            warnings.append(CompilationWarning(name, "enum is not a list, accepting any value"))
            return AnyProperty(), warnings
        if not values:
            warnings.append(CompilationWarning(name, "enum is empty, no value will be accepted"))
        return EnumProperty(values=tuple(values)), warnings

    prop_type = node.get("type")

    if prop_type == "string":
        fmt = node.get("format")
        if fmt == "email":
            return EmailProperty(), warnings
        if fmt in DATE_FORMATS:
            return StringProperty(format=fmt), warnings

        pattern = node.get("pattern")
        if pattern is not None:
            if not isinstance(pattern, str):
                warnings.append(CompilationWarning(name, "ignoring non-string pattern"))
                pattern = None
            else:
                try:
                    re.compile(pattern)
                except re.error as e:
                    warnings.append(CompilationWarning(name, f"invalid regex pattern {pattern!r}: {e}"))
                    pattern = None
        return StringProperty(format=fmt if isinstance(fmt, str) else None, pattern=pattern), warnings

    if prop_type in ("number", "integer"):
        bounds: dict[str, Optional[float]] = {}
        for key in ("minimum", "maximum"):
            value = node.get(key)
            if value is not None and not _is_number(value):
                warnings.append(CompilationWarning(name, f"ignoring non-numeric {key} {value!r}"))
                value = None
            bounds[key] = value
        return NumberProperty(integer=prop_type == "integer", **bounds), warnings

    if prop_type == "boolean":
        return BooleanProperty(), warnings

    if prop_type == "array":
        items = node.get("items")
        item_type = items.get("type") if isinstance(items, dict) else None
        item_kind = ARRAY_ITEM_KINDS.get(item_type, PropertyKind.ANY) if isinstance(item_type, str) else PropertyKind.ANY

        lengths: dict[str, Optional[int]] = {}
        for key, target in (("minItems", "min_items"), ("maxItems", "max_items")):
            value = node.get(key)
            if value is not None and not _is_count(value):
                warnings.append(CompilationWarning(name, f"ignoring invalid {key} {value!r}"))
                value = None
            lengths[target] = value
        return ArrayProperty(item_kind=item_kind, **lengths), warnings

    return AnyProperty(), warnings


def _matches(regex: re.Pattern) -> Callable[[str], str]:
    def check(value: str) -> str:
        if regex.search(value) is None:
            raise ValueError(f"String should match pattern '{regex.pattern}'")
        return value
    return check


def _email_shape(value: str) -> str:
    # Checked, never normalized: the caller's address is forwarded as given
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}") from e
    return value


def _integral(value: Any) -> Any:
    if type(value) is float and value.is_integer():
        return int(value)
    return value


def _one_of(values: tuple[Any, ...]) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        for allowed in values:
            if type(allowed) is type(value) and allowed == value:
                return value
        raise ValueError(f"Input should be one of {json.dumps(list(values))}")
    return check


def _annotation_for(spec: PropertySpec) -> tuple[Any, dict[str, Any]]:
    """Return the pydantic annotation and extra JSON schema keys for a variant."""
    if isinstance(spec, EnumProperty):
        if spec.values and all(_is_literal_value(v) for v in spec.values):
            return Literal[spec.values], {}
        return Annotated[Any, AfterValidator(_one_of(spec.values))], {"enum": list(spec.values)}

    if isinstance(spec, EmailProperty):
        return Annotated[str, AfterValidator(_email_shape)], {"format": "email"}

    if isinstance(spec, StringProperty):
        if spec.pattern is not None:
            regex = re.compile(spec.pattern)
            return Annotated[str, AfterValidator(_matches(regex))], {"pattern": spec.pattern}
        if spec.format is not None:
            return str, {"format": spec.format}
        return str, {}

    if isinstance(spec, NumberProperty):
        # JSON has one number type, so 3.0 is a valid integer
        base = Annotated[int, BeforeValidator(_integral)] if spec.integer else float
        bounds = {k: v for k, v in (("ge", spec.minimum), ("le", spec.maximum)) if v is not None}
        return (Annotated[base, Field(**bounds)] if bounds else base), {}

    if isinstance(spec, BooleanProperty):
        return bool, {}

    if isinstance(spec, ArrayProperty):
        item = _ITEM_ANNOTATIONS[spec.item_kind]
        lengths = {
            k: v for k, v in (("min_length", spec.min_items), ("max_length", spec.max_items)) if v is not None
        }
        return (Annotated[list[item], Field(**lengths)] if lengths else list[item]), {}

    if isinstance(spec, AnyProperty):
        return Any, {}

    raise TypeError(f"Unhandled property variant: {type(spec).__name__}")


def describe_property(node: Any, spec: PropertySpec) -> str:
    """Human-readable description: declared text, date format and example."""
    if not isinstance(node, dict):
        return ""

    parts = []
    description = node.get("description")
    if isinstance(description, str) and description:
        parts.append(description)
    if isinstance(spec, StringProperty) and spec.format in DATE_FORMATS:
        parts.append(f"(Format: {spec.format})")
    if "example" in node:
        parts.append(f"(Example: {json.dumps(node['example'])})")
    return " ".join(parts)


def _schema_extra(extra: dict[str, Any], hide_default: bool) -> Callable[[dict[str, Any]], None]:
    def update(schema: dict[str, Any]) -> None:
        schema.update(extra)
        if hide_default:
            schema.pop("default", None)
    return update


def compile_schema(
    document: Union[SchemaDocument, dict[str, Any]],
    model_name: str = "Arguments",
) -> CompiledContract:
    """Build the parameter contract for one endpoint schema document.

    Raises:
        SchemaCompilationError: if the assembled model cannot be built
    """
    if not isinstance(document, SchemaDocument):
        document = SchemaDocument.from_raw(document)

    warnings: list[CompilationWarning] = list(document.coercion_warnings)
    fields: dict[str, Any] = {}
    parameters: dict[str, ParameterInfo] = {}

    nodes = dict(document.properties)
    for name in document.required or []:
        if name not in nodes:
            # Declared required but never described: keep it required, accept anything
            warnings.append(CompilationWarning(name, "listed in 'required' but not in 'properties'"))
            nodes[name] = {}

    for index, (name, node) in enumerate(nodes.items()):
        spec, property_warnings = classify_property(name, node)
        warnings.extend(property_warnings)

        annotation, extra = _annotation_for(spec)
        description = describe_property(node, spec)
        has_default = isinstance(node, dict) and "default" in node
        required = document.is_required(name) and not has_default

        if has_default:
            default = node["default"]
        elif required:
            default = ...
        else:
            default = None

        fields[f"p{index}"] = (
            annotation,
            Field(
                default,
                alias=name,
                description=description or None,
                json_schema_extra=_schema_extra(extra, hide_default=not has_default),
            ),
        )
        parameters[name] = ParameterInfo(
            name=name,
            kind=spec.kind,
            required=required,
            description=description or None,
            default=default if has_default else None,
            has_default=has_default,
        )

    for warning in warnings:
        logger.warning(f"Schema compilation warning for {model_name} - {warning}")

    try:
        model = create_model(model_name, __config__=CONTRACT_CONFIG, **fields)
        contract = CompiledContract(model=model, parameters=parameters, warnings=tuple(warnings))
        contract.input_schema()
    except (TypeError, ValueError) as e:
        raise SchemaCompilationError(f"Failed to compile schema: {e}") from e

    return contract
