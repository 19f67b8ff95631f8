"""
Tool Schema Adapter

Translates a tool's JSON-Schema parameter definition into a typed pydantic
model and a LangChain ``StructuredTool`` for function-calling agents.

The adapted model is an additional artifact. Listings always advertise the
server's original ``inputSchema`` object, untouched: flattening it would
silently drop nested ``properties``, ``items`` and ``required`` entries.
"""

import json
import keyword
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Type

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, ConfigDict, Field, create_model

from ..core.logging import get_logger
from .models import ToolDescriptor


logger = get_logger(__name__)

STRING = "string"
NUMBER = "number"
INTEGER = "integer"
BOOLEAN = "boolean"
ARRAY = "array"
OBJECT = "object"
ANY = "any"

_PRIMITIVE_ANNOTATIONS: Dict[str, Any] = {
    STRING: str,
    NUMBER: float,
    INTEGER: int,
    BOOLEAN: bool,
}

# Typed array elements; any other item type becomes List[Any]
_ARRAY_ITEM_KINDS = (STRING, NUMBER, BOOLEAN)

_RESERVED_NAMES = set(dir(BaseModel))


@dataclass(frozen=True)
class FieldSpec:
    """One node of the validator tree derived from a JSON-Schema property."""
    name: str
    kind: str
    required: bool
    description: Optional[str] = None
    item_kind: Optional[str] = None

    def annotation(self) -> Any:
        if self.kind in _PRIMITIVE_ANNOTATIONS:
            annotation = _PRIMITIVE_ANNOTATIONS[self.kind]
        elif self.kind == ARRAY:
            annotation = List[_PRIMITIVE_ANNOTATIONS.get(self.item_kind, Any)]
        elif self.kind == OBJECT:
            annotation = Dict[str, Any]
        else:
            annotation = Any
        if self.required:
            return annotation
        return Optional[annotation]

    def to_dict(self) -> Dict[str, Any]:
        node: Dict[str, Any] = {"name": self.name, "kind": self.kind, "required": self.required}
        if self.item_kind is not None:
            node["item_kind"] = self.item_kind
        if self.description is not None:
            node["description"] = self.description
        return node


def schema_kind(node: Any) -> str:
    """Map a JSON-Schema node's ``type`` onto the closed set of kinds."""
    if not isinstance(node, Mapping):
        return ANY
    declared = node.get("type")
    if declared in (STRING, NUMBER, INTEGER, BOOLEAN, ARRAY, OBJECT):
        return declared
    return ANY


def build_field_specs(schema: Optional[Mapping[str, Any]]) -> Tuple[FieldSpec, ...]:
    """Build the validator tree for a tool's parameter schema."""
    if not isinstance(schema, Mapping):
        return ()
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        return ()
    required = schema.get("required") or ()
    required_names = set(required) if isinstance(required, (list, tuple, set)) else set()

    specs: List[FieldSpec] = []
    for name, node in properties.items():
        kind = schema_kind(node)
        item_kind = None
        if kind == ARRAY:
            item_kind = schema_kind(node.get("items"))
            if item_kind not in _ARRAY_ITEM_KINDS:
                item_kind = ANY
        description = node.get("description") if isinstance(node, Mapping) else None
        specs.append(FieldSpec(
            name=str(name),
            kind=kind,
            required=name in required_names,
            description=description if isinstance(description, str) else None,
            item_kind=item_kind,
        ))
    return tuple(specs)


def _model_name(tool_name: str) -> str:
    cleaned = re.sub(r"[^0-9a-zA-Z_]", "_", tool_name or "tool")
    return f"{cleaned}_arguments"


def _field_name(name: str, index: int, taken: set) -> str:
    """Python attribute name for a property; unsafe names get a generated one."""
    if (
        name.isidentifier()
        and not keyword.iskeyword(name)
        and not name.startswith("_")
        and name not in _RESERVED_NAMES
        and name not in taken
    ):
        return name
    candidate = f"field_{index}"
    while candidate in taken:
        candidate = f"{candidate}_"
    return candidate


class SchemaAdapter:
    """Adapts MCP tool descriptors for function-calling."""

    @staticmethod
    def advertised_schema(tool: ToolDescriptor) -> Dict[str, Any]:
        """The schema shown to listing callers: the server's object, unmodified."""
        return tool.input_schema

    @classmethod
    def to_listing(cls, tool: ToolDescriptor) -> Dict[str, Any]:
        """Listing entry for a tool: name, description and the advertised schema."""
        return {
            "name": tool.name,
            "description": tool.description,
            "schema": cls.advertised_schema(tool),
        }

    @staticmethod
    def build_model(tool: ToolDescriptor) -> Type[BaseModel]:
        """
        Build a pydantic model validating the tool's arguments.

        Properties are optional unless listed in ``required``. A schema
        without properties yields a model accepting an empty object.
        """
        fields: Dict[str, Any] = {}
        taken: set = set()
        for index, spec in enumerate(build_field_specs(tool.input_schema)):
            field_name = _field_name(spec.name, index, taken)
            taken.add(field_name)
            field_kwargs: Dict[str, Any] = {}
            if spec.description is not None:
                field_kwargs["description"] = spec.description
            if field_name != spec.name:
                field_kwargs["alias"] = spec.name
            default = ... if spec.required else None
            fields[field_name] = (spec.annotation(), Field(default, **field_kwargs))

        return create_model(
            _model_name(tool.name),
            __config__=ConfigDict(populate_by_name=True),
            **fields
        )

    @staticmethod
    def marshal(model: Type[BaseModel], arguments: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate arguments and return them keyed by the server's property names."""
        return model.model_validate(dict(arguments)).model_dump(by_alias=True, exclude_unset=True)

    @staticmethod
    def drop_omitted(model: Type[BaseModel], arguments: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Remove optional arguments that are ``None``.

        Agent frameworks pass every model field, filling the ones the caller
        left out with their ``None`` default. Optional properties must be
        absent from the call rather than sent as ``null``.
        """
        required = set()
        for name, info in model.model_fields.items():
            if info.is_required():
                required.add(name)
                if info.alias:
                    required.add(info.alias)
        return {key: value for key, value in arguments.items() if value is not None or key in required}

    @staticmethod
    def describe(tool: ToolDescriptor) -> List[Dict[str, Any]]:
        """Introspectable form of the validator tree."""
        return [spec.to_dict() for spec in build_field_specs(tool.input_schema)]

    @classmethod
    def build_structured_tool(
        cls,
        tool: ToolDescriptor,
        invoke: Callable[[str, Dict[str, Any]], Awaitable[Any]]
    ) -> StructuredTool:
        """
        Wrap a remote tool as a LangChain StructuredTool.

        Args:
            tool: Descriptor from a fresh listing
            invoke: Coroutine function called with (tool name, arguments)
        """
        model = cls.build_model(tool)

        async def call_remote(**kwargs: Any) -> str:
            arguments = cls.marshal(model, cls.drop_omitted(model, kwargs))
            logger.debug(f"Agent calling MCP tool {tool.name}")
            result = await invoke(tool.name, arguments)
            return json.dumps(result, default=str)

        return StructuredTool.from_function(
            coroutine=call_remote,
            name=tool.name,
            description=tool.description,
            args_schema=model,
        )
