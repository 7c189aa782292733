"""
Tool Catalog

Turns the fields of the query and mutation root types into tool definitions with
JSON-Schema input shapes.
"""

import logging
from typing import Dict, List, Optional, FrozenSet

from graphql import GraphQLArgument, GraphQLObjectType, GraphQLSchema
from pydantic import BaseModel, ConfigDict, Field

from .graphql import TypeKind, classify, unwrap_type, is_required, json_schema_type
from .registry import MUTATION_PREFIX, NameRegistry, external_name, prefixed_name

logger = logging.getLogger(__name__)


class ArgumentShape(BaseModel):
    """JSON-Schema property describing one GraphQL argument."""
    type: str
    description: str
    enum: Optional[List[str]] = None


class ToolInputSchema(BaseModel):
    type: str = "object"
    properties: Dict[str, ArgumentShape] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)


class ToolDefinition(BaseModel):
    """A callable tool generated from one root field."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: ToolInputSchema = Field(alias="inputSchema")

    def to_wire(self) -> Dict:
        """Serialize the way tool listings are sent to clients."""
        return self.model_dump(by_alias=True, exclude_none=True)


def argument_shape(arg_name: str, arg: GraphQLArgument) -> ArgumentShape:
    """
    Derive the input shape of one argument from its base type.

    Input objects are described as opaque objects; their fields are never expanded.

    Args:
        arg_name: Argument name
        arg: graphql-core argument definition

    Returns:
        ArgumentShape: JSON-Schema property
    """
    base_type = unwrap_type(arg.type)
    kind = classify(base_type)

    if kind == TypeKind.SCALAR:
        return ArgumentShape(
            type=json_schema_type(base_type.name),
            description=arg.description or f"{arg_name} parameter ({base_type.name})",
        )
    elif kind == TypeKind.ENUM:
        return ArgumentShape(
            type="string",
            enum=list(base_type.values.keys()),
            description=arg.description or f"{arg_name} parameter ({base_type.name})",
        )
    elif kind == TypeKind.INPUT_OBJECT:
        return ArgumentShape(
            type="object",
            description=f"{arg_name} - Input type: {base_type.name}",
        )
    return ArgumentShape(type="string", description=arg.description or f"{arg_name} parameter")


def _is_routable(field_name: str, is_mutation: bool) -> bool:
    """Query fields named ``mutation_*`` cannot be called: their tool name routes to the mutation type."""
    return is_mutation or not field_name.startswith(MUTATION_PREFIX)


def build_catalog(
    root_type: Optional[GraphQLObjectType],
    is_mutation: bool = False,
    whitelist: Optional[FrozenSet[str]] = None,
    registry: Optional[NameRegistry] = None,
) -> List[ToolDefinition]:
    """
    Build tool definitions for every allowed field of a root type.

    Args:
        root_type: Query or mutation root type, None if the schema has none
        is_mutation: Whether root_type is the mutation type
        whitelist: Allowed canonical field names, None to allow all
        registry: Registry that receives truncated name mappings

    Returns:
        List[ToolDefinition]: One definition per callable field, in schema order
    """
    operation = "mutation" if is_mutation else "query"
    if root_type is None:
        logger.info(f"Schema has no {operation} type")
        return []

    tools = []
    full_names = []
    for field_name, field in root_type.fields.items():
        if whitelist is not None and field_name not in whitelist:
            logger.debug(f"Skipping {operation} field {field_name} - not in whitelist")
            continue
        if not _is_routable(field_name, is_mutation):
            logger.warning(f"Skipping query field {field_name} - its name would be routed to the mutation type")
            continue

        try:
            properties = {}
            required = []
            for arg_name, arg in field.args.items():
                properties[arg_name] = argument_shape(arg_name, arg)
                if is_required(arg.type):
                    required.append(arg_name)
        except TypeError as e:
            logger.error(f"Error processing {operation} field {field_name}: {e}")
            continue

        name = external_name(field_name, is_mutation)
        full_name = prefixed_name(field_name, is_mutation)
        if registry is not None and name != full_name:
            registry.register(name, full_name)

        tools.append(ToolDefinition(
            name=name,
            description=field.description or f"GraphQL {field_name} {operation}",
            input_schema=ToolInputSchema(properties=properties, required=required),
        ))
        full_names.append(full_name)

    # Each listed name must resolve to its own field; collision losers are dropped
    owners = {}
    for tool, full_name in zip(tools, full_names):
        owners[tool.name] = registry.resolve(tool.name) if registry is not None else full_name

    listed = []
    for tool, full_name in zip(tools, full_names):
        if owners[tool.name] != full_name:
            logger.warning(f"Skipping {operation} field {full_name} - tool name '{tool.name}' belongs to '{owners[tool.name]}'")
            continue
        listed.append(tool)
    return listed


def build_tools(
    schema: GraphQLSchema,
    query_whitelist: Optional[FrozenSet[str]] = None,
    mutation_whitelist: Optional[FrozenSet[str]] = None,
    registry: Optional[NameRegistry] = None,
) -> List[ToolDefinition]:
    """Query tools followed by mutation tools."""
    query_tools = build_catalog(schema.query_type, False, query_whitelist, registry)
    mutation_tools = build_catalog(schema.mutation_type, True, mutation_whitelist, registry)
    logger.info(
        f"Built {len(query_tools) + len(mutation_tools)} tools "
        f"({len(query_tools)} queries, {len(mutation_tools)} mutations)"
    )
    return query_tools + mutation_tools


def register_names(schema: GraphQLSchema, registry: NameRegistry) -> None:
    """Record the external name of every root field, listed or not, in the registry."""
    for root_type, is_mutation in ((schema.query_type, False), (schema.mutation_type, True)):
        if root_type is None:
            continue
        for field_name in root_type.fields:
            if not _is_routable(field_name, is_mutation):
                continue
            name = external_name(field_name, is_mutation)
            full_name = prefixed_name(field_name, is_mutation)
            if name != full_name:
                registry.register(name, full_name)
