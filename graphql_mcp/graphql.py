"""
GraphQL Type System Helpers

Classifies graphql-core types into a closed set of kinds and renders type references
the way they appear in SDL and in variable definitions.
"""

from enum import Enum
from typing import Dict, Optional

from graphql import (
    GraphQLType,
    GraphQLNamedType,
    GraphQLList,
    GraphQLNonNull,
    GraphQLScalarType,
    GraphQLEnumType,
    GraphQLInputObjectType,
    GraphQLObjectType,
    GraphQLInterfaceType,
    GraphQLUnionType,
)


class TypeKind(str, Enum):
    """Kinds a schema type can be classified into."""

    SCALAR = "SCALAR"
    ENUM = "ENUM"
    INPUT_OBJECT = "INPUT_OBJECT"
    OBJECT = "OBJECT"
    LIST = "LIST"
    NON_NULL = "NON_NULL"
    UNION = "UNION"


JSON_SCHEMA_SCALAR_MAP: Dict[str, str] = {
    "Int": "integer",
    "Float": "number",
    "String": "string",
    "ID": "string",
    "Boolean": "boolean",
}


def classify(type_: GraphQLType) -> TypeKind:
    """
    Classify a graphql-core type.

    Interfaces are treated as objects because their fields can be selected directly.

    Args:
        type_: Any graphql-core type, wrapped or named

    Returns:
        TypeKind: The kind of the outermost type

    Raises:
        TypeError: If the type is not part of the GraphQL type system
    """
    if isinstance(type_, GraphQLNonNull):
        return TypeKind.NON_NULL
    if isinstance(type_, GraphQLList):
        return TypeKind.LIST
    if isinstance(type_, GraphQLScalarType):
        return TypeKind.SCALAR
    if isinstance(type_, GraphQLEnumType):
        return TypeKind.ENUM
    if isinstance(type_, GraphQLInputObjectType):
        return TypeKind.INPUT_OBJECT
    if isinstance(type_, (GraphQLObjectType, GraphQLInterfaceType)):
        return TypeKind.OBJECT
    if isinstance(type_, GraphQLUnionType):
        return TypeKind.UNION
    raise TypeError(f"Unsupported GraphQL type: {type_!r}")


def unwrap_type(type_: GraphQLType) -> GraphQLNamedType:
    """Strip every List and NonNull wrapper and return the named base type."""
    while classify(type_) in (TypeKind.NON_NULL, TypeKind.LIST):
        type_ = type_.of_type
    return type_


def is_required(type_: GraphQLType) -> bool:
    """An argument is required when its outermost wrapper is NonNull."""
    return classify(type_) == TypeKind.NON_NULL


def format_type(type_: Optional[GraphQLType]) -> str:
    """
    Convert a GraphQL type to its SDL type string, keeping every wrapper

    Args:
        type_: graphql-core type

    Returns:
        str: SDL format type string, e.g. ``[ID!]!``
    """
    if type_ is None:
        return "Unknown"

    kind = classify(type_)
    if kind == TypeKind.NON_NULL:
        return f"{format_type(type_.of_type)}!"
    elif kind == TypeKind.LIST:
        return f"[{format_type(type_.of_type)}]"
    return type_.name


def json_schema_type(scalar_name: str) -> str:
    """Map a scalar name to a JSON-Schema primitive, defaulting to string for custom scalars."""
    return JSON_SCHEMA_SCALAR_MAP.get(scalar_name, "string")
