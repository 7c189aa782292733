"""Selection-set planning for generated operations."""

from dataclasses import dataclass, field
from typing import List, Set, Union

from graphql import GraphQLOutputType, GraphQLObjectType

from .graphql import TypeKind, classify, unwrap_type

MAX_SELECTION_DEPTH = 2
MAX_NESTED_FIELDS = 3


@dataclass
class SelectionNode:
    """An object-typed field together with the sub-fields selected on it."""
    name: str
    children: List["FieldSelection"] = field(default_factory=list)


FieldSelection = Union[str, SelectionNode]


def plan_selection(return_type: GraphQLOutputType) -> List[FieldSelection]:
    """
    Choose the result fields to fetch for a root field.

    Args:
        return_type: Declared return type, possibly wrapped in List/NonNull

    Returns:
        List[FieldSelection]: Empty for scalar and enum returns
    """
    base_type = unwrap_type(return_type)
    kind = classify(base_type)
    if kind == TypeKind.OBJECT:
        return analyze_fields(base_type, set(), 0)
    if kind == TypeKind.UNION:
        return ["__typename"]
    return []


def analyze_fields(type_: GraphQLObjectType, visited: Set[str], depth: int) -> List[FieldSelection]:
    """
    Recursively select fields of an object type.

    Fields that take arguments are skipped. Nested objects are expanded up to
    MAX_SELECTION_DEPTH and keep only their first MAX_NESTED_FIELDS selections.
    ``visited`` is shared by the whole traversal, so a type expanded in one branch
    is not expanded again in a sibling branch.
    """
    if type_.name in visited or depth > MAX_SELECTION_DEPTH:
        return []
    visited.add(type_.name)

    result: List[FieldSelection] = []
    for field_name, field_def in type_.fields.items():
        if field_def.args:
            continue

        field_type = unwrap_type(field_def.type)
        kind = classify(field_type)

        if kind in (TypeKind.SCALAR, TypeKind.ENUM):
            result.append(field_name)
        elif kind == TypeKind.OBJECT and depth < MAX_SELECTION_DEPTH:
            nested = analyze_fields(field_type, visited, depth + 1)
            if nested:
                result.append(SelectionNode(field_name, nested[:MAX_NESTED_FIELDS]))

    return result


def render_selection(selection: List[FieldSelection], indent: str = "    ") -> str:
    """Render a planned selection as indented GraphQL text, one field per line."""
    if not selection:
        return ""

    lines = []
    for item in selection:
        if isinstance(item, SelectionNode):
            lines.append(f"{indent}{item.name} {{")
            lines.append(render_selection(item.children, indent + "  "))
            lines.append(f"{indent}}}")
        else:
            lines.append(f"{indent}{item}")
    return "\n".join(lines)
