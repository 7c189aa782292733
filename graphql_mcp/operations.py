"""
Operation Assembly and Tool Invocation

Renders a concrete query or mutation document for a root field and dispatches it
through the GraphQL source.
"""

import logging
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, TYPE_CHECKING

from graphql import GraphQLArgument, Undefined

from .coercion import coerce_arguments
from .errors import MissingRequiredArgument, UnknownField, UnknownMutation, WhitelistRejected
from .graphql import format_type, is_required
from .planner import FieldSelection, plan_selection, render_selection
from .registry import MUTATION_PREFIX

if TYPE_CHECKING:
    from .schema import SchemaService

logger = logging.getLogger(__name__)


def assemble_operation(
    tool_name: str,
    field_name: str,
    declared_args: Mapping[str, GraphQLArgument],
    variables: Mapping[str, Any],
    selection: List[FieldSelection],
    is_mutation: bool = False,
) -> str:
    """
    Render the document for one root field.

    Only arguments present in ``variables`` get a variable definition and a field argument.

    Args:
        tool_name: External tool name, used to derive the operation name
        field_name: Canonical root field name
        declared_args: Field arguments from the schema
        variables: Coerced variables
        selection: Planned selection set
        is_mutation: Render a mutation instead of a query

    Returns:
        str: GraphQL document text
    """
    used = [name for name in declared_args if name in variables]

    var_defs = ", ".join(f"${name}: {format_type(declared_args[name].type)}" for name in used)
    field_args = ", ".join(f"{name}: ${name}" for name in used)

    if is_mutation:
        operation_type = "mutation"
        if tool_name.startswith(MUTATION_PREFIX):
            tool_name = tool_name[len(MUTATION_PREFIX):]
        operation_name = f"{tool_name}Mutation"
    else:
        operation_type = "query"
        operation_name = f"{tool_name}Query"

    header = f"{operation_type} {operation_name}({var_defs})" if used else f"{operation_type} {operation_name}"
    field_line = f"  {field_name}({field_args})" if used else f"  {field_name}"
    if selection:
        field_line += " {\n" + render_selection(selection) + "\n  }"

    return f"{header} {{\n{field_line}\n}}"


def sanitize_value(value: Any) -> Any:
    """Walk dicts and lists so the result only holds JSON values; missing values become None."""
    if value is None or value is Undefined:
        return None
    if isinstance(value, dict):
        return {key: sanitize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_value(item) for item in value]
    return value


class ToolInvoker:
    """Resolves a tool call to a root field, builds the operation and executes it."""

    def __init__(
        self,
        schema_service: "SchemaService",
        query_whitelist: Optional[FrozenSet[str]] = None,
        mutation_whitelist: Optional[FrozenSet[str]] = None,
        validate: bool = True,
    ):
        """
        Args:
            schema_service: Source of the live schema and the name registry
            query_whitelist: Allowed query fields, None to allow all
            mutation_whitelist: Allowed mutation fields, None to allow all
            validate: Validate generated documents against the schema before sending
        """
        self.schema_service = schema_service
        self.query_whitelist = query_whitelist
        self.mutation_whitelist = mutation_whitelist
        self.validate = validate

    async def call(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute the operation behind a tool.

        Args:
            tool_name: External tool name as listed
            arguments: Caller arguments keyed by GraphQL argument name

        Returns:
            The ``data`` member of the GraphQL response

        Raises:
            SchemaUnavailable: If the schema cannot be fetched
            WhitelistRejected: If the field is excluded by the whitelist
            UnknownField: If the query field does not exist
            UnknownMutation: If the mutation field does not exist
            MissingRequiredArgument: If a non-null argument is missing
            InvalidQuerySyntax: If the generated document is invalid
            UpstreamGraphQLError: If the endpoint fails
        """
        snapshot = await self.schema_service.get_schema()
        full_name = self.schema_service.registry.resolve(tool_name)
        is_mutation = full_name.startswith(MUTATION_PREFIX)

        if is_mutation:
            field_name = full_name[len(MUTATION_PREFIX):]
            if self.mutation_whitelist is not None and field_name not in self.mutation_whitelist:
                raise WhitelistRejected(f"Mutation '{field_name}' is not in the whitelist")
            root_type = snapshot.schema.mutation_type
            if root_type is None:
                raise UnknownMutation("Schema has no mutation type")
            field = root_type.fields.get(field_name)
            if field is None:
                raise UnknownMutation(f"Unknown mutation: {field_name}")
        else:
            field_name = full_name
            if self.query_whitelist is not None and field_name not in self.query_whitelist:
                raise WhitelistRejected(f"Tool '{field_name}' is not in the whitelist")
            root_type = snapshot.schema.query_type
            field = root_type.fields.get(field_name) if root_type is not None else None
            if field is None:
                raise UnknownField(f"Unknown field: {field_name}")

        variables = coerce_arguments(arguments, field.args)

        missing = [
            name for name, arg in field.args.items()
            if is_required(arg.type) and arg.default_value is Undefined and variables.get(name) is None
        ]
        if missing:
            raise MissingRequiredArgument(f"Missing required argument(s) for {tool_name}: {', '.join(missing)}")

        selection = plan_selection(field.type)
        document = assemble_operation(tool_name, field_name, field.args, variables, selection, is_mutation)
        logger.debug(f"Generated {'mutation' if is_mutation else 'query'} for {tool_name}:\n{document}\nvariables={variables}")

        return await self.schema_service.source.execute_query(
            document,
            variables,
            schema=snapshot.schema if self.validate else None,
        )
