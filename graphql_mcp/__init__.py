"""Expose a GraphQL endpoint as tools over JSON-RPC."""

__version__ = "1.0.0"

from .base import GraphQLSource, GraphQLToolkit, create_graphql_toolkit
from .catalog import ToolDefinition, build_catalog, build_tools
from .config import Settings, parse_whitelist
from .errors import (
    GraphQLMCPError,
    SchemaUnavailable,
    UnknownField,
    UnknownMutation,
    WhitelistRejected,
    InvalidQuerySyntax,
    UpstreamGraphQLError,
    MissingRequiredArgument,
    ArgumentCoercionError,
    ProtocolParseError,
    MethodNotFound,
)
from .operations import ToolInvoker, assemble_operation
from .planner import plan_selection
from .registry import NameRegistry
from .schema import SchemaService, SchemaSnapshot
from .server import MCPServer
from .tools import GraphQLOperationTool

__all__ = [
    "GraphQLSource",
    "GraphQLToolkit",
    "create_graphql_toolkit",
    "ToolDefinition",
    "build_catalog",
    "build_tools",
    "Settings",
    "parse_whitelist",
    "GraphQLMCPError",
    "SchemaUnavailable",
    "UnknownField",
    "UnknownMutation",
    "WhitelistRejected",
    "InvalidQuerySyntax",
    "UpstreamGraphQLError",
    "MissingRequiredArgument",
    "ArgumentCoercionError",
    "ProtocolParseError",
    "MethodNotFound",
    "ToolInvoker",
    "assemble_operation",
    "plan_selection",
    "NameRegistry",
    "SchemaService",
    "SchemaSnapshot",
    "MCPServer",
    "GraphQLOperationTool",
]
