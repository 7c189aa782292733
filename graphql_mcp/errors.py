"""Exceptions raised while exposing a GraphQL endpoint as tools."""

JSONRPC_PARSE_ERROR = -32700
JSONRPC_INVALID_PARAMS = -32602
JSONRPC_METHOD_NOT_FOUND = -32601
JSONRPC_SERVER_ERROR = -32000


class GraphQLMCPError(Exception):
    """Base error. ``code`` is the JSON-RPC error code reported to the client."""

    code: int = JSONRPC_SERVER_ERROR


class SchemaUnavailable(GraphQLMCPError):
    """Introspection failed or never succeeded."""


class UnknownField(GraphQLMCPError):
    """Name is not a field of the query root type."""


class UnknownMutation(GraphQLMCPError):
    """Name is not a field of the mutation root type."""


class WhitelistRejected(GraphQLMCPError):
    """Name is excluded by the configured whitelist."""


class InvalidQuerySyntax(GraphQLMCPError):
    """An assembled document failed to parse or validate locally."""


class UpstreamGraphQLError(GraphQLMCPError):
    """The origin endpoint failed, either at the transport or while executing."""


class MissingRequiredArgument(GraphQLMCPError):
    """A non-null argument was not supplied by the caller."""


class ArgumentCoercionError(GraphQLMCPError):
    """A caller value could not be converted to the declared scalar type."""


class ProtocolParseError(GraphQLMCPError):
    """An incoming line is not valid JSON."""

    code = JSONRPC_PARSE_ERROR


class InvalidParams(GraphQLMCPError):
    """Request parameters are missing or have the wrong shape."""

    code = JSONRPC_INVALID_PARAMS


class MethodNotFound(GraphQLMCPError):
    """No handler exists for the requested method."""

    code = JSONRPC_METHOD_NOT_FOUND
