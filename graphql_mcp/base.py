"""Base GraphQL source and toolkit implementation."""

import asyncio
import logging
import time
from typing import List, Optional, Dict, Any

import aiohttp
from graphql import GraphQLError, GraphQLSchema, build_client_schema, get_introspection_query, parse, validate
from langchain_core.tools import BaseTool, BaseToolkit
from pydantic import ConfigDict

from .catalog import build_tools
from .config import Settings
from .errors import InvalidQuerySyntax, SchemaUnavailable, UpstreamGraphQLError
from .operations import ToolInvoker
from .registry import MUTATION_PREFIX
from .schema import SchemaService
from .tools import GraphQLOperationTool

logger = logging.getLogger(__name__)


def _error_messages(errors: List[Dict[str, Any]]) -> str:
    return "; ".join(error.get("message", str(error)) if isinstance(error, dict) else str(error) for error in errors)


class GraphQLSource:
    """
    GraphQL endpoint connection wrapper.

    Sends introspection and generated operations to the origin endpoint.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize GraphQL endpoint connection.

        Args:
            endpoint: GraphQL endpoint URL
            api_key: Bearer token sent as the Authorization header
            headers: Optional HTTP headers
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.headers = headers or {}

    def _build_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Merge headers and add the bearer token unless the caller supplied Authorization."""
        merged = {**self.headers, **(headers or {})}
        if self.api_key and not any(key.lower() == "authorization" for key in merged):
            merged["Authorization"] = f"Bearer {self.api_key}"
        return merged

    async def introspect(self) -> GraphQLSchema:
        """
        Fetch the remote type system.

        Returns:
            GraphQLSchema: Client schema built from the introspection result

        Raises:
            UpstreamGraphQLError: If the endpoint fails or reports errors
        """
        introspection_query = get_introspection_query(descriptions=True)
        result = await self._post({"query": introspection_query}, self._build_headers())

        if result.get("errors"):
            raise UpstreamGraphQLError(f"Introspection failed: {_error_messages(result['errors'])}")
        if not result.get("data"):
            raise UpstreamGraphQLError("Introspection failed: no data in response")

        return build_client_schema(result["data"])

    async def execute_query(
        self,
        query: str,
        variables: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None,
        schema: Optional[GraphQLSchema] = None,
    ) -> Any:
        """
        Execute a GraphQL document.

        The document is parsed locally, and validated when a schema is given, before
        anything is sent.

        Args:
            query: GraphQL document text
            variables: Variables for the operation
            headers: Extra request headers
            schema: Schema to validate against

        Returns:
            The ``data`` member of the response

        Raises:
            InvalidQuerySyntax: If the document does not parse or validate
            UpstreamGraphQLError: If the request fails or the response carries errors
        """
        try:
            document = parse(query)
        except GraphQLError as e:
            raise InvalidQuerySyntax(f"Invalid GraphQL query: {e.message}") from e

        if schema is not None:
            validation_errors = validate(schema, document)
            if validation_errors:
                messages = "; ".join(error.message for error in validation_errors)
                raise InvalidQuerySyntax(f"GraphQL query failed validation: {messages}")

        payload = {"query": query}
        if variables:
            payload["variables"] = variables

        start_time = time.perf_counter()
        try:
            result = await self._post(payload, self._build_headers(headers))
        except UpstreamGraphQLError as e:
            logger.error(f"Error executing GraphQL query: {e}")
            raise

        if result.get("errors"):
            message = _error_messages(result["errors"])
            logger.error(f"Error executing GraphQL query: {message}")
            raise UpstreamGraphQLError(f"GraphQL query error: {message}")

        duration = (time.perf_counter() - start_time) * 1000
        logger.info(f"GraphQL query executed successfully in {duration:.0f}ms")
        return result.get("data")

    async def _post(self, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        """POST a GraphQL payload and return the decoded JSON body."""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.endpoint,
                    json=payload,
                    headers={**headers, "Content-Type": "application/json"}
                ) as response:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        body = None

                    if not isinstance(body, dict):
                        raise UpstreamGraphQLError(f"GraphQL request failed: {response.status} (response is not a JSON object)")
                    if response.status != 200 and not body.get("errors"):
                        raise UpstreamGraphQLError(f"GraphQL request failed: {response.status}")
                    return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamGraphQLError(f"GraphQL request failed: {e}") from e

    def get_endpoint(self) -> str:
        """Get the GraphQL endpoint URL."""
        return self.endpoint


class GraphQLToolkit(BaseToolkit):
    """
    GraphQL Toolkit.

    Exposes every generated GraphQL operation as a LangChain tool, using the same
    whitelists and name registry as the protocol server.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    invoker: ToolInvoker

    def __init__(self, invoker: ToolInvoker, **kwargs):
        """
        Initialize the GraphQL toolkit.

        Args:
            invoker: Tool invoker bound to a schema service
        """
        super().__init__(invoker=invoker, **kwargs)

    async def aload(self) -> None:
        """Fetch the schema so get_tools() can build tools synchronously."""
        await self.invoker.schema_service.get_schema()

    def get_tools(self) -> List[BaseTool]:
        """
        Get one tool per allowed query and mutation field.

        Returns:
            List of GraphQL operation tools

        Raises:
            SchemaUnavailable: If no valid schema has been loaded
        """
        snapshot = self.invoker.schema_service.current
        if snapshot is None:
            raise SchemaUnavailable("Schema not loaded; await aload() first")

        definitions = build_tools(
            snapshot.schema,
            self.invoker.query_whitelist,
            self.invoker.mutation_whitelist,
            self.invoker.schema_service.registry,
        )
        registry = self.invoker.schema_service.registry
        tools = []
        for definition in definitions:
            full_name = registry.resolve(definition.name)
            if full_name.startswith(MUTATION_PREFIX):
                field = snapshot.schema.mutation_type.fields[full_name[len(MUTATION_PREFIX):]]
            else:
                field = snapshot.schema.query_type.fields[full_name]
            tools.append(GraphQLOperationTool(definition, field, self.invoker))
        return tools

    @property
    def dialect(self) -> str:
        """Get the dialect name."""
        return "graphql"


def create_graphql_toolkit(settings: Optional[Settings] = None) -> GraphQLToolkit:
    """
    Create a GraphQL toolkit instance.

    Args:
        settings: Endpoint, credentials, whitelists and cache TTL; read from the environment if omitted

    Returns:
        GraphQL toolkit instance
    """
    settings = settings or Settings.from_env()
    graphql_source = GraphQLSource(endpoint=settings.endpoint, api_key=settings.api_key)
    schema_service = SchemaService(graphql_source, ttl=settings.cache_ttl)
    invoker = ToolInvoker(schema_service, settings.whitelisted_queries, settings.whitelisted_mutations)
    return GraphQLToolkit(invoker=invoker)
