"""GraphQLSource against a real HTTP server."""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils
from graphql import build_schema, graphql

from graphql_mcp.base import GraphQLSource
from graphql_mcp.errors import InvalidQuerySyntax, UpstreamGraphQLError

SDL = "type Query { hello(name: String): String }"


class Upstream:
    """Minimal GraphQL HTTP endpoint that records what it receives."""

    def __init__(self):
        self.schema = build_schema(SDL)
        self.requests = []
        self.status = 200

    async def handle(self, request):
        body = await request.json()
        self.requests.append((request.headers.copy(), body))
        if self.status != 200:
            return web.Response(status=self.status, text="unavailable")
        result = await graphql(
            self.schema,
            body["query"],
            root_value={"hello": lambda info, name="world": f"hello {name}"},
            variable_values=body.get("variables"),
        )
        return web.json_response(result.formatted)


@pytest_asyncio.fixture
async def upstream():
    upstream = Upstream()
    app = web.Application()
    app.router.add_post("/graphql", upstream.handle)
    server = test_utils.TestServer(app)
    await server.start_server()
    upstream.url = str(server.make_url("/graphql"))
    yield upstream
    await server.close()


@pytest.mark.asyncio
async def test_introspection_builds_schema(upstream):
    schema = await GraphQLSource(upstream.url).introspect()
    assert "hello" in schema.query_type.fields


@pytest.mark.asyncio
async def test_execute_returns_data(upstream):
    data = await GraphQLSource(upstream.url).execute_query(
        "query helloQuery($name: String) { hello(name: $name) }", {"name": "Ada"}
    )
    assert data == {"hello": "hello Ada"}


@pytest.mark.asyncio
async def test_bearer_token_is_added(upstream):
    await GraphQLSource(upstream.url, api_key="secret").execute_query("{ hello }")
    headers, _ = upstream.requests[-1]
    assert headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_caller_authorization_wins(upstream):
    source = GraphQLSource(upstream.url, api_key="secret")
    await source.execute_query("{ hello }", headers={"authorization": "Token mine"})
    headers, _ = upstream.requests[-1]
    assert headers["Authorization"] == "Token mine"


@pytest.mark.asyncio
async def test_syntax_errors_are_never_sent(upstream):
    with pytest.raises(InvalidQuerySyntax):
        await GraphQLSource(upstream.url).execute_query("{ hello ")
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_graphql_errors_are_wrapped(upstream):
    with pytest.raises(UpstreamGraphQLError, match="Cannot query field 'nope'"):
        await GraphQLSource(upstream.url).execute_query("{ nope }")


@pytest.mark.asyncio
async def test_http_errors_are_wrapped(upstream):
    upstream.status = 503
    with pytest.raises(UpstreamGraphQLError, match="503"):
        await GraphQLSource(upstream.url).execute_query("{ hello }")


@pytest.mark.asyncio
async def test_connection_errors_are_wrapped():
    with pytest.raises(UpstreamGraphQLError):
        await GraphQLSource("http://127.0.0.1:1/graphql").execute_query("{ hello }")
