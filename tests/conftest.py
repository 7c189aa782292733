"""Shared fixtures: an in-process GraphQL endpoint standing in for the origin server."""

import asyncio

import pytest
from graphql import build_schema, graphql

from graphql_mcp.base import GraphQLSource
from graphql_mcp.errors import UpstreamGraphQLError
from graphql_mcp.operations import ToolInvoker
from graphql_mcp.schema import SchemaService
from graphql_mcp.server import MCPServer

LONG_QUERY_FIELD = "q" * 70
LONG_MUTATION_FIELD = "m" * 60

COUNTRIES_SDL = f"""
enum Region {{
  AFRICA
  EUROPE
}}

input CountryFilter {{
  code: String
  region: Region
}}

type Continent {{
  code: String
  name: String
}}

type Country {{
  code: ID!
  name: String
  capital: String
  continent: Continent
}}

type Query {{
  continents: [Continent!]!
  country(code: ID!): Country
  countries(filter: CountryFilter, limit: Int, region: Region): [Country!]!
  greeting(name: String, excited: Boolean, ratio: Float): String
  {LONG_QUERY_FIELD}: String
}}

type Mutation {{
  renameCountry(code: ID!, name: String!): Country
  {LONG_MUTATION_FIELD}: Boolean
}}
"""

COUNTRIES = [
    {"code": "KE", "name": "Kenya", "capital": "Nairobi", "continent": {"code": "AF", "name": "Africa"}},
    {"code": "FR", "name": "France", "capital": "Paris", "continent": {"code": "EU", "name": "Europe"}},
]


def _country(info, code):
    return next((c for c in COUNTRIES if c["code"] == code), None)


def _countries(info, filter=None, limit=None, region=None):
    result = list(COUNTRIES)
    if filter and filter.get("code"):
        result = [c for c in result if c["code"] == filter["code"]]
    if limit is not None:
        result = result[:limit]
    return result


def _greeting(info, name="world", excited=False, ratio=None):
    return f"Hello {name}{'!' if excited else ''}{'' if ratio is None else f' x{ratio}'}"


def _rename(info, code, name):
    country = dict(_country(info, code))
    country["name"] = name
    return country


def countries_root():
    return {
        "continents": [{"code": "AF", "name": "Africa"}],
        "country": _country,
        "countries": _countries,
        "greeting": _greeting,
        LONG_QUERY_FIELD: "long query result",
        "renameCountry": _rename,
        LONG_MUTATION_FIELD: True,
    }


class LocalGraphQLSource(GraphQLSource):
    """GraphQLSource that executes requests against an in-process schema and records them."""

    def __init__(self, sdl=COUNTRIES_SDL, root_value=None, api_key="", introspection_delay=0.0):
        super().__init__("http://graphql.test/graphql", api_key=api_key)
        self.schema = build_schema(sdl)
        self.root_value = root_value if root_value is not None else countries_root()
        self.introspection_delay = introspection_delay
        self.fail_introspection = False
        self.requests = []

    @property
    def introspection_count(self):
        return sum(1 for payload, _ in self.requests if "__schema" in payload["query"])

    @property
    def operation_count(self):
        return len(self.requests) - self.introspection_count

    async def _post(self, payload, headers):
        self.requests.append((payload, headers))
        if "__schema" in payload["query"]:
            await asyncio.sleep(self.introspection_delay)
            if self.fail_introspection:
                raise UpstreamGraphQLError("GraphQL request failed: 503")
        result = await graphql(
            self.schema,
            payload["query"],
            root_value=self.root_value,
            variable_values=payload.get("variables"),
        )
        return result.formatted


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def source():
    return LocalGraphQLSource()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def schema_service(source, clock):
    return SchemaService(source, ttl=60, clock=clock)


@pytest.fixture
def invoker(schema_service):
    return ToolInvoker(schema_service)


@pytest.fixture
def server(invoker):
    return MCPServer(invoker)
