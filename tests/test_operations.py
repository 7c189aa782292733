import json

import pytest
from graphql import build_schema, parse

from graphql_mcp.catalog import build_tools
from graphql_mcp.errors import (
    ArgumentCoercionError,
    InvalidQuerySyntax,
    MissingRequiredArgument,
    UnknownField,
    UnknownMutation,
    WhitelistRejected,
)
from graphql_mcp.operations import ToolInvoker, assemble_operation, sanitize_value
from graphql_mcp.planner import plan_selection

from conftest import COUNTRIES_SDL, LONG_QUERY_FIELD, LONG_MUTATION_FIELD

SCALAR_SDL = """
type Item { id: ID!, label: String, price: Float }
type Query {
  item(id: ID!): Item
  items(first: Int, after: String, onlyActive: Boolean, minPrice: Float): [Item!]!
  total: Int
}
type Mutation {
  addItem(label: String!, price: Float): Item
}
"""

SAMPLE_VALUES = {"ID": "1", "String": "a", "Int": 1, "Float": 1.5, "Boolean": True}


class TestAssembleOperation:

    def test_document_without_arguments(self):
        field = build_schema(COUNTRIES_SDL).query_type.fields["continents"]
        document = assemble_operation("continents", "continents", field.args, {}, plan_selection(field.type))

        assert document == "query continentsQuery {\n  continents {\n    code\n    name\n  }\n}"

    def test_only_used_arguments_are_declared(self):
        field = build_schema(COUNTRIES_SDL).query_type.fields["countries"]
        document = assemble_operation("countries", "countries", field.args, {"limit": 1}, [])

        assert "query countriesQuery($limit: Int) {" in document
        assert "countries(limit: $limit)" in document
        assert "$filter" not in document

    def test_wrapped_types_are_preserved(self):
        schema = build_schema("type Query { byIds(ids: [ID!]!): String }")
        field = schema.query_type.fields["byIds"]
        document = assemble_operation("byIds", "byIds", field.args, {"ids": ["1"]}, [])

        assert "$ids: [ID!]!" in document
        parse(document)

    def test_mutation_operation_name_drops_prefix(self):
        field = build_schema(COUNTRIES_SDL).mutation_type.fields["renameCountry"]
        document = assemble_operation(
            "mutation_renameCountry", "renameCountry", field.args,
            {"code": "KE", "name": "X"}, plan_selection(field.type), is_mutation=True,
        )

        assert document.startswith("mutation renameCountryMutation($code: ID!, $name: String!) {")
        assert "renameCountry(code: $code, name: $name) {" in document

    def test_every_scalar_tool_assembles_to_valid_graphql(self):
        schema = build_schema(SCALAR_SDL)
        for tool in build_tools(schema):
            is_mutation = tool.name.startswith("mutation_")
            root = schema.mutation_type if is_mutation else schema.query_type
            field_name = tool.name[len("mutation_"):] if is_mutation else tool.name
            field = root.fields[field_name]
            variables = {name: SAMPLE_VALUES[str(arg.type).strip("[]!")] for name, arg in field.args.items()}

            document = assemble_operation(tool.name, field_name, field.args, variables, plan_selection(field.type), is_mutation)
            parse(document)


def test_sanitize_value_walks_containers():
    value = {"a": (1, None), "b": [{"c": None}], "d": "x"}
    assert sanitize_value(value) == {"a": [1, None], "b": [{"c": None}], "d": "x"}


class TestToolInvoker:

    @pytest.mark.asyncio
    async def test_scenario_continents(self, invoker):
        assert await invoker.call("continents", {}) == {"continents": [{"code": "AF", "name": "Africa"}]}

    @pytest.mark.asyncio
    async def test_arguments_are_coerced_and_sent(self, invoker, source):
        result = await invoker.call("country", {"code": "KE"})

        assert result == {"country": {"code": "KE", "name": "Kenya", "capital": "Nairobi", "continent": {"code": "AF", "name": "Africa"}}}
        payload, _ = source.requests[-1]
        assert payload["variables"] == {"code": "KE"}

    @pytest.mark.asyncio
    async def test_json_input_object(self, invoker):
        result = await invoker.call("countries", {"filter": '{"code": "FR"}', "limit": "5"})
        assert [c["code"] for c in result["countries"]] == ["FR"]

    @pytest.mark.asyncio
    async def test_truncated_name_resolves_to_canonical_field(self, invoker, source):
        result = await invoker.call(LONG_QUERY_FIELD[:64], {})

        assert result == {LONG_QUERY_FIELD: "long query result"}
        payload, _ = source.requests[-1]
        assert f"  {LONG_QUERY_FIELD}\n" in payload["query"]

    @pytest.mark.asyncio
    async def test_truncated_mutation_name(self, invoker):
        result = await invoker.call("mutation_" + LONG_MUTATION_FIELD[:55], {})
        assert result == {LONG_MUTATION_FIELD: True}

    @pytest.mark.asyncio
    async def test_mutation(self, invoker):
        result = await invoker.call("mutation_renameCountry", {"code": "KE", "name": "Jamhuri"})
        assert result["renameCountry"]["name"] == "Jamhuri"

    @pytest.mark.asyncio
    async def test_missing_required_argument_fails_locally(self, invoker, source):
        await invoker.schema_service.get_schema()
        before = len(source.requests)

        with pytest.raises(MissingRequiredArgument):
            await invoker.call("country", {})

        assert len(source.requests) == before

    @pytest.mark.asyncio
    async def test_explicit_null_for_required_argument_fails_locally(self, invoker, source):
        with pytest.raises(MissingRequiredArgument):
            await invoker.call("country", {"code": None})
        assert source.operation_count == 0

    @pytest.mark.asyncio
    async def test_bad_integer_fails_locally(self, invoker, source):
        with pytest.raises(ArgumentCoercionError):
            await invoker.call("countries", {"limit": "many"})
        assert source.operation_count == 0

    @pytest.mark.asyncio
    async def test_unknown_field(self, invoker):
        with pytest.raises(UnknownField):
            await invoker.call("nope", {})

    @pytest.mark.asyncio
    async def test_unknown_mutation(self, invoker):
        with pytest.raises(UnknownMutation):
            await invoker.call("mutation_nope", {})

    @pytest.mark.asyncio
    async def test_whitelist_rejects_existing_fields(self, schema_service):
        invoker = ToolInvoker(schema_service, query_whitelist=frozenset({"continents", "country"}))

        with pytest.raises(WhitelistRejected):
            await invoker.call("greeting", {})
        with pytest.raises(WhitelistRejected):
            await invoker.call("nope", {})

    @pytest.mark.asyncio
    async def test_mutation_whitelist(self, schema_service):
        invoker = ToolInvoker(schema_service, mutation_whitelist=frozenset({"somethingElse"}))

        with pytest.raises(WhitelistRejected):
            await invoker.call("mutation_renameCountry", {"code": "KE", "name": "X"})

    @pytest.mark.asyncio
    async def test_documents_failing_validation_are_not_sent(self, source, schema_service):
        # An object whose only fields take arguments gets no selection, which the schema rejects
        sdl = """
        type Page { items(first: Int): [String] }
        type Query { page: Page }
        """
        source.schema = build_schema(sdl)
        invoker = ToolInvoker(schema_service)

        with pytest.raises(InvalidQuerySyntax):
            await invoker.call("page", {})
        assert source.operation_count == 0

    @pytest.mark.asyncio
    async def test_result_is_json_serializable(self, invoker):
        result = await invoker.call("greeting", {"name": "Ada", "excited": "true", "ratio": "2"})
        assert json.loads(json.dumps(result)) == {"greeting": "Hello Ada! x2.0"}
