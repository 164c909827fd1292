"""
Tests for TransformerContext.
"""

from __future__ import annotations

import pytest

from graphql_transform.collaborators import IdentityInfo
from graphql_transform.config import TransformConfig
from graphql_transform.errors import ResourceNameCollisionError, Severity, TransformerContractError, TransformerError
from graphql_transform.schema_ast import FieldDefinition, ObjectTypeDefinition, TypeRef, read_schema
from graphql_transform.transform import ResolverBinding, Resource, TransformerContext


@pytest.fixture
def ctx():
    document = read_schema("type Todo @model {\n  id: ID!\n}\n\ntype Query {\n  ping: String\n}\n")
    return TransformerContext(document, TransformConfig(parameters={"Env": "dev"}), IdentityInfo("AuthRole", "UnauthRole"))


class TestResources:
    def test_add_and_get(self, ctx):
        ctx.add_resource("TodoTable", Resource(type="AWS::DynamoDB::Table"))
        assert ctx.has_resource("TodoTable")
        assert ctx.get_resource("TodoTable").type == "AWS::DynamoDB::Table"
        assert ctx.get_resource("Missing") is None

    def test_duplicate_name_collides(self, ctx):
        ctx.add_resource("X", Resource(type="A"))
        with pytest.raises(ResourceNameCollisionError) as exc_info:
            ctx.add_resource("X", Resource(type="B"))
        assert exc_info.value.name == "X"
        assert ctx.get_resource("X").type == "A"

    def test_set_resource_replaces(self, ctx):
        ctx.add_resource("X", Resource(type="A"))
        ctx.set_resource("X", Resource(type="A", properties={"Tag": 1}))
        assert ctx.get_resource("X").properties["Tag"] == 1

    def test_set_unknown_resource_fails(self, ctx):
        with pytest.raises(TransformerError):
            ctx.set_resource("X", Resource(type="A"))

    def test_resources_are_frozen(self):
        resource = Resource(type="A", properties={"Tags": ["a"], "Nested": {"k": "v"}})
        with pytest.raises(TypeError):
            resource.properties["Tags"] = []
        assert resource.properties["Tags"] == ("a",)


class TestResolvers:
    def test_duplicate_binding_collides_unless_replaced(self, ctx):
        binding = ResolverBinding(type_name="Query", field_name="getTodo", operation="GetItem")
        ctx.add_resolver_binding("Query.getTodo", binding)

        with pytest.raises(ResourceNameCollisionError) as exc_info:
            ctx.add_resolver_binding("Query.getTodo", binding)
        assert exc_info.value.kind == "resolver"

        ctx.add_resolver_binding("Query.getTodo", binding.replace(operation="Scan"), replace=True)
        assert ctx.get_resolver_binding("Query.getTodo").operation == "Scan"


class TestMetadata:
    def test_annotate_type_merges_last_writer_wins(self, ctx):
        ctx.annotate_type("Todo", {"model": True, "table": "A"})
        ctx.annotate_type("Todo", {"table": "B", "auth": {}})
        assert ctx.get_type_metadata("Todo") == {"model": True, "table": "B", "auth": {}}
        assert ctx.get_type_metadata("Other") == {}

    def test_parameters_are_seeded_from_config(self, ctx):
        ctx.add_parameter("Region", "eu-west-1")
        assert ctx.parameters == {"Env": "dev", "Region": "eu-west-1"}
        assert ctx.identity.auth_role_name == "AuthRole"


class TestOutputSchema:
    def test_add_type_conflicts_with_input_type(self, ctx):
        with pytest.raises(TransformerContractError):
            ctx.add_type(ObjectTypeDefinition(name="Todo"))

    def test_add_type_conflicts_with_generated_type(self, ctx):
        ctx.add_type(ObjectTypeDefinition(name="ModelTodoConnection"))
        assert ctx.has_type("ModelTodoConnection")
        with pytest.raises(TransformerContractError):
            ctx.add_type(ObjectTypeDefinition(name="ModelTodoConnection"))

    def test_root_fields_conflict_with_existing_fields(self, ctx):
        ctx.add_root_fields("query", [FieldDefinition(name="getTodo", type=TypeRef.named("Todo"))])
        with pytest.raises(TransformerContractError):
            ctx.add_root_fields("query", [FieldDefinition(name="ping", type=TypeRef.named("String"))])
        with pytest.raises(TransformerContractError):
            ctx.add_root_fields("query", [FieldDefinition(name="getTodo", type=TypeRef.named("Todo"))])

    def test_root_fields_conflict_with_schema_root_type(self):
        document = read_schema("schema { query: Root }\n\ntype Root {\n  getTodo: String\n}\n")
        ctx = TransformerContext(document)
        with pytest.raises(TransformerContractError, match="Root.getTodo"):
            ctx.add_root_fields("query", [FieldDefinition(name="getTodo", type=TypeRef.named("Todo"))])

    def test_root_fields_conflict_with_extension_fields(self):
        document = read_schema("type Query {\n  ping: String\n}\n\nextend type Query {\n  getTodo: String\n}\n")
        ctx = TransformerContext(document)
        with pytest.raises(TransformerContractError, match="Query.getTodo"):
            ctx.add_root_fields("query", [FieldDefinition(name="getTodo", type=TypeRef.named("Todo"))])

    def test_unknown_root_operation(self, ctx):
        with pytest.raises(TransformerContractError):
            ctx.add_root_fields("queries", [])


class TestDiagnostics:
    def test_record_diagnostic_with_node_location(self, ctx):
        todo = ctx.input_document.get_type("Todo")
        ctx.current_transformer = "ModelTransformer"
        ctx.record_diagnostic(Severity.WARNING, "no sort key", node=todo)

        diagnostic = ctx.diagnostics[0]
        assert diagnostic.transformer == "ModelTransformer"
        assert diagnostic.location == "schema.graphql:1:1"
        assert not ctx.has_fatal
        assert str(diagnostic) == "[warning ModelTransformer schema.graphql:1:1] no sort key"

    def test_first_fatal(self, ctx):
        ctx.record_diagnostic(Severity.WARNING, "w")
        ctx.record_error(TransformerError("first"))
        ctx.record_error(ResourceNameCollisionError("X"))

        assert ctx.has_fatal
        assert ctx.first_fatal.message == "first"
        assert isinstance(ctx.diagnostics[2].to_error(), ResourceNameCollisionError)

    def test_non_fatal_transformer_error_is_a_warning(self, ctx):
        ctx.record_error(TransformerError("heads up", severity=Severity.WARNING))
        assert not ctx.has_fatal
        assert ctx.diagnostics[0].severity == Severity.WARNING
