"""
Tests for the built-in @model and @auth transformers.
"""

from __future__ import annotations

import pytest

from graphql_transform.collaborators import IdentityInfo
from graphql_transform.config import TransformConfig
from graphql_transform.errors import Severity, TransformerContractError, TransformerError
from graphql_transform.transform import GraphQLTransform
from graphql_transform.transformers import AuthTransformer, ModelTransformer, ResolverTemplates, default_transformers
from graphql_transform.utils import logical_id, plural, to_upper

TODO_SCHEMA = "type Todo @model { id: ID! name: String! }"


def run(schema, identity=None, config=None):
    return GraphQLTransform(default_transformers(), config).transform(schema, identity=identity)


class TestModelTransformer:
    def test_todo_resources(self):
        artifact = run(TODO_SCHEMA).unwrap()

        assert list(artifact.resources) == ["GraphQLAPI", "GraphQLAPIKey", "TodoIAMRole", "TodoDataSource", "TodoTable"]
        storage = [name for name, resource in artifact.resources.items() if resource.category == "storage"]
        assert storage == ["TodoTable"]
        assert artifact.stack_of("TodoTable") == "storage"
        assert artifact.stack_of("TodoDataSource") == "root"

        table = artifact.resources["TodoTable"]
        assert table.type == "AWS::DynamoDB::Table"
        assert table.stateful
        assert table.properties["TableName"] == "Todo-GraphQLAPI"
        assert "TableName" in table.replacement_properties

    def test_crud_resolvers(self):
        artifact = run(TODO_SCHEMA).unwrap()

        assert {coordinate: binding.operation for coordinate, binding in artifact.resolvers.items()} == {
            "Query.getTodo": "GetItem",
            "Query.listTodos": "Scan",
            "Mutation.createTodo": "PutItem",
            "Mutation.updateTodo": "UpdateItem",
            "Mutation.deleteTodo": "DeleteItem",
        }
        get_todo = artifact.resolvers["Query.getTodo"]
        assert get_todo.data_source == "TodoDataSource"
        assert '"operation": "GetItem"' in get_todo.request_template
        assert "$ctx.args.id" in get_todo.request_template
        assert get_todo.response_template == "$util.toJson($ctx.result)"

    def test_output_schema(self):
        schema = run(TODO_SCHEMA).unwrap().schema

        assert schema.startswith("type Todo {\n  id: ID!\n  name: String!\n}\n")
        assert "type ModelTodoConnection {\n  items: [Todo]\n  nextToken: String\n}" in schema
        assert "input CreateTodoInput {\n  id: ID\n  name: String!\n}" in schema
        assert "input UpdateTodoInput {\n  id: ID!\n  name: String\n}" in schema
        assert "input DeleteTodoInput {\n  id: ID\n}" in schema
        assert "type Query {\n  getTodo(id: ID!): Todo\n  listTodos(limit: Int, nextToken: String): ModelTodoConnection\n}" in schema
        assert (
            "type Mutation {\n"
            "  createTodo(input: CreateTodoInput!): Todo\n"
            "  updateTodo(input: UpdateTodoInput!): Todo\n"
            "  deleteTodo(input: DeleteTodoInput!): Todo\n"
            "}"
        ) in schema
        assert "@model" not in schema

    def test_outputs_and_api_name(self):
        artifact = run(TODO_SCHEMA, config=TransformConfig(api_name="TodoAPI")).unwrap()

        assert artifact.resources["GraphQLAPI"].properties["Name"] == "TodoAPI"
        assert artifact.resources["TodoTable"].properties["TableName"] == "Todo-TodoAPI"
        assert dict(artifact.outputs["TodoTableName"]) == {"Ref": "TodoTable"}
        assert "GraphQLAPIEndpointOutput" in artifact.outputs

    def test_renamed_and_disabled_operations(self):
        artifact = run('type Todo @model(queries: {get: "fetchTodo"}, mutations: null) { id: ID! }').unwrap()

        assert list(artifact.resolvers) == ["Query.fetchTodo"]
        assert "fetchTodo(id: ID!): Todo" in artifact.schema
        assert "ModelTodoConnection" not in artifact.schema
        assert "type Mutation" not in artifact.schema

    def test_inputs_skip_object_fields(self):
        schema = """
        enum Status { OPEN DONE }
        type Author { name: String }
        type Post @model {
          id: ID!
          title: String!
          status: Status
          author: Author
        }
        """
        output = run(schema).unwrap().schema
        assert "input CreatePostInput {\n  id: ID\n  title: String!\n  status: Status\n}" in output

    def test_plural_list_field(self):
        artifact = run("type Category @model { id: ID! }").unwrap()
        assert "Query.listCategories" in artifact.resolvers

    def test_missing_id_is_a_warning(self):
        result = run("type Note @model { text: String }")
        assert result.ok
        assert len(result.warnings) == 1
        assert "no 'id' field" in result.warnings[0].message
        assert result.warnings[0].transformer == "ModelTransformer"

    def test_two_models(self):
        artifact = run(TODO_SCHEMA + "\ntype Note @model { id: ID! }").unwrap()
        assert {"TodoTable", "NoteTable"} <= set(artifact.resources)
        assert list(artifact.resources).count("GraphQLAPI") == 1

    def test_root_field_conflict(self):
        result = run(TODO_SCHEMA + "\ntype Query { getTodo(id: ID!): Todo }")
        assert not result.ok
        assert "Query.getTodo" in str(result.error)

    def test_root_field_conflict_with_schema_root_type(self):
        result = run("schema { query: Root }\ntype Root { getTodo: String }\n" + TODO_SCHEMA)
        assert not result.ok
        assert isinstance(result.error, TransformerContractError)
        assert "Root.getTodo" in str(result.error)

    def test_root_field_conflict_with_query_extension(self):
        result = run("type Query { ping: String }\nextend type Query { getTodo: String }\n" + TODO_SCHEMA)
        assert not result.ok
        assert isinstance(result.error, TransformerContractError)
        assert "Query.getTodo" in str(result.error)

    def test_custom_root_type_receives_fields(self):
        artifact = run("schema { query: Root }\ntype Root { ping: String }\n" + TODO_SCHEMA).unwrap()
        assert artifact.schema.startswith("schema {\n  query: Root\n  mutation: Mutation\n}\n")
        assert "type Root {\n  ping: String\n  getTodo(id: ID!): Todo\n" in artifact.schema
        assert "Root.getTodo" in artifact.resolvers
        assert "Mutation.createTodo" in artifact.resolvers

    def test_model_only_on_objects(self):
        result = run("type Todo { id: ID! @model }")
        assert not result.ok
        assert result.artifact is None


class TestAuthTransformer:
    IDENTITY = IdentityInfo(auth_role_name="AuthRole", unauth_role_name="UnauthRole")

    def test_private_rule_guards_every_resolver(self):
        artifact = run("type Todo @model @auth(rules: [{allow: private}]) { id: ID! }", self.IDENTITY).unwrap()

        for coordinate, binding in artifact.resolvers.items():
            assert binding.request_template.startswith("## Authorization for"), coordinate
            assert "#if( $util.isNull($ctx.identity) )" in binding.request_template
            assert list(binding.metadata["auth"]) == ["private"]

        policy = artifact.resources["TodoPrivatePolicy"]
        assert policy.type == "AWS::IAM::Policy"
        assert list(policy.properties["Roles"]) == ["AuthRole"]
        assert "types/Query/fields/getTodo" in policy.properties["PolicyDocument"]["Statement"][0]["Resource"]
        assert artifact.stack_of("TodoPrivatePolicy") == "auth"

    def test_operation_rules(self):
        artifact = run("type Todo @model @auth(rules: [{allow: private, operations: [read]}]) { id: ID! }", self.IDENTITY).unwrap()

        read = artifact.resolvers["Query.getTodo"].request_template
        create = artifact.resolvers["Mutation.createTodo"].request_template
        assert read.startswith("## Authorization for read: private\n")
        assert create.startswith("## Authorization for create: no rule\n$util.unauthorized()")

        resources = artifact.resources["TodoPrivatePolicy"].properties["PolicyDocument"]["Statement"][0]["Resource"]
        assert list(resources) == ["types/Query/fields/getTodo", "types/Query/fields/listTodos"]

    def test_public_rule_keeps_resolvers(self):
        plain = run(TODO_SCHEMA).unwrap()
        artifact = run("type Todo @model @auth(rules: [{allow: public}]) { id: ID! name: String! }", self.IDENTITY).unwrap()

        assert artifact.resolvers["Query.getTodo"].request_template == plain.resolvers["Query.getTodo"].request_template
        assert list(artifact.resources["TodoPublicPolicy"].properties["Roles"]) == ["UnauthRole"]
        assert "TodoPrivatePolicy" not in artifact.resources

    def test_directive_order_does_not_matter(self):
        first = run("type Todo @model @auth(rules: [{allow: private}]) { id: ID! }", self.IDENTITY).unwrap()
        second = run("type Todo @auth(rules: [{allow: private}]) @model { id: ID! }", self.IDENTITY).unwrap()
        assert first.resolvers == second.resolvers

    def test_without_identity_policies_are_skipped(self):
        result = run("type Todo @model @auth(rules: [{allow: private}]) { id: ID! }")

        assert result.ok
        assert "TodoPrivatePolicy" not in result.artifact.resources
        assert any("No private role name" in w.message for w in result.warnings)

    def test_auth_without_model_is_a_warning(self):
        result = run("type Todo @auth(rules: [{allow: private}]) { id: ID! }")
        assert result.ok
        assert [w.transformer for w in result.warnings] == ["AuthTransformer"]

    def test_unknown_strategy_is_fatal(self):
        result = run("type Todo @model @auth(rules: [{allow: owner}]) { id: ID! }")

        assert isinstance(result.error, TransformerError)
        assert result.error.severity == Severity.FATAL
        assert "owner" in str(result.error)

    def test_rules_are_required(self):
        result = run("type Todo @model @auth { id: ID! }")
        assert not result.ok


class TestResolverTemplates:
    def test_all_operations_render(self):
        templates = ResolverTemplates()
        for operation in ResolverTemplates.OPERATIONS:
            rendered = templates.request(operation, key="todoId")
            assert f'"operation": "{operation}"' in rendered
            assert '"version": "2017-02-28"' in rendered

    def test_scan_uses_default_limit(self):
        assert "$util.defaultIfNull($context.args.limit, 10)" in ResolverTemplates().request("Scan")

    def test_unknown_operation(self):
        with pytest.raises(ValueError):
            ResolverTemplates().request("Query")

    def test_transformer_names(self):
        assert [t.name for t in default_transformers()] == ["ModelTransformer", "AuthTransformer"]
        assert ModelTransformer().directives == ("model",)
        assert AuthTransformer().directives == ("auth",)


class TestNaming:
    def test_plural(self):
        assert plural("Todo") == "Todos"
        assert plural("Category") == "Categories"
        assert plural("Day") == "Days"
        assert plural("Address") == "Addresses"
        assert plural("Box") == "Boxes"

    def test_case(self):
        assert to_upper("todo") == "Todo"

    def test_logical_id(self):
        assert logical_id("Todo", "Table") == "TodoTable"
        assert logical_id("blog_post", "DataSource") == "BlogPostDataSource"
        assert logical_id("Todo", "private", "Policy") == "TodoPrivatePolicy"
