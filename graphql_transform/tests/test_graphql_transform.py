"""
Tests for the pipeline orchestrator.

Covers dispatch order, validation before mutation, fatal error handling,
stack partitioning and the output schema.
"""

from __future__ import annotations

import pytest

from graphql_transform.config import TransformConfig
from graphql_transform.errors import (
    InvalidDirectiveError,
    InvalidTransformerError,
    ResourceNameCollisionError,
    SchemaParseError,
    Severity,
    TransformerContractError,
    TransformerError,
    UnknownDirectiveError,
)
from graphql_transform.schema_ast import FieldDefinition, ObjectTypeDefinition, TypeRef, read_schema
from graphql_transform.transform import ROOT_STACK_NAME, GraphQLTransform, Resource, Transformer


class RecordingTransformer(Transformer):
    """Appends every hook call to a shared event list."""

    def __init__(self, name, directives, events, directive_definition=None):
        super().__init__(name, directives, directive_definition)
        self.events = events

    def before(self, ctx):
        self.events.append((self.name, "before"))

    def after(self, ctx):
        self.events.append((self.name, "after"))

    def on_object_type(self, definition, directive, ctx):
        self.events.append((self.name, directive.name, definition.name))

    def on_field(self, parent, field, directive, ctx):
        self.events.append((self.name, directive.name, f"{parent.name}.{field.name}"))


class ResourceTransformer(Transformer):
    """Adds one resource per annotated type."""

    def __init__(self, name="ResourceTransformer", directive="table", resource_name=None, category="storage", depends_on=()):
        super().__init__(name, directive)
        self.resource_name = resource_name
        self.category = category
        self.depends_on = depends_on

    def on_object_type(self, definition, directive, ctx):
        name = self.resource_name or f"{definition.name}Table"
        ctx.add_resource(name, Resource(type="AWS::DynamoDB::Table", category=self.category, depends_on=self.depends_on, stateful=True))


class CallbackTransformer(Transformer):
    """Runs a callback for every annotated type."""

    def __init__(self, name, directive, callback):
        super().__init__(name, directive)
        self.callback = callback

    def on_object_type(self, definition, directive, ctx):
        self.callback(definition, ctx)


class TestDispatchOrder:
    def test_usage_outer_transformer_inner(self):
        events = []
        first = RecordingTransformer("First", ["first", "second"], events)
        second = RecordingTransformer("Second", "second", events)
        schema = """
        type A @first @second {
          x: Int @first
        }

        type B @second {
          y: Int
        }
        """

        result = GraphQLTransform([first, second]).transform(schema)

        assert result.ok
        assert events == [
            ("First", "before"),
            ("Second", "before"),
            ("First", "first", "A"),
            ("First", "second", "A"),
            ("Second", "second", "A"),
            ("First", "first", "A.x"),
            ("First", "second", "B"),
            ("Second", "second", "B"),
            ("First", "after"),
            ("Second", "after"),
        ]

    def test_invoked_once_per_occurrence(self):
        events = []
        transformer = RecordingTransformer("Recorder", "first", events)
        GraphQLTransform([transformer]).transform("type A @first { id: ID! }\ntype B @first { id: ID! }\ntype C { id: ID! }")
        assert [e for e in events if len(e) == 3] == [("Recorder", "first", "A"), ("Recorder", "first", "B")]

    def test_runs_are_independent(self):
        transform = GraphQLTransform([ResourceTransformer()])
        first = transform.transform("type Todo @table { id: ID! }")
        second = transform.transform("type Todo @table { id: ID! }")
        assert first.ok and second.ok
        assert first.artifact == second.artifact


class TestValidation:
    def test_unknown_directive(self):
        events = []
        result = GraphQLTransform([RecordingTransformer("Recorder", "first", events)]).transform("type A @first @foo { id: ID! @bar }")

        assert isinstance(result.error, UnknownDirectiveError)
        assert result.error.names == ["bar", "foo"]
        assert result.artifact is None
        assert events == []

    def test_preserved_directives_are_not_custom(self):
        config = TransformConfig(preserved_directives={"aws_lambda"})
        result = GraphQLTransform([ResourceTransformer()], config).transform("type Todo @table @aws_lambda { id: ID! }")
        assert result.ok
        assert "type Todo @aws_lambda {" in result.artifact.schema

    def test_parse_error(self):
        result = GraphQLTransform([ResourceTransformer()]).transform("type Todo {")
        assert isinstance(result.error, SchemaParseError)
        assert result.artifact is None

    def test_location_without_hook(self):
        result = GraphQLTransform([ResourceTransformer()]).transform("type Todo { id: ID! @table }")

        assert isinstance(result.error, InvalidDirectiveError)
        assert "FIELD_DEFINITION 'Todo.id'" in str(result.error)

    def test_location_not_declared(self):
        events = []
        transformer = RecordingTransformer("Recorder", "first", events, "directive @first on OBJECT")
        result = GraphQLTransform([transformer]).transform("type A { x: Int @first }")

        assert isinstance(result.error, InvalidDirectiveError)
        assert events == []

    def test_unknown_argument(self):
        transformer = RecordingTransformer("Recorder", "first", [], "directive @first(name: String) on OBJECT")
        result = GraphQLTransform([transformer]).transform('type A @first(nme: "a") { id: ID! }')
        assert isinstance(result.error, InvalidDirectiveError)
        assert "unknown argument 'nme'" in str(result.error)

    def test_missing_required_argument(self):
        transformer = RecordingTransformer("Recorder", "first", [], "directive @first(name: String!) on OBJECT")
        result = GraphQLTransform([transformer]).transform("type A @first { id: ID! }")
        assert isinstance(result.error, InvalidDirectiveError)
        assert "missing required argument 'name'" in str(result.error)

    def test_repeatable(self):
        schema = 'type A @first(name: "a") @first(name: "b") { id: ID! }'
        single = RecordingTransformer("Recorder", "first", [], "directive @first(name: String) on OBJECT")
        repeatable = RecordingTransformer("Recorder", "first", [], "directive @first(name: String) repeatable on OBJECT")

        assert isinstance(GraphQLTransform([single]).transform(schema).error, InvalidDirectiveError)
        assert GraphQLTransform([repeatable]).transform(schema).ok


class TestTransformerRegistration:
    def test_empty_name(self):
        with pytest.raises(InvalidTransformerError):
            ResourceTransformer(name="")

    def test_no_directives(self):
        with pytest.raises(InvalidTransformerError):
            RecordingTransformer("Recorder", [], [])

    def test_duplicate_names(self):
        with pytest.raises(InvalidTransformerError):
            GraphQLTransform([ResourceTransformer(), ResourceTransformer(directive="other")])

    def test_invalid_directive_definition(self):
        with pytest.raises(InvalidTransformerError):
            GraphQLTransform([RecordingTransformer("Recorder", "first", [], "directive @first on")])

    def test_not_a_transformer(self):
        with pytest.raises(InvalidTransformerError):
            GraphQLTransform([object()])

    def test_bound_transformers(self):
        first = RecordingTransformer("First", ["first", "second"], [])
        second = RecordingTransformer("Second", "second", [])
        transform = GraphQLTransform([first, second])
        assert transform.bound_transformers("second") == [first, second]
        assert transform.bound_transformers("third") == []


class TestFatalErrors:
    def test_resource_name_collision(self):
        transformers = [
            ResourceTransformer(name="One", directive="one", resource_name="X"),
            ResourceTransformer(name="Two", directive="two", resource_name="X"),
        ]
        result = GraphQLTransform(transformers).transform("type A @one @two { id: ID! }")

        assert isinstance(result.error, ResourceNameCollisionError)
        assert result.error.name == "X"
        assert result.artifact is None

    def test_recorded_fatal_halts_after_current_node(self):
        events = []

        def fail(definition, ctx):
            ctx.record_diagnostic(Severity.WARNING, "before the failure")
            ctx.record_diagnostic(Severity.FATAL, f"cannot handle {definition.name}", node=definition)
            ctx.record_diagnostic(Severity.WARNING, "after the failure")

        transformers = [CallbackTransformer("Failing", "fail", fail), RecordingTransformer("Recorder", "fail", events)]
        result = GraphQLTransform(transformers).transform("type A @fail { id: ID! }\ntype B @fail { id: ID! }")

        assert isinstance(result.error, TransformerError)
        assert str(result.error) == "cannot handle A"
        assert [d.message for d in result.diagnostics] == ["before the failure"]
        # Other transformers still see the node being visited, not the next one
        assert events == [("Recorder", "before"), ("Recorder", "fail", "A"), ("Recorder", "after")]

    def test_raised_fatal_halts_immediately(self):
        events = []

        def fail(definition, ctx):
            raise TransformerError("broken")

        transformers = [CallbackTransformer("Failing", "fail", fail), RecordingTransformer("Recorder", "fail", events)]
        result = GraphQLTransform(transformers).transform("type A @fail { id: ID! }")

        assert str(result.error) == "broken"
        assert events == [("Recorder", "before"), ("Recorder", "after")]

    def test_raised_warning_does_not_halt(self):
        def warn(definition, ctx):
            raise TransformerError(f"{definition.name} looks odd", severity=Severity.WARNING)

        result = GraphQLTransform([CallbackTransformer("Warning", "warn", warn)]).transform("type A @warn { id: ID! }\ntype B @warn { id: ID! }")

        assert result.ok
        assert [w.message for w in result.warnings] == ["A looks odd", "B looks odd"]
        assert result.warnings[0].transformer == "Warning"

    def test_unexpected_exception_is_wrapped(self):
        def crash(definition, ctx):
            raise ValueError("boom")

        result = GraphQLTransform([CallbackTransformer("Crashing", "crash", crash)]).transform("type A @crash { id: ID! }")

        assert isinstance(result.error, TransformerError)
        assert "Crashing" in str(result.error)
        assert isinstance(result.error.__cause__, ValueError)

    def test_contract_error(self):
        def clash(definition, ctx):
            ctx.add_type(ObjectTypeDefinition(name=definition.name))

        result = GraphQLTransform([CallbackTransformer("Clashing", "clash", clash)]).transform("type A @clash { id: ID! }")
        assert isinstance(result.error, TransformerContractError)

    def test_unwrap_raises(self):
        result = GraphQLTransform([ResourceTransformer()]).transform("type A @foo { id: ID! }")
        with pytest.raises(UnknownDirectiveError):
            result.unwrap()

    def test_dangling_dependency(self):
        result = GraphQLTransform([ResourceTransformer(depends_on=("Missing",))]).transform("type A @table { id: ID! }")
        assert isinstance(result.error, TransformerError)
        assert "Missing" in str(result.error)


class TestArtifact:
    def test_stack_partition(self):
        def add(definition, ctx):
            ctx.add_resource("Api", Resource(type="AWS::AppSync::GraphQLApi", category="api"))
            ctx.add_resource("Search", Resource(type="AWS::OpenSearch::Domain", category="search"))
            ctx.add_resource("Function", Resource(type="AWS::Lambda::Function", category="function"))
            ctx.map_resource_to_stack("Function", "Functions")

        transformers = [ResourceTransformer(), CallbackTransformer("Adding", "add", add)]
        config = TransformConfig(stack_mapping={"TodoTable": "Todo"})
        artifact = GraphQLTransform(transformers, config).transform("type Todo @table @add { id: ID! }").unwrap()

        assert artifact.root_stack == ROOT_STACK_NAME
        assert artifact.stack_of("Api") == ROOT_STACK_NAME
        assert artifact.stack_of("Search") == "search"
        assert artifact.stack_of("Function") == "Functions"
        assert artifact.stack_of("TodoTable") == "Todo"
        assert set(artifact.resources) == {"TodoTable", "Api", "Search", "Function"}

    def test_parameters_and_outputs(self):
        def add(definition, ctx):
            ctx.add_parameter("Region", "eu-west-1")
            ctx.set_output("ApiId", {"Ref": "Api"})

        config = TransformConfig(parameters={"Env": "dev"})
        artifact = GraphQLTransform([CallbackTransformer("Adding", "add", add)], config).transform("type A @add { id: ID! }").unwrap()

        assert dict(artifact.parameters) == {"Env": "dev", "Region": "eu-west-1"}
        assert dict(artifact.outputs["ApiId"]) == {"Ref": "Api"}

    def test_output_schema(self):
        def add(definition, ctx):
            ctx.add_type(ObjectTypeDefinition(name=f"{definition.name}Page", fields=[FieldDefinition(name="items", type=TypeRef.list_of(TypeRef.named(definition.name)))]))
            ctx.add_root_fields("query", [FieldDefinition(name=f"list{definition.name}", type=TypeRef.named(f"{definition.name}Page"))])
            ctx.add_root_fields("mutation", [FieldDefinition(name=f"touch{definition.name}", type=TypeRef.named(definition.name))])

        schema = "type Todo @add {\n  id: ID!\n}\n\ntype Query {\n  ping: String\n}\n"
        artifact = GraphQLTransform([CallbackTransformer("Adding", "add", add)]).transform(schema).unwrap()

        assert artifact.schema == (
            "type Todo {\n  id: ID!\n}\n\n"
            "type Query {\n  ping: String\n  listTodo: TodoPage\n}\n\n"
            "type TodoPage {\n  items: [Todo]\n}\n\n"
            "type Mutation {\n  touchTodo: Todo\n}\n"
        )

    def test_output_schema_respects_schema_definition(self):
        def add(definition, ctx):
            ctx.add_root_fields("query", [FieldDefinition(name="all", type=TypeRef.named("String"))])

        schema = "schema {\n  query: Root\n}\n\ntype Root {\n  ping: String\n}\n\ntype A @add {\n  id: ID!\n}\n"
        artifact = GraphQLTransform([CallbackTransformer("Adding", "add", add)]).transform(schema).unwrap()

        assert "type Root {\n  ping: String\n  all: String\n}" in artifact.schema
        assert "type Query" not in artifact.schema

    def test_input_document_is_not_modified(self):
        document = read_schema("type Todo @table { id: ID! }")
        GraphQLTransform([ResourceTransformer()]).transform(document)
        assert [d.name for d in document.get_type("Todo").directives] == ["table"]

    def test_hooks_cannot_mutate_caller_document(self):
        def rename(definition, ctx):
            definition.name = "Renamed"
            definition.fields.clear()

        document = read_schema("type Todo @mutate { id: ID! }")
        GraphQLTransform([CallbackTransformer("Mutating", "mutate", rename)]).transform(document)

        todo = document.get_type("Todo")
        assert todo is not None
        assert [f.name for f in todo.fields] == ["id"]

    def test_artifact_dict_round_trip(self):
        from graphql_transform.transform import DeploymentArtifact

        artifact = GraphQLTransform([ResourceTransformer()]).transform("type Todo @table { id: ID! }").unwrap()
        assert DeploymentArtifact.from_dict(artifact.to_dict()) == artifact
