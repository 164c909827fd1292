"""
The @model transformer.

Turns an annotated object type into a storage table, a data source with
its service role, CRUD root fields and their resolver bindings.
"""

from __future__ import annotations

from ..errors import Severity
from ..schema_ast.nodes import (
    DirectiveUsage,
    EnumTypeDefinition,
    FieldDefinition,
    InputObjectTypeDefinition,
    InputValueDefinition,
    ObjectTypeDefinition,
    ScalarTypeDefinition,
    TypeRef,
)
from ..transform import ROOT_CATEGORY, ResolverBinding, Resource, Transformer, TransformerContext
from ..utils import logical_id, plural, to_upper
from .resolvers import ResolverTemplates

MODEL_DIRECTIVE = """
directive @model(queries: ModelQueryMap, mutations: ModelMutationMap) on OBJECT

input ModelQueryMap {
  get: String
  list: String
}

input ModelMutationMap {
  create: String
  update: String
  delete: String
}
"""

BUILTIN_SCALARS = {"ID", "String", "Int", "Float", "Boolean"}

# Resource names contributed once per run
API_RESOURCE = "GraphQLAPI"
API_KEY_RESOURCE = "GraphQLAPIKey"

STORAGE_CATEGORY = "storage"

KEY_FIELD = "id"


def table_resource(type_name: str) -> str:
    return logical_id(type_name, "Table")


def data_source_resource(type_name: str) -> str:
    return logical_id(type_name, "DataSource")


def role_resource(type_name: str) -> str:
    return logical_id(type_name, "IAMRole")


class ModelTransformer(Transformer):
    """Provisions storage and CRUD resolvers for @model types."""

    def __init__(self):
        super().__init__("ModelTransformer", "model", MODEL_DIRECTIVE)
        self.templates = ResolverTemplates()

    def before(self, ctx: TransformerContext) -> None:
        """Add the API resources every model shares."""
        ctx.add_resource(
            API_RESOURCE,
            Resource(
                type="AWS::AppSync::GraphQLApi",
                category=ROOT_CATEGORY,
                properties={"Name": ctx.config.api_name, "AuthenticationType": "API_KEY"},
            ),
        )
        ctx.add_resource(
            API_KEY_RESOURCE,
            Resource(
                type="AWS::AppSync::ApiKey",
                category=ROOT_CATEGORY,
                properties={"ApiId": {"Fn::GetAtt": [API_RESOURCE, "ApiId"]}},
                depends_on=(API_RESOURCE,),
            ),
        )
        ctx.set_output("GraphQLAPIIdOutput", {"Fn::GetAtt": [API_RESOURCE, "ApiId"]})
        ctx.set_output("GraphQLAPIEndpointOutput", {"Fn::GetAtt": [API_RESOURCE, "GraphQLUrl"]})

    def on_object_type(self, definition: ObjectTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        type_name = definition.name
        if definition.get_field(KEY_FIELD) is None:
            ctx.record_diagnostic(Severity.WARNING, f"@model type '{type_name}' has no '{KEY_FIELD}' field; items are keyed on it anyway", node=definition)

        table = table_resource(type_name)
        role = role_resource(type_name)
        data_source = data_source_resource(type_name)

        ctx.add_resource(table, self._table(ctx, definition))
        ctx.add_resource(
            role,
            Resource(
                type="AWS::IAM::Role",
                category=ROOT_CATEGORY,
                properties={
                    "RoleName": f"{type_name}Role-{ctx.config.api_name}",
                    "AssumeRolePolicyDocument": {
                        "Version": "2012-10-17",
                        "Statement": [{"Effect": "Allow", "Principal": {"Service": "appsync.amazonaws.com"}, "Action": "sts:AssumeRole"}],
                    },
                    "Policies": [
                        {
                            "PolicyName": "DynamoDBAccess",
                            "PolicyDocument": {
                                "Version": "2012-10-17",
                                "Statement": [
                                    {
                                        "Effect": "Allow",
                                        "Action": ["dynamodb:GetItem", "dynamodb:PutItem", "dynamodb:DeleteItem", "dynamodb:UpdateItem", "dynamodb:Scan"],
                                        "Resource": [{"Fn::GetAtt": [table, "Arn"]}],
                                    }
                                ],
                            },
                        }
                    ],
                },
                depends_on=(table,),
            ),
        )
        ctx.add_resource(
            data_source,
            Resource(
                type="AWS::AppSync::DataSource",
                category=ROOT_CATEGORY,
                properties={
                    "ApiId": {"Fn::GetAtt": [API_RESOURCE, "ApiId"]},
                    "Name": data_source,
                    "Type": "AMAZON_DYNAMODB",
                    "ServiceRoleArn": {"Fn::GetAtt": [role, "Arn"]},
                    "DynamoDBConfig": {"TableName": {"Ref": table}},
                },
                depends_on=(API_RESOURCE, role, table),
            ),
        )
        ctx.set_output(f"{type_name}TableName", {"Ref": table})

        queries = self._operation_names(directive, "queries", {"get": f"get{type_name}", "list": f"list{plural(type_name)}"})
        mutations = self._operation_names(
            directive,
            "mutations",
            {"create": f"create{type_name}", "update": f"update{type_name}", "delete": f"delete{type_name}"},
        )

        self._add_queries(ctx, definition, data_source, queries)
        self._add_mutations(ctx, definition, data_source, mutations)

        ctx.annotate_type(
            type_name,
            {
                "model": True,
                "table": table,
                "dataSource": data_source,
                "queries": queries,
                "mutations": mutations,
            },
        )

    def _table(self, ctx: TransformerContext, definition: ObjectTypeDefinition) -> Resource:
        return Resource(
            type="AWS::DynamoDB::Table",
            category=STORAGE_CATEGORY,
            properties={
                "TableName": f"{definition.name}-{ctx.config.api_name}",
                "KeySchema": [{"AttributeName": KEY_FIELD, "KeyType": "HASH"}],
                "AttributeDefinitions": [{"AttributeName": KEY_FIELD, "AttributeType": "S"}],
                "BillingMode": "PAY_PER_REQUEST",
                "StreamSpecification": {"StreamViewType": "NEW_AND_OLD_IMAGES"},
                "ItemAttributes": [{"Name": f.name, "Type": str(f.type)} for f in definition.fields],
            },
            stateful=True,
            replacement_properties=("TableName", "KeySchema"),
        )

    def _operation_names(self, directive: DirectiveUsage, argument: str, defaults: dict[str, str]) -> dict[str, str]:
        """Resolve operation field names; an explicit null argument disables the whole group."""
        values = directive.values
        if argument not in values:
            return defaults
        overrides = values[argument]
        if overrides is None:
            return {}
        return {operation: name for operation, name in overrides.items() if name is not None and operation in defaults}

    # Queries

    def _add_queries(self, ctx: TransformerContext, definition: ObjectTypeDefinition, data_source: str, queries: dict[str, str]) -> None:
        type_name = definition.name
        fields = []
        if "get" in queries:
            fields.append(
                FieldDefinition(
                    name=queries["get"],
                    type=TypeRef.named(type_name),
                    arguments=[InputValueDefinition(name=KEY_FIELD, type=TypeRef.named("ID", non_null=True))],
                )
            )
            self._bind(ctx, ctx.input_document.root_type_name("query"), queries["get"], data_source, "GetItem")
        if "list" in queries:
            connection = self._connection_type(ctx, type_name)
            fields.append(
                FieldDefinition(
                    name=queries["list"],
                    type=TypeRef.named(connection),
                    arguments=[
                        InputValueDefinition(name="limit", type=TypeRef.named("Int")),
                        InputValueDefinition(name="nextToken", type=TypeRef.named("String")),
                    ],
                )
            )
            self._bind(ctx, ctx.input_document.root_type_name("query"), queries["list"], data_source, "Scan")
        if fields:
            ctx.add_root_fields("query", fields)

    def _connection_type(self, ctx: TransformerContext, type_name: str) -> str:
        name = f"Model{type_name}Connection"
        if not ctx.has_type(name):
            ctx.add_type(
                ObjectTypeDefinition(
                    name=name,
                    fields=[
                        FieldDefinition(name="items", type=TypeRef.list_of(TypeRef.named(type_name))),
                        FieldDefinition(name="nextToken", type=TypeRef.named("String")),
                    ],
                )
            )
        return name

    # Mutations

    def _add_mutations(self, ctx: TransformerContext, definition: ObjectTypeDefinition, data_source: str, mutations: dict[str, str]) -> None:
        type_name = definition.name
        operations = {"create": "PutItem", "update": "UpdateItem", "delete": "DeleteItem"}
        fields = []
        for operation, data_operation in operations.items():
            if operation not in mutations:
                continue
            input_name = self._input_type(ctx, definition, operation)
            fields.append(
                FieldDefinition(
                    name=mutations[operation],
                    type=TypeRef.named(type_name),
                    arguments=[InputValueDefinition(name="input", type=TypeRef.named(input_name, non_null=True))],
                )
            )
            self._bind(ctx, ctx.input_document.root_type_name("mutation"), mutations[operation], data_source, data_operation)
        if fields:
            ctx.add_root_fields("mutation", fields)

    def _input_type(self, ctx: TransformerContext, definition: ObjectTypeDefinition, operation: str) -> str:
        """Build the Create/Update/Delete input type for a model."""
        name = f"{to_upper(operation)}{definition.name}Input"
        if operation == "delete":
            input_fields = [InputValueDefinition(name=KEY_FIELD, type=TypeRef.named("ID"))]
        else:
            input_fields = []
            for f in definition.fields:
                if not self._is_input_type(ctx, f.type):
                    continue
                if f.name == KEY_FIELD:
                    # Generated on create, required on update
                    field_type = TypeRef.named("ID", non_null=operation == "update")
                elif operation == "update":
                    field_type = f.type.nullable()
                else:
                    field_type = f.type
                input_fields.append(InputValueDefinition(name=f.name, type=field_type))
        ctx.add_type(InputObjectTypeDefinition(name=name, fields=input_fields))
        return name

    def _is_input_type(self, ctx: TransformerContext, type_ref: TypeRef) -> bool:
        """Scalars and enums can be used in inputs; object types cannot."""
        name = type_ref.named_type
        if name in BUILTIN_SCALARS:
            return True
        found = ctx.input_document.get_type(name)
        return isinstance(found, ScalarTypeDefinition | EnumTypeDefinition)

    def _bind(self, ctx: TransformerContext, type_name: str, field_name: str, data_source: str, operation: str) -> None:
        ctx.add_resolver_binding(
            f"{type_name}.{field_name}",
            ResolverBinding(
                type_name=type_name,
                field_name=field_name,
                data_source=data_source,
                operation=operation,
                request_template=self.templates.request(operation, key=KEY_FIELD),
                response_template=self.templates.response(),
                metadata={"key": KEY_FIELD},
            ),
        )
