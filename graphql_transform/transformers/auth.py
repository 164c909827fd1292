"""
The @auth transformer.

Collects authorization rules while walking the schema and, once every
model has been processed, rewires the resolver bindings of protected
models and grants the identity roles access to their fields.
"""

from __future__ import annotations

from ..errors import Severity
from ..schema_ast.nodes import DirectiveUsage, ObjectTypeDefinition
from ..transform import Resource, Transformer, TransformerContext
from ..utils import logical_id
from .resolvers import ResolverTemplates

AUTH_DIRECTIVE = """
directive @auth(rules: [AuthRule!]!) on OBJECT

input AuthRule {
  allow: AuthStrategy!
  operations: [ModelOperation]
}

enum AuthStrategy {
  public
  private
}

enum ModelOperation {
  create
  update
  delete
  read
}
"""

AUTH_CATEGORY = "auth"

MODEL_OPERATIONS = ("create", "update", "delete", "read")

STRATEGIES = ("public", "private")


class AuthTransformer(Transformer):
    """Applies @auth rules to the resolvers of @model types."""

    def __init__(self):
        super().__init__("AuthTransformer", "auth", AUTH_DIRECTIVE)
        self.templates = ResolverTemplates()

    def on_object_type(self, definition: ObjectTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        rules = directive.get_argument("rules") or []
        allowed: dict[str, list[str]] = {operation: [] for operation in MODEL_OPERATIONS}
        for rule in rules:
            strategy = rule.get("allow")
            if strategy not in STRATEGIES:
                ctx.record_diagnostic(Severity.FATAL, f"Unknown auth strategy '{strategy}' on '{definition.name}'", node=directive)
                return
            for operation in rule.get("operations") or MODEL_OPERATIONS:
                if strategy not in allowed[operation]:
                    allowed[operation].append(strategy)
        ctx.annotate_type(definition.name, {"auth": allowed})

    def after(self, ctx: TransformerContext) -> None:
        """Rewire resolvers added by the model transformer for every protected type."""
        for type_name, metadata in ctx.type_metadata.items():
            if "auth" not in metadata:
                continue
            if not metadata.get("model"):
                ctx.record_diagnostic(Severity.WARNING, f"@auth on '{type_name}' has no effect because it is not a @model type")
                continue
            allowed = metadata["auth"]
            coordinates = self._coordinates(ctx, metadata)
            for operation, coordinate in coordinates:
                binding = ctx.get_resolver_binding(coordinate)
                if binding is None or "public" in allowed[operation]:
                    continue
                check = self.templates.authorization(operation, allowed[operation])
                ctx.add_resolver_binding(
                    coordinate,
                    binding.replace(
                        request_template=f"{check}\n{binding.request_template}",
                        metadata={**binding.metadata, "auth": list(allowed[operation])},
                    ),
                    replace=True,
                )
            self._add_policies(ctx, type_name, allowed, coordinates)

    def _coordinates(self, ctx: TransformerContext, metadata: dict) -> list[tuple[str, str]]:
        """(operation, `Type.field`) pairs for the generated root fields of a model."""
        query = ctx.input_document.root_type_name("query")
        mutation_type = ctx.input_document.root_type_name("mutation")
        coordinates = []
        for field_name in metadata.get("queries", {}).values():
            coordinates.append(("read", f"{query}.{field_name}"))
        for mutation, field_name in metadata.get("mutations", {}).items():
            coordinates.append((mutation, f"{mutation_type}.{field_name}"))
        return coordinates

    def _add_policies(self, ctx: TransformerContext, type_name: str, allowed: dict[str, list[str]], coordinates: list[tuple[str, str]]) -> None:
        """Grant the auth (private) and unauth (public) roles access to the allowed fields."""
        roles = {"private": "", "public": ""}
        if ctx.identity is not None:
            roles = {"private": ctx.identity.auth_role_name, "public": ctx.identity.unauth_role_name}

        for strategy in STRATEGIES:
            fields = [coordinate for operation, coordinate in coordinates if strategy in allowed[operation]]
            if not fields:
                continue
            if not roles[strategy]:
                ctx.record_diagnostic(Severity.WARNING, f"No {strategy} role name available; skipping the {strategy} access policy for '{type_name}'")
                continue
            ctx.add_resource(
                logical_id(type_name, strategy, "Policy"),
                Resource(
                    type="AWS::IAM::Policy",
                    category=AUTH_CATEGORY,
                    properties={
                        "PolicyName": f"{type_name}-{strategy}-access",
                        "Roles": [roles[strategy]],
                        "PolicyDocument": {
                            "Version": "2012-10-17",
                            "Statement": [
                                {
                                    "Effect": "Allow",
                                    "Action": ["appsync:GraphQL"],
                                    "Resource": [f"types/{coordinate.replace('.', '/fields/')}" for coordinate in fields],
                                }
                            ],
                        },
                    },
                ),
            )
