"""
Pipeline orchestrator.

Drives one transform run over an ordered list of transformers:

1. Parse the schema (SchemaReader)
2. Validate that every custom directive is bound and used where its
   transformers can handle it
3. Seed a fresh TransformerContext
4. Call every `before` hook in registration order
5. Walk the document depth-first in declaration order; for each node,
   for each directive usage (outer), for each bound transformer in
   registration order (inner), call the matching hook
6. Call every `after` hook in registration order
7. Return the first fatal error, or
8. Partition resources into stacks and return the DeploymentArtifact

Instances are not safe for concurrent use.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from ..collaborators import IdentityInfo
from ..config import TransformConfig
from ..directives import collect_directive_names, strip_directives
from ..errors import (
    InvalidDirectiveError,
    InvalidTransformerError,
    SchemaParseError,
    SchemaValidationError,
    Severity,
    TransformError,
    TransformerError,
    UnknownDirectiveError,
)
from ..schema_ast.nodes import (
    DirectiveDefinition,
    DirectiveUsage,
    EnumTypeDefinition,
    FieldDefinition,
    InputObjectTypeDefinition,
    InterfaceTypeDefinition,
    ObjectTypeDefinition,
    SchemaDefinition,
    SchemaDocument,
    SchemaNode,
)
from ..schema_ast.parser import SchemaReader
from ..schema_ast.printer import print_schema
from .artifact import ROOT_CATEGORY, ROOT_STACK_NAME, DeploymentArtifact, Resource, Stack, TransformResult
from .context import ROOT_OPERATIONS, TransformerContext
from .transformer import HOOKS, Transformer


@dataclass
class _Visit:
    """One node of the walk: where its directives sit and what hooks receive."""

    location: str  # GraphQL directive location, e.g. "OBJECT"
    coordinate: str  # e.g. "Todo" or "Todo.name"
    node: SchemaNode
    directives: list[DirectiveUsage]
    hook_args: tuple  # Arguments passed to the hook before (directive, ctx)


def _iter_visits(document: SchemaDocument) -> Iterator[_Visit]:
    """Yield nodes carrying directives, depth-first in declaration order."""
    for definition in document.definitions:
        if isinstance(definition, DirectiveDefinition):
            continue
        if isinstance(definition, SchemaDefinition):
            yield _Visit("SCHEMA", "schema", definition, definition.directives, (definition,))
            continue

        yield _Visit(definition.kind, definition.name, definition, definition.directives, (definition,))

        if isinstance(definition, ObjectTypeDefinition | InterfaceTypeDefinition):
            for field_def in definition.fields:
                coordinate = f"{definition.name}.{field_def.name}"
                yield _Visit("FIELD_DEFINITION", coordinate, field_def, field_def.directives, (definition, field_def))
                for argument in field_def.arguments:
                    yield _Visit(
                        "ARGUMENT_DEFINITION",
                        f"{coordinate}({argument.name}:)",
                        argument,
                        argument.directives,
                        (definition, field_def, argument),
                    )
        elif isinstance(definition, InputObjectTypeDefinition):
            for input_field in definition.fields:
                yield _Visit(
                    "INPUT_FIELD_DEFINITION",
                    f"{definition.name}.{input_field.name}",
                    input_field,
                    input_field.directives,
                    (definition, input_field),
                )
        elif isinstance(definition, EnumTypeDefinition):
            for value in definition.values:
                yield _Visit("ENUM_VALUE", f"{definition.name}.{value.name}", value, value.directives, (definition, value))


class GraphQLTransform:
    """Compiles an annotated schema into a DeploymentArtifact."""

    def __init__(self, transformers: Iterable[Transformer], config: TransformConfig | None = None):
        """
        Initialize the orchestrator.

        Args:
            transformers: Transformers in registration order
            config: Run configuration

        Raises:
            InvalidTransformerError: If a transformer is invalid or registered twice
        """
        self.transformers: list[Transformer] = []
        self.config = config or TransformConfig()
        self._bindings: dict[str, list[Transformer]] = {}

        names = set()
        for transformer in transformers:
            if not isinstance(transformer, Transformer):
                raise InvalidTransformerError(f"{transformer!r} is not a Transformer")
            if transformer.name in names:
                raise InvalidTransformerError(f"A transformer named '{transformer.name}' is already registered")
            try:
                transformer.directive_definitions
            except (SchemaParseError, SchemaValidationError) as e:
                raise InvalidTransformerError(f"Transformer '{transformer.name}' has an invalid directive definition: {e}") from e
            names.add(transformer.name)
            self.transformers.append(transformer)
            for directive in transformer.directives:
                self._bindings.setdefault(directive, []).append(transformer)

    def bound_transformers(self, directive_name: str) -> list[Transformer]:
        """Transformers bound to a directive, in registration order."""
        return list(self._bindings.get(directive_name, ()))

    def transform(
        self,
        schema: str | SchemaDocument,
        identity: IdentityInfo | None = None,
        fragments: dict[str, str] | None = None,
    ) -> TransformResult:
        """
        Run the pipeline.

        Args:
            schema: SDL text or an already parsed document
            identity: Role names made available to transformers
            fragments: Extra SDL sources, only used when schema is text

        Returns:
            TransformResult holding the artifact and warnings, or the first
            fatal error and the diagnostics recorded before it
        """
        if isinstance(schema, SchemaDocument):
            # Hooks receive live nodes; keep the caller's document out of their reach
            document = copy.deepcopy(schema)
        else:
            try:
                document = SchemaReader().read(schema, fragments)
            except (SchemaParseError, SchemaValidationError) as e:
                return TransformResult(error=e)

        standard = self.config.standard_directives
        unbound = [name for name in collect_directive_names(document, standard) if name not in self._bindings]
        if unbound:
            return TransformResult(error=UnknownDirectiveError(unbound))

        try:
            self._validate_usages(document, standard)
        except InvalidDirectiveError as e:
            return TransformResult(error=e)

        ctx = TransformerContext(document, self.config, identity)
        self._run(ctx, standard)

        fatal = ctx.first_fatal
        if fatal is not None:
            index = ctx.diagnostics.index(fatal)
            return TransformResult(error=fatal.to_error(), diagnostics=tuple(ctx.diagnostics[:index]))

        try:
            artifact = self._finalize(ctx)
        except TransformError as e:
            return TransformResult(error=e, diagnostics=tuple(ctx.diagnostics))
        return TransformResult(artifact=artifact, diagnostics=tuple(ctx.diagnostics))

    # Validation

    def _validate_usages(self, document: SchemaDocument, standard: frozenset[str]) -> None:
        """Check every custom directive usage before anything is mutated."""
        for visit in _iter_visits(document):
            seen: set[str] = set()
            for usage in visit.directives:
                if usage.name in standard:
                    continue
                for transformer in self._bindings[usage.name]:
                    self._validate_usage(transformer, usage, visit, repeated=usage.name in seen)
                seen.add(usage.name)

    def _validate_usage(self, transformer: Transformer, usage: DirectiveUsage, visit: _Visit, repeated: bool) -> None:
        where = f"{visit.location} '{visit.coordinate}'"
        if not transformer.supports(visit.location):
            raise InvalidDirectiveError(f"@{usage.name} cannot be used on {where}: transformer '{transformer.name}' does not handle that location")

        declaration = transformer.directive_definitions.get(usage.name)
        if declaration is None:
            return
        if visit.location not in declaration.locations:
            raise InvalidDirectiveError(f"@{usage.name} is not allowed on {where}; it is declared on {' | '.join(declaration.locations)}")
        if repeated and not declaration.repeatable:
            raise InvalidDirectiveError(f"@{usage.name} is not repeatable but is used more than once on {where}")

        declared = {argument.name: argument for argument in declaration.arguments}
        for argument in usage.arguments:
            if argument.name not in declared:
                raise InvalidDirectiveError(f"@{usage.name} on {where} has unknown argument '{argument.name}'")
        given = {argument.name for argument in usage.arguments}
        for name, argument in declared.items():
            if argument.type.is_non_null and argument.default_literal is None and name not in given:
                raise InvalidDirectiveError(f"@{usage.name} on {where} is missing required argument '{name}'")

    # Dispatch

    def _run(self, ctx: TransformerContext, standard: frozenset[str]) -> None:
        for transformer in self.transformers:
            self._call(ctx, transformer, None, transformer.before, ctx)

        if not ctx.has_fatal:
            for visit in _iter_visits(ctx.input_document):
                if self._visit(ctx, visit, standard) or ctx.has_fatal:
                    break

        for transformer in self.transformers:
            self._call(ctx, transformer, None, transformer.after, ctx)

    def _visit(self, ctx: TransformerContext, visit: _Visit, standard: frozenset[str]) -> bool:
        """Dispatch all directive usages of one node. Returns True if a hook raised a fatal error."""
        for usage in visit.directives:
            if usage.name in standard:
                continue
            for transformer in self._bindings[usage.name]:
                hook = getattr(transformer, HOOKS[visit.location])
                if self._call(ctx, transformer, visit.node, hook, *visit.hook_args, usage, ctx):
                    return True
        return False

    def _call(self, ctx: TransformerContext, transformer: Transformer, node: SchemaNode | None, hook: Callable, *args) -> bool:
        """Call one hook, recording raised errors. Returns True if a fatal error was raised."""
        ctx.current_transformer = transformer.name
        try:
            hook(*args)
        except TransformError as e:
            ctx.record_error(e, node)
            return not (isinstance(e, TransformerError) and e.severity != Severity.FATAL)
        except Exception as e:
            error = TransformerError(f"Transformer '{transformer.name}' failed: {e}", transformer=transformer.name)
            error.__cause__ = e
            ctx.record_error(error, node)
            return True
        finally:
            ctx.current_transformer = None
        return False

    # Finalization

    def _finalize(self, ctx: TransformerContext) -> DeploymentArtifact:
        for name, resource in ctx.resources.items():
            for dependency in resource.depends_on:
                if dependency not in ctx.resources:
                    raise TransformerError(f"Resource '{name}' depends on unknown resource '{dependency}'")

        stacks: dict[str, dict[str, Resource]] = {ROOT_STACK_NAME: {}}
        for name, resource in ctx.resources.items():
            stacks.setdefault(self._stack_for(ctx, name, resource), {})[name] = resource

        return DeploymentArtifact(
            root_stack=ROOT_STACK_NAME,
            stacks={stack_name: Stack(stack_name, resources) for stack_name, resources in stacks.items()},
            parameters=ctx.parameters,
            outputs=ctx.outputs,
            resolvers=ctx.resolvers,
            schema=self._output_schema(ctx),
        )

    def _stack_for(self, ctx: TransformerContext, name: str, resource: Resource) -> str:
        if name in self.config.stack_mapping:
            return self.config.stack_mapping[name]
        if name in ctx.stack_mapping:
            return ctx.stack_mapping[name]
        return ROOT_STACK_NAME if resource.category == ROOT_CATEGORY else resource.category

    def _output_schema(self, ctx: TransformerContext) -> str:
        """Print the stripped input schema extended with generated types and root fields."""
        document = strip_directives(ctx.input_document, ctx.config.standard_directives)
        document.definitions.extend(copy.deepcopy(list(ctx.output_types.values())))

        for operation in ROOT_OPERATIONS:
            fields: list[FieldDefinition] = copy.deepcopy(ctx.root_fields[operation])
            if not fields:
                continue
            type_name = document.root_type_name(operation)
            root_type = document.get_type(type_name)
            if isinstance(root_type, ObjectTypeDefinition):
                root_type.fields.extend(fields)
            else:
                document.definitions.append(ObjectTypeDefinition(name=type_name, fields=fields))

            # An explicit schema definition must name every root type it has
            schema_definition = next((d for d in document.definitions if isinstance(d, SchemaDefinition) and not d.is_extension), None)
            if schema_definition is not None and operation not in document.operation_types:
                schema_definition.operation_types[operation] = type_name

        return print_schema(document)
