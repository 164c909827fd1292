"""
GraphQL SDL reader that builds the schema AST.

Phase 1 of the pipeline: parse schema text (plus any fragments) with
graphql-core and convert the result into SchemaDocument nodes, without
interpreting any directive.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from graphql import GraphQLSyntaxError, Source, parse, print_ast
from graphql.language import ast as gql
from graphql.language import get_location
from graphql.utilities import value_from_ast_untyped

from ..errors import SchemaParseError, SchemaValidationError
from .nodes import (
    Definition,
    DirectiveArgument,
    DirectiveDefinition,
    DirectiveUsage,
    EnumTypeDefinition,
    EnumValueDefinition,
    FieldDefinition,
    InputObjectTypeDefinition,
    InputValueDefinition,
    InterfaceTypeDefinition,
    Location,
    ObjectTypeDefinition,
    ScalarTypeDefinition,
    SchemaDefinition,
    SchemaDocument,
    TypeDefinition,
    TypeKind,
    TypeRef,
    UnionTypeDefinition,
)

MAIN_SOURCE_NAME = "schema.graphql"

Fragments = Mapping[str, str] | Sequence[str]


class SchemaReader:
    """Parses GraphQL SDL into a SchemaDocument."""

    def read(self, text: str, fragments: Fragments | None = None, source_name: str = MAIN_SOURCE_NAME) -> SchemaDocument:
        """
        Parse schema text and fragments into one document.

        Args:
            text: The main schema text
            fragments: Extra SDL sources, either name -> text or a list of texts
            source_name: Name used for the main text in error locations

        Returns:
            SchemaDocument with the definitions of all sources, in order

        Raises:
            SchemaParseError: If any source is not valid SDL
            SchemaValidationError: If a type is defined more than once
        """
        sources = [(source_name, text)]
        if isinstance(fragments, Mapping):
            sources.extend(fragments.items())
        elif fragments:
            sources.extend((f"fragment-{index}.graphql", body) for index, body in enumerate(fragments, start=1))

        document = SchemaDocument()
        for name, body in sources:
            document.definitions.extend(self._read_source(body, name))

        self._check_unique_definitions(document)
        return document

    def _read_source(self, body: str, name: str) -> list[Definition]:
        # graphql-core rejects empty documents; an empty fragment simply adds nothing
        if not body.strip():
            return []
        source = Source(body, name)
        try:
            gql_document = parse(source)
        except GraphQLSyntaxError as e:
            line = column = None
            if e.locations:
                line, column = e.locations[0].line, e.locations[0].column
            raise SchemaParseError(e.message, name, line, column) from e

        definitions = []
        for node in gql_document.definitions:
            if isinstance(node, gql.ExecutableDefinitionNode):
                loc = self._location(node)
                raise SchemaParseError("Executable definitions are not allowed in a schema", name, loc.line, loc.column)
            definitions.append(self._convert_definition(node))
        return definitions

    def _check_unique_definitions(self, document: SchemaDocument) -> None:
        seen: dict[str, TypeDefinition] = {}
        for definition in document.types:
            if definition.is_extension:
                continue
            if definition.name in seen:
                raise SchemaValidationError(f"Type '{definition.name}' is defined more than once (at {seen[definition.name].loc} and {definition.loc})")
            seen[definition.name] = definition

    def _location(self, node: gql.Node) -> Location | None:
        if node.loc is None:
            return None
        source_location = get_location(node.loc.source, node.loc.start)
        return Location(source_name=node.loc.source.name, line=source_location.line, column=source_location.column)

    def _convert_definition(self, node: gql.Node) -> Definition:
        """Convert one graphql-core definition node."""
        is_extension = isinstance(node, gql.TypeExtensionNode | gql.SchemaExtensionNode)

        if isinstance(node, gql.SchemaDefinitionNode | gql.SchemaExtensionNode):
            return SchemaDefinition(
                loc=self._location(node),
                operation_types={op.operation.value: op.type.name.value for op in node.operation_types or ()},
                directives=self._convert_directives(node.directives),
                is_extension=is_extension,
            )

        if isinstance(node, gql.DirectiveDefinitionNode):
            return DirectiveDefinition(
                loc=self._location(node),
                name=node.name.value,
                arguments=[self._convert_input_value(arg) for arg in node.arguments or ()],
                locations=[location.value for location in node.locations],
                repeatable=node.repeatable,
                description=self._description(node),
            )

        common = {
            "loc": self._location(node),
            "name": node.name.value,
            "description": self._description(node),
            "directives": self._convert_directives(node.directives),
            "is_extension": is_extension,
        }

        if isinstance(node, gql.ObjectTypeDefinitionNode | gql.ObjectTypeExtensionNode):
            return ObjectTypeDefinition(
                interfaces=[interface.name.value for interface in node.interfaces or ()],
                fields=[self._convert_field(f) for f in node.fields or ()],
                **common,
            )
        if isinstance(node, gql.InterfaceTypeDefinitionNode | gql.InterfaceTypeExtensionNode):
            return InterfaceTypeDefinition(
                interfaces=[interface.name.value for interface in getattr(node, "interfaces", None) or ()],
                fields=[self._convert_field(f) for f in node.fields or ()],
                **common,
            )
        if isinstance(node, gql.InputObjectTypeDefinitionNode | gql.InputObjectTypeExtensionNode):
            return InputObjectTypeDefinition(
                fields=[self._convert_input_value(f) for f in node.fields or ()],
                **common,
            )
        if isinstance(node, gql.EnumTypeDefinitionNode | gql.EnumTypeExtensionNode):
            return EnumTypeDefinition(
                values=[
                    EnumValueDefinition(
                        loc=self._location(value),
                        name=value.name.value,
                        description=self._description(value),
                        directives=self._convert_directives(value.directives),
                    )
                    for value in node.values or ()
                ],
                **common,
            )
        if isinstance(node, gql.UnionTypeDefinitionNode | gql.UnionTypeExtensionNode):
            return UnionTypeDefinition(types=[t.name.value for t in node.types or ()], **common)
        if isinstance(node, gql.ScalarTypeDefinitionNode | gql.ScalarTypeExtensionNode):
            return ScalarTypeDefinition(**common)

        loc = self._location(node)
        raise SchemaParseError(
            f"Unsupported definition kind '{node.kind}'",
            loc.source_name if loc else "",
            loc.line if loc else None,
            loc.column if loc else None,
        )

    def _convert_field(self, node: gql.FieldDefinitionNode) -> FieldDefinition:
        return FieldDefinition(
            loc=self._location(node),
            name=node.name.value,
            type=self._convert_type(node.type),
            arguments=[self._convert_input_value(arg) for arg in node.arguments or ()],
            description=self._description(node),
            directives=self._convert_directives(node.directives),
        )

    def _convert_input_value(self, node: gql.InputValueDefinitionNode) -> InputValueDefinition:
        return InputValueDefinition(
            loc=self._location(node),
            name=node.name.value,
            type=self._convert_type(node.type),
            default_literal=print_ast(node.default_value) if node.default_value else None,
            description=self._description(node),
            directives=self._convert_directives(node.directives),
        )

    def _convert_type(self, node: gql.TypeNode) -> TypeRef:
        if isinstance(node, gql.NonNullTypeNode):
            return TypeRef(kind=TypeKind.NON_NULL, of_type=self._convert_type(node.type))
        if isinstance(node, gql.ListTypeNode):
            return TypeRef(kind=TypeKind.LIST, of_type=self._convert_type(node.type))
        return TypeRef(kind=TypeKind.NAMED, name=node.name.value)

    def _convert_directives(self, nodes) -> list[DirectiveUsage]:
        return [
            DirectiveUsage(
                loc=self._location(node),
                name=node.name.value,
                arguments=[
                    DirectiveArgument(
                        loc=self._location(arg),
                        name=arg.name.value,
                        value=value_from_ast_untyped(arg.value),
                        literal=print_ast(arg.value),
                    )
                    for arg in node.arguments or ()
                ],
            )
            for node in nodes or ()
        ]

    def _description(self, node) -> str | None:
        description = getattr(node, "description", None)
        return description.value if description is not None else None


def read_schema(text: str, fragments: Fragments | None = None) -> SchemaDocument:
    """Shortcut for SchemaReader().read()."""
    return SchemaReader().read(text, fragments)
