"""
Schema printer: renders a SchemaDocument back to SDL text.

Each definition is rendered through a Jinja2 template; definitions are
separated by a blank line and printed in declaration order.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import jinja2

from .nodes import (
    Definition,
    DirectiveDefinition,
    DirectiveUsage,
    EnumTypeDefinition,
    FieldDefinition,
    InputObjectTypeDefinition,
    InputValueDefinition,
    InterfaceTypeDefinition,
    ObjectTypeDefinition,
    SchemaDefinition,
    SchemaDocument,
    TypeDefinition,
    UnionTypeDefinition,
)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


@dataclass
class _Member:
    text: str
    description: str | None = None


def _block_string(text: str, indent: str = "") -> str:
    text = text.replace('"""', '\\"""')
    if "\n" not in text:
        return f'"""{text}"""'
    lines = [f"{indent}{line}" if line else "" for line in text.split("\n")]
    return '"""\n' + "\n".join(lines) + f'\n{indent}"""'


class SchemaPrinter:
    """Prints schema AST nodes as SDL."""

    def __init__(self):
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            lstrip_blocks=True,
            trim_blocks=True,
        )
        self.jinja_env.filters["block_string"] = _block_string
        self.definition_template = self.jinja_env.get_template("definition.graphql.jinja2")

    def print_document(self, document: SchemaDocument) -> str:
        """Render a whole document, terminated by a newline."""
        if not document.definitions:
            return ""
        return "\n\n".join(self.print_definition(d) for d in document.definitions) + "\n"

    def print_definition(self, definition: Definition) -> str:
        header, members = self._header_and_members(definition)
        return self.definition_template.render(
            description=definition.description if not isinstance(definition, SchemaDefinition) else None,
            header=header,
            members=members,
        )

    def print_directives(self, directives: list[DirectiveUsage]) -> str:
        """Render directive usages with a leading space, or an empty string."""
        return "".join(f" {self.print_directive(d)}" for d in directives)

    def print_directive(self, directive: DirectiveUsage) -> str:
        if not directive.arguments:
            return f"@{directive.name}"
        args = ", ".join(f"{arg.name}: {arg.literal}" for arg in directive.arguments)
        return f"@{directive.name}({args})"

    def print_field(self, field_def: FieldDefinition) -> str:
        return f"{field_def.name}{self._print_arguments(field_def.arguments)}: {field_def.type}{self.print_directives(field_def.directives)}"

    def print_input_value(self, value: InputValueDefinition) -> str:
        text = f"{value.name}: {value.type}"
        if value.default_literal is not None:
            text += f" = {value.default_literal}"
        return text + self.print_directives(value.directives)

    def _print_arguments(self, arguments: list[InputValueDefinition]) -> str:
        if not arguments:
            return ""
        parts = []
        for argument in arguments:
            prefix = f"{_block_string(argument.description)} " if argument.description is not None else ""
            parts.append(prefix + self.print_input_value(argument))
        return f"({', '.join(parts)})"

    def _header_and_members(self, definition: Definition) -> tuple[str, list[_Member]]:
        if isinstance(definition, SchemaDefinition):
            prefix = "extend schema" if definition.is_extension else "schema"
            members = [_Member(f"{operation}: {type_name}") for operation, type_name in definition.operation_types.items()]
            return prefix + self.print_directives(definition.directives), members

        if isinstance(definition, DirectiveDefinition):
            header = f"directive @{definition.name}{self._print_arguments(definition.arguments)}"
            if definition.repeatable:
                header += " repeatable"
            return f"{header} on {' | '.join(definition.locations)}", []

        assert isinstance(definition, TypeDefinition)
        header = f"{'extend ' if definition.is_extension else ''}{definition.keyword} {definition.name}"
        members: list[_Member] = []

        if isinstance(definition, ObjectTypeDefinition | InterfaceTypeDefinition):
            if definition.interfaces:
                header += f" implements {' & '.join(definition.interfaces)}"
            members = [_Member(self.print_field(f), f.description) for f in definition.fields]
        elif isinstance(definition, InputObjectTypeDefinition):
            members = [_Member(self.print_input_value(f), f.description) for f in definition.fields]
        elif isinstance(definition, EnumTypeDefinition):
            members = [_Member(v.name + self.print_directives(v.directives), v.description) for v in definition.values]

        header += self.print_directives(definition.directives)
        if isinstance(definition, UnionTypeDefinition) and definition.types:
            header += f" = {' | '.join(definition.types)}"
        return header, members


def print_schema(document: SchemaDocument) -> str:
    """Shortcut for SchemaPrinter().print_document()."""
    return SchemaPrinter().print_document(document)
