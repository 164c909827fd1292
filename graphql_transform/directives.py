"""
Directive utilities usable outside the full pipeline.

collect_directive_names finds the custom directives a schema uses;
strip_directives produces a clean copy of a schema without them.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import overload

from .config import STANDARD_DIRECTIVES
from .schema_ast.nodes import (
    DirectiveUsage,
    EnumTypeDefinition,
    InputObjectTypeDefinition,
    InterfaceTypeDefinition,
    ObjectTypeDefinition,
    SchemaDefinition,
    SchemaDocument,
    TypeDefinition,
    UnionTypeDefinition,
)
from .schema_ast.parser import SchemaReader
from .schema_ast.printer import print_schema


def _as_document(schema: SchemaDocument | str) -> SchemaDocument:
    if isinstance(schema, SchemaDocument):
        return schema
    return SchemaReader().read(schema)


def collect_directive_names(schema: SchemaDocument | str, standard: Iterable[str] = STANDARD_DIRECTIVES) -> set[str]:
    """
    Return the distinct custom directive names used anywhere in a schema.

    Args:
        schema: A parsed document or SDL text
        standard: Directive names that are not custom and are ignored

    Returns:
        Set of directive names (without the leading @)
    """
    standard = frozenset(standard)
    return {usage.name for usage in _as_document(schema).iter_directive_usages() if usage.name not in standard}


def _keep(directives: list[DirectiveUsage], keep: frozenset[str]) -> list[DirectiveUsage]:
    return [d for d in directives if d.name in keep]


def _is_empty_extension(definition) -> bool:
    """True for an extension left with nothing to extend, which is not valid SDL."""
    if not getattr(definition, "is_extension", False) or definition.directives:
        return False
    if isinstance(definition, SchemaDefinition):
        return not definition.operation_types
    if isinstance(definition, ObjectTypeDefinition | InterfaceTypeDefinition):
        return not (definition.interfaces or definition.fields)
    if isinstance(definition, InputObjectTypeDefinition):
        return not definition.fields
    if isinstance(definition, EnumTypeDefinition):
        return not definition.values
    if isinstance(definition, UnionTypeDefinition):
        return not definition.types
    return True


@overload
def strip_directives(schema: SchemaDocument, keep: Iterable[str] = ...) -> SchemaDocument: ...


@overload
def strip_directives(schema: str, keep: Iterable[str] = ...) -> str: ...


def strip_directives(schema, keep=STANDARD_DIRECTIVES):
    """
    Remove every non-standard directive usage from a schema.

    The input is never modified. Types, fields, arguments, nullability and
    ordering are preserved, and stripping an already stripped schema is a
    no-op. Extensions left with nothing to extend are dropped.

    Args:
        schema: A parsed document (a document is returned) or SDL text
            (printed SDL is returned)
        keep: Directive names to preserve

    Returns:
        The stripped document or text
    """
    keep = frozenset(keep)
    document = copy.deepcopy(_as_document(schema))

    for definition in document.definitions:
        if not hasattr(definition, "directives"):
            continue
        definition.directives = _keep(definition.directives, keep)
        if not isinstance(definition, TypeDefinition):
            continue

        if isinstance(definition, ObjectTypeDefinition | InterfaceTypeDefinition):
            for field_def in definition.fields:
                field_def.directives = _keep(field_def.directives, keep)
                for argument in field_def.arguments:
                    argument.directives = _keep(argument.directives, keep)
        elif isinstance(definition, InputObjectTypeDefinition):
            for input_field in definition.fields:
                input_field.directives = _keep(input_field.directives, keep)
        elif isinstance(definition, EnumTypeDefinition):
            for value in definition.values:
                value.directives = _keep(value.directives, keep)

    document.definitions = [d for d in document.definitions if not _is_empty_extension(d)]

    if isinstance(schema, str):
        return print_schema(document)
    return document
