"""
Schema AST (Abstract Syntax Tree) module.

Contains the AST node definitions, the SDL reader and the SDL printer.
"""

from __future__ import annotations

from .nodes import (
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
    SchemaNode,
    TypeDefinition,
    TypeKind,
    TypeRef,
    UnionTypeDefinition,
)
from .parser import SchemaReader, read_schema
from .printer import SchemaPrinter, print_schema

__all__ = [
    "SchemaNode",
    "Location",
    "DirectiveArgument",
    "DirectiveUsage",
    "TypeKind",
    "TypeRef",
    "InputValueDefinition",
    "FieldDefinition",
    "EnumValueDefinition",
    "TypeDefinition",
    "ObjectTypeDefinition",
    "InterfaceTypeDefinition",
    "InputObjectTypeDefinition",
    "EnumTypeDefinition",
    "UnionTypeDefinition",
    "ScalarTypeDefinition",
    "DirectiveDefinition",
    "SchemaDefinition",
    "SchemaDocument",
    "SchemaReader",
    "read_schema",
    "SchemaPrinter",
    "print_schema",
]
