"""
AST (Abstract Syntax Tree) node definitions for GraphQL SDL.

These nodes represent the parsed structure of a schema document before
any transformer runs. Declaration order is significant and preserved
in every list. Source locations never take part in equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterator


@dataclass(frozen=True)
class Location:
    """Position of a node in its source."""

    source_name: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.source_name or '<schema>'}:{self.line}:{self.column}"


@dataclass
class SchemaNode:
    """Base class for all AST nodes."""

    # Original source location (for error messages)
    loc: Location | None = field(default=None, compare=False, repr=False)


@dataclass
class DirectiveArgument(SchemaNode):
    """A single `name: value` argument of a directive usage."""

    name: str = ""
    value: Any = None
    # Original literal text, so printing does not lose enum or variable syntax
    literal: str = ""


@dataclass
class DirectiveUsage(SchemaNode):
    """A directive attached to a type, field, argument or enum value."""

    name: str = ""
    arguments: list[DirectiveArgument] = field(default_factory=list)

    def get_argument(self, name: str, default: Any = None) -> Any:
        """Return the value of the named argument, or default when absent."""
        for argument in self.arguments:
            if argument.name == name:
                return argument.value
        return default

    @property
    def values(self) -> dict[str, Any]:
        return {argument.name: argument.value for argument in self.arguments}


class TypeKind(Enum):
    """Kind of a type reference."""

    NAMED = "named"
    LIST = "list"
    NON_NULL = "non_null"


@dataclass
class TypeRef:
    """A (possibly wrapped) reference to a named type, e.g. `[ID!]!`."""

    kind: TypeKind = TypeKind.NAMED
    name: str = ""  # Only set for NAMED
    of_type: TypeRef | None = None  # Only set for LIST and NON_NULL

    @staticmethod
    def named(name: str, non_null: bool = False) -> TypeRef:
        ref = TypeRef(kind=TypeKind.NAMED, name=name)
        return TypeRef(kind=TypeKind.NON_NULL, of_type=ref) if non_null else ref

    @staticmethod
    def list_of(item: TypeRef, non_null: bool = False) -> TypeRef:
        ref = TypeRef(kind=TypeKind.LIST, of_type=item)
        return TypeRef(kind=TypeKind.NON_NULL, of_type=ref) if non_null else ref

    @property
    def is_non_null(self) -> bool:
        return self.kind == TypeKind.NON_NULL

    @property
    def named_type(self) -> str:
        """Name of the innermost named type."""
        ref = self
        while ref.kind != TypeKind.NAMED:
            ref = ref.of_type
        return ref.name

    def nullable(self) -> TypeRef:
        """Return this type without its outer non-null wrapper."""
        return self.of_type if self.is_non_null else self

    def __str__(self) -> str:
        if self.kind == TypeKind.NON_NULL:
            return f"{self.of_type}!"
        if self.kind == TypeKind.LIST:
            return f"[{self.of_type}]"
        return self.name


@dataclass
class InputValueDefinition(SchemaNode):
    """A field argument or an input object field."""

    name: str = ""
    type: TypeRef | None = None
    default_literal: str | None = None
    description: str | None = None
    directives: list[DirectiveUsage] = field(default_factory=list)


@dataclass
class FieldDefinition(SchemaNode):
    """A field of an object or interface type."""

    name: str = ""
    type: TypeRef | None = None
    arguments: list[InputValueDefinition] = field(default_factory=list)
    description: str | None = None
    directives: list[DirectiveUsage] = field(default_factory=list)


@dataclass
class EnumValueDefinition(SchemaNode):
    """A value of an enum type."""

    name: str = ""
    description: str | None = None
    directives: list[DirectiveUsage] = field(default_factory=list)


@dataclass
class TypeDefinition(SchemaNode):
    """Base class for named type definitions and extensions."""

    # Matches the GraphQL directive location of the definition
    kind: ClassVar[str] = ""
    keyword: ClassVar[str] = ""

    name: str = ""
    description: str | None = None
    directives: list[DirectiveUsage] = field(default_factory=list)
    is_extension: bool = False


@dataclass
class ObjectTypeDefinition(TypeDefinition):
    kind: ClassVar[str] = "OBJECT"
    keyword: ClassVar[str] = "type"

    interfaces: list[str] = field(default_factory=list)
    fields: list[FieldDefinition] = field(default_factory=list)

    def get_field(self, name: str) -> FieldDefinition | None:
        return next((f for f in self.fields if f.name == name), None)


@dataclass
class InterfaceTypeDefinition(TypeDefinition):
    kind: ClassVar[str] = "INTERFACE"
    keyword: ClassVar[str] = "interface"

    interfaces: list[str] = field(default_factory=list)
    fields: list[FieldDefinition] = field(default_factory=list)


@dataclass
class InputObjectTypeDefinition(TypeDefinition):
    kind: ClassVar[str] = "INPUT_OBJECT"
    keyword: ClassVar[str] = "input"

    fields: list[InputValueDefinition] = field(default_factory=list)


@dataclass
class EnumTypeDefinition(TypeDefinition):
    kind: ClassVar[str] = "ENUM"
    keyword: ClassVar[str] = "enum"

    values: list[EnumValueDefinition] = field(default_factory=list)


@dataclass
class UnionTypeDefinition(TypeDefinition):
    kind: ClassVar[str] = "UNION"
    keyword: ClassVar[str] = "union"

    types: list[str] = field(default_factory=list)


@dataclass
class ScalarTypeDefinition(TypeDefinition):
    kind: ClassVar[str] = "SCALAR"
    keyword: ClassVar[str] = "scalar"


@dataclass
class DirectiveDefinition(SchemaNode):
    """A `directive @name(...) on LOCATION | ...` declaration."""

    name: str = ""
    arguments: list[InputValueDefinition] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    repeatable: bool = False
    description: str | None = None


@dataclass
class SchemaDefinition(SchemaNode):
    """A `schema { query: Query ... }` declaration."""

    operation_types: dict[str, str] = field(default_factory=dict)  # operation -> type name
    directives: list[DirectiveUsage] = field(default_factory=list)
    is_extension: bool = False


Definition = TypeDefinition | DirectiveDefinition | SchemaDefinition


@dataclass
class SchemaDocument:
    """Root of the parsed schema AST."""

    definitions: list[Definition] = field(default_factory=list)

    @property
    def types(self) -> list[TypeDefinition]:
        return [d for d in self.definitions if isinstance(d, TypeDefinition)]

    def get_type(self, name: str) -> TypeDefinition | None:
        """Return the first non-extension definition with this name."""
        for definition in self.types:
            if definition.name == name and not definition.is_extension:
                return definition
        return None

    @property
    def operation_types(self) -> dict[str, str]:
        """Root operation types declared by `schema { ... }` and its extensions."""
        operation_types = {}
        for definition in self.definitions:
            if isinstance(definition, SchemaDefinition):
                operation_types.update(definition.operation_types)
        return operation_types

    def root_type_name(self, operation: str) -> str:
        """Name of the root type of an operation, defaulting to `Query`, `Mutation` or `Subscription`."""
        return self.operation_types.get(operation, operation.capitalize())

    def field_names(self, type_name: str) -> set[str]:
        """Field names of an object or interface type, including those added by extensions."""
        return {
            field_def.name
            for definition in self.types
            if definition.name == type_name and isinstance(definition, (ObjectTypeDefinition, InterfaceTypeDefinition))
            for field_def in definition.fields
        }

    def iter_directive_usages(self) -> Iterator[DirectiveUsage]:
        """Yield every directive usage in declaration order."""
        for definition in self.definitions:
            # Declarations, not usages
            if isinstance(definition, DirectiveDefinition):
                continue
            yield from definition.directives
            if isinstance(definition, (ObjectTypeDefinition, InterfaceTypeDefinition)):
                for field_def in definition.fields:
                    yield from field_def.directives
                    for argument in field_def.arguments:
                        yield from argument.directives
            elif isinstance(definition, InputObjectTypeDefinition):
                for input_field in definition.fields:
                    yield from input_field.directives
            elif isinstance(definition, EnumTypeDefinition):
                for value in definition.values:
                    yield from value.directives
