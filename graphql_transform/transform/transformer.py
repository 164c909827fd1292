"""
Base class for directive-bound transformers.

A transformer is bound to one or more directive names and overrides the
hooks for the node kinds it supports. The orchestrator calls a hook once
per occurrence of a bound directive; hooks must keep no state between
calls other than what they write to the context.
"""

from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING

from ..errors import InvalidTransformerError
from ..schema_ast.nodes import (
    DirectiveDefinition,
    DirectiveUsage,
    EnumTypeDefinition,
    EnumValueDefinition,
    FieldDefinition,
    InputObjectTypeDefinition,
    InputValueDefinition,
    InterfaceTypeDefinition,
    ObjectTypeDefinition,
    ScalarTypeDefinition,
    TypeDefinition,
    UnionTypeDefinition,
)
from ..schema_ast.parser import SchemaReader

if TYPE_CHECKING:
    from .context import TransformerContext

# Directive location -> hook method name
HOOKS = {
    "OBJECT": "on_object_type",
    "INTERFACE": "on_interface_type",
    "ENUM": "on_enum_type",
    "INPUT_OBJECT": "on_input_type",
    "UNION": "on_union_type",
    "SCALAR": "on_scalar_type",
    "FIELD_DEFINITION": "on_field",
    "INPUT_FIELD_DEFINITION": "on_field",
    "ARGUMENT_DEFINITION": "on_argument",
    "ENUM_VALUE": "on_enum_value",
}


class Transformer:
    """A pluggable visitor bound to one or more directive names."""

    def __init__(self, name: str, directives: str | list[str] | tuple[str, ...], directive_definition: str | None = None):
        """
        Initialize the transformer.

        Args:
            name: Unique, human readable transformer name
            directives: Directive name(s) this transformer handles
            directive_definition: Optional SDL declaring the directive(s), used
                to validate usage locations and argument names

        Raises:
            InvalidTransformerError: If the name or directive list is empty
        """
        if not name:
            raise InvalidTransformerError("Transformers must have a name")
        directives = (directives,) if isinstance(directives, str) else tuple(directives)
        if not directives:
            raise InvalidTransformerError(f"Transformer '{name}' must be bound to at least one directive")
        self.name = name
        self.directives = directives
        self.directive_definition = directive_definition

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, directives={list(self.directives)!r})"

    @cached_property
    def directive_definitions(self) -> dict[str, DirectiveDefinition]:
        """Parsed directive declarations, keyed by directive name."""
        if not self.directive_definition:
            return {}
        document = SchemaReader().read(self.directive_definition, source_name=f"<{self.name}>")
        return {d.name: d for d in document.definitions if isinstance(d, DirectiveDefinition)}

    def supports(self, location: str) -> bool:
        """Whether this transformer overrides the hook for a directive location."""
        hook = HOOKS.get(location)
        return hook is not None and getattr(type(self), hook) is not getattr(Transformer, hook)

    # Global hooks

    def before(self, ctx: TransformerContext) -> None:
        pass

    def after(self, ctx: TransformerContext) -> None:
        pass

    # Definition hooks

    def on_object_type(self, definition: ObjectTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        pass

    def on_interface_type(self, definition: InterfaceTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        pass

    def on_enum_type(self, definition: EnumTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        pass

    def on_input_type(self, definition: InputObjectTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        pass

    def on_union_type(self, definition: UnionTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        pass

    def on_scalar_type(self, definition: ScalarTypeDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        pass

    # Member hooks receive the owning definition first

    def on_field(
        self,
        parent: TypeDefinition,
        field: FieldDefinition | InputValueDefinition,
        directive: DirectiveUsage,
        ctx: TransformerContext,
    ) -> None:
        """Called for fields of object and interface types and for input object fields."""
        pass

    def on_argument(
        self,
        parent: TypeDefinition,
        field: FieldDefinition,
        argument: InputValueDefinition,
        directive: DirectiveUsage,
        ctx: TransformerContext,
    ) -> None:
        pass

    def on_enum_value(self, parent: EnumTypeDefinition, value: EnumValueDefinition, directive: DirectiveUsage, ctx: TransformerContext) -> None:
        pass
