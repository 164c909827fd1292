"""
Shared build state for one pipeline run.

A TransformerContext is created by the orchestrator for every run, handed
to each transformer hook, and discarded once the artifact is produced.
It is not safe to share between threads or between runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..collaborators import IdentityInfo
from ..config import TransformConfig
from ..errors import ResourceNameCollisionError, Severity, TransformError, TransformerContractError, TransformerError
from ..schema_ast.nodes import FieldDefinition, SchemaDocument, SchemaNode, TypeDefinition
from .artifact import Diagnostic, ResolverBinding, Resource

ROOT_OPERATIONS = ("query", "mutation", "subscription")


class TransformerContext:
    """Mutable accumulator of everything transformers contribute in a run."""

    def __init__(self, document: SchemaDocument, config: TransformConfig | None = None, identity: IdentityInfo | None = None):
        """
        Initialize the context.

        Args:
            document: The parsed input schema (read-only for transformers)
            config: The run configuration
            identity: Role names for transformers that bind permissions
        """
        self.input_document = document
        self.config = config or TransformConfig()
        self.identity = identity

        self.resources: dict[str, Resource] = {}
        self.resolvers: dict[str, ResolverBinding] = {}
        self.outputs: dict[str, Any] = {}
        self.parameters: dict[str, Any] = dict(self.config.parameters)
        self.type_metadata: dict[str, dict[str, Any]] = {}
        self.stack_mapping: dict[str, str] = {}
        self.diagnostics: list[Diagnostic] = []

        # Output schema additions
        self.output_types: dict[str, TypeDefinition] = {}
        self.root_fields: dict[str, list[FieldDefinition]] = {operation: [] for operation in ROOT_OPERATIONS}

        # Set by the orchestrator while a hook runs, used to attribute diagnostics
        self.current_transformer: str | None = None

    # Resources

    def add_resource(self, name: str, resource: Resource) -> None:
        """
        Add a resource under a name that must be unique within the run.

        Raises:
            ResourceNameCollisionError: If the name is already taken
        """
        if name in self.resources:
            raise ResourceNameCollisionError(name)
        self.resources[name] = resource

    def set_resource(self, name: str, resource: Resource) -> None:
        """Replace an existing resource, e.g. to attach a policy in an after hook."""
        if name not in self.resources:
            raise TransformerError(f"Cannot replace unknown resource '{name}'", transformer=self.current_transformer)
        self.resources[name] = resource

    def get_resource(self, name: str) -> Resource | None:
        return self.resources.get(name)

    def has_resource(self, name: str) -> bool:
        return name in self.resources

    def map_resource_to_stack(self, resource_name: str, stack_name: str) -> None:
        """Place a resource in a specific stack instead of its category stack."""
        self.stack_mapping[resource_name] = stack_name

    # Resolvers

    def add_resolver_binding(self, coordinate: str, resolver: ResolverBinding, replace: bool = False) -> None:
        """
        Bind a `Type.field` coordinate to a resolver.

        Args:
            coordinate: The field coordinate, e.g. "Query.getTodo"
            resolver: The resolver binding
            replace: Allow replacing a binding added earlier in the run

        Raises:
            ResourceNameCollisionError: If the coordinate is bound and replace is False
        """
        if coordinate in self.resolvers and not replace:
            raise ResourceNameCollisionError(coordinate, kind="resolver")
        self.resolvers[coordinate] = resolver

    def get_resolver_binding(self, coordinate: str) -> ResolverBinding | None:
        return self.resolvers.get(coordinate)

    # Metadata, outputs and parameters

    def annotate_type(self, name: str, metadata: Mapping[str, Any]) -> None:
        """Merge metadata for a type; later writers win per key."""
        self.type_metadata.setdefault(name, {}).update(metadata)

    def get_type_metadata(self, name: str) -> dict[str, Any]:
        return dict(self.type_metadata.get(name, {}))

    def set_output(self, name: str, value: Any) -> None:
        self.outputs[name] = value

    def add_parameter(self, name: str, value: Any) -> None:
        self.parameters[name] = value

    # Output schema

    def add_type(self, definition: TypeDefinition) -> None:
        """
        Add a generated type to the output schema.

        Raises:
            TransformerContractError: If a type with that name already exists
        """
        if definition.name in self.output_types or self.input_document.get_type(definition.name) is not None:
            raise TransformerContractError(f"Conflicting type '{definition.name}' found.")
        self.output_types[definition.name] = definition

    def has_type(self, name: str) -> bool:
        return name in self.output_types or self.input_document.get_type(name) is not None

    def add_root_fields(self, operation: str, fields: list[FieldDefinition]) -> None:
        """
        Add fields to the root type of an operation in the output schema.

        Raises:
            TransformerContractError: If the root type, its extensions or an
                earlier call already define a field of that name
        """
        if operation not in self.root_fields:
            raise TransformerContractError(f"Unknown root operation '{operation}'")
        type_name = self.input_document.root_type_name(operation)
        existing = {f.name for f in self.root_fields[operation]} | self.input_document.field_names(type_name)
        for field_def in fields:
            if field_def.name in existing:
                raise TransformerContractError(f"Conflicting field '{type_name}.{field_def.name}' found.")
            existing.add(field_def.name)
            self.root_fields[operation].append(field_def)

    # Diagnostics

    def record_diagnostic(self, severity: Severity, message: str, transformer: str | None = None, node: SchemaNode | None = None) -> None:
        """
        Record a diagnostic.

        A fatal diagnostic halts the run at the end of the current node visit;
        warnings are returned alongside a successful artifact.
        """
        location = str(node.loc) if node is not None and node.loc is not None else None
        self.diagnostics.append(Diagnostic(severity, message, transformer or self.current_transformer, location))

    def record_error(self, error: TransformError, node: SchemaNode | None = None) -> None:
        """Record a raised error; TransformerError keeps its own severity, everything else is fatal."""
        severity = error.severity if isinstance(error, TransformerError) else Severity.FATAL
        transformer = getattr(error, "transformer", None) or self.current_transformer
        location = str(node.loc) if node is not None and node.loc is not None else None
        self.diagnostics.append(Diagnostic(severity, str(error), transformer, location, error=error))

    @property
    def has_fatal(self) -> bool:
        return any(d.severity == Severity.FATAL for d in self.diagnostics)

    @property
    def first_fatal(self) -> Diagnostic | None:
        return next((d for d in self.diagnostics if d.severity == Severity.FATAL), None)
