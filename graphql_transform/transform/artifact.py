"""
Deployment artifact definitions.

These are the immutable values produced by a pipeline run: resources
grouped into stacks, resolver bindings, parameters, outputs and the
output schema. Mappings are frozen on construction.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..errors import Severity, TransformError, TransformerError

# Resources of this category live in the root stack
ROOT_CATEGORY = "api"
ROOT_STACK_NAME = "root"


def freeze(value: Any) -> Any:
    """Recursively convert dicts to read-only mappings and lists to tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, list | tuple):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of freeze, producing plain JSON-compatible containers."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class Resource:
    """A provisioned resource definition."""

    type: str = ""
    category: str = ROOT_CATEGORY
    properties: Mapping[str, Any] = field(default_factory=dict)

    # Names of other resources in the same artifact
    depends_on: tuple[str, ...] = ()

    # Whether the resource holds data that deleting it would destroy
    stateful: bool = False

    # Properties whose change forces the resource to be replaced
    replacement_properties: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "properties", freeze(self.properties))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "replacement_properties", tuple(self.replacement_properties))

    def replace(self, **changes: Any) -> Resource:
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "Type": self.type,
            "Category": self.category,
            "Properties": thaw(self.properties),
            "DependsOn": list(self.depends_on),
            "Stateful": self.stateful,
            "ReplacementProperties": list(self.replacement_properties),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> Resource:
        return Resource(
            type=d["Type"],
            category=d.get("Category", ROOT_CATEGORY),
            properties=d.get("Properties", {}),
            depends_on=tuple(d.get("DependsOn", ())),
            stateful=d.get("Stateful", False),
            replacement_properties=tuple(d.get("ReplacementProperties", ())),
        )


@dataclass(frozen=True)
class ResolverBinding:
    """Binds a schema field to a data source and its mapping templates."""

    type_name: str = ""
    field_name: str = ""
    data_source: str | None = None  # Resource name of the data source
    operation: str = ""
    request_template: str = ""
    response_template: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "metadata", freeze(self.metadata))

    @property
    def coordinate(self) -> str:
        return f"{self.type_name}.{self.field_name}"

    def replace(self, **changes: Any) -> ResolverBinding:
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "TypeName": self.type_name,
            "FieldName": self.field_name,
            "DataSource": self.data_source,
            "Operation": self.operation,
            "RequestTemplate": self.request_template,
            "ResponseTemplate": self.response_template,
            "Metadata": thaw(self.metadata),
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> ResolverBinding:
        return ResolverBinding(
            type_name=d["TypeName"],
            field_name=d["FieldName"],
            data_source=d.get("DataSource"),
            operation=d.get("Operation", ""),
            request_template=d.get("RequestTemplate", ""),
            response_template=d.get("ResponseTemplate", ""),
            metadata=d.get("Metadata", {}),
        )


@dataclass(frozen=True)
class Stack:
    """A named partition of resources."""

    name: str = ""
    resources: Mapping[str, Resource] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "resources", MappingProxyType(dict(self.resources)))

    def to_dict(self) -> dict[str, Any]:
        return {"Resources": {name: resource.to_dict() for name, resource in self.resources.items()}}

    @staticmethod
    def from_dict(name: str, d: Mapping[str, Any]) -> Stack:
        return Stack(name=name, resources={n: Resource.from_dict(r) for n, r in d.get("Resources", {}).items()})


@dataclass(frozen=True)
class DeploymentArtifact:
    """The finalized output of a pipeline run."""

    root_stack: str = ROOT_STACK_NAME
    stacks: Mapping[str, Stack] = field(default_factory=dict)
    parameters: Mapping[str, Any] = field(default_factory=dict)
    outputs: Mapping[str, Any] = field(default_factory=dict)
    resolvers: Mapping[str, ResolverBinding] = field(default_factory=dict)
    schema: str = ""

    def __post_init__(self):
        object.__setattr__(self, "stacks", MappingProxyType(dict(self.stacks)))
        object.__setattr__(self, "parameters", freeze(self.parameters))
        object.__setattr__(self, "outputs", freeze(self.outputs))
        object.__setattr__(self, "resolvers", MappingProxyType(dict(self.resolvers)))

    @property
    def resources(self) -> dict[str, Resource]:
        """All resources of all stacks, keyed by resource name."""
        resources = {}
        for stack in self.stacks.values():
            resources.update(stack.resources)
        return resources

    def stack_of(self, resource_name: str) -> str | None:
        """Name of the stack holding a resource."""
        for stack in self.stacks.values():
            if resource_name in stack.resources:
                return stack.name
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "RootStack": self.root_stack,
            "Stacks": {name: stack.to_dict() for name, stack in self.stacks.items()},
            "Parameters": thaw(self.parameters),
            "Outputs": thaw(self.outputs),
            "Resolvers": {coordinate: binding.to_dict() for coordinate, binding in self.resolvers.items()},
            "Schema": self.schema,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> DeploymentArtifact:
        return DeploymentArtifact(
            root_stack=d.get("RootStack", ROOT_STACK_NAME),
            stacks={name: Stack.from_dict(name, s) for name, s in d.get("Stacks", {}).items()},
            parameters=d.get("Parameters", {}),
            outputs=d.get("Outputs", {}),
            resolvers={c: ResolverBinding.from_dict(b) for c, b in d.get("Resolvers", {}).items()},
            schema=d.get("Schema", ""),
        )


@dataclass(frozen=True)
class Diagnostic:
    """A message recorded during a pipeline run."""

    severity: Severity = Severity.WARNING
    message: str = ""
    transformer: str | None = None
    location: str | None = None

    # The exception behind a fatal diagnostic, when one was raised
    error: TransformError | None = field(default=None, compare=False, repr=False)

    def to_error(self) -> TransformError:
        if self.error is not None:
            return self.error
        return TransformerError(self.message, self.severity, self.transformer)

    def __str__(self) -> str:
        parts = [self.severity.value]
        if self.transformer:
            parts.append(self.transformer)
        if self.location:
            parts.append(self.location)
        return f"[{' '.join(parts)}] {self.message}"


@dataclass(frozen=True)
class TransformResult:
    """Outcome of a pipeline run: an artifact or the fatal error, never both."""

    artifact: DeploymentArtifact | None = None
    error: TransformError | None = None
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def unwrap(self) -> DeploymentArtifact:
        """Return the artifact, raising the fatal error if the run failed."""
        if self.error is not None:
            raise self.error
        return self.artifact
