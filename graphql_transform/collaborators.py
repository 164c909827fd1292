"""
Capabilities consumed from the host project.

The core never talks to a metadata store, a provisioning API or an
identity provider directly; callers pass objects satisfying these
protocols into the lifecycle operations.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .transform.artifact import DeploymentArtifact


@dataclass(frozen=True)
class IdentityInfo:
    """Role names used when a transformer binds permissions."""

    auth_role_name: str = ""
    unauth_role_name: str = ""


@dataclass(frozen=True)
class DeploymentTarget:
    """Where an artifact gets provisioned."""

    stack_name: str = ""
    region: str = ""
    environment: str = ""


@dataclass(frozen=True)
class DeploymentResult:
    """What the provisioning collaborator reports back."""

    target: DeploymentTarget = field(default_factory=DeploymentTarget)
    status: str = ""
    outputs: Mapping[str, Any] = field(default_factory=dict)


class ProjectMetadataAccessor(Protocol):
    """Read access to the host project's category/service state."""

    def get_project_meta(self) -> Mapping[str, Any]: ...


class ResourceProvisioner(Protocol):
    """Creates, updates and deletes the resource set of an artifact."""

    def provision(self, target: DeploymentTarget, artifact: DeploymentArtifact) -> DeploymentResult: ...


class ParameterStore(Protocol):
    """Key-value persistence for project parameters."""

    def get_parameters(self, namespace: str) -> Mapping[str, Any]: ...

    def put_parameters(self, namespace: str, parameters: Mapping[str, Any]) -> None: ...
