"""
Configuration for the transform pipeline.

The configuration is an immutable value threaded explicitly through
the orchestrator and the lifecycle operations. It is persisted as
transform.conf.json inside a project directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

# Directives that belong to GraphQL itself or to the hosting API service.
# They are never treated as custom and are never stripped.
STANDARD_DIRECTIVES = frozenset(
    {
        "deprecated",
        "skip",
        "include",
        "specifiedBy",
        "aws_subscribe",
        "aws_auth",
        "aws_api_key",
        "aws_iam",
        "aws_oidc",
        "aws_cognito_user_pools",
    }
)

CONFIG_FILE_NAME = "transform.conf.json"

TRANSFORM_CONFIG_VERSION = 1


@dataclass(frozen=True)
class TransformConfig:
    """Configuration options for a pipeline run."""

    # Version of the configuration file format
    version: int = TRANSFORM_CONFIG_VERSION

    # Name of the generated API (used for the root API resource)
    api_name: str = "GraphQLAPI"

    # Resource name -> stack name, overrides the category partition
    stack_mapping: Mapping[str, str] = field(default_factory=dict)

    # Extra directive names to treat as standard (never custom, never stripped)
    preserved_directives: frozenset[str] = frozenset()

    # Deployment parameters copied into every artifact
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "stack_mapping", MappingProxyType(dict(self.stack_mapping)))
        object.__setattr__(self, "preserved_directives", frozenset(self.preserved_directives))
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    @property
    def standard_directives(self) -> frozenset[str]:
        """All directive names that are considered standard for this configuration."""
        return STANDARD_DIRECTIVES | self.preserved_directives

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> TransformConfig:
        """Create a config from the transform.conf.json dictionary."""
        return TransformConfig(
            version=d.get("Version", TRANSFORM_CONFIG_VERSION),
            api_name=d.get("ApiName", "GraphQLAPI"),
            stack_mapping=d.get("StackMapping", {}),
            preserved_directives=frozenset(d.get("PreservedDirectives", [])),
            parameters=d.get("Parameters", {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to the transform.conf.json dictionary."""
        return {
            "Version": self.version,
            "ApiName": self.api_name,
            "StackMapping": dict(self.stack_mapping),
            "PreservedDirectives": sorted(self.preserved_directives),
            "Parameters": dict(self.parameters),
        }
