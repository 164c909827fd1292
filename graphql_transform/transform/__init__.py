"""
Transform module.

Contains the transformer contract, the per-run context, the orchestrator
and the deployment artifact it produces.
"""

from __future__ import annotations

from .artifact import (
    ROOT_CATEGORY,
    ROOT_STACK_NAME,
    DeploymentArtifact,
    Diagnostic,
    ResolverBinding,
    Resource,
    Stack,
    TransformResult,
)
from .context import TransformerContext
from .graphql_transform import GraphQLTransform
from .transformer import Transformer

__all__ = [
    "ROOT_CATEGORY",
    "ROOT_STACK_NAME",
    "DeploymentArtifact",
    "Diagnostic",
    "ResolverBinding",
    "Resource",
    "Stack",
    "TransformResult",
    "TransformerContext",
    "GraphQLTransform",
    "Transformer",
]
