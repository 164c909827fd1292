"""GraphQL Transform

Compiles a GraphQL schema annotated with custom directives into a
deployment artifact through an ordered pipeline of directive-bound
transformers, and manages the build, migrate and revert lifecycle of
API projects.
"""

import logging

__version__ = "1.0.0"

from .collaborators import DeploymentResult, DeploymentTarget, IdentityInfo
from .config import TransformConfig
from .directives import collect_directive_names, strip_directives
from .errors import (
    DeploymentError,
    MigrationConflictError,
    ProjectConfigError,
    ProjectNotFoundError,
    ResourceNameCollisionError,
    RevertError,
    SchemaParseError,
    Severity,
    TransformError,
    TransformerError,
    UnknownDirectiveError,
)
from .lifecycle import (
    MigrationPlan,
    ProjectState,
    build_api_project,
    migrate_api_project,
    read_project_configuration,
    read_project_schema,
    revert_api_migration,
    upload_deployment,
)
from .transform import DeploymentArtifact, GraphQLTransform, Transformer, TransformerContext, TransformResult

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "GraphQLTransform",
    "Transformer",
    "TransformerContext",
    "TransformResult",
    "TransformConfig",
    "DeploymentArtifact",
    "DeploymentTarget",
    "DeploymentResult",
    "IdentityInfo",
    "MigrationPlan",
    "ProjectState",
    "build_api_project",
    "upload_deployment",
    "read_project_schema",
    "read_project_configuration",
    "migrate_api_project",
    "revert_api_migration",
    "collect_directive_names",
    "strip_directives",
    "Severity",
    "TransformError",
    "SchemaParseError",
    "UnknownDirectiveError",
    "ResourceNameCollisionError",
    "TransformerError",
    "MigrationConflictError",
    "DeploymentError",
    "ProjectNotFoundError",
    "RevertError",
]
