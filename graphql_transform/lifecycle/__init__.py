"""
Project lifecycle: build, upload, migrate and revert a GraphQL API project.
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter
from .migration import ChangeAction, MigrationChange, MigrationPlan, plan_migration
from .project import (
    ProjectConfiguration,
    ResolverOverride,
    build_api_project,
    migrate_api_project,
    read_deployment_target,
    read_project_configuration,
    read_project_schema,
    revert_api_migration,
    upload_deployment,
)
from .state import ProjectState, read_project_state, schema_hash, write_project_state

__all__ = [
    "AtomicWriter",
    "ChangeAction",
    "MigrationChange",
    "MigrationPlan",
    "plan_migration",
    "ProjectConfiguration",
    "ResolverOverride",
    "build_api_project",
    "migrate_api_project",
    "read_deployment_target",
    "read_project_configuration",
    "read_project_schema",
    "revert_api_migration",
    "upload_deployment",
    "ProjectState",
    "read_project_state",
    "schema_hash",
    "write_project_state",
]
