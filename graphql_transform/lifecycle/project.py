"""
Project lifecycle operations.

Build, upload, migrate and revert wrap a pipeline run against a project
directory, its persisted state and the host's provisioning capabilities.
None of these operations prompt; confirmation is an explicit argument.

Project layout:
    schema.graphql or schema/*.graphql
    transform.conf.json
    resolvers/<Type>.<field>.req.vtl and resolvers/<Type>.<field>.res.vtl
    stacks/<Name>.json
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..collaborators import (
    DeploymentResult,
    DeploymentTarget,
    IdentityInfo,
    ParameterStore,
    ProjectMetadataAccessor,
    ResourceProvisioner,
)
from ..config import CONFIG_FILE_NAME, TransformConfig
from ..errors import (
    DeploymentError,
    MigrationConflictError,
    ProjectConfigError,
    ProjectNotFoundError,
    ResourceNameCollisionError,
    RevertError,
)
from ..schema_ast import SchemaDocument, SchemaReader
from ..transform import DeploymentArtifact, GraphQLTransform, Stack, Transformer
from .migration import MigrationPlan, plan_migration
from .state import ProjectState

logger = logging.getLogger(__name__)

SCHEMA_FILE_NAME = "schema.graphql"
SCHEMA_DIR_NAME = "schema"
RESOLVERS_DIR_NAME = "resolvers"
STACKS_DIR_NAME = "stacks"

# Namespace under which deployment outputs are stored in the parameter store
OUTPUTS_NAMESPACE = "outputs"


@dataclass(frozen=True)
class ResolverOverride:
    """User-supplied mapping templates for one field."""

    request_template: str | None = None
    response_template: str | None = None


@dataclass(frozen=True)
class ProjectConfiguration:
    """Everything read from a project directory besides the schema."""

    config: TransformConfig = field(default_factory=TransformConfig)

    # Coordinate (`Type.field`) -> override
    resolvers: Mapping[str, ResolverOverride] = field(default_factory=dict)

    # Custom stacks merged into the artifact after the pipeline run
    stacks: Mapping[str, Stack] = field(default_factory=dict)


def _project_dir(path: Path) -> Path:
    path = Path(path)
    if not path.is_dir():
        raise ProjectNotFoundError(f"Project directory not found: {path}")
    return path


def read_project_schema(path: Path) -> SchemaDocument:
    """
    Read the schema of a project.

    Either a single schema.graphql file or every *.graphql file of the schema
    directory, in file name order.

    Raises:
        ProjectNotFoundError: If the directory or its schema is missing
        SchemaParseError: If a schema file is not valid SDL
    """
    project = _project_dir(path)
    schema_file = project / SCHEMA_FILE_NAME
    schema_dir = project / SCHEMA_DIR_NAME

    if schema_file.is_file():
        files = [schema_file]
    elif schema_dir.is_dir():
        files = sorted(schema_dir.glob("*.graphql"))
    else:
        files = []

    if not files:
        raise ProjectNotFoundError(f"No {SCHEMA_FILE_NAME} or {SCHEMA_DIR_NAME}/*.graphql found in {project}")

    logger.debug("Reading schema from %s", ", ".join(str(f) for f in files))
    main, *rest = files
    fragments = {str(f.relative_to(project)): f.read_text(encoding="utf-8") for f in rest}
    return SchemaReader().read(main.read_text(encoding="utf-8"), fragments, source_name=str(main.relative_to(project)))


def _read_json_object(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise ProjectConfigError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ProjectConfigError(f"{path} must contain a JSON object")
    return document


def _read_resolvers(project: Path) -> dict[str, ResolverOverride]:
    resolvers_dir = project / RESOLVERS_DIR_NAME
    if not resolvers_dir.is_dir():
        return {}

    templates: dict[str, dict[str, str]] = {}
    for template_file in sorted(resolvers_dir.glob("*.vtl")):
        # Todo.name.req.vtl -> ("Todo.name", "req")
        parts = template_file.name.split(".")
        if len(parts) != 4 or parts[2] not in ("req", "res"):
            logger.debug("Ignoring resolver file %s", template_file.name)
            continue
        coordinate = f"{parts[0]}.{parts[1]}"
        key = "request_template" if parts[2] == "req" else "response_template"
        templates.setdefault(coordinate, {})[key] = template_file.read_text(encoding="utf-8")

    return {coordinate: ResolverOverride(**values) for coordinate, values in templates.items()}


def _read_stacks(project: Path) -> dict[str, Stack]:
    stacks_dir = project / STACKS_DIR_NAME
    if not stacks_dir.is_dir():
        return {}

    stacks = {}
    for stack_file in sorted(stacks_dir.glob("*.json")):
        document = _read_json_object(stack_file)
        try:
            stacks[stack_file.stem] = Stack.from_dict(stack_file.stem, document)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProjectConfigError(f"Custom stack {stack_file} is malformed: missing or invalid {e}") from e
    return stacks


def read_project_configuration(path: Path) -> ProjectConfiguration:
    """
    Read the transform configuration, resolver overrides and custom stacks.

    A missing transform.conf.json yields the default configuration.

    Raises:
        ProjectNotFoundError: If the project directory does not exist
        ProjectConfigError: If the config or a custom stack file is malformed
    """
    project = _project_dir(path)
    config_file = project / CONFIG_FILE_NAME
    if config_file.is_file():
        document = _read_json_object(config_file)
        try:
            config = TransformConfig.from_dict(document)
        except (TypeError, ValueError) as e:
            raise ProjectConfigError(f"Transform config {config_file} is malformed: {e}") from e
    else:
        logger.debug("No %s in %s, using defaults", CONFIG_FILE_NAME, project)
        config = TransformConfig()

    return ProjectConfiguration(config=config, resolvers=_read_resolvers(project), stacks=_read_stacks(project))


def _apply_resolver_overrides(artifact: DeploymentArtifact, overrides: Mapping[str, ResolverOverride]) -> DeploymentArtifact:
    resolvers = dict(artifact.resolvers)
    for coordinate, override in overrides.items():
        binding = resolvers.get(coordinate)
        if binding is None:
            logger.debug("Resolver override %s matches no generated field", coordinate)
            continue
        changes = {}
        if override.request_template is not None:
            changes["request_template"] = override.request_template
        if override.response_template is not None:
            changes["response_template"] = override.response_template
        resolvers[coordinate] = binding.replace(**changes)
    return dataclasses.replace(artifact, resolvers=resolvers)


def _merge_custom_stacks(artifact: DeploymentArtifact, custom_stacks: Mapping[str, Stack]) -> DeploymentArtifact:
    existing = artifact.resources
    stacks = dict(artifact.stacks)
    for stack_name, custom in custom_stacks.items():
        for name in custom.resources:
            if name in existing:
                raise ResourceNameCollisionError(name)
        existing.update(custom.resources)

        merged = dict(stacks[stack_name].resources) if stack_name in stacks else {}
        merged.update(custom.resources)
        stacks[stack_name] = Stack(name=stack_name, resources=merged)

    return dataclasses.replace(artifact, stacks=stacks)


def build_api_project(
    schema: str | SchemaDocument,
    config: ProjectConfiguration | TransformConfig | None,
    transformers: Iterable[Transformer],
    identity: IdentityInfo | None = None,
) -> DeploymentArtifact:
    """
    Run the pipeline and apply the project's customizations.

    Args:
        schema: SDL text or a parsed document
        config: Project configuration, or just a transform config
        transformers: Transformers to register, in order
        identity: Role names for transformers that bind permissions

    Returns:
        The deployment artifact; nothing is written

    Raises:
        TransformError: The fatal error of the run, or a custom stack collision
    """
    if config is None:
        config = ProjectConfiguration()
    elif isinstance(config, TransformConfig):
        config = ProjectConfiguration(config=config)

    result = GraphQLTransform(transformers, config.config).transform(schema, identity=identity)
    for warning in result.warnings:
        logger.debug("%s", warning)
    artifact = result.unwrap()

    if config.resolvers:
        artifact = _apply_resolver_overrides(artifact, config.resolvers)
    if config.stacks:
        artifact = _merge_custom_stacks(artifact, config.stacks)

    logger.debug("Built artifact with %d resources in %d stacks", len(artifact.resources), len(artifact.stacks))
    return artifact


def upload_deployment(
    artifact: DeploymentArtifact,
    target: DeploymentTarget,
    provisioner: ResourceProvisioner,
    parameter_store: ParameterStore | None = None,
) -> DeploymentResult:
    """
    Hand an artifact to the provisioning collaborator. Failures are not retried.

    Raises:
        DeploymentError: With the collaborator's message when provisioning fails
    """
    logger.debug("Provisioning %d resources to %s", len(artifact.resources), target.stack_name)
    try:
        result = provisioner.provision(target, artifact)
    except DeploymentError:
        raise
    except Exception as e:
        raise DeploymentError(str(e)) from e

    if parameter_store is not None and result.outputs:
        parameter_store.put_parameters(OUTPUTS_NAMESPACE, dict(result.outputs))
    return result


def migrate_api_project(
    current_state: ProjectState,
    new_schema: str | SchemaDocument,
    confirm_destructive: bool,
    transformers: Iterable[Transformer],
    config: ProjectConfiguration | TransformConfig | None = None,
    identity: IdentityInfo | None = None,
) -> tuple[MigrationPlan, ProjectState]:
    """
    Build the new schema and plan the migration from the current state.

    Nothing is applied when the plan has unconfirmed destructive changes; the
    current state is never modified.

    Returns:
        The plan and the state to persist, which records the current state
        as its backup

    Raises:
        MigrationConflictError: If destructive changes are not confirmed
    """
    artifact = build_api_project(new_schema, config, transformers, identity)
    plan = plan_migration(current_state.artifact, artifact)
    logger.debug(
        "Migration plan: %d create, %d update, %d delete",
        len(plan.creates),
        len(plan.updates),
        len(plan.deletes),
    )

    destructive = plan.destructive_changes
    if destructive and not confirm_destructive:
        raise MigrationConflictError(destructive)

    return plan, ProjectState.from_artifact(artifact, previous=current_state)


def revert_api_migration(state: ProjectState) -> ProjectState:
    """
    Restore the state recorded before the last successful migration.

    Raises:
        RevertError: If the state holds no backup
    """
    if state.previous is None:
        raise RevertError("No migration backup is available to revert to")
    logger.debug("Reverting to state from %s", state.previous.timestamp)
    return state.previous


def read_deployment_target(metadata: ProjectMetadataAccessor, api_name: str | None = None) -> DeploymentTarget:
    """
    Resolve where the API is deployed from the host project's metadata.

    The metadata is expected to look like
    `{"providers": {"region": ..., "environment": ...}, "api": {name: {"stackName": ...}}}`.

    Raises:
        ProjectNotFoundError: If no API is registered in the metadata
        ProjectNotFoundError: Also when several APIs are registered and api_name is not given
    """
    meta: Mapping[str, Any] = metadata.get_project_meta()
    providers = meta.get("providers", {})
    apis = meta.get("api", {})
    if not apis:
        raise ProjectNotFoundError("No API is registered in the project metadata")

    if api_name is None:
        if len(apis) > 1:
            raise ProjectNotFoundError(f"Several APIs are registered ({', '.join(sorted(apis))}); name the one to deploy")
        api_name = next(iter(apis))
    elif api_name not in apis:
        raise ProjectNotFoundError(f"API '{api_name}' is not registered in the project metadata")

    return DeploymentTarget(
        stack_name=apis[api_name].get("stackName", api_name),
        region=providers.get("region", ""),
        environment=providers.get("environment", ""),
    )
