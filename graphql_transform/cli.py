import json
import logging
from pathlib import Path

import click

from .cli_utils import reconstruct_command_line
from .collaborators import IdentityInfo
from .config import STANDARD_DIRECTIVES
from .directives import collect_directive_names, strip_directives
from .errors import MigrationConflictError, TransformError
from .lifecycle import (
    ProjectState,
    build_api_project,
    migrate_api_project,
    read_project_configuration,
    read_project_schema,
    read_project_state,
    revert_api_migration,
    write_project_state,
)
from .lifecycle.atomic_writer import AtomicWriter
from .transformers import default_transformers

BUILD_DIR_NAME = "build"
ARTIFACT_FILE_NAME = "artifact.json"
SCHEMA_OUTPUT_FILE_NAME = "schema.graphql"


def _identity(auth_role, unauth_role):
    if auth_role is None and unauth_role is None:
        return None
    return IdentityInfo(auth_role_name=auth_role or "", unauth_role_name=unauth_role or "")


def _read_schema_file(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Print debug logs")
def graphql_transform(verbose):
    """Compile directive-annotated GraphQL schemas into deployment artifacts."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@graphql_transform.command()
@click.option("--output", "-o", default=None, type=click.Path(file_okay=False, resolve_path=True), help="Output directory (default: <project>/build)")
@click.option("--auth-role", default=None, type=str, help="Role name of authenticated users")
@click.option("--unauth-role", default=None, type=str, help="Role name of unauthenticated users")
@click.argument("project", type=click.Path(exists=True, file_okay=False, resolve_path=True))
def build(output, auth_role, unauth_role, project):
    """Build the deployment artifact of a project."""
    project = Path(project)
    output = Path(output) if output is not None else project / BUILD_DIR_NAME
    try:
        schema = read_project_schema(project)
        configuration = read_project_configuration(project)
        artifact = build_api_project(schema, configuration, default_transformers(), _identity(auth_role, unauth_role))
    except TransformError as e:
        raise click.ClickException(str(e)) from e

    writer = AtomicWriter()
    writer.write(output / ARTIFACT_FILE_NAME, json.dumps(artifact.to_dict(), indent=2) + "\n")
    header = f"# Generated by: {reconstruct_command_line(build)}\n\n"
    writer.write(output / SCHEMA_OUTPUT_FILE_NAME, header + artifact.schema)
    click.echo(f"Built {len(artifact.resources)} resources in {len(artifact.stacks)} stacks into {output}")


@graphql_transform.command()
@click.option("--yes", "-y", "confirm", is_flag=True, default=False, help="Confirm changes that destroy stored data")
@click.option("--auth-role", default=None, type=str, help="Role name of authenticated users")
@click.option("--unauth-role", default=None, type=str, help="Role name of unauthenticated users")
@click.argument("project", type=click.Path(exists=True, file_okay=False, resolve_path=True))
def migrate(confirm, auth_role, unauth_role, project):
    """Plan and record the migration of a project to its current schema."""
    project = Path(project)
    try:
        current = read_project_state(project)
        schema = read_project_schema(project)
        configuration = read_project_configuration(project)
        plan, new_state = migrate_api_project(
            current or ProjectState(),
            schema,
            confirm,
            default_transformers(),
            configuration,
            _identity(auth_role, unauth_role),
        )
    except MigrationConflictError as e:
        for change in e.changes:
            click.echo(f"destructive: {change.action.value} {change.resource_name} ({change.reason})", err=True)
        raise click.ClickException("Migration destroys data; run again with --yes to apply it") from e
    except TransformError as e:
        raise click.ClickException(str(e)) from e

    if current is None:
        # First deployment, nothing to revert to
        new_state = new_state.without_backup()

    if plan.is_empty:
        click.echo("No changes")
    else:
        click.echo(plan.summary())
    write_project_state(project, new_state)


@graphql_transform.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False, resolve_path=True))
def revert(project):
    """Restore the project state recorded before the last migration."""
    project = Path(project)
    try:
        state = read_project_state(project)
        if state is None:
            raise click.ClickException(f"Project {project.name} has no recorded state")
        restored = revert_api_migration(state)
    except TransformError as e:
        raise click.ClickException(str(e)) from e

    write_project_state(project, restored)
    click.echo(f"Reverted to the state from {restored.timestamp}")


@graphql_transform.command()
@click.option("--keep", "-k", multiple=True, help="Extra directive names to treat as standard")
@click.argument("schema", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
def directives(keep, schema):
    """List the custom directives used by a schema file."""
    try:
        names = collect_directive_names(_read_schema_file(schema), STANDARD_DIRECTIVES | set(keep))
    except TransformError as e:
        raise click.ClickException(str(e)) from e
    for name in sorted(names):
        click.echo(name)


@graphql_transform.command()
@click.option("--keep", "-k", multiple=True, help="Extra directive names to keep")
@click.argument("schema", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.argument("output", default=None, required=False, type=click.Path(dir_okay=False, resolve_path=True))
def strip(keep, schema, output):
    """Remove custom directives from a schema file."""
    try:
        stripped = strip_directives(_read_schema_file(schema), STANDARD_DIRECTIVES | set(keep))
    except TransformError as e:
        raise click.ClickException(str(e)) from e

    if output is None:
        click.echo(stripped, nl=False)
    else:
        with open(output, "w", encoding="utf-8") as f:
            f.write(stripped)
