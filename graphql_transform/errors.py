"""
Error taxonomy for the transform pipeline and project lifecycle.

Every error raised by this package derives from TransformError so callers
can catch the whole family at the CLI boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .lifecycle.migration import MigrationChange


class Severity(str, Enum):
    """Severity of a diagnostic recorded during a pipeline run."""

    FATAL = "fatal"
    WARNING = "warning"


class TransformError(Exception):
    """Base class for all errors raised by graphql_transform."""

    pass


class SchemaParseError(TransformError):
    """Raised when schema text is not valid SDL.

    Attributes:
        source_name: Name of the source (file or fragment) that failed
        line: 1-based line of the error, if known
        column: 1-based column of the error, if known
    """

    def __init__(self, message: str, source_name: str = "", line: int | None = None, column: int | None = None):
        self.source_name = source_name
        self.line = line
        self.column = column
        location = source_name or "<schema>"
        if line is not None:
            location = f"{location}:{line}:{column}"
        super().__init__(f"{location}: {message}")


class SchemaValidationError(TransformError):
    """Raised when a syntactically valid schema is structurally invalid."""

    pass


class UnknownDirectiveError(TransformError):
    """Raised when the schema uses a directive no transformer is bound to."""

    def __init__(self, names: list[str]):
        self.names = sorted(names)
        joined = ", ".join(f"@{name}" for name in self.names)
        super().__init__(f"Unknown directive(s): {joined}. Register a transformer for each custom directive.")


class InvalidDirectiveError(TransformError):
    """Raised when a directive is used where its transformer cannot handle it."""

    pass


class InvalidTransformerError(TransformError):
    """Raised when a transformer does not satisfy the transformer contract."""

    pass


class TransformerContractError(TransformError):
    """Raised when a transformer misuses the context (e.g. conflicting types)."""

    pass


class ResourceNameCollisionError(TransformError):
    """Raised when two contributions claim the same resource name."""

    def __init__(self, name: str, kind: str = "resource"):
        self.name = name
        self.kind = kind
        super().__init__(f"Conflicting {kind} name '{name}': it was already added in this run.")


class TransformerError(TransformError):
    """Raised or recorded by a transformer.

    The severity is chosen by the reporting transformer: a fatal error halts
    the run, a warning is returned alongside a successful artifact.
    """

    def __init__(self, message: str, severity: Severity = Severity.FATAL, transformer: str | None = None):
        self.severity = severity
        self.transformer = transformer
        super().__init__(message)


class MigrationConflictError(TransformError):
    """Raised when a migration contains destructive changes that were not confirmed."""

    def __init__(self, changes: list[MigrationChange]):
        self.changes = list(changes)
        details = "; ".join(f"{change.action.value} {change.resource_name} ({change.reason})" for change in self.changes)
        super().__init__(f"Migration would destroy data and was not confirmed: {details}")


class DeploymentError(TransformError):
    """Raised when the provisioning collaborator fails. Never retried here."""

    pass


class ProjectNotFoundError(TransformError):
    """Raised when a project directory or schema cannot be found."""

    pass


class RevertError(TransformError):
    """Raised when there is no migration backup to revert to."""

    pass


class StateFileError(TransformError):
    """Raised when persisted project state cannot be read or written."""

    pass


class ProjectConfigError(TransformError):
    """Raised when transform.conf.json or a custom stack file is malformed."""

    pass
