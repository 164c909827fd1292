"""
Persisted project state.

A ProjectState is the deployed artifact plus the metadata needed to detect
schema changes and to revert the last migration. Only one backup level is
kept: the state a migration replaced, stored without its own backup.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..errors import StateFileError
from ..transform.artifact import DeploymentArtifact
from .atomic_writer import AtomicWriter

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "transform.state.json"


def schema_hash(schema: str) -> str:
    """Fingerprint of a printed schema."""
    return hashlib.sha256(schema.encode("utf-8")).hexdigest()


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class ProjectState:
    """The deployed artifact of a project and its migration backup."""

    artifact: DeploymentArtifact = dataclasses.field(default_factory=DeploymentArtifact)
    schema_hash: str = ""
    timestamp: str = ""

    # State replaced by the last successful migration
    previous: ProjectState | None = None

    @staticmethod
    def from_artifact(artifact: DeploymentArtifact, previous: ProjectState | None = None) -> ProjectState:
        """Create a state for a freshly built artifact."""
        if previous is not None:
            previous = previous.without_backup()
        return ProjectState(
            artifact=artifact,
            schema_hash=schema_hash(artifact.schema),
            timestamp=utc_timestamp(),
            previous=previous,
        )

    def without_backup(self) -> ProjectState:
        return dataclasses.replace(self, previous=None)

    @property
    def has_backup(self) -> bool:
        return self.previous is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "Artifact": self.artifact.to_dict(),
            "SchemaHash": self.schema_hash,
            "Timestamp": self.timestamp,
            "Previous": self.previous.to_dict() if self.previous is not None else None,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> ProjectState:
        previous = d.get("Previous")
        return ProjectState(
            artifact=DeploymentArtifact.from_dict(d.get("Artifact", {})),
            schema_hash=d.get("SchemaHash", ""),
            timestamp=d.get("Timestamp", ""),
            previous=ProjectState.from_dict(previous) if previous else None,
        )


def _state_file(path: Path) -> Path:
    path = Path(path)
    return path / STATE_FILE_NAME if path.is_dir() else path


def read_project_state(path: Path) -> ProjectState | None:
    """
    Read the persisted state of a project.

    Args:
        path: Project directory or state file

    Returns:
        The state, or None when the project was never deployed
    """
    state_file = _state_file(path)
    if not state_file.exists():
        logger.debug("No project state at %s", state_file)
        return None

    try:
        with open(state_file, encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        raise StateFileError(f"Project state {state_file} is not valid JSON: {e}") from e

    try:
        return ProjectState.from_dict(document)
    except (KeyError, TypeError, ValueError) as e:
        raise StateFileError(f"Project state {state_file} is malformed: {e}") from e


def write_project_state(path: Path, state: ProjectState) -> Path:
    """Atomically persist a project state; returns the file written."""
    state_file = _state_file(path)
    content = json.dumps(state.to_dict(), indent=2, sort_keys=False) + "\n"
    AtomicWriter().write(state_file, content)
    logger.debug("Wrote project state %s (schema %s)", state_file, state.schema_hash[:12])
    return state_file
