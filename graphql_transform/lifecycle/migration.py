"""
Migration planning.

Diffs two deployment artifacts resource by resource and classifies each
change as destructive when applying it would discard persisted data.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..transform.artifact import DeploymentArtifact, Resource


class ChangeAction(str, Enum):
    """What a migration does to a resource."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class MigrationChange:
    """A single resource change in a migration plan."""

    resource_name: str = ""
    action: ChangeAction = ChangeAction.CREATE
    resource_type: str = ""
    destructive: bool = False
    reason: str = ""


@dataclass(frozen=True)
class MigrationPlan:
    """Disjoint sets of resources to create, update and delete."""

    creates: tuple[MigrationChange, ...] = ()
    updates: tuple[MigrationChange, ...] = ()
    deletes: tuple[MigrationChange, ...] = ()

    @property
    def changes(self) -> list[MigrationChange]:
        return [*self.creates, *self.updates, *self.deletes]

    @property
    def destructive_changes(self) -> list[MigrationChange]:
        return [change for change in self.changes if change.destructive]

    @property
    def is_destructive(self) -> bool:
        return any(change.destructive for change in self.changes)

    @property
    def is_empty(self) -> bool:
        return not (self.creates or self.updates or self.deletes)

    def summary(self) -> str:
        """One line per change, e.g. `update TodoTable (properties changed: ItemAttributes)`."""
        lines = []
        for change in self.changes:
            marker = " [destructive]" if change.destructive else ""
            lines.append(f"{change.action.value} {change.resource_name} ({change.reason}){marker}")
        return "\n".join(lines)


def _changed_properties(old: Resource, new: Resource) -> list[str]:
    keys = list(old.properties) + [k for k in new.properties if k not in old.properties]
    return [key for key in keys if old.properties.get(key) != new.properties.get(key)]


def _classify_update(name: str, old: Resource, new: Resource) -> MigrationChange:
    if old.type != new.type:
        return MigrationChange(
            name,
            ChangeAction.UPDATE,
            new.type,
            destructive=old.stateful,
            reason=f"type changed from {old.type} to {new.type}",
        )

    changed = _changed_properties(old, new)
    replaced = [key for key in changed if key in old.replacement_properties or key in new.replacement_properties]
    if replaced:
        return MigrationChange(
            name,
            ChangeAction.UPDATE,
            new.type,
            destructive=old.stateful,
            reason=f"replacement required by {', '.join(replaced)}",
        )

    reason = f"properties changed: {', '.join(changed)}" if changed else "resource settings changed"
    return MigrationChange(name, ChangeAction.UPDATE, new.type, destructive=False, reason=reason)


def plan_migration(old: DeploymentArtifact, new: DeploymentArtifact) -> MigrationPlan:
    """
    Compute the migration from one artifact to another.

    Args:
        old: The currently deployed artifact
        new: The artifact to migrate to

    Returns:
        MigrationPlan; creates and updates follow the new artifact's order,
        deletes follow the old artifact's order
    """
    old_resources = old.resources
    new_resources = new.resources

    creates = []
    updates = []
    for name, resource in new_resources.items():
        if name not in old_resources:
            creates.append(MigrationChange(name, ChangeAction.CREATE, resource.type, reason="new resource"))
        elif old_resources[name] != resource:
            updates.append(_classify_update(name, old_resources[name], resource))

    deletes = [
        MigrationChange(
            name,
            ChangeAction.DELETE,
            resource.type,
            destructive=resource.stateful,
            reason="stateful resource removed" if resource.stateful else "resource removed",
        )
        for name, resource in old_resources.items()
        if name not in new_resources
    ]

    return MigrationPlan(creates=tuple(creates), updates=tuple(updates), deletes=tuple(deletes))
