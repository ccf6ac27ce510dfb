"""
Human readable summaries of a sync run.

Every function returns log lines and has no side effects; the caller decides where they go.
"""

from typing import Dict, Iterable, List

from models import CoderGroup, CoderUser, PatchGroupRequest


EMPTY = "(none)"


def no_changes(eligible_users: int) -> str:
    return (
        f"No changes to make, all {eligible_users} OIDC users "
        f"in your Google domain are in the correct groups"
    )


def user_labels(users_by_id: Dict[str, CoderUser], ids: Iterable[str]) -> List[str]:
    """Emails for the given user IDs, falling back to the raw ID for unknown users."""
    labels = []
    for user_id in ids:
        user = users_by_id.get(user_id)
        if user is not None and user.email:
            labels.append(user.email)
        else:
            labels.append(user_id)
    return labels


def _join(labels: List[str]) -> str:
    if not labels:
        return EMPTY
    return ", ".join(labels)


def created_groups(groups: List[CoderGroup]) -> List[str]:
    if not groups:
        return []
    lines = [f"Created {len(groups)} groups"]
    for group in groups:
        lines.append(f"\t{group.name} :: {group.id}")
    return lines


def group_change(group_name: str, request: PatchGroupRequest, users_by_id: Dict[str, CoderUser]) -> List[str]:
    return [
        f"\tGroup {group_name}: {len(request.add_users)} added, {len(request.remove_users)} removed",
        f"\t\tAdded: {_join(user_labels(users_by_id, request.add_users))}",
        f"\t\tRemoved: {_join(user_labels(users_by_id, request.remove_users))}",
    ]


def summary(result) -> str:
    """One line describing the outcome of a run."""
    if not result.changed:
        return no_changes(result.eligible_users)
    added = sum(len(r.add_users) for r in result.applied.values())
    removed = sum(len(r.remove_users) for r in result.applied.values())
    return (
        f"Sync finished: {len(result.created_groups)} groups created, "
        f"{len(result.applied)} groups patched ({added} added, {removed} removed), "
        f"{len(result.dropped_groups)} groups skipped"
    )
