"""
Data models for Google Workspace to Coder group sync
"""

from typing import Dict, List, Optional, Set, Tuple

from diffsync import DiffSyncModel
from pydantic import BaseModel, Field


# Coder's login type for users authenticated through the Google OIDC provider
LOGIN_TYPE_OIDC = "oidc"


class CoderOrganization(BaseModel):
    """A Coder organization. Only the default one is synced."""

    id: str
    name: str = ""
    is_default: bool = False


class CoderUser(BaseModel):
    """A Coder user as returned by the users endpoint."""

    id: str
    username: str
    email: str = ""
    login_type: str = ""


class CoderGroup(BaseModel):
    """A Coder group. The group name is the key used for matching."""

    id: str
    name: str
    display_name: str = ""
    organization_id: str = ""
    avatar_url: str = ""
    quota_allowance: int = 0


class GroupMembership(DiffSyncModel):
    """
    DiffSync model representing a group membership.
    A membership is a relationship between a user (identified by Coder ID) and a group.
    """
    _modelname = "membership"
    _identifiers = ("user_id", "group_name")
    _attributes = ()

    user_id: str
    group_name: str

    @classmethod
    def create(cls, adapter, ids, attrs):
        """Queue adding the user to the group on the target adapter (Coder)."""
        if hasattr(adapter, "change_set"):
            adapter.change_set.add_user(ids["group_name"], ids["user_id"])

        # Note: the patch is only sent once every user has been diffed
        return super().create(adapter, ids, attrs)

    def delete(self) -> Optional["GroupMembership"]:
        """Queue removing the user from the group on the target adapter (Coder)."""
        if hasattr(self.adapter, "change_set"):
            self.adapter.change_set.remove_user(self.group_name, self.user_id)

        return super().delete()


class PatchGroupRequest(BaseModel):
    """Body of a Coder group patch."""

    add_users: List[str] = Field(default_factory=list)
    remove_users: List[str] = Field(default_factory=list)


class ChangeGroupRequests(dict):
    """
    Stores all the membership mutations to be made, keyed by group name.
    Filled for every user before anything is applied to Coder.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # (group, list name) -> user IDs already queued in that list
        self._queued: Dict[Tuple[str, str], Set[str]] = {}

    def _queue(self, group: str, field_name: str, user_id: str) -> None:
        if group not in self:
            self[group] = PatchGroupRequest()
        queued = self._queued.setdefault((group, field_name), set())
        if user_id in queued:
            return
        queued.add(user_id)
        getattr(self[group], field_name).append(user_id)

    def add_user(self, group: str, user_id: str) -> None:
        self._queue(group, "add_users", user_id)

    def remove_user(self, group: str, user_id: str) -> None:
        self._queue(group, "remove_users", user_id)

    def __delitem__(self, group: str) -> None:
        super().__delitem__(group)
        self._queued.pop((group, "add_users"), None)
        self._queued.pop((group, "remove_users"), None)

    def count(self) -> int:
        """Total number of single membership operations queued."""
        return sum(len(r.add_users) + len(r.remove_users) for r in self.values())
