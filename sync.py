#!/usr/bin/env python3
"""
Google Workspace to Coder Group Sync

Fetches all users currently in Coder. Using their email address, finds all Google groups they are in.
If they are in a Google group that corresponds to a Coder group, they are added to that group.
If they are in a Coder group that does not correspond to a Google group, they are removed from it.
Groups are matched by name; Google group names are lowercased and have spaces removed.
Groups that do not exist in Coder yet are created.
"""

import sys
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import report
from coder_adapter import CoderAdapter
from config import SyncConfig, load_config
from errors import CreateGroupError, GroupNotFoundError
from google_adapter import GoogleAdapter, expected_coder_groups
from models import (
    LOGIN_TYPE_OIDC,
    ChangeGroupRequests,
    CoderGroup,
    CoderOrganization,
    CoderUser,
    PatchGroupRequest,
)


logger = logging.getLogger(__name__)


# Coder manages membership of this group itself; used when the organization's one is not found
DEFAULT_EVERYONE_GROUP = "Everyone"

# The "NEW" icon
NEW_GROUP_AVATAR = "/emojis/1f195.png"


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    eligible_users: int = 0
    changes: ChangeGroupRequests = field(default_factory=ChangeGroupRequests)
    created_groups: List[CoderGroup] = field(default_factory=list)
    dropped_groups: List[str] = field(default_factory=list)
    applied: Dict[str, PatchGroupRequest] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


class GroupSync:
    """
    Reconciles Coder group memberships with Google Workspace groups.

    The changes of every user are collected first; only then are missing groups
    created and one patch per group applied.
    """

    def __init__(self, coder: CoderAdapter, google: GoogleAdapter, domain: str):
        self.coder = coder
        self.google = google
        self.domain = domain

        self.organization: Optional[CoderOrganization] = None
        self.groups: Dict[str, CoderGroup] = {}
        self.users: List[CoderUser] = []
        # Used for logging
        self.users_by_id: Dict[str, CoderUser] = {}

    def load(self):
        """Load the current state of the default organization from Coder."""
        logger.info("Loading data from Coder")

        self.organization = self.coder.default_organization()
        self.groups = {group.name: group for group in self.coder.list_groups(self.organization.id)}
        self.users = self.coder.list_users()
        self.users_by_id = {user.id: user for user in self.users}

        logger.info(f"Loaded {len(self.groups)} groups and {len(self.users)} users from Coder")

    def is_eligible(self, user: CoderUser) -> bool:
        """Only OIDC users of the Google Workspace domain are synced."""
        if user.login_type != LOGIN_TYPE_OIDC:
            return False
        return user.email.endswith("@" + self.domain)

    def everyone_group(self, groups: List[CoderGroup]) -> str:
        """Name of the organization's all-members group, which shares the organization's ID."""
        for group in groups:
            if group.id == self.organization.id:
                return group.name
        return DEFAULT_EVERYONE_GROUP

    def load_user(self, user: CoderUser) -> None:
        """Load the expected (Google) and actual (Coder) memberships of one user."""
        google_groups = self.google.list_groups_for_user(user.email)
        coder_groups = self.coder.list_groups_for_user(self.organization.id, user.username)

        # The everyone group always contains every user, so it is always expected
        expected_names = expected_coder_groups(google_groups)
        expected_names.append(self.everyone_group(coder_groups))

        self.google.load_user(user.id, expected_names)
        self.coder.load_user(user.id, coder_groups)

    def compute_changes(self) -> Tuple[ChangeGroupRequests, int]:
        """Collect the membership changes of every eligible user."""
        eligible = 0

        for user in self.users:
            if not self.is_eligible(user):
                logger.debug(f"Skipping user {user.username}: not an OIDC user of {self.domain}")
                continue
            eligible += 1
            self.load_user(user)

        logger.debug(f"Google adapter has {len(self.google.get_all('membership'))} memberships")
        logger.debug(f"Coder adapter has {len(self.coder.get_all('membership'))} memberships")

        # Queues every change into the Coder adapter's change set via the model's create/delete
        self.coder.sync_from(self.google)

        return self.coder.change_set, eligible

    def create_missing_groups(self, changes: ChangeGroupRequests) -> Tuple[List[CoderGroup], List[str]]:
        """
        Create every group that has pending changes but does not exist in Coder yet.
        A group that cannot be created is dropped from the changes.
        """
        created = []
        dropped = []

        for name in sorted(changes):
            if name in self.groups:
                continue

            try:
                group = self.coder.create_group(
                    self.organization.id,
                    name,
                    display_name="",
                    avatar_url=NEW_GROUP_AVATAR,
                    quota_allowance=0,
                )
            except CreateGroupError as e:
                del changes[name]
                dropped.append(name)
                logger.warning(f"failed to create group {name!r}, users in this group will not be assigned: {e}")
                continue

            self.groups[name] = group
            created.append(group)

        for line in report.created_groups(created):
            logger.info(line)

        return created, dropped

    def apply_changes(self, changes: ChangeGroupRequests) -> Dict[str, PatchGroupRequest]:
        """Patch every changed group. Any failure aborts the run."""
        applied = {}
        if changes:
            logger.info("Changes to group memberships:")

        for name in sorted(changes):
            request = changes[name]
            group = self.groups.get(name)
            if group is None:
                raise GroupNotFoundError(f"group {name} not found, unable to apply group sync")

            self.coder.patch_group(group, request)
            applied[name] = request

            for line in report.group_change(name, request, self.users_by_id):
                logger.info(line)

        return applied

    def run(self) -> SyncResult:
        self.load()

        changes, eligible = self.compute_changes()
        result = SyncResult(eligible_users=eligible, changes=changes)

        if not changes:
            logger.info(report.no_changes(eligible))
            return result

        logger.info(f"Changes to make: {changes.count()} membership updates in {len(changes)} groups")
        result.created_groups, result.dropped_groups = self.create_missing_groups(changes)
        result.applied = self.apply_changes(changes)
        return result


def sync_google_to_coder(config: SyncConfig) -> SyncResult:
    """
    Main sync function.
    Syncs group memberships from Google Workspace to the default Coder organization.
    """
    logger.info("Starting Google Workspace to Coder group sync")

    if config.dry_run:
        logger.info("Running in DRY RUN mode - no changes will be made")

    coder = CoderAdapter(
        config.coder_url,
        config.session_token,
        timeout=config.timeout,
        dry_run=config.dry_run,
    )
    google = GoogleAdapter()

    try:
        coder.connect_coder()
        google.connect_google(config.credentials_file, config.admin_email)

        result = GroupSync(coder, google, config.domain).run()
        logger.info(report.summary(result))
        return result

    finally:
        coder.close()


def main():
    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        sync_google_to_coder(config)
    except Exception as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        sys.exit(1)

    logger.info("Sync completed successfully")


if __name__ == "__main__":
    main()
