"""
Coder adapter

Reads organizations, groups and users from the Coder REST API and writes group changes back.
"""

import logging
from typing import List, Optional
from urllib.parse import urljoin

import requests
from diffsync import Adapter

from errors import CoderAPIError, CreateGroupError, NoDefaultOrganizationError, PatchGroupError
from models import ChangeGroupRequests, CoderGroup, CoderOrganization, CoderUser, GroupMembership, PatchGroupRequest


logger = logging.getLogger(__name__)


SESSION_TOKEN_HEADER = "Coder-Session-Token"

# Number of users requested per page from /api/v2/users
USERS_PAGE_SIZE = 100


class CoderAdapter(Adapter):
    """
    DiffSync adapter for a Coder deployment.
    Reads the current group memberships and writes group changes back.
    All requests share one session authenticated with an owner session token.
    """

    membership = GroupMembership
    top_level = ["membership"]

    def __init__(self, url: str, session_token: str, session: Optional[requests.Session] = None,
                 timeout: float = 30.0, dry_run: bool = False, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Filled by GroupMembership.create/delete during sync_from
        self.change_set = ChangeGroupRequests()
        self.url = url.rstrip("/") + "/"
        self.session_token = session_token
        self.session = session
        self.timeout = timeout
        self.dry_run = dry_run

    def connect_coder(self) -> CoderUser:
        """Open the session and check the token by fetching the authenticated user."""
        logger.info(f"Connecting to Coder: {self.url}")

        if self.session is None:
            self.session = requests.Session()
        self.session.headers.update({
            SESSION_TOKEN_HEADER: self.session_token,
            "Accept": "application/json",
        })

        try:
            me = CoderUser.model_validate(self._request("GET", "api/v2/users/me"))
        except CoderAPIError as e:
            raise CoderAPIError(f"failed to authenticate with coder: {e}", e.status_code) from e

        logger.info(f"Successfully connected to Coder as {me.username}")
        return me

    def _request(self, method: str, path: str, params: dict = None, json: dict = None):
        if self.session is None:
            raise CoderAPIError("not connected to Coder")

        url = urljoin(self.url, path)
        try:
            response = self.session.request(method, url, params=params, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            raise CoderAPIError(f"{method} {url}: {e}") from e

        if not response.ok:
            raise CoderAPIError(
                f"{method} {url}: unexpected status {response.status_code}: {response.text}",
                response.status_code
            )

        if not response.content:
            return None
        return response.json()

    def list_organizations(self) -> List[CoderOrganization]:
        try:
            orgs = self._request("GET", "api/v2/organizations")
        except CoderAPIError as e:
            raise CoderAPIError(f"failed to get coder organizations: {e}", e.status_code) from e
        return [CoderOrganization.model_validate(org) for org in orgs or []]

    def default_organization(self) -> CoderOrganization:
        """The default organization. Groups are only synced into this one."""
        for org in self.list_organizations():
            if org.is_default:
                logger.info(f"Using default organization {org.name} ({org.id})")
                return org
        raise NoDefaultOrganizationError("default organization not found")

    def list_groups(self, organization_id: str) -> List[CoderGroup]:
        try:
            groups = self._request("GET", "api/v2/groups", params={"organization": organization_id})
        except CoderAPIError as e:
            raise CoderAPIError(f"failed to get coder groups: {e}", e.status_code) from e
        return [CoderGroup.model_validate(group) for group in groups or []]

    def list_groups_for_user(self, organization_id: str, username: str) -> List[CoderGroup]:
        """Groups of the organization that have this user as a member."""
        try:
            groups = self._request("GET", "api/v2/groups", params={
                "organization": organization_id,
                "has_member": username,
            })
        except CoderAPIError as e:
            raise CoderAPIError(f"failed to get coder groups for user {username}: {e}", e.status_code) from e
        return [CoderGroup.model_validate(group) for group in groups or []]

    def list_users(self) -> List[CoderUser]:
        """All Coder users, following offset pagination until the reported count is reached."""
        users = []
        offset = 0

        while True:
            try:
                page = self._request("GET", "api/v2/users", params={
                    "limit": USERS_PAGE_SIZE,
                    "offset": offset,
                })
            except CoderAPIError as e:
                raise CoderAPIError(f"failed to get coder users: {e}", e.status_code) from e

            if page is None:
                raise CoderAPIError("failed to get coder users: empty response body")

            page_users = page.get("users") or []
            users.extend(CoderUser.model_validate(user) for user in page_users)
            offset += len(page_users)

            if not page_users or offset >= page.get("count", 0):
                break
            logger.debug(f"Fetching next page of users (loaded {offset} so far)")

        logger.info(f"Loaded {len(users)} users from Coder")
        return users

    def load_user(self, user_id: str, groups: List[CoderGroup]) -> None:
        """Add the current memberships of one user."""
        for group in groups:
            self.get_or_instantiate(
                GroupMembership,
                ids={"user_id": user_id, "group_name": group.name},
            )
            logger.debug(f"Loaded membership: {user_id} -> {group.name}")

    def create_group(self, organization_id: str, name: str, display_name: str = "",
                     avatar_url: str = "", quota_allowance: int = 0) -> CoderGroup:
        body = {
            "name": name,
            "display_name": display_name,
            "avatar_url": avatar_url,
            "quota_allowance": quota_allowance,
        }

        if self.dry_run:
            logger.info(f"[DRY RUN] Would create group: {name}")
            return CoderGroup(id=f"dry-run-{name}", organization_id=organization_id, **body)

        try:
            group = self._request("POST", f"api/v2/organizations/{organization_id}/groups", json=body)
        except CoderAPIError as e:
            raise CreateGroupError(f"failed to create group {name!r}: {e}", e.status_code) from e

        logger.debug(f"Created group: {name}")
        return CoderGroup.model_validate(group)

    def patch_group(self, group: CoderGroup, request: PatchGroupRequest) -> Optional[CoderGroup]:
        if self.dry_run:
            logger.info(
                f"[DRY RUN] Would patch group {group.name}: "
                f"add {len(request.add_users)}, remove {len(request.remove_users)}"
            )
            return group

        try:
            patched = self._request("PATCH", f"api/v2/groups/{group.id}", json=request.model_dump())
        except CoderAPIError as e:
            raise PatchGroupError(f"failed to patch group {group.name}: {e}", e.status_code) from e

        if patched is None:
            return group
        return CoderGroup.model_validate(patched)

    def close(self):
        """Close the HTTP session."""
        if self.session:
            try:
                self.session.close()
                logger.debug("Coder session closed")
            except Exception as e:
                logger.warning(f"Error closing Coder session: {e}")
