"""
Google Workspace adapter

Reads group memberships from the Google Workspace Admin SDK Directory API.
"""

import logging
from typing import Iterator, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from diffsync import Adapter

from errors import ConfigurationError, DirectoryError
from models import GroupMembership


logger = logging.getLogger(__name__)


# Scopes the service account must be granted through domain-wide delegation
# https://developers.google.com/identity/protocols/oauth2/service-account#delegatingauthority
SCOPES = [
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/admin.directory.user",
    "https://www.googleapis.com/auth/admin.directory.user.readonly",
    "https://www.googleapis.com/auth/admin.directory.group",
    "https://www.googleapis.com/auth/admin.directory.group.readonly",
]

# Directory API maximum for groups.list and users.list
PAGE_SIZE = 200


def normalize_group_name(name: Optional[str]) -> Optional[str]:
    """
    Map a Google group name to the Coder group name it corresponds to.
    Names are lowercased and have spaces removed. Returns None for an empty name.
    """
    if not name:
        return None
    return name.replace(" ", "").lower()


def expected_coder_groups(google_groups: List[dict]) -> List[str]:
    """
    Return the Coder group names a user is expected to be in,
    based on the Google groups they are in.
    """
    expected = []
    for group in google_groups:
        name = normalize_group_name(group.get("name"))
        if name is None:
            logger.info(f"Google group {group.get('email', '<unknown>')} has no group name, skipping")
            continue
        expected.append(name)
    return expected


class GoogleAdapter(Adapter):
    """
    DiffSync adapter for the Google Workspace directory.
    Lists users and the groups a user belongs to, following every result page,
    and holds the memberships each synced user is expected to have in Coder.
    """

    membership = GroupMembership
    top_level = ["membership"]

    def __init__(self, service=None, page_size: int = PAGE_SIZE, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        self.page_size = page_size

    def connect_google(self, credentials_file: str, admin_email: str):
        """Authenticate with a service account acting on behalf of a Workspace admin."""
        logger.info(f"Connecting to Google Workspace as {admin_email}")

        try:
            credentials = service_account.Credentials.from_service_account_file(
                credentials_file,
                scopes=SCOPES,
                subject=admin_email,
            )
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"failed to read credentials from {credentials_file!r}: {e}") from e

        try:
            self.service = build("admin", "directory_v1", credentials=credentials, cache_discovery=False)
        except (HttpError, GoogleAuthError) as e:
            raise DirectoryError(f"authenticate google: {e}") from e

        logger.info("Successfully connected to Google Workspace")

    def _paginate(self, resource: str, items_key: str, **kwargs) -> Iterator[dict]:
        """Yield every item of a list call, requesting pages until no page token is returned."""
        if self.service is None:
            raise DirectoryError("not connected to Google Workspace")

        collection = getattr(self.service, resource)()
        page_token = None
        page = 0
        while True:
            try:
                response = collection.list(
                    pageToken=page_token,
                    maxResults=self.page_size,
                    **kwargs
                ).execute()
            except (HttpError, GoogleAuthError, OSError) as e:
                raise DirectoryError(f"failed to list {items_key}: {e}") from e

            page += 1
            yield from response.get(items_key, [])

            page_token = response.get("nextPageToken")
            if not page_token:
                break
            logger.debug(f"Fetching page {page + 1} of {items_key}")

    def list_groups_for_user(self, email: str) -> List[dict]:
        """All Google groups the user with this email is a member of."""
        groups = list(self._paginate("groups", "groups", userKey=email))
        logger.debug(f"Found {len(groups)} Google groups for {email}")
        return groups

    def list_users(self, customer_id: str) -> List[dict]:
        """All users of the Workspace customer."""
        users = list(self._paginate("users", "users", customer=customer_id))
        logger.debug(f"Found {len(users)} Google users for customer {customer_id}")
        return users

    def load_user(self, user_id: str, group_names: List[str]) -> None:
        """Add the expected memberships of one user. Names normalizing to the same group merge."""
        for group_name in group_names:
            _, created = self.get_or_instantiate(
                GroupMembership,
                ids={"user_id": user_id, "group_name": group_name},
            )
            if created:
                logger.debug(f"Expected membership: {user_id} -> {group_name}")
