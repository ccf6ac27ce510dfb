"""
Exceptions raised during a sync run
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for sync errors."""
    pass


class ConfigurationError(SyncError):
    """Raised when the sync cannot be configured (e.g. unreadable credentials)."""
    pass


class DirectoryError(SyncError):
    """Raised when the Google Workspace directory cannot be read."""
    pass


class CoderAPIError(SyncError):
    """Raised when a request to the Coder API fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NoDefaultOrganizationError(CoderAPIError):
    """Raised when Coder has no default organization to sync into."""
    pass


class CreateGroupError(CoderAPIError):
    """Raised when a missing group cannot be created in Coder."""
    pass


class PatchGroupError(CoderAPIError):
    """Raised when the membership of a Coder group cannot be changed."""
    pass


class GroupNotFoundError(SyncError):
    """Raised when a group with pending changes does not exist in Coder."""
    pass
