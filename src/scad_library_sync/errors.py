"""Exception taxonomy for the library sync engine.

Only programmer errors (unknown profile) and setup failures the engine
cannot work around (``WorkspaceError``) escape ``init``/``update``.
Remote errors are caught at the scope they belong to: a
``ListingError`` skips one profile, a ``FetchError`` skips one file.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all library sync errors."""


class RemoteError(SyncError):
    """A call to the remote content source failed."""


class ListingError(RemoteError):
    """Listing the files of a profile failed as a whole.

    Attributes:
        profile_id: Profile whose listing failed.
    """

    def __init__(self, profile_id: str, message: str) -> None:
        super().__init__(f"Could not list files for '{profile_id}': {message}")
        self.profile_id = profile_id


class FetchError(RemoteError):
    """Retrieving a single file failed.

    Attributes:
        path: Repo-relative path that was requested.
        status: HTTP status code, or ``None`` for transport errors.
    """

    def __init__(
        self, path: str, status: int | None, message: str | None = None
    ) -> None:
        if message is None:
            message = (
                f"HTTP {status} fetching {path}"
                if status is not None
                else f"Failed to fetch {path}"
            )
        super().__init__(message)
        self.path = path
        self.status = status


class UnknownProfileError(SyncError, LookupError):
    """A profile identifier is not registered."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(f"Unknown library profile: {profile_id}")
        self.profile_id = profile_id


class WorkspaceError(SyncError):
    """The workspace layout for a profile cannot be created."""
