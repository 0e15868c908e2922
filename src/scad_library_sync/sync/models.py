"""Pydantic models for the library sync engine.

Defines the data contracts shared by the engine, reporter and facade:

- ``SyncAction``: Enum of per-file outcomes.
- ``FileResult``: Outcome of reconciling one remote file.
- ``ProfileReport``: Results of one profile's init or update pass.
- ``SyncOutcome``: Aggregate ok/error result of a whole operation.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class SyncAction(str, Enum):
    """What happened to one remote file during a pass."""

    WRITE = "write"
    UNCHANGED = "unchanged"
    SKIP_USER_FILE = "skip_user_file"
    FAILED = "failed"


class FileResult(BaseModel):
    """Result of reconciling one remote file.

    Attributes:
        rel_path: Profile-relative path (release root stripped).
        action: Action that was taken.
        fingerprint: Fingerprint recorded in the new manifest, if any.
        error: Error message when ``action`` is ``FAILED``.
    """

    rel_path: str
    action: SyncAction
    fingerprint: str | None = None
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def success(self) -> bool:
        return self.action != SyncAction.FAILED


class ProfileReport(BaseModel):
    """Results of one profile's pass.

    Attributes:
        profile_id: Profile identifier.
        profile_name: Profile display name.
        mode: ``"init"`` or ``"update"``.
        results: Per-file results in listing order.
        listing_error: Set when the listing failed and the profile was
            skipped without touching its manifest.
        manifest_error: Set when the new manifest could not be written.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass ended.
    """

    profile_id: str
    profile_name: str
    mode: str
    results: list[FileResult] = []
    listing_error: str | None = None
    manifest_error: str | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.listing_error is None and self.manifest_error is None

    @property
    def updated(self) -> list[FileResult]:
        """Results where the file was written."""
        return [r for r in self.results if r.action == SyncAction.WRITE]

    @property
    def unchanged(self) -> list[FileResult]:
        """Results where remote content matched the manifest."""
        return [r for r in self.results if r.action == SyncAction.UNCHANGED]

    @property
    def skipped(self) -> list[FileResult]:
        """Results where a user file occupied the path."""
        return [
            r for r in self.results if r.action == SyncAction.SKIP_USER_FILE
        ]

    @property
    def failed(self) -> list[FileResult]:
        """Results where fetching or writing failed."""
        return [r for r in self.results if r.action == SyncAction.FAILED]

    def summary(self) -> str:
        """One-line tally for the progress sink."""
        if self.listing_error is not None:
            return f"{self.profile_name}: skipped ({self.listing_error})"
        return (
            f"{self.profile_name} {self.mode} complete: "
            f"{len(self.updated)} updated, {len(self.unchanged)} unchanged, "
            f"{len(self.skipped)} skipped, {len(self.failed)} failed"
        )


class SyncOutcome(BaseModel):
    """Aggregate result of ``init`` or ``update`` across all profiles.

    Listing and per-file failures are non-fatal and leave ``ok`` set;
    they show up in ``messages`` and ``has_failures``.  ``ok`` is
    ``False`` only when the operation could not run at all.

    Attributes:
        ok: Whether the operation ran to completion.
        messages: Every progress line emitted, in order.
        reports: One report per processed profile.
        error: Short description when ``ok`` is ``False``.
    """

    ok: bool
    messages: list[str] = []
    reports: list[ProfileReport] = []
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def has_failures(self) -> bool:
        """True if any profile was skipped or any file failed."""
        return any(not r.ok or r.failed for r in self.reports)
