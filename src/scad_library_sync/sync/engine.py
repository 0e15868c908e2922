"""Sync engine that populates and refreshes a library workspace.

The ``Synchronizer`` mirrors each profile's remote release tree into
``{workspace}/{profile_id}/`` and records what it wrote in the profile
manifest.  It has two entry points:

``init``
    First-time population.  Creates the profile layout, writes every
    listed file, and merges the new fingerprints into any existing
    manifest.

``update``
    Incremental refresh.  Each listed file is classified by
    ``decide_action()`` before anything is written, so user files that
    occupy a remote path are never overwritten and unchanged files are
    never rewritten.  The manifest is replaced with exactly the entries
    produced by the pass.

Profiles are processed one at a time in registration order and files
one at a time within a profile.  Every remote call and disk write is
awaited through ``run_sync()``.

Error handling is scoped: a listing failure skips its profile without
touching the manifest, a fetch or write failure skips its file and keeps
any previously tracked fingerprint so the file is retried next time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path

from ..core.async_utils import run_sync
from ..core.client import RemoteClient
from ..errors import FetchError, ListingError, WorkspaceError
from ..file_handler import write_bytes_atomic
from ..profiles import Profile, ProfileRegistry
from ..validators import validate_relative_path
from .manifest import ManifestStore, fingerprint
from .models import FileResult, ProfileReport, SyncAction, SyncOutcome

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


# ------------------------------------------------------------------
# Decision table
# ------------------------------------------------------------------


def decide_action(
    is_library_path: bool,
    is_tracked: bool,
    exists_locally: bool,
    fingerprints_equal: bool,
) -> SyncAction:
    """Classify one remote file during an update pass.

    Rules, in order:

    1. A non-library path that exists locally but is not tracked is a
       user file: ``SKIP_USER_FILE``.
    2. A tracked file that exists locally and whose new remote
       fingerprint equals the stored one: ``UNCHANGED``.
    3. Anything else: ``WRITE``.

    ``fingerprints_equal`` is only meaningful once the content has been
    fetched; rule 1 never depends on it.
    """
    if not is_library_path and exists_locally and not is_tracked:
        return SyncAction.SKIP_USER_FILE
    if is_tracked and fingerprints_equal and exists_locally:
        return SyncAction.UNCHANGED
    return SyncAction.WRITE


def needs_fetch(
    is_library_path: bool, is_tracked: bool, exists_locally: bool
) -> bool:
    """Return ``False`` when rule 1 already decides the file."""
    return (
        decide_action(is_library_path, is_tracked, exists_locally, False)
        != SyncAction.SKIP_USER_FILE
    )


class _Progress:
    """Forward progress lines to the caller and keep a copy."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self.messages: list[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)
        if self._callback is None:
            logger.info("%s", message)
            return
        try:
            self._callback(message)
        except Exception:
            logger.exception("Progress callback failed for %r", message)


class Synchronizer:
    """Populate and refresh the profile subtrees of a workspace.

    Args:
        client: Remote access client (or a fake with the same methods).
        registry: Profiles to process, in order.
        manifest_store: Manifest persistence, a fresh store by default.
    """

    def __init__(
        self,
        client: RemoteClient,
        registry: ProfileRegistry,
        manifest_store: ManifestStore | None = None,
    ) -> None:
        self.client = client
        self.registry = registry
        self.store = manifest_store or ManifestStore()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def init(
        self, root: Path, on_progress: ProgressCallback | None = None
    ) -> SyncOutcome:
        """Populate every profile directory under *root*.

        Raises:
            WorkspaceError: If a profile directory cannot be created.
        """
        progress = _Progress(on_progress)
        reports = []
        for profile in self.registry:
            reports.append(
                await self._init_profile(profile, Path(root), progress)
            )
        return SyncOutcome(ok=True, messages=progress.messages, reports=reports)

    async def update(
        self, root: Path, on_progress: ProgressCallback | None = None
    ) -> SyncOutcome:
        """Refresh every profile directory under *root*."""
        progress = _Progress(on_progress)
        reports = []
        for profile in self.registry:
            reports.append(
                await self._update_profile(profile, Path(root), progress)
            )
        return SyncOutcome(ok=True, messages=progress.messages, reports=reports)

    # ------------------------------------------------------------------
    # Init
    # ------------------------------------------------------------------

    async def _init_profile(
        self, profile: Profile, root: Path, progress: _Progress
    ) -> ProfileReport:
        started_at = _now()
        profile_dir = root / profile.id
        await run_sync(_create_layout, profile, profile_dir)

        progress(f"Fetching {profile.name} repository tree...")
        repo_paths = await self._list(profile, progress)
        if isinstance(repo_paths, ListingError):
            return self._skipped_report(profile, "init", repo_paths, started_at)

        manifest = await run_sync(self.store.load, profile_dir)
        new_files: dict[str, str] = {}
        results: list[FileResult] = []

        for rel_path, repo_path in self._wanted(profile, repo_paths, results, progress):
            progress(f"Fetching {rel_path}...")
            result = await self._fetch_and_write(
                profile, profile_dir, rel_path, repo_path, progress
            )
            results.append(result)
            if result.success:
                new_files[rel_path] = result.fingerprint

        manifest["files"] = {**manifest["files"], **new_files}
        return await self._finish(
            profile, profile_dir, manifest, "init", results, started_at, progress
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def _update_profile(
        self, profile: Profile, root: Path, progress: _Progress
    ) -> ProfileReport:
        started_at = _now()
        profile_dir = root / profile.id
        manifest = await run_sync(self.store.load, profile_dir)
        old_files: dict[str, str] = manifest["files"]

        progress(f"Updating {profile.name}...")
        repo_paths = await self._list(profile, progress)
        if isinstance(repo_paths, ListingError):
            # Manifest untouched
            return self._skipped_report(profile, "update", repo_paths, started_at)

        new_files: dict[str, str] = {}
        results: list[FileResult] = []

        for rel_path, repo_path in self._wanted(profile, repo_paths, results, progress):
            dest = profile_dir / rel_path
            is_library = profile.is_library_path(rel_path)
            is_tracked = rel_path in old_files
            exists = await run_sync(dest.exists)

            if not needs_fetch(is_library, is_tracked, exists):
                logger.debug("Keeping user file %s/%s", profile.id, rel_path)
                results.append(
                    FileResult(rel_path=rel_path, action=SyncAction.SKIP_USER_FILE)
                )
                continue

            try:
                content = await run_sync(
                    self.client.fetch_content, profile, repo_path
                )
            except FetchError as exc:
                results.append(
                    self._failed(profile, rel_path, exc, old_files, new_files, progress)
                )
                continue

            new_fp = fingerprint(content)
            action = decide_action(
                is_library,
                is_tracked,
                exists,
                is_tracked and old_files[rel_path] == new_fp,
            )

            if action == SyncAction.UNCHANGED:
                new_files[rel_path] = new_fp
                results.append(
                    FileResult(
                        rel_path=rel_path,
                        action=SyncAction.UNCHANGED,
                        fingerprint=new_fp,
                    )
                )
                continue

            progress(f"Updating {rel_path}...")
            try:
                await run_sync(write_bytes_atomic, dest, content)
            except OSError as exc:
                results.append(
                    self._failed(profile, rel_path, exc, old_files, new_files, progress)
                )
                continue

            new_files[rel_path] = new_fp
            results.append(
                FileResult(
                    rel_path=rel_path, action=SyncAction.WRITE, fingerprint=new_fp
                )
            )

        manifest = {"lastUpdated": manifest["lastUpdated"], "files": new_files}
        return await self._finish(
            profile, profile_dir, manifest, "update", results, started_at, progress
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _list(
        self, profile: Profile, progress: _Progress
    ) -> list[str] | ListingError:
        try:
            return await run_sync(self.client.list_files, profile)
        except ListingError as exc:
            logger.warning("Listing failed for profile %s: %s", profile.id, exc)
            progress(
                f"Warning: Could not fetch tree for {profile.name}: {exc}"
            )
            return exc

    def _wanted(
        self,
        profile: Profile,
        repo_paths: list[str],
        results: list[FileResult],
        progress: _Progress,
    ) -> Iterator[tuple[str, str]]:
        """Yield ``(rel_path, repo_path)`` for every file to reconcile.

        Paths that fail validation are recorded as failed and skipped.
        """
        for repo_path in repo_paths:
            if not profile.wants(repo_path):
                continue
            rel_path = profile.to_relative(repo_path)
            valid, reason = validate_relative_path(rel_path or "")
            if not valid:
                logger.warning(
                    "Rejecting remote path %s for %s: %s",
                    repo_path,
                    profile.id,
                    reason,
                )
                progress(f"Warning: Skipping {repo_path}: {reason}")
                results.append(
                    FileResult(
                        rel_path=repo_path,
                        action=SyncAction.FAILED,
                        error=reason,
                    )
                )
                continue
            yield rel_path, repo_path

    async def _fetch_and_write(
        self,
        profile: Profile,
        profile_dir: Path,
        rel_path: str,
        repo_path: str,
        progress: _Progress,
    ) -> FileResult:
        try:
            content = await run_sync(self.client.fetch_content, profile, repo_path)
            await run_sync(write_bytes_atomic, profile_dir / rel_path, content)
        except (FetchError, OSError) as exc:
            return self._failed(profile, rel_path, exc, {}, {}, progress)
        return FileResult(
            rel_path=rel_path,
            action=SyncAction.WRITE,
            fingerprint=fingerprint(content),
        )

    def _failed(
        self,
        profile: Profile,
        rel_path: str,
        exc: Exception,
        old_files: dict[str, str],
        new_files: dict[str, str],
        progress: _Progress,
    ) -> FileResult:
        """Record a per-file failure, carrying the old fingerprint forward."""
        verb = "fetch" if isinstance(exc, FetchError) else "write"
        logger.warning(
            "Failed to %s %s/%s: %s", verb, profile.id, rel_path, exc
        )
        progress(f"Warning: Failed to {verb} {rel_path}: {exc}")
        if rel_path in old_files:
            new_files[rel_path] = old_files[rel_path]
        return FileResult(
            rel_path=rel_path,
            action=SyncAction.FAILED,
            fingerprint=old_files.get(rel_path),
            error=str(exc),
        )

    async def _finish(
        self,
        profile: Profile,
        profile_dir: Path,
        manifest: dict,
        mode: str,
        results: list[FileResult],
        started_at: str,
        progress: _Progress,
    ) -> ProfileReport:
        manifest_error = None
        try:
            await run_sync(self.store.save, profile_dir, manifest)
        except OSError as exc:
            logger.error("Could not save manifest for %s: %s", profile.id, exc)
            manifest_error = str(exc)
            progress(f"Warning: Could not save manifest for {profile.name}: {exc}")

        report = ProfileReport(
            profile_id=profile.id,
            profile_name=profile.name,
            mode=mode,
            results=results,
            manifest_error=manifest_error,
            started_at=started_at,
            completed_at=_now(),
        )
        progress(report.summary())
        return report

    def _skipped_report(
        self,
        profile: Profile,
        mode: str,
        exc: ListingError,
        started_at: str,
    ) -> ProfileReport:
        return ProfileReport(
            profile_id=profile.id,
            profile_name=profile.name,
            mode=mode,
            listing_error=str(exc),
            started_at=started_at,
            completed_at=_now(),
        )


def _create_layout(profile: Profile, profile_dir: Path) -> None:
    """Create ``lib/`` and the designs directory (idempotent)."""
    try:
        (profile_dir / profile.lib_dir).mkdir(parents=True, exist_ok=True)
        (profile_dir / profile.designs_dir).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WorkspaceError(
            f"Cannot create profile directory {profile_dir}: {exc}"
        ) from exc


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
