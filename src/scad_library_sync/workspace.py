"""Workspace facade consumed by the editor's save/open flows and the CLI.

``WorkspaceService`` wires the remote client, profile registry, manifest
store, synchroniser, shared-file cache and provenance oracle together
and reads the workspace root from the preferences store whenever a call
does not pass one explicitly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .cache import SharedFileCache
from .config import Config, validate_proxy_url
from .core.client import ProxySettings, RemoteClient
from .errors import SyncError
from .preferences import Preferences
from .profiles import ProfileRegistry
from .provenance import DesignFileWalker, ProvenanceOracle
from .sync.engine import ProgressCallback, Synchronizer
from .sync.manifest import ManifestStore
from .sync.models import SyncOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveCheck:
    """Whether a design may be written to a path.

    Attributes:
        allowed: ``False`` when the path is a tracked (repo-owned) file.
        repo_profile: Owning profile id of a tracked file.
        needs_shared_files: ``True`` when the path is outside the
            workspace, so library files must be copied beside it.
    """

    allowed: bool
    repo_profile: str | None
    needs_shared_files: bool


class WorkspaceService:
    """Entry point for everything that touches a library workspace.

    Args:
        config: Runtime configuration.
        preferences: Preferences store, defaults to ``config.preferences_file``.
        client: Remote client override (tests inject fakes here).
        registry: Profile registry override.
    """

    def __init__(
        self,
        config: Config,
        preferences: Preferences | None = None,
        client: RemoteClient | None = None,
        registry: ProfileRegistry | None = None,
    ) -> None:
        self.config = config
        self.preferences = preferences or Preferences(
            Path(config.preferences_file)
        )
        self.registry = registry or ProfileRegistry.from_config(config.profiles)

        if client is None:
            proxy = ProxySettings(
                config.remote.proxy or self.preferences.get("proxy") or None
            )
            client = RemoteClient(config.remote, proxy)
        self.client = client

        self.store = ManifestStore()
        self.synchronizer = Synchronizer(self.client, self.registry, self.store)
        self.cache = SharedFileCache(
            self.client, self.registry, Path(config.cache_dir)
        )
        self.oracle = ProvenanceOracle(self.registry, self.store)

    # ------------------------------------------------------------------
    # Workspace root
    # ------------------------------------------------------------------

    def workspace_root(self) -> str:
        """Configured workspace root, read from preferences each call."""
        return self.preferences.workspace_dir

    def _root(self, root: str | os.PathLike | None) -> str:
        return os.fspath(root) if root else self.workspace_root()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def init(
        self,
        root: str | os.PathLike,
        on_progress: ProgressCallback | None = None,
    ) -> SyncOutcome:
        """Populate *root* and remember it as the workspace."""
        try:
            outcome = await self.synchronizer.init(Path(root), on_progress)
        except SyncError as exc:
            logger.error("Workspace init failed: %s", exc)
            return SyncOutcome(ok=False, error=str(exc), messages=[str(exc)])

        self.preferences.set("workspace_dir", os.fspath(root))
        return outcome

    async def update(
        self,
        root: str | os.PathLike | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncOutcome:
        """Refresh the workspace (configured root unless *root* is given)."""
        target = self._root(root)
        if not target:
            return SyncOutcome(
                ok=False,
                error="No working directory set",
                messages=["No working directory set"],
            )
        try:
            return await self.synchronizer.update(Path(target), on_progress)
        except SyncError as exc:
            logger.error("Workspace update failed: %s", exc)
            return SyncOutcome(ok=False, error=str(exc), messages=[str(exc)])

    # ------------------------------------------------------------------
    # Provenance
    # ------------------------------------------------------------------

    def is_inside_workspace(
        self,
        path: str | os.PathLike,
        root: str | os.PathLike | None = None,
    ) -> bool:
        return self.oracle.is_inside_workspace(path, self._root(root))

    def is_repo_owned(
        self,
        path: str | os.PathLike,
        root: str | os.PathLike | None = None,
    ) -> str | None:
        return self.oracle.is_repo_owned(path, self._root(root))

    def check_save(self, path: str | os.PathLike) -> SaveCheck:
        """Decide whether a design may be saved to *path*."""
        root = self.workspace_root()
        owner = self.oracle.is_repo_owned(path, root)
        return SaveCheck(
            allowed=owner is None,
            repo_profile=owner,
            needs_shared_files=not self.oracle.is_inside_workspace(path, root),
        )

    def library_tree(self) -> dict[str, dict]:
        root = self.workspace_root()
        if not root:
            return {}
        return self.oracle.library_tree(root)

    def design_files(self, profile_id: str) -> DesignFileWalker | None:
        """Walk the non-library design files of a profile (``None`` without a workspace)."""
        profile = self.registry.require(profile_id)
        root = self.workspace_root()
        if not root:
            return None
        return DesignFileWalker(
            Path(root) / profile.id, profile.lib_dir, profile.extension
        )

    # ------------------------------------------------------------------
    # Shared files
    # ------------------------------------------------------------------

    async def ensure_shared_files(self, profile_id: str) -> Path:
        return await self.cache.ensure(profile_id)

    async def copy_shared_files_into(
        self, profile_id: str, target_dir: str | os.PathLike
    ) -> list[Path]:
        return await self.cache.copy_into(profile_id, Path(target_dir))

    async def place_shared_files(
        self, design_path: str | os.PathLike, profile_id: str | None
    ) -> str | None:
        """Copy library files beside a design saved outside the workspace.

        Failures are non-fatal to the save that triggered this.

        Returns:
            An error message if copying failed, else ``None``.
        """
        if not profile_id or self.is_inside_workspace(design_path):
            return None
        try:
            await self.copy_shared_files_into(
                profile_id, Path(design_path).parent
            )
        except (SyncError, OSError) as exc:
            logger.warning("Library copy failed (non-fatal): %s", exc)
            return str(exc)
        return None

    # ------------------------------------------------------------------
    # Proxy
    # ------------------------------------------------------------------

    def set_proxy(self, url: str | None, persist: bool = True) -> None:
        """Change the outbound proxy for the next remote call."""
        if url:
            url = validate_proxy_url(url)
        self.client.set_proxy(url or None)
        if persist:
            self.preferences.set("proxy", url or "")
