"""Shared-file cache for designs saved outside the workspace.

OpenSCAD resolves ``include <...>`` relative to the including file, so a
design saved anywhere on disk needs the profile's library files next to
it.  This cache keeps one flat copy of each profile's shared files::

    {cache_root}/{profile_id}/{basename}

Files are fetched the first time they are needed and never re-validated
against the remote; the cache has no expiry.  Copies into a target
directory never overwrite an existing file.
"""

import logging
from pathlib import Path, PurePosixPath

from .core.async_utils import run_sync
from .core.client import RemoteClient
from .file_handler import copy_if_absent, write_bytes_atomic
from .profiles import ProfileRegistry

logger = logging.getLogger(__name__)


class SharedFileCache:
    """Lazy per-profile cache of shared library files.

    Args:
        client: Remote access client.
        registry: Profile registry.
        cache_root: Directory holding one subdirectory per profile.
    """

    def __init__(
        self,
        client: RemoteClient,
        registry: ProfileRegistry,
        cache_root: Path,
    ) -> None:
        self.client = client
        self.registry = registry
        self.cache_root = Path(cache_root)

    def cache_dir(self, profile_id: str) -> Path:
        return self.cache_root / profile_id

    async def ensure(self, profile_id: str) -> Path:
        """Fetch any shared file of *profile_id* missing from the cache.

        Returns:
            The profile's cache directory.

        Raises:
            UnknownProfileError: If *profile_id* is not registered.
            FetchError: If a missing file cannot be fetched.  Files
                fetched before the failure stay cached.
        """
        profile = self.registry.require(profile_id)
        cache_dir = self.cache_dir(profile_id)
        await run_sync(cache_dir.mkdir, parents=True, exist_ok=True)

        for repo_path in profile.files:
            cached = cache_dir / PurePosixPath(repo_path).name
            if await run_sync(cached.exists):
                continue
            logger.info("Fetching %s from %s...", repo_path, profile.repo)
            content = await run_sync(self.client.fetch_content, profile, repo_path)
            await run_sync(write_bytes_atomic, cached, content)
            logger.info("Cached: %s", cached)

        return cache_dir

    async def copy_into(self, profile_id: str, target_dir: Path) -> list[Path]:
        """Copy the profile's shared files into *target_dir*.

        Existing files in *target_dir* are left alone, even if stale.

        Returns:
            Paths of the files that were copied.
        """
        cache_dir = await self.ensure(profile_id)
        profile = self.registry.require(profile_id)
        target_dir = Path(target_dir)

        copied: list[Path] = []
        for name in profile.shared_basenames():
            dst = target_dir / name
            if await run_sync(copy_if_absent, cache_dir / name, dst):
                logger.info("Copied library file: %s", dst)
                copied.append(dst)
        return copied
