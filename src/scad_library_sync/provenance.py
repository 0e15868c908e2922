"""Provenance queries over a workspace.

Save and delete paths ask two questions before touching disk:

* ``is_inside_workspace`` -- does the file live in the managed workspace?
  (If not, shared library files must be copied next to it.)
* ``is_repo_owned`` -- is the file tracked by a profile manifest?  Tracked
  files are overwritten by the next update, so saving over them or
  deleting them through the editor is refused.

Both compare separator-normalised strings, so answers do not depend on
the platform path flavour of the caller.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path, PurePosixPath

from .profiles import ProfileRegistry
from .sync.manifest import MANIFEST_NAME, ManifestStore

logger = logging.getLogger(__name__)


def _normalize(path: str | os.PathLike) -> str:
    return os.fspath(path).replace("\\", "/").rstrip("/")


def is_inside_workspace(
    path: str | os.PathLike | None, root: str | os.PathLike | None
) -> bool:
    """Return ``True`` if *path* lies strictly below *root*.

    No configured workspace (``None`` or empty *root*) is never "inside".
    """
    if not root or not path:
        return False
    return _normalize(path).startswith(_normalize(root) + "/")


class ProvenanceOracle:
    """Answer ownership questions using the persisted manifests.

    Manifests are re-read on every query; the sync engine may have
    replaced them since the last call.
    """

    def __init__(
        self,
        registry: ProfileRegistry,
        manifest_store: ManifestStore | None = None,
    ) -> None:
        self.registry = registry
        self.store = manifest_store or ManifestStore()

    def is_inside_workspace(
        self,
        path: str | os.PathLike | None,
        root: str | os.PathLike | None,
    ) -> bool:
        return is_inside_workspace(path, root)

    def locate(
        self, path: str | os.PathLike, root: str | os.PathLike
    ) -> tuple[str, str] | None:
        """Return ``(profile_id, rel_path)`` for a path under a profile dir."""
        norm_path = _normalize(path)
        norm_root = _normalize(root)
        for profile in self.registry:
            profile_dir = f"{norm_root}/{profile.id}"
            if norm_path.startswith(profile_dir + "/"):
                return profile.id, norm_path[len(profile_dir) + 1 :]
        return None

    def is_repo_owned(
        self,
        path: str | os.PathLike | None,
        root: str | os.PathLike | None,
    ) -> str | None:
        """Return the owning profile id if *path* is a manifest key.

        Returns ``None`` for files outside every profile directory and
        for user files, including user files that sit on a path the
        remote also publishes.
        """
        if not root or not path:
            return None
        located = self.locate(path, root)
        if located is None:
            return None
        profile_id, rel_path = located
        manifest = self.store.load(Path(root) / profile_id)
        if rel_path in manifest["files"]:
            return profile_id
        return None

    def library_tree(self, root: str | os.PathLike) -> dict[str, dict]:
        """Group each profile's tracked design files by publisher.

        Returns:
            ``{profile_id: {"name": ..., "publishers": {pub: [{"name", "path"}]}}}``
            Profiles without tracked design files are omitted.  The
            publisher is the first path segment; the name is the rest of
            the path without its extension.
        """
        tree: dict[str, dict] = {}
        for profile in self.registry:
            manifest = self.store.load(Path(root) / profile.id)
            publishers: dict[str, list[dict[str, str]]] = {}
            for rel_path in sorted(manifest["files"]):
                if profile.is_library_path(rel_path):
                    continue
                if not rel_path.endswith(profile.extension):
                    continue
                parts = PurePosixPath(rel_path).parts
                if len(parts) < 2:
                    continue
                name = "/".join(parts[1:])[: -len(profile.extension)]
                publishers.setdefault(parts[0], []).append(
                    {
                        "name": name,
                        "path": str(Path(root) / profile.id / rel_path),
                    }
                )
            if publishers:
                tree[profile.id] = {
                    "name": profile.name,
                    "publishers": publishers,
                }
        return tree


class DesignFileWalker:
    """Lazy, restartable walk over the non-library files of a profile dir.

    Each ``iter()`` starts a fresh traversal, so the walker can be kept
    and re-run to reflect later changes on disk.  Directories are read
    one at a time with ``os.scandir``; nothing is materialised up front.

    Args:
        profile_dir: The profile directory to walk.
        lib_dir: Library subdirectory to skip (profile-relative).
        extension: Only yield files with this suffix; ``None`` for all.

    Yields:
        Profile-relative POSIX paths.
    """

    def __init__(
        self,
        profile_dir: Path,
        lib_dir: str = "lib",
        extension: str | None = ".scad",
    ) -> None:
        self.profile_dir = Path(profile_dir)
        self.lib_dir = lib_dir.strip("/")
        self.extension = extension

    def __iter__(self) -> Iterator[str]:
        return self._walk()

    def _walk(self) -> Iterator[str]:
        pending = [""]
        while pending:
            rel_dir = pending.pop()
            try:
                with os.scandir(self.profile_dir / rel_dir) as entries:
                    children = sorted(entries, key=lambda e: e.name)
            except FileNotFoundError:
                continue
            subdirs = []
            for entry in children:
                rel = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
                if entry.is_dir(follow_symlinks=False):
                    if rel != self.lib_dir:
                        subdirs.append(rel)
                    continue
                if entry.name == MANIFEST_NAME or entry.name.endswith(".tmp"):
                    continue
                if self.extension and not entry.name.endswith(self.extension):
                    continue
                yield rel
            # Depth-first, in name order
            pending.extend(reversed(subdirs))
