"""Manifest persistence layer.

Each profile directory holds a ``.manifest.json`` recording which files
the sync engine placed there and the fingerprint of the remote content it
wrote::

    {
      "lastUpdated": "2026-01-01T00:00:00+00:00",
      "files": {"lib/foo.scad": "3a421c62179a0b1d", ...}
    }

A key in ``files`` means "the content at this path, if the file still
exists, came from the remote with this fingerprint".  It does not mean
the file exists; users may delete non-library files.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Corruption is not fatal** -- an unreadable or malformed manifest
  loads as empty.  That only costs the "skip unchanged" optimisation on
  the next update, never user data.
* **Dict-based manifest** -- callers build a fresh ``files`` dict during
  a pass and persist once at the end.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

MANIFEST_NAME = ".manifest.json"
FINGERPRINT_LENGTH = 16


def fingerprint(content: bytes) -> str:
    """Return a short, stable digest of *content*.

    SHA-256 truncated to ``FINGERPRINT_LENGTH`` hex characters (64 bits).
    Pure: equal bytes always give equal fingerprints.
    """
    return hashlib.sha256(content).hexdigest()[:FINGERPRINT_LENGTH]


def empty_manifest() -> dict:
    return {"lastUpdated": None, "files": {}}


class ManifestStore:
    """Load and save per-profile manifests."""

    def manifest_path(self, profile_dir: Path) -> Path:
        return profile_dir / MANIFEST_NAME

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self, profile_dir: Path) -> dict:
        """Load the manifest of *profile_dir*.

        Returns:
            The manifest dict.  A missing, unreadable or malformed file
            yields ``{"lastUpdated": None, "files": {}}``.
        """
        path = self.manifest_path(profile_dir)
        if not path.exists():
            return empty_manifest()

        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable manifest %s: %s", path, exc)
            return empty_manifest()

        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in files.items()
        ):
            logger.warning("Ignoring malformed manifest %s", path)
            return empty_manifest()

        last_updated = data.get("lastUpdated")
        return {
            "lastUpdated": last_updated if isinstance(last_updated, str) else None,
            "files": files,
        }

    def save(self, profile_dir: Path, manifest: dict) -> None:
        """Persist *manifest* atomically, stamping ``lastUpdated``.

        ``manifest["lastUpdated"]`` is set to the current UTC ISO 8601
        time before writing.  Creates *profile_dir* if needed.
        """
        profile_dir.mkdir(parents=True, exist_ok=True)
        manifest["lastUpdated"] = datetime.now(timezone.utc).isoformat()

        target = self.manifest_path(profile_dir)
        fd, tmp_path = tempfile.mkstemp(dir=str(profile_dir), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(manifest, fh, indent=2, sort_keys=False)
            os.replace(tmp_path, target)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def read_raw(self, profile_dir: Path) -> bytes | None:
        """Return the manifest file bytes, or ``None`` if absent."""
        path = self.manifest_path(profile_dir)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_tracked(self, manifest: dict, rel_path: str) -> bool:
        return rel_path in manifest.get("files", {})

    def tracked_paths(self, profile_dir: Path) -> list[str]:
        return sorted(self.load(profile_dir)["files"])
