"""Synchronous key-value preferences store.

Holds the user's choices that outlive a process: the workspace root and
the outbound proxy.  The file is small JSON, read fresh on every
``get()`` so a value changed by another process is seen by the next
init/update/save decision.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PREFS: dict[str, Any] = {
    "workspace_dir": "",
    "proxy": "",
}


class Preferences:
    """JSON-file backed preferences.

    Args:
        path: Location of the preferences file.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        """Return stored preferences merged over ``DEFAULT_PREFS``.

        A missing or unreadable file yields the defaults.
        """
        prefs = dict(DEFAULT_PREFS)
        if not self.path.exists():
            return prefs
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences %s: %s", self.path, exc)
            return prefs
        if isinstance(data, dict):
            prefs.update(data)
        return prefs

    def save(self, prefs: dict[str, Any]) -> None:
        """Write *prefs* atomically, creating the parent directory."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(prefs, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        prefs = self.load()
        prefs[key] = value
        self.save(prefs)

    @property
    def workspace_dir(self) -> str:
        """Configured workspace root, ``""`` when unset."""
        return self.get("workspace_dir") or ""
