"""Profile registry: the static description of every remote library source.

A profile names one remote repository, the ref to read from, the regex
that recognises documents written against it, and the local layout of
its subtree inside a workspace::

    {workspace}/{profile.id}/{profile.lib_dir}/...
    {workspace}/{profile.id}/{profile.designs_dir}/...
    {workspace}/{profile.id}/.manifest.json

Profile ids end up in directory names and manifest paths, so they must
never change shape once released.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from pathlib import Path, PurePosixPath

from pydantic import field_validator

from .config_schema import ProfileConfig
from .errors import UnknownProfileError
from .file_handler import read_file_with_encoding
from .validators import validate_profile_id

logger = logging.getLogger(__name__)

# include <foo.scad>; / use <lib/foo.scad>
_DIRECTIVE_PATTERN = re.compile(
    r"^\s*(?:include|use)\s*<([^>]+)>", re.MULTILINE
)


class Profile(ProfileConfig):
    """A registered profile: ``ProfileConfig`` plus its identifier."""

    id: str

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        ok, reason = validate_profile_id(value)
        if not ok:
            raise ValueError(reason)
        return value

    @property
    def lib_prefix(self) -> str:
        """Profile-relative prefix of shared library paths (``lib/``)."""
        return self.lib_dir.strip("/") + "/"

    def is_library_path(self, rel_path: str) -> bool:
        """Return ``True`` if *rel_path* lies under the shared library dir."""
        return rel_path.replace("\\", "/").startswith(self.lib_prefix)

    def to_relative(self, repo_path: str) -> str | None:
        """Strip ``release_root`` from a repo path.

        Returns ``None`` for paths outside the release root.
        """
        if not repo_path.startswith(self.release_root):
            return None
        return repo_path[len(self.release_root) :]

    def wants(self, repo_path: str) -> bool:
        """Return ``True`` if a listed repo path should be synchronised."""
        return repo_path.startswith(self.release_root) and repo_path.endswith(
            self.extension
        )

    def matches(self, text: str) -> bool:
        """Test the include-detection pattern against *text*."""
        return re.search(self.include_pattern, text, re.IGNORECASE) is not None

    def shared_basenames(self) -> list[str]:
        """Flat cache names of the shared library files."""
        return [PurePosixPath(f).name for f in self.files]


# ---------------------------------------------------------------------------
# Built-in profiles
# ---------------------------------------------------------------------------

BUILTIN_PROFILES: dict[str, dict] = {
    "bit": {
        "name": "Boardgame Insert Toolkit",
        "repo": "dppdppd/The-Boardgame-Insert-Toolkit",
        "branch": "master",
        "include": "boardgame_insert_toolkit_lib.4.scad",
        "include_pattern": r"boardgame_insert_toolkit_lib",
        "designs_dir": "designs",
        "files": [
            "release/lib/boardgame_insert_toolkit_lib.4.scad",
            "release/lib/bit_functions_lib.4.scad",
        ],
    },
    "ctd": {
        "name": "Counter Tray Designer",
        "repo": "dppdppd/Counter-Tray-Designer",
        "branch": "main",
        "include": "counter_tray_lib.scad",
        "include_pattern": r"counter_tray_lib",
        "designs_dir": "designs",
        "files": [
            "release/lib/counter_tray_lib.scad",
        ],
    },
}


class ProfileRegistry:
    """Ordered, read-only lookup table of profiles.

    Iteration order is registration order; the sync engine processes
    profiles in that order and ``detect()`` uses it to break ties.
    """

    def __init__(self, profiles: list[Profile] | None = None) -> None:
        self._profiles: dict[str, Profile] = {}
        for profile in profiles or []:
            if profile.id in self._profiles:
                raise ValueError(f"Duplicate profile id: {profile.id}")
            self._profiles[profile.id] = profile

    @classmethod
    def from_config(
        cls, section: Mapping[str, ProfileConfig | dict] | None = None
    ) -> ProfileRegistry:
        """Build a registry from the config ``profiles`` section.

        An empty or missing section selects the built-in profiles.
        """
        source = section or BUILTIN_PROFILES
        profiles = []
        for profile_id, data in source.items():
            if isinstance(data, ProfileConfig):
                data = data.model_dump()
            profiles.append(Profile(id=profile_id, **data))
        return cls(profiles)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, profile_id: str) -> Profile | None:
        return self._profiles.get(profile_id)

    def require(self, profile_id: str) -> Profile:
        """Return the profile or raise ``UnknownProfileError``."""
        profile = self._profiles.get(profile_id)
        if profile is None:
            raise UnknownProfileError(profile_id)
        return profile

    def ids(self) -> list[str]:
        return list(self._profiles)

    def __iter__(self) -> Iterator[Profile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, profile_id: object) -> bool:
        return profile_id in self._profiles

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(self, text: str) -> str | None:
        """Return the id of the first profile whose pattern matches *text*.

        *text* is an include filename or a whole include directive.
        Patterns are expected to be mutually exclusive; when they are not
        the first registered profile wins and the overlap is logged.
        """
        matched = [p.id for p in self if p.matches(text)]
        if not matched:
            return None
        if len(matched) > 1:
            logger.warning(
                "Include '%s' matches several profiles %s, using '%s'",
                text,
                matched,
                matched[0],
            )
        return matched[0]

    def detect_file(self, path: Path) -> str | None:
        """Detect the profile of a design file from its include directives."""
        content, _ = read_file_with_encoding(path)
        for directive in _DIRECTIVE_PATTERN.findall(content):
            profile_id = self.detect(directive)
            if profile_id is not None:
                return profile_id
        return None
