"""Unified configuration schema for scad_library_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the remote source, logging, and library profiles.

Usage:
    from scad_library_sync.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RemoteConfig(BaseModel):
    """Remote content source settings.

    All fields have defaults so a zero-config run talks to GitHub
    directly without a proxy.
    """

    api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the tree listing API",
    )
    raw_url: str = Field(
        default="https://raw.githubusercontent.com",
        description="Base URL for raw file downloads",
    )
    proxy: str | None = Field(
        default=None, description="Outbound HTTP(S) proxy URL"
    )
    token: str | None = Field(
        default=None, description="API token sent with listing calls"
    )
    connect_timeout: float = Field(
        default=10.0, gt=0, description="Connect timeout in seconds"
    )
    read_timeout: float = Field(
        default=60.0, gt=0, description="Read timeout in seconds"
    )
    user_agent: str = Field(
        default="scad-library-sync", description="User-Agent header"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class ProfileConfig(BaseModel):
    """One remote library source and its local directory conventions.

    Attributes:
        name: Display name.
        repo: ``owner/name`` of the remote repository.
        branch: Branch or ref to read from.
        include: Library filename used in generated include directives.
        include_pattern: Case-insensitive regex recognising documents
            that belong to this profile.
        designs_dir: Designs subdirectory inside the profile directory.
        lib_dir: Shared library subdirectory inside the profile directory.
        release_root: Remote prefix stripped from every listed path.
        extension: Only files with this suffix are synchronised.
        files: Repo-relative paths of the shared library files.
    """

    name: str
    repo: str
    branch: str = "main"
    include: str = ""
    include_pattern: str
    designs_dir: str = "designs"
    lib_dir: str = "lib"
    release_root: str = "release/"
    extension: str = ".scad"
    files: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, value: str) -> str:
        if value.count("/") != 1 or value.startswith("/") or value.endswith("/"):
            raise ValueError(f"repo must be 'owner/name', got '{value}'")
        return value

    @field_validator("include_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid include_pattern: {exc}") from None
        return value

    @field_validator("release_root")
    @classmethod
    def _check_release_root(cls, value: str) -> str:
        if value and not value.endswith("/"):
            value += "/"
        return value

    @field_validator("files")
    @classmethod
    def _check_files(cls, value: list[str]) -> list[str]:
        # The shared-file cache is flat, keyed by basename
        seen: dict[str, str] = {}
        for path in value:
            name = path.rsplit("/", 1)[-1]
            if name in seen:
                raise ValueError(
                    f"files '{seen[name]}' and '{path}' share the basename '{name}'"
                )
            seen[name] = path
        return value


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.  An empty
    ``profiles`` mapping means "use the built-in profiles".
    """

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    profiles: dict[str, ProfileConfig] = Field(default_factory=dict)
    cache_dir: str | None = Field(
        default=None, description="Shared-file cache directory"
    )
    preferences_file: str | None = Field(
        default=None, description="Preferences JSON file"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)

