"""
Hierarchical YAML configuration loader for scad_library_sync.

Finds config files by convention, expands ``!include`` directives and
``${VAR}`` references, and merges the files so the project-level file
wins over the user-level one.

Usage:
    from scad_library_sync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SCAD_SYNC_CONFIG"

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


# ---------------------------------------------------------------------------
# Env var interpolation
# ---------------------------------------------------------------------------


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` inside *value*.

    An unset or empty variable expands to its default, or to ``""`` when
    no default is given.  An unterminated ``${`` is left as is.
    """

    def _expand(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) if match.group(2) is not None else ""

    return _ENV_VAR_PATTERN.sub(_expand, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# YAML !include support
# ---------------------------------------------------------------------------


class IncludeLoader(yaml.SafeLoader):
    """``yaml.SafeLoader`` with an ``!include`` tag.

    A subclass keeps the tag off the global ``SafeLoader``.  Each load
    carries the chain of files being read so include cycles are caught.
    """


def _include_constructor(loader: IncludeLoader, node: yaml.ScalarNode) -> Any:
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    chain: list[Path] = getattr(loader, "include_chain", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in [*chain, target])
        raise ValueError(f"Circular include detected: {cycle}")

    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} (referenced from {Path(loader.name).resolve()})"
        )

    return load_yaml_file(target, include_chain=[*chain, target])


IncludeLoader.add_constructor("!include", _include_constructor)


def load_yaml_file(
    path: Path, *, include_chain: list[Path] | None = None
) -> Any:
    """Parse one YAML file, expanding ``!include`` tags relative to it."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = IncludeLoader(fh)
        loader.include_chain = include_chain or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery and merge
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Search order:
        1. ``SCAD_SYNC_CONFIG`` env var (explicit single path)
        2. ``.scad_sync/config.yml`` in CWD
        3. ``.scad_sync/config.yaml`` in CWD
        4. ``~/.config/scad_sync/config.yml``
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    cwd = Path.cwd()
    candidates.append(cwd / ".scad_sync" / "config.yml")
    candidates.append(cwd / ".scad_sync" / "config.yaml")
    candidates.append(Path.home() / ".config" / "scad_sync" / "config.yml")

    return [p for p in candidates if p.exists()]


def load_hierarchical_config(
    extra_files: list[Path] | None = None,
) -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are applied from lowest to highest precedence and each file's
    top-level keys replace those of earlier files (no deep merge).
    *extra_files* (e.g. ``--config`` on the command line) take precedence
    over everything discovered.  Environment references are expanded
    after merging.

    Returns an empty dict when there is nothing to load.
    """
    paths = [*(extra_files or []), *discover_config_files()]

    if not paths:
        logger.debug("No config files found, using built-in defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = load_yaml_file(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
