"""Runtime configuration for scad_library_sync.

Reads remote, cache and preferences settings from CLI args, environment
variables, .env files, and the YAML config file.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    SCAD_SYNC_PROXY: Outbound HTTP(S) proxy URL (optional)
    SCAD_SYNC_GITHUB_TOKEN: Token for tree listing calls (optional)
    SCAD_SYNC_TIMEOUT: Read timeout in seconds (optional, default: 60)
    SCAD_SYNC_CACHE_DIR: Shared-file cache directory (optional)
    SCAD_SYNC_PREFS: Preferences JSON file (optional)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from .config_schema import ProfileConfig, RemoteConfig, UnifiedConfig

logger = logging.getLogger(__name__)


def default_cache_dir() -> Path:
    """Return the default shared-file cache directory."""
    xdg = os.getenv("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / "scad-library-sync" / "lib-cache"


def default_preferences_file() -> Path:
    """Return the default preferences file location."""
    return Path.home() / ".config" / "scad_sync" / "preferences.json"


@dataclass
class Config:
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    cache_dir: str = field(default_factory=lambda: str(default_cache_dir()))
    preferences_file: str = field(
        default_factory=lambda: str(default_preferences_file())
    )
    profiles: dict[str, ProfileConfig] = field(default_factory=dict)
    debug: bool = False


def validate_proxy_url(proxy: str) -> str:
    """Validate a proxy URL and return it stripped.

    Raises:
        ValueError: If the scheme is unsupported or the host is missing.
    """
    proxy = proxy.strip()
    parsed = urlparse(proxy)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(
            f"Invalid proxy URL '{proxy}': must start with http:// or https://"
        )
    if not parsed.hostname:
        raise ValueError(
            f"Invalid proxy URL '{proxy}': URL must include a hostname"
        )
    return proxy


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If a URL is malformed or the cache dir is empty.
    """
    for name in ("api_url", "raw_url"):
        value = getattr(config.remote, name)
        if not value.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid {name} '{value}': must start with http:// or https://"
            )

    if config.remote.proxy:
        validate_proxy_url(config.remote.proxy)

    if not config.cache_dir.strip():
        raise ValueError("Cache directory cannot be empty.")


def load_config(
    proxy: str | None = None,
    cache_dir: str | None = None,
    preferences_file: str | None = None,
    debug: bool = False,
    unified: UnifiedConfig | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > unified (YAML) config > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        proxy: Override proxy URL.
        cache_dir: Override shared-file cache directory.
        preferences_file: Override preferences file path.
        debug: Enable debug logging (CLI flag).
        unified: Config parsed from YAML files, used as fallback.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value from any source is invalid.
    """
    fb = unified or UnifiedConfig()

    final_proxy = proxy or os.getenv("SCAD_SYNC_PROXY") or fb.remote.proxy
    final_token = os.getenv("SCAD_SYNC_GITHUB_TOKEN") or fb.remote.token

    timeout_raw = os.getenv("SCAD_SYNC_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = float(timeout_raw)
        except ValueError:
            raise ValueError(
                f"Invalid SCAD_SYNC_TIMEOUT '{timeout_raw}': must be a positive number"
            ) from None
        if final_timeout <= 0:
            raise ValueError(
                f"Invalid SCAD_SYNC_TIMEOUT '{timeout_raw}': must be a positive number"
            )
    else:
        final_timeout = fb.remote.read_timeout

    final_cache = (
        cache_dir
        or os.getenv("SCAD_SYNC_CACHE_DIR")
        or fb.cache_dir
        or str(default_cache_dir())
    )
    final_prefs = (
        preferences_file
        or os.getenv("SCAD_SYNC_PREFS")
        or fb.preferences_file
        or str(default_preferences_file())
    )

    config = Config(
        remote=fb.remote.model_copy(
            update={
                "proxy": final_proxy or None,
                "token": final_token or None,
                "read_timeout": final_timeout,
            }
        ),
        cache_dir=str(Path(final_cache).expanduser()),
        preferences_file=str(Path(final_prefs).expanduser()),
        profiles=dict(fb.profiles),
        debug=debug,
    )

    validate_config(config)

    return config
