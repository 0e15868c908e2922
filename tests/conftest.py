"""Shared pytest fixtures for scad-library-sync tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from dotenv import load_dotenv

from scad_library_sync.config import Config
from scad_library_sync.errors import FetchError, ListingError
from scad_library_sync.preferences import Preferences
from scad_library_sync.profiles import Profile, ProfileRegistry

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that talk to the real GitHub endpoints",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring network access to GitHub"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeRemoteClient:
    """In-memory stand-in for ``RemoteClient``.

    ``files`` maps ``"{profile_id}:{repo_path}"`` to content.  Listing
    returns every repo path of the profile in insertion order.
    """

    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files: dict[str, bytes] = dict(files or {})
        self.failing_listings: set[str] = set()
        self.failing_fetches: set[str] = set()
        self.fetch_calls: list[tuple[str, str]] = []
        self.list_calls: list[str] = []
        self.proxy_url: str | None = None

    def put(self, profile_id: str, repo_path: str, content: bytes) -> None:
        self.files[f"{profile_id}:{repo_path}"] = content

    def remove(self, profile_id: str, repo_path: str) -> None:
        del self.files[f"{profile_id}:{repo_path}"]

    def list_files(self, profile: Profile, subpath: str | None = None) -> list[str]:
        self.list_calls.append(profile.id)
        if profile.id in self.failing_listings:
            raise ListingError(profile.id, "HTTP 503 listing")
        prefix = profile.release_root if subpath is None else subpath
        paths = []
        for key in self.files:
            profile_id, repo_path = key.split(":", 1)
            if profile_id == profile.id and repo_path.startswith(prefix):
                paths.append(repo_path)
        return paths

    def fetch_content(self, profile: Profile, path: str) -> bytes:
        self.fetch_calls.append((profile.id, path))
        if path in self.failing_fetches:
            raise FetchError(path, 500)
        try:
            return self.files[f"{profile.id}:{path}"]
        except KeyError:
            raise FetchError(path, 404) from None

    def set_proxy(self, url: str | None) -> None:
        self.proxy_url = url


def make_profile(profile_id: str = "demo", **overrides) -> Profile:
    data = {
        "name": "Demo Toolkit",
        "repo": "example/demo-toolkit",
        "branch": "main",
        "include": "demo_lib.scad",
        "include_pattern": r"demo_lib",
        "files": ["release/lib/demo_lib.scad"],
    }
    data.update(overrides)
    return Profile(id=profile_id, **data)


@pytest.fixture
def profile_factory():
    """Build profiles with overridable fields."""
    return make_profile


@pytest.fixture
def demo_profile() -> Profile:
    return make_profile()


@pytest.fixture
def registry(demo_profile) -> ProfileRegistry:
    return ProfileRegistry([demo_profile])


@pytest.fixture
def fake_client() -> FakeRemoteClient:
    client = FakeRemoteClient()
    client.put("demo", "release/lib/demo_lib.scad", b"module demo() {}\n")
    client.put("demo", "release/alice/box.scad", b"include <demo_lib.scad>\nbox();\n")
    return client


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    return Config(
        cache_dir=str(tmp_path / "cache"),
        preferences_file=str(tmp_path / "prefs" / "preferences.json"),
    )


@pytest.fixture
def preferences(test_config) -> Preferences:
    return Preferences(Path(test_config.preferences_file))
