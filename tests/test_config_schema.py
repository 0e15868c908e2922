"""Tests for scad_library_sync.config_schema — Pydantic config models."""

import pytest
from pydantic import ValidationError

from scad_library_sync.config_schema import (
    LoggingConfig,
    ProfileConfig,
    RemoteConfig,
    UnifiedConfig,
    build_config,
)


class TestBuildConfig:
    def test_empty_dict_gives_defaults(self):
        config = build_config({})
        assert config == UnifiedConfig()
        assert config.remote.api_url == "https://api.github.com"
        assert config.logging == LoggingConfig()
        assert config.profiles == {}

    def test_full_config(self):
        config = build_config(
            {
                "remote": {"proxy": "http://p:1", "read_timeout": 5},
                "logging": {"level": "DEBUG", "file": "/tmp/x.log"},
                "cache_dir": "/var/cache/scad",
                "profiles": {
                    "bit": {
                        "name": "BIT",
                        "repo": "dppdppd/The-Boardgame-Insert-Toolkit",
                        "branch": "master",
                        "include_pattern": "boardgame_insert_toolkit_lib",
                        "files": ["release/lib/bit_functions_lib.4.scad"],
                    }
                },
            }
        )
        assert config.remote.proxy == "http://p:1"
        assert config.remote.read_timeout == 5
        assert config.logging.level == "DEBUG"
        assert config.profiles["bit"].branch == "master"
        assert config.profiles["bit"].lib_dir == "lib"

    def test_unknown_section_type_rejected(self):
        with pytest.raises(ValidationError):
            build_config({"remote": "not-a-mapping"})

    def test_models_are_frozen(self):
        remote = RemoteConfig()
        with pytest.raises(ValidationError):
            remote.proxy = "http://x:1"


class TestRemoteConfig:
    @pytest.mark.parametrize("field", ["connect_timeout", "read_timeout"])
    def test_timeouts_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            RemoteConfig(**{field: 0})


class TestProfileConfig:
    def test_defaults(self):
        profile = ProfileConfig(name="X", repo="a/b", include_pattern="x")
        assert profile.branch == "main"
        assert profile.designs_dir == "designs"
        assert profile.release_root == "release/"
        assert profile.extension == ".scad"
        assert profile.files == []

    @pytest.mark.parametrize("repo", ["a", "a/b/c", "/a", "a/"])
    def test_repo_shape(self, repo):
        with pytest.raises(ValidationError):
            ProfileConfig(name="X", repo=repo, include_pattern="x")

    def test_empty_release_root_allowed(self):
        profile = ProfileConfig(
            name="X", repo="a/b", include_pattern="x", release_root=""
        )
        assert profile.release_root == ""

    def test_duplicate_file_basenames_rejected(self):
        with pytest.raises(ValidationError, match="share the basename 'util.scad'"):
            ProfileConfig(
                name="X",
                repo="a/b",
                include_pattern="x",
                files=["release/lib/util.scad", "release/extra/util.scad"],
            )

    def test_distinct_file_basenames_accepted(self):
        profile = ProfileConfig(
            name="X",
            repo="a/b",
            include_pattern="x",
            files=["release/lib/a.scad", "release/extra/b.scad"],
        )
        assert len(profile.files) == 2
