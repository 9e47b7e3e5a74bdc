"""Tests for bulk_release.config."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bulk_release.config import ConfigError, PackageConfig, get_pkg_config, load_toml_config


class TestLoadTomlConfig:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_toml_config(tmp_path / "release.toml") == {}

    def test_kebab_keys_normalized(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text('build-cmd = "yarn build"\nnpm_publish = false\n')
        assert load_toml_config(path) == {"build_cmd": "yarn build", "npm_publish": False}

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "release.toml"
        path.write_text("build_cmd = = nope\n")
        with pytest.raises(ConfigError):
            load_toml_config(path)


class TestGetPkgConfig:
    def test_defaults(self, tmp_path: Path) -> None:
        config = get_pkg_config(tmp_path)
        assert config == PackageConfig()
        assert config.publish_cmd == "npm publish --no-git-tag-version"
        assert config.npm_publish is True
        assert config.meta_branch == "meta"

    def test_precedence(self, tmp_path: Path) -> None:
        """Package settings override root ones; package.json beats release.toml."""
        root = tmp_path
        pkg = tmp_path / "packages" / "a"
        pkg.mkdir(parents=True)

        (root / "release.toml").write_text(
            'build_cmd = "root-toml"\ntest_cmd = "root-toml"\nmeta_branch = "root-toml"\n'
        )
        (root / "package.json").write_text(
            json.dumps({"release": {"test_cmd": "root-json", "publish_cmd": "root-json"}})
        )
        (pkg / "release.toml").write_text('publish_cmd = "pkg-toml"\ngit-committer-name = "pkg-toml"\n')
        (pkg / "package.json").write_text(json.dumps({"name": "a", "release": {"git_committer_name": "pkg-json"}}))

        config = get_pkg_config(pkg, root)

        assert config.build_cmd == "root-toml"
        assert config.meta_branch == "root-toml"
        assert config.test_cmd == "root-json"
        assert config.publish_cmd == "pkg-toml"
        assert config.git_committer_name == "pkg-json"

    def test_root_package_reads_once(self, tmp_path: Path) -> None:
        (tmp_path / "release.toml").write_text('build_cmd = "make"\n')
        assert get_pkg_config(tmp_path, tmp_path).build_cmd == "make"

    def test_unknown_keys_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "release.toml").write_text('changelog = "CHANGELOG.md"\n')
        assert get_pkg_config(tmp_path) == PackageConfig()

    def test_wrong_type(self, tmp_path: Path) -> None:
        (tmp_path / "release.toml").write_text("npm_publish = [1, 2]\n")
        with pytest.raises(ConfigError, match="Invalid release config"):
            get_pkg_config(tmp_path)

    def test_broken_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{not json")
        with pytest.raises(ConfigError):
            get_pkg_config(tmp_path)
