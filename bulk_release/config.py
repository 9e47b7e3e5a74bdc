"""Per-package release configuration.

Settings are merged from, lowest precedence first:
1. Built-in defaults (PackageConfig field defaults)
2. Workspace root release.toml
3. Workspace root package.json "release" key
4. Package release.toml
5. Package package.json "release" key

TOML files are read with tomlkit; keys may be written in snake_case or
kebab-case ("build-cmd" and "build_cmd" are the same setting).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import tomlkit
from pydantic import BaseModel, ConfigDict, ValidationError
from tomlkit.exceptions import ParseError

CONFIG_FILENAME = "release.toml"
MANIFEST_FILENAME = "package.json"


class ConfigError(ValueError):
    """Raised when a config source cannot be read or fails validation."""


class PackageConfig(BaseModel):
    """Release settings for one package.

    Attributes:
        build_cmd: Command template run to build the package. Empty skips.
        test_cmd: Command template run after a successful build. Empty skips.
        publish_cmd: Command template run to publish the package.
        npm_publish: If False, publish_cmd is not run (tags and meta still are).
        git_committer_name: Author of meta commits and release tags.
        git_committer_email: Author email of meta commits and release tags.
        meta_branch: Branch that stores release-metadata artifacts.
    """

    model_config = ConfigDict(extra="ignore")

    build_cmd: str = ""
    test_cmd: str = ""
    publish_cmd: str = "npm publish --no-git-tag-version"
    npm_publish: bool = True
    git_committer_name: str = "Semrel Extra Bot"
    git_committer_email: str = "semrel-extra-bot@hotmail.com"
    meta_branch: str = "meta"


class Flags(BaseModel):
    """Command-line flags that shape a whole run.

    Attributes:
        dry_run: Build without publishing.
        concurrency: Max concurrently running commands. None means one per
                     logical CPU.
        debug: Echo debug-level events.
        report: Path the run-state snapshot is written to on every change.
    """

    dry_run: bool = False
    concurrency: int | None = None
    debug: bool = False
    report: str | None = None


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Read a release.toml file. Returns {} if the file does not exist."""
    if not path.exists():
        return {}
    try:
        doc = tomlkit.parse(path.read_text())
    except (OSError, ParseError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    return _normalize_keys(doc.unwrap())


def load_manifest_config(path: Path) -> dict[str, Any]:
    """Read the "release" key of a package.json. Returns {} if absent."""
    if not path.exists():
        return {}
    try:
        manifest = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    release = manifest.get("release")
    return _normalize_keys(release) if isinstance(release, dict) else {}


def get_pkg_config(pkg_dir: str | Path, root_dir: str | Path | None = None) -> PackageConfig:
    """Build the effective PackageConfig for a package directory.

    Raises:
        ConfigError: If a source cannot be parsed or a value has the wrong type.
    """
    dirs = [Path(pkg_dir)]
    if root_dir is not None and Path(root_dir).resolve() != Path(pkg_dir).resolve():
        dirs.insert(0, Path(root_dir))

    merged: dict[str, Any] = {}
    for d in dirs:
        merged.update(load_toml_config(d / CONFIG_FILENAME))
        merged.update(load_manifest_config(d / MANIFEST_FILENAME))

    try:
        return PackageConfig(**merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid release config for {pkg_dir}: {exc}") from exc
