"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from bulk_release.models import Package


def _write_manifest(pkg_dir: Path, manifest: dict) -> Path:
    pkg_dir.mkdir(parents=True, exist_ok=True)
    path = pkg_dir / "package.json"
    path.write_text(json.dumps(manifest, indent=2))
    return path


def _make_package(name: str, version: str = "1.0.0", deps: list[str] | None = None, **manifest: object) -> Package:
    return Package(
        name=name,
        abs_path=f"/repo/packages/{name}",
        rel_path=f"packages/{name}",
        manifest_path=f"/repo/packages/{name}/package.json",
        manifest={"name": name, "version": version, **manifest},
        deps=deps or [],
    )


@pytest.fixture
def make_package() -> Callable[..., Package]:
    """Factory for in-memory packages that never touch the filesystem."""
    return _make_package


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a yarn-style workspace: b depends on a, c depends on b."""
    _write_manifest(
        tmp_path,
        {"name": "root", "private": True, "workspaces": ["packages/*"]},
    )
    _write_manifest(tmp_path / "packages" / "a", {"name": "a", "version": "1.0.0"})
    _write_manifest(
        tmp_path / "packages" / "b",
        {"name": "b", "version": "1.0.0", "dependencies": {"a": "workspace:^"}},
    )
    _write_manifest(
        tmp_path / "packages" / "c",
        {
            "name": "c",
            "version": "1.0.0",
            "devDependencies": {"b": "^1.0.0", "left-pad": "^1.3.0"},
        },
    )
    return tmp_path
