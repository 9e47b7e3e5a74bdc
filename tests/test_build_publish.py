"""Tests for bulk_release.build and bulk_release.publish."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from bulk_release.build import build
from bulk_release.models import Package
from bulk_release.publish import publish, write_manifest


class TestBuild:
    @pytest.mark.asyncio
    async def test_releasing_deps_first(self, make_package: Callable[..., Package]) -> None:
        a = make_package("a")
        a.release_type = "patch"
        skipped = make_package("s")
        b = make_package("b", deps=["a", "s", "lodash"])
        packages = {"a": a, "s": skipped, "b": b}
        calls: list[tuple[str, str]] = []

        async def run_cmd(pkg: Package, name: str) -> None:
            calls.append((pkg.name, name))

        async def build_dep(dep: Package, pkgs: dict[str, Package]) -> None:
            calls.append((dep.name, "build"))

        await build(b, packages, run_cmd, build_dep)

        assert calls == [("a", "build"), ("b", "build_cmd"), ("b", "test_cmd")]


class TestPublish:
    @pytest.mark.asyncio
    async def test_steps_in_order(self, tmp_path: Path, make_package: Callable[..., Package]) -> None:
        pkg = make_package("a")
        pkg.manifest_path = str(tmp_path / "package.json")
        pkg.manifest["version"] = "1.0.1"
        order: list[str] = []

        async def run_cmd(p: Package, name: str) -> None:
            order.append(name)

        push_tag = AsyncMock(side_effect=lambda p: order.append("tag"))
        push_meta = AsyncMock(side_effect=lambda p: order.append("meta"))

        await publish(pkg, run_cmd, push_tag, push_meta)

        assert order == ["tag", "meta", "publish_cmd"]
        assert json.loads((tmp_path / "package.json").read_text())["version"] == "1.0.1"

    @pytest.mark.asyncio
    async def test_private_package_not_published(self, tmp_path: Path, make_package: Callable[..., Package]) -> None:
        pkg = make_package("a", private=True)
        pkg.manifest_path = str(tmp_path / "package.json")
        run_cmd = AsyncMock()

        await publish(pkg, run_cmd, AsyncMock(), AsyncMock())

        run_cmd.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_npm_publish_disabled(self, tmp_path: Path, make_package: Callable[..., Package]) -> None:
        pkg = make_package("a")
        pkg.manifest_path = str(tmp_path / "package.json")
        pkg.config.npm_publish = False
        run_cmd = AsyncMock()
        push_tag = AsyncMock()

        await publish(pkg, run_cmd, push_tag, AsyncMock())

        push_tag.assert_awaited_once_with(pkg)
        run_cmd.assert_not_awaited()


def test_write_manifest_trailing_newline(tmp_path: Path, make_package: Callable[..., Package]) -> None:
    pkg = make_package("a")
    pkg.manifest_path = str(tmp_path / "package.json")

    write_manifest(pkg)

    text = (tmp_path / "package.json").read_text()
    assert text.endswith("}\n")
    assert json.loads(text) == {"name": "a", "version": "1.0.0"}
