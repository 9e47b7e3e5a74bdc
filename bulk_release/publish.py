"""Publish step: persist the new version, tag it, record it, ship it."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from pathlib import Path

from .build import RunCmd
from .models import Package

PushTagFn = Callable[[Package], Awaitable[object]]
PushMetaFn = Callable[[Package], Awaitable[None]]


def write_manifest(pkg: Package) -> None:
    """Write the in-memory manifest (new version, new deps) to package.json."""
    Path(pkg.manifest_path).write_text(json.dumps(pkg.manifest, indent=2) + "\n")


async def publish(pkg: Package, run_cmd: RunCmd, push_tag: PushTagFn, push_meta: PushMetaFn) -> None:
    """Release a built package.

    1. Write the new version and dependency declarations to package.json
    2. Push the release tag
    3. Push the release metadata artifact
    4. Run publish_cmd, unless disabled or the package is private
    """
    write_manifest(pkg)
    await push_tag(pkg)
    await push_meta(pkg)

    if pkg.config.npm_publish and not pkg.manifest.get("private"):
        await run_cmd(pkg, "publish_cmd")
