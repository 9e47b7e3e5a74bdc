"""Build step: run a package's build and test commands.

A package is built only after the releasing packages it depends on. The
recursion goes through the memoized build passed in by the pipeline, so a
dependency shared by several dependents is still built exactly once.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping

from .models import Package

RunCmd = Callable[[Package, str], Awaitable[None]]
BuildFn = Callable[[Package, Mapping[str, Package]], Awaitable[None]]


async def build(
    pkg: Package,
    packages: Mapping[str, Package],
    run_cmd: RunCmd,
    build_dep: BuildFn,
) -> None:
    """Build dependencies that are being released, then the package itself.

    Args:
        pkg: Package to build.
        packages: All workspace packages.
        run_cmd: Runs the named config command (e.g. "build_cmd") for a package.
        build_dep: Builder used for dependencies; normally the memoized build.
    """
    releasing = [packages[d] for d in pkg.deps if d in packages and packages[d].release_type]
    if releasing:
        await asyncio.gather(*(build_dep(dep, packages) for dep in releasing))

    await run_cmd(pkg, "build_cmd")
    await run_cmd(pkg, "test_cmd")
