"""Release pipeline: discover → analyze → build → publish.

This module orchestrates a bulk release of a monorepo:
1. Discover all workspace packages and their topological queue
2. Analyze every package (in dependency order): last release tag, changes
   since then, internal dependency bumps, next version
3. Build every package that has something to release, dependencies first
4. Publish it: manifest, release tag, metadata artifact, registry

Steps 2 and 3-4 are two separate passes over the queue. Within a pass, a
package starts as soon as all of its dependencies finished that same pass,
so independent branches of the graph progress concurrently. Shell commands
run through a worker pool bounded by the concurrency flag.

Any error aborts the whole run: outstanding work is cancelled, the run state
is marked failure, and the error is re-raised.
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from . import analyze as analyzer
from . import build as builder
from . import git
from . import graph as workspace
from . import meta
from . import publish as publisher
from . import shell
from .concurrency import memoize_by, queuefy, traverse_queue
from .config import Flags, PackageConfig, get_pkg_config
from .models import GitContext, Latest, Package, PackageContext
from .shell import cpu_count, step
from .state import RunState, Status
from .tags import format_tag, push_release_tag
from .template import template_context, tpl


async def read_git_context(pkg: Package) -> GitContext:
    return GitContext(sha=await git.get_sha(pkg.abs_path), root=await git.get_root(pkg.abs_path))


@dataclass
class Collaborators:
    """Everything the pipeline reaches outside the process for.

    Defaults talk to the real workspace, git and npm; tests swap in fakes.
    """

    topo: Callable[[str], Awaitable[workspace.Graph]] = workspace.topo
    get_config: Callable[[str, str | None], PackageConfig] = get_pkg_config
    get_latest: Callable[..., Awaitable[Latest]] = meta.get_latest
    get_git_context: Callable[[Package], Awaitable[GitContext]] = read_git_context
    fetch_branch: Callable[[str, str], Awaitable[None]] = git.fetch_branch
    get_changes: analyzer.ChangesFn = analyzer.get_semantic_changes
    exec_cmd: Callable[..., Awaitable[str]] = shell.exec_cmd
    push_tag: Callable[[Package], Awaitable[Any]] = push_release_tag
    push_meta: Callable[[Package], Awaitable[None]] = meta.push_meta


@dataclass
class RunContext:
    """Per-run wiring: state, bounded command runner, memoized steps."""

    flags: Flags
    env: dict[str, str]
    collaborators: Collaborators
    state: RunState = field(init=False)

    def __post_init__(self) -> None:
        self.state = RunState(file=self.flags.report, debug=self.flags.debug or bool(self.env.get("DEBUG")))
        self.exec_cmd = queuefy(self.collaborators.exec_cmd, self.flags.concurrency or cpu_count())
        # Meta commits go to one branch; pushing them concurrently would race
        self.push_meta = queuefy(self.collaborators.push_meta, 1)
        self.fetch_branch = memoize_by(self.collaborators.fetch_branch, key=lambda cwd, branch: (cwd, branch))
        self.build = memoize_by(self._build, key=lambda pkg, packages: pkg.name)
        self.publish = memoize_by(self._publish, key=lambda pkg: pkg.name)

    async def run_cmd(self, pkg: Package, name: str) -> None:
        """Render and run one of the package's configured commands."""
        cmd = tpl(getattr(pkg.config, name), template_context(pkg))
        if not cmd:
            return

        self.state.log(pkg.name)(f"run {name} '{cmd}'")
        out = await self.exec_cmd(cmd, cwd=pkg.abs_path, env=pkg.context.env)
        if out:
            self.state.log(pkg.name, "debug")(out)

    async def _build(self, pkg: Package, packages: Mapping[str, Package]) -> None:
        await builder.build(pkg, packages, self.run_cmd, self.build)

    async def _publish(self, pkg: Package) -> None:
        self.state.log(pkg.name)(f"publish {pkg.version}")
        await publisher.publish(pkg, self.run_cmd, self.collaborators.push_tag, self.push_meta)


async def contextify(pkg: Package, root: Package, ctx: RunContext) -> None:
    """Attach config, git context and last release info to a package."""
    deps = ctx.collaborators
    pkg.config = deps.get_config(pkg.abs_path, root.abs_path)
    pkg.context = PackageContext(git=await deps.get_git_context(pkg), env=ctx.env)
    pkg.latest = await deps.get_latest(pkg, fetch=ctx.fetch_branch)


def _mark(state: RunState, name: str, status: Status) -> None:
    state.set_status(status, name)
    # The run status follows whichever phase a package entered last
    if status in (Status.BUILDING, Status.PUBLISHING) and state.status != status:
        state.set_status(status)


def _fail_package(state: RunState, name: str) -> None:
    if state.get_status(name) not in (Status.SKIPPED, Status.SUCCESS, Status.FAILURE):
        state.set_status(Status.FAILURE, name)


async def run(
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    flags: Flags | None = None,
    collaborators: Collaborators | None = None,
) -> RunState:
    """Execute a full bulk release of the workspace at cwd.

    Args:
        cwd: Workspace root; defaults to the current directory.
        env: Variables layered over the process environment for commands.
        flags: Run flags (dry run, concurrency, debug, report path).
        collaborators: External integrations; defaults to the real ones.

    Returns:
        The final RunState (status success).

    Raises:
        Exception: Whatever failed first; the run state is left at failure.
    """
    ctx = RunContext(
        flags=flags or Flags(),
        env={**os.environ, **(env or {})},
        collaborators=collaborators or Collaborators(),
    )
    state = ctx.state
    log = state.log()
    cwd = str(cwd or Path.cwd())

    step("bulk-release")

    try:
        graph = await ctx.collaborators.topo(cwd)
        packages = graph.packages
        log("queue:", ", ".join(graph.queue))

        state.set_queue(graph.queue).set_packages(packages)
        state.set_status(Status.ANALYZING)

        async def analyze_one(name: str) -> None:
            pkg = packages[name]
            state.set_status(Status.ANALYZING, name)
            try:
                prev_version = pkg.manifest_version
                await contextify(pkg, graph.root, ctx)
                await analyzer.analyze(pkg, packages, ctx.collaborators.get_changes)
            except Exception:
                _fail_package(state, name)
                raise

            if pkg.release_type:
                pkg.context.git.tag = format_tag(pkg.name, pkg.version or "")
                state.log(name)(f"{len(pkg.changes)} change(s), {pkg.release_type} release {pkg.version}")
            else:
                state.log(name)("no changes since last release")

            prev_tag = pkg.latest.tag
            (
                state.set("config", pkg.config.model_dump(), name)
                .set("version", pkg.version, name)
                .set("prevVersion", prev_tag.version if prev_tag else prev_version, name)
                .set("releaseType", pkg.release_type, name)
                .set("tag", pkg.tag, name)
            )

        await traverse_queue(graph.queue, graph.prev, analyze_one)
        state.set_status(Status.PENDING)

        step("Building and publishing")

        async def release_one(name: str) -> None:
            pkg = packages[name]
            if not pkg.release_type:
                state.set_status(Status.SKIPPED, name)
                return

            try:
                _mark(state, name, Status.BUILDING)
                await ctx.build(pkg, packages)

                if ctx.flags.dry_run:
                    state.set_status(Status.SUCCESS, name)
                    return

                _mark(state, name, Status.PUBLISHING)
                await ctx.publish(pkg)
            except Exception:
                _fail_package(state, name)
                raise

            state.set_status(Status.SUCCESS, name)

        await traverse_queue(graph.queue, graph.prev, release_one)
    except Exception as e:
        state.log(level="error")(f"{type(e).__name__}: {e}")
        state.set("error", f"{type(e).__name__}: {e}").set_status(Status.FAILURE)
        raise

    state.set_status(Status.SUCCESS)
    log("Great success!")
    return state
