"""Release metadata: what a package looked like when it was last published.

After each publish a small JSON artifact (name, commit hash, version and the
four dependency scopes) is committed to a dedicated branch, keyed by the
release tag. The next run reads it back to compare dependency declarations
against what was actually released, so that a bump is reported only once.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

from . import git
from .deps import DEP_SCOPES
from .models import Latest, Package, ReleaseMeta, Tag
from .shell import CommandError, exec_cmd
from .tags import format_tag, get_artifact_path, get_latest_tag


def build_meta(pkg: Package) -> ReleaseMeta:
    """Snapshot the package as it is about to be published."""
    scopes = {scope: pkg.manifest.get(scope) for scope in DEP_SCOPES}
    return ReleaseMeta(
        name=pkg.name,
        hash=pkg.context.git.sha,
        version=pkg.version or "",
        **scopes,
    )


async def push_meta(pkg: Package) -> None:
    """Commit the release metadata artifact of a package to the meta branch."""
    tag = pkg.context.git.tag or format_tag(pkg.name, pkg.version or "")
    if tag is None:
        raise ValueError(f"Cannot format a release tag for {pkg.name}@{pkg.version}")

    meta = build_meta(pkg)
    await git.push_commit(
        pkg.context.git.root or pkg.abs_path,
        branch=pkg.config.meta_branch,
        msg=f"chore: release meta {pkg.name} {pkg.version}",
        files={f"{get_artifact_path(tag)}.json": meta.model_dump(by_alias=True)},
        committer_name=pkg.config.git_committer_name,
        committer_email=pkg.config.git_committer_email,
    )


async def _read_json(cwd: str, branch: str, relpath: str) -> dict[str, Any] | None:
    contents = await git.read_branch_file(cwd, branch, relpath)
    if contents is None:
        return None
    try:
        data = json.loads(contents)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


async def get_latest_meta(cwd: str, tag: str | None, branch: str = "meta") -> dict[str, Any] | None:
    """Read the metadata artifact stored for a release tag.

    Two artifact layouts exist on the meta branch: "<key>.json" and the
    older "<key>/meta.json". They are tried in that order.
    """
    if not tag:
        return None

    key = get_artifact_path(tag)
    for relpath in (f"{key}.json", f"{key}/meta.json"):
        meta = await _read_json(cwd, branch, relpath)
        if meta is not None:
            return meta
    return None


async def fetch_manifest(pkg: Package, tag: Tag | None = None) -> dict[str, Any] | None:
    """Fetch the published manifest of a package from the npm registry.

    Returns None if the package (or that version of it) was never published
    or the registry cannot be reached.
    """
    spec = f"{pkg.name}@{tag.version}" if tag else pkg.name
    try:
        out = await exec_cmd(f"npm view {spec} --json", cwd=pkg.abs_path)
    except CommandError:
        return None

    try:
        data = json.loads(out) if out else None
    except json.JSONDecodeError:
        return None
    # npm view returns a list when a range matches several versions
    if isinstance(data, list):
        data = data[-1] if data else None
    return data if isinstance(data, dict) else None


async def get_latest(pkg: Package, fetch: Callable[[str, str], Awaitable[None]] = git.fetch_branch) -> Latest:
    """Find the last release tag of a package and its published snapshot.

    The snapshot comes from the meta branch when available, otherwise from
    the registry's copy of the manifest.

    Args:
        pkg: Package to look up; its git root is used when already known.
        fetch: Brings origin/<meta branch> up to date. The pipeline passes
               a memoized one so the branch is fetched once per run.
    """
    cwd = pkg.context.git.root or pkg.abs_path
    tag = await get_latest_tag(cwd, pkg.name)
    meta = None
    if tag:
        await fetch(cwd, pkg.config.meta_branch)
        meta = await get_latest_meta(cwd, tag.ref, pkg.config.meta_branch)
    if meta is None:
        meta = await fetch_manifest(pkg, tag)
    return Latest(tag=tag, meta=meta)
