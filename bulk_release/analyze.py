"""Release analysis: does a package need a release, and which version?

Changes come from two sources: commits that touched the package directory
since its last release tag, and internal dependency bumps reported by
deps.update_deps(). Commit messages are not classified; every commit counts
as a patch-level change.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping

from . import git
from .deps import update_deps
from .models import Change, Package
from .versions import RELEASE_TYPES, bump, is_valid

DEFAULT_VERSION = "1.0.0"

ChangesFn = Callable[[Package, str | None], Awaitable[list[Change]]]


async def get_semantic_changes(pkg: Package, ref: str | None) -> list[Change]:
    """List commits touching the package since ref as patch changes."""
    return [
        Change(group="Changes", release_type="patch", change="chore", subj=subj or sha)
        for sha, subj in await git.get_commits(pkg.abs_path, ref)
    ]


def get_release_type(changes: list[Change]) -> str | None:
    """Return the most severe release type among changes, or None if empty."""
    found = {change.release_type for change in changes}
    for release_type in RELEASE_TYPES:
        if release_type in found:
            return release_type
    return None


def resolve_pkg_version(release_type: str | None, prev_version: str | None, manifest_version: str | None) -> str:
    """Compute the version of the next release.

    Without a previous release tag, the manifest version is released as is
    (falling back to 1.0.0). Without a release type, the version stays put.
    """
    if not prev_version:
        return manifest_version if is_valid(manifest_version) else DEFAULT_VERSION
    if release_type is None:
        return prev_version
    return bump(prev_version, release_type)


async def analyze(
    pkg: Package,
    packages: Mapping[str, Package],
    get_changes: ChangesFn = get_semantic_changes,
) -> None:
    """Fill pkg.changes, pkg.release_type and pkg.version.

    Internal dependency declarations in pkg.manifest are rewritten as a
    side effect. Expects pkg.latest to be populated and the packages it
    depends on to be analyzed already.
    """
    tag = pkg.latest.tag
    semantic_changes = await get_changes(pkg, tag.ref if tag else None)
    deps_changes = update_deps(pkg, packages)
    changes = [*semantic_changes, *deps_changes]

    pkg.changes = changes
    pkg.release_type = get_release_type(changes)
    pkg.version = resolve_pkg_version(
        pkg.release_type, tag.version if tag else None, pkg.manifest_version
    )
    pkg.manifest["version"] = pkg.version
