"""Dependency handling utilities.

Decides whether a manifest's internal dependency declarations must change
after the packages they point at were re-versioned, and rewrites them in place.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from nodesemver import satisfies

from .models import Change, Package
from .versions import clean_version, is_valid

DEP_SCOPES = ("dependencies", "devDependencies", "peerDependencies", "optionalDependencies")

# https://yarnpkg.com/features/workspaces#cross-references
_WORKSPACE_RE = re.compile(r"^workspace:(([\^~*])?.*)$")


def resolve_workspace_range(decl: str, actual: str) -> str:
    """Rewrite a ``workspace:`` declaration into a plain npm range.

    A bare modifier expands against the linked package's version, anything
    else (an exact version, a full range, or nothing at all) is kept as
    written after the prefix.

    Examples:
        resolve_workspace_range("workspace:^", "1.2.3") → "^1.2.3"
        resolve_workspace_range("workspace:*", "1.2.3") → "1.2.3"
        resolve_workspace_range("workspace:~1.0.0", "1.2.3") → "~1.0.0"
        resolve_workspace_range("workspace:1.2.3", "2.0.0") → "1.2.3"
    """
    m = _WORKSPACE_RE.match(decl)
    if m is None:
        return decl

    range_, modifier = m.group(1), m.group(2)
    if modifier is None or modifier != range_:
        return range_
    return actual if modifier == "*" else modifier + actual


def resolve_version(decl: str | None, actual: str | None, prev: str | None) -> str | None:
    """Compute the next value of one dependency declaration.

    Args:
        decl: Range currently declared in the working-tree manifest.
        actual: Version the linked workspace package is about to carry.
        prev: Value recorded for this dependency at the last release.

    Returns:
        The new declaration, or None when nothing needs to change.
    """
    if not decl or not is_valid(actual):
        return None

    if decl.startswith("workspace:"):
        decl = resolve_workspace_range(decl, actual)
        if not decl:
            return None  # bare "workspace:" pins nothing

    if not satisfies(clean_version(actual), decl):
        return None if actual == prev else actual

    return None if decl == prev else decl


def update_deps(pkg: Package, packages: Mapping[str, Package]) -> list[Change]:
    """Re-declare internal dependencies of a package and report the bumps.

    Only dependencies that are members of the workspace are considered.
    Declarations are compared against the snapshot of the last release, so a
    bump that was already published is not reported twice.

    Modifies pkg.manifest in place.
    """
    changes: list[Change] = []
    meta = pkg.latest.meta or {}

    for scope in DEP_SCOPES:
        deps = pkg.manifest.get(scope)
        if not deps:
            continue

        prev_deps = meta.get(scope) or {}
        for name, decl in list(deps.items()):
            if name not in packages:
                continue

            next_decl = resolve_version(decl, packages[name].version, prev_deps.get(name))
            if not next_decl:
                continue

            deps[name] = next_decl
            changes.append(
                Change(
                    group="Dependencies",
                    release_type="patch",
                    change="perf",
                    subj=f"perf: {name} updated to {next_decl}",
                )
            )

    return changes
