"""Dependency graph utilities.

Discovers the packages of an npm/yarn workspace and orders them so that when
package A depends on package B, B comes first.
"""

from __future__ import annotations

import glob
import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from .deps import DEP_SCOPES
from .models import Package


class CycleError(RuntimeError):
    """The workspace dependency graph is not a DAG."""


@dataclass
class Graph:
    """A workspace ready to be released.

    Attributes:
        packages: Map of package name → Package.
        queue: Package names in topological order.
        prev: Map of package name → internal dependencies (predecessors).
        root: The workspace root package.
    """

    packages: dict[str, Package]
    queue: list[str]
    prev: dict[str, list[str]]
    root: Package


def topo_sort(prev: Mapping[str, Sequence[str]]) -> list[str]:
    """Order package names so every package follows its predecessors.

    The graph is peeled in layers: each round takes every package whose
    predecessors are already placed, alphabetically. Dependencies that are
    not keys of prev (external packages) and self-references are ignored.

    Args:
        prev: Map of package name → names it depends on.

    Raises:
        CycleError: If some packages can never become ready.

    Example:
        topo_sort({"a": ["b"], "b": ["c"], "c": []}) → ["c", "b", "a"]
    """
    pending = {name: {d for d in deps if d in prev and d != name} for name, deps in prev.items()}
    order: list[str] = []

    while pending:
        ready = sorted(name for name, deps in pending.items() if not deps)
        if not ready:
            raise CycleError(f"Dependency cycle detected involving: {sorted(pending)}")
        order.extend(ready)
        for name in ready:
            del pending[name]
        for deps in pending.values():
            deps.difference_update(ready)

    return order


def load_manifest(path: Path) -> dict:
    return json.loads(path.read_text())


def get_workspace_globs(manifest: Mapping) -> list[str]:
    """Extract member globs from package.json "workspaces".

    Both the array form and the yarn object form
    ({"packages": [...]}) are accepted.
    """
    workspaces = manifest.get("workspaces") or []
    if isinstance(workspaces, Mapping):
        workspaces = workspaces.get("packages") or []
    return list(workspaces)


def _load_package(pkg_dir: Path, root: Path) -> Package:
    manifest_path = pkg_dir / "package.json"
    manifest = load_manifest(manifest_path)
    return Package(
        name=manifest.get("name") or pkg_dir.name,
        abs_path=str(pkg_dir),
        rel_path=str(pkg_dir.relative_to(root)) if pkg_dir != root else ".",
        manifest_path=str(manifest_path),
        manifest=manifest,
    )


def discover_packages(cwd: str | Path) -> tuple[Package, dict[str, Package]]:
    """Scan the workspace rooted at cwd and load every member.

    A root without workspaces is treated as a single-package repository.
    Private packages are included; whether they get published is decided
    by their config.

    Returns:
        Tuple of (root package, map of member name → Package).
    """
    root_dir = Path(cwd).resolve()
    root = _load_package(root_dir, root_dir)

    member_dirs: list[Path] = []
    for pattern in get_workspace_globs(root.manifest):
        for match in sorted(glob.glob(str(root_dir / pattern))):
            p = Path(match)
            if (p / "package.json").exists() and p not in member_dirs:
                member_dirs.append(p)

    if not member_dirs:
        return root, {root.name: root}

    packages: dict[str, Package] = {}
    for d in member_dirs:
        pkg = _load_package(d, root_dir)
        packages[pkg.name] = pkg

    # Second pass: identify which deps are internal (within workspace)
    for pkg in packages.values():
        seen: set[str] = set()
        for scope in DEP_SCOPES:
            for dep_name in pkg.manifest.get(scope) or {}:
                if dep_name in packages and dep_name not in seen and dep_name != pkg.name:
                    pkg.deps.append(dep_name)
                    seen.add(dep_name)

    return root, packages


async def topo(cwd: str | Path) -> Graph:
    """Discover the workspace and compute its processing queue."""
    root, packages = discover_packages(cwd)
    prev = {name: list(pkg.deps) for name, pkg in packages.items()}
    queue = topo_sort(prev)
    return Graph(packages=packages, queue=queue, prev=prev, root=root)
