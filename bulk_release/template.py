"""Command template rendering.

Build, test and publish commands are configured as templates with
``${{ key.path }}`` placeholders, resolved against a fixed set of keys:

    name, version, abs_path, rel_path    the package
    git.sha, git.root, git.tag           the repository state
    env.<VAR>                            the run environment

Unknown placeholders are an error rather than being left in the command.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .models import Package

_PLACEHOLDER_RE = re.compile(r"\$\{\{\s*([A-Za-z0-9_.]+)\s*\}\}")


class TemplateError(KeyError):
    """A template referenced a key that is not available."""


def template_context(pkg: Package) -> dict[str, Any]:
    """Collect the values a package's command templates may reference."""
    return {
        "name": pkg.name,
        "version": pkg.version or "",
        "abs_path": pkg.abs_path,
        "rel_path": pkg.rel_path,
        "git": pkg.context.git.model_dump(),
        "env": dict(pkg.context.env),
    }


def _lookup(ctx: Mapping[str, Any], path: str) -> Any:
    value: Any = ctx
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            raise TemplateError(f"Unknown template key: {path!r}")
        value = value[part]
    if isinstance(value, Mapping):
        raise TemplateError(f"Template key {path!r} is not a value")
    return "" if value is None else value


def tpl(template: str | None, ctx: Mapping[str, Any]) -> str:
    """Substitute ``${{ key.path }}`` placeholders.

    Examples:
        tpl("echo ${{ name }}@${{ version }}", {"name": "a", "version": "1.0.0"})
            → "echo a@1.0.0"

    Raises:
        TemplateError: If a placeholder names a key missing from ctx.
    """
    if not template:
        return ""
    return _PLACEHOLDER_RE.sub(lambda m: str(_lookup(ctx, m.group(1))), template)
