"""Data models for bulk-release.

These Pydantic models represent the core data structures used throughout
the release pipeline.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .config import PackageConfig

TagFormat = Literal["f0", "f1", "lerna"]
ReleaseType = Literal["major", "minor", "patch"]


class Tag(BaseModel):
    """A parsed release marker.

    Attributes:
        date: Release day (UTC midnight). None for legacy lerna tags, which
              carry no date.
        name: Package name, scope included (e.g. "@scope/pkg").
        version: Semantic version, possibly "v"-prefixed as found in the tag.
        format: Encoding the tag was written in.
        ref: The raw tag string.
    """

    date: datetime | None = None
    name: str
    version: str
    format: TagFormat
    ref: str


class Change(BaseModel):
    """One reason to release a package.

    Attributes:
        group: Changelog section the change belongs to.
        release_type: Severity of the change.
        change: Short change kind (e.g. "perf", "fix").
        subj: Human-readable subject line.
    """

    group: str
    release_type: ReleaseType
    change: str
    subj: str


class Latest(BaseModel):
    """What is known about the last release of a package."""

    tag: Tag | None = None
    meta: dict[str, Any] | None = None


class ReleaseMeta(BaseModel):
    """Release-metadata artifact stored on the meta branch.

    Serialized with its aliases so the on-disk keys match package.json.
    """

    model_config = ConfigDict(populate_by_name=True)

    meta_version: str = Field(default="1", alias="META_VERSION")
    name: str
    hash: str
    version: str
    dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = Field(default=None, alias="devDependencies")
    peer_dependencies: dict[str, str] | None = Field(default=None, alias="peerDependencies")
    optional_dependencies: dict[str, str] | None = Field(default=None, alias="optionalDependencies")


class GitContext(BaseModel):
    sha: str = ""
    root: str = ""
    tag: str | None = None


class PackageContext(BaseModel):
    """Run-time context a package's commands are rendered against."""

    git: GitContext = Field(default_factory=GitContext)
    env: dict[str, str] = Field(default_factory=dict)


class Package(BaseModel):
    """A single member of the monorepo workspace.

    Loaded once per run and mutated in place while the run progresses:
    analysis fills version, release_type, changes and the manifest's
    dependency declarations; the build/publish pass fills context.

    Attributes:
        name: Package name from package.json.
        abs_path: Absolute path of the package directory.
        rel_path: Path relative to the workspace root.
        manifest_path: Absolute path of the package.json file.
        manifest: Parsed package.json contents.
        deps: Internal (workspace) dependency names. External deps are not
              tracked here since only workspace members are re-versioned.
        version: Next version, computed during analysis.
        release_type: Highest change severity, or None if there is nothing
                      to release.
    """

    name: str
    abs_path: str
    rel_path: str
    manifest_path: str
    manifest: dict[str, Any] = Field(default_factory=dict)
    deps: list[str] = Field(default_factory=list)
    version: str | None = None
    release_type: ReleaseType | None = None
    changes: list[Change] = Field(default_factory=list)
    latest: Latest = Field(default_factory=Latest)
    config: PackageConfig = Field(default_factory=PackageConfig)
    context: PackageContext = Field(default_factory=PackageContext)

    @property
    def manifest_version(self) -> str | None:
        return self.manifest.get("version")

    @property
    def tag(self) -> str | None:
        return self.context.git.tag
