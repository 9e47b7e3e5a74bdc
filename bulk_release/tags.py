"""Release tag encoding and decoding.

A release tag records a package name, version and release day in a single
git-ref-safe string. Three formats are understood, tried in this order:

f0     2023.5.10-scope.pkg.1.2.3-f0
       Compact and readable. Only for names made of lowercase alphanumerics
       and hyphens with at most one scope.
f1     2023.5.10-scopepkg.1.2.3.QHNjb3BlL3BrZw-f1
       Any name: the exact name travels base64url-encoded (unpadded) in the
       last segment; the leading slug is informational.
lerna  @scope/pkg@1.2.3
       Legacy tags written by lerna. Parsed for compatibility, never written.

Parsing and formatting are pure: an input that no format accepts yields None.
"""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime, timezone

from . import git
from .models import Package, Tag
from .versions import is_valid, sort_key

_DATE = r"(\d{4}\.(?:[1-9]|1[012])\.(?:[1-9]|[12]\d|30|31))"
_VERSION = r"(v?\d+\.\d+\.\d+.*)"


def format_date_tag(date: datetime | None = None) -> str:
    """Encode a day as "Y.M.D" in UTC, without zero padding."""
    date = date or datetime.now(timezone.utc)
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    date = date.astimezone(timezone.utc)
    return f"{date.year}.{date.month}.{date.day}"


def parse_date_tag(date: str) -> datetime:
    """Decode "Y.M.D" into UTC midnight of that day."""
    year, month, day = (int(part) for part in date.split("."))
    return datetime(year, month, day, tzinfo=timezone.utc)


def _tag(date: str, name: str, version: str, fmt: str, ref: str) -> Tag | None:
    try:
        day = parse_date_tag(date)
    except ValueError:
        return None  # e.g. 2023.2.31
    return Tag(date=day, name=name, version=version, format=fmt, ref=ref)


def _b64encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _b64decode(data: str) -> str | None:
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
        return raw.decode("utf-8")
    except (binascii.Error, ValueError):
        return None


class F0:
    name = "f0"
    suffix = "-f0"
    pattern = re.compile(rf"^{_DATE}-((?:[a-z0-9-]+\.)?[a-z0-9-]+)\.{_VERSION}-f0$")
    name_pattern = re.compile(r"^(@?[a-z0-9-]+/)?[a-z0-9-]+$")

    def parse(self, tag: str) -> Tag | None:
        if not tag.endswith(self.suffix):
            return None

        m = self.pattern.match(tag)
        if m is None or not is_valid(m.group(3)):
            return None

        date, slug, version = m.groups()
        name = "@" + slug.replace(".", "/", 1) if "." in slug else slug
        return _tag(date, name, version, "f0", tag)

    def format(self, name: str, version: str, date: datetime | None = None) -> str | None:
        if not self.name_pattern.match(name) or not is_valid(version):
            return None

        slug = name.replace("@", "", 1).replace("/", ".", 1)
        return f"{format_date_tag(date)}-{slug}.{version}-f0"


class F1:
    name = "f1"
    suffix = "-f1"
    pattern = re.compile(rf"^{_DATE}-[a-z0-9-]*\.{_VERSION}\.([^.]+)-f1$")

    def parse(self, tag: str) -> Tag | None:
        if not tag.endswith(self.suffix):
            return None

        m = self.pattern.match(tag)
        if m is None or not is_valid(m.group(2)):
            return None

        date, version, encoded = m.groups()
        name = _b64decode(encoded)
        if not name:
            return None

        return _tag(date, name, version, "f1", tag)

    def format(self, name: str, version: str, date: datetime | None = None) -> str | None:
        if not name or not is_valid(version):
            return None

        slug = re.sub(r"[^a-z0-9-]", "", name.lower())
        return f"{format_date_tag(date)}-{slug}.{version}.{_b64encode(name)}-f1"


class Lerna:
    name = "lerna"
    pattern = re.compile(r"^(@?[a-z0-9-]+(?:/[a-z0-9-]+)?)@(v?\d+\.\d+\.\d+.*)")

    def parse(self, tag: str) -> Tag | None:
        m = self.pattern.match(tag)
        if m is None or not is_valid(m.group(2)):
            return None

        name, version = m.groups()
        return Tag(name=name, version=version, format="lerna", ref=tag)

    def format(self, name: str, version: str, date: datetime | None = None) -> str | None:
        return None


# Priority order for both parsing and formatting
FORMATS = (F0(), F1(), Lerna())


def parse_tag(tag: str) -> Tag | None:
    """Decode a release tag, or return None if no format matches."""
    for fmt in FORMATS:
        parsed = fmt.parse(tag)
        if parsed is not None:
            return parsed
    return None


def format_tag(name: str, version: str, date: datetime | None = None) -> str | None:
    """Encode a release tag in the first format that can represent it.

    Args:
        name: Package name.
        version: Semantic version.
        date: Release day; defaults to now (UTC).

    Returns:
        The tag string, or None if the version is not valid semver.
    """
    for fmt in FORMATS:
        formatted = fmt.format(name, version, date)
        if formatted is not None:
            return formatted
    return None


def get_artifact_path(tag: str) -> str:
    """Turn a tag into a filesystem-safe key: lowercase, [a-z0-9-] only."""
    return re.sub(r"[^a-z0-9-]", "-", tag.lower())


async def get_tags(cwd: str, ref: str = "") -> list[Tag]:
    """List parseable release tags of the repository, newest version first."""
    parsed = [parse_tag(tag.strip()) for tag in await git.get_tags(cwd, ref)]
    tags = [tag for tag in parsed if tag is not None]
    return sorted(tags, key=lambda tag: sort_key(tag.version), reverse=True)


async def get_latest_tag(cwd: str, name: str) -> Tag | None:
    """Return the highest-versioned release tag of a package, if any."""
    for tag in await get_tags(cwd):
        if tag.name == name:
            return tag
    return None


async def get_latest_tagged_version(cwd: str, name: str) -> str | None:
    tag = await get_latest_tag(cwd, name)
    return tag.version if tag else None


async def push_release_tag(pkg: Package) -> str:
    """Tag the release of a package and push the tag to origin.

    Reuses the tag computed during analysis when there is one, and records
    it in pkg.context.git.tag before pushing.
    """
    tag = pkg.context.git.tag or format_tag(pkg.name, pkg.version or "")
    if tag is None:
        raise ValueError(f"Cannot format a release tag for {pkg.name}@{pkg.version}")

    pkg.context.git.tag = tag
    await git.push_tag(
        pkg.context.git.root or pkg.abs_path,
        tag,
        committer_name=pkg.config.git_committer_name,
        committer_email=pkg.config.git_committer_email,
    )
    return tag
