"""Version parsing, comparison and bumping utilities.

Thin layer over the semver library that accepts the loose spellings found in
npm manifests and tags (a leading "v" or "=", surrounding whitespace).
"""

from __future__ import annotations

import semver

RELEASE_TYPES = ("major", "minor", "patch")


def clean_version(version_str: str) -> str:
    """Strip the loose prefixes npm tolerates: "v1.2.3" → "1.2.3"."""
    return version_str.strip().lstrip("=v").strip()


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Raises:
        ValueError: If the string is not a full semantic version.
    """
    return semver.Version.parse(clean_version(version_str))


def is_valid(version_str: str | None) -> bool:
    """Return True if the string is a (possibly "v"-prefixed) semver."""
    if not version_str:
        return False
    try:
        parse_version(version_str)
    except (ValueError, TypeError):
        return False
    return True


def sort_key(version_str: str) -> semver.Version:
    """Key function for sorting version strings by semver precedence."""
    return parse_version(version_str)


def bump(version_str: str, release_type: str) -> str:
    """Increment a version by release type and return it as a string.

    Examples:
        bump("1.2.3", "patch") → "1.2.4"
        bump("1.2.3", "minor") → "1.3.0"
        bump("v1.2.3", "major") → "2.0.0"
        bump("1.2.3-beta.1", "patch") → "1.2.3"
    """
    if release_type not in RELEASE_TYPES:
        raise ValueError(f"Unknown release type: {release_type!r}")

    return str(parse_version(version_str).next_version(part=release_type))
