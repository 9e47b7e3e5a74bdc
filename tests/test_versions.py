"""Tests for bulk_release.versions."""

from __future__ import annotations

import pytest

from bulk_release.versions import bump, clean_version, is_valid, parse_version, sort_key


class TestCleanVersion:
    def test_strips_v_prefix(self) -> None:
        assert clean_version("v1.2.3") == "1.2.3"

    def test_strips_equals_and_whitespace(self) -> None:
        assert clean_version(" =1.2.3 ") == "1.2.3"


class TestIsValid:
    def test_plain(self) -> None:
        assert is_valid("1.2.3")

    def test_prerelease(self) -> None:
        assert is_valid("1.2.3-beta.1")

    def test_v_prefixed(self) -> None:
        assert is_valid("v1.2.3")

    def test_partial_is_invalid(self) -> None:
        assert not is_valid("1.2")

    def test_none_and_empty(self) -> None:
        assert not is_valid(None)
        assert not is_valid("")

    def test_garbage(self) -> None:
        assert not is_valid("latest")


class TestBump:
    def test_patch(self) -> None:
        assert bump("1.2.3", "patch") == "1.2.4"

    def test_minor(self) -> None:
        assert bump("1.2.3", "minor") == "1.3.0"

    def test_major(self) -> None:
        assert bump("1.2.3", "major") == "2.0.0"

    def test_v_prefixed(self) -> None:
        assert bump("v0.9.9", "patch") == "0.9.10"

    def test_unknown_release_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown release type"):
            bump("1.2.3", "prerelease")

    def test_invalid_version(self) -> None:
        with pytest.raises(ValueError):
            bump("not-a-version", "patch")


class TestOrdering:
    def test_sort_key_orders_by_precedence(self) -> None:
        versions = ["1.10.0", "1.2.0", "1.2.0-rc.1", "v0.9.0"]
        assert sorted(versions, key=sort_key) == ["v0.9.0", "1.2.0-rc.1", "1.2.0", "1.10.0"]

    def test_parse_version_fields(self) -> None:
        v = parse_version("2.3.4-alpha")
        assert (v.major, v.minor, v.patch, v.prerelease) == (2, 3, 4, "alpha")
