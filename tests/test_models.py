"""Tests for bulk_release.models."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from pydantic import ValidationError

from bulk_release.models import Change, Package, ReleaseMeta, Tag


class TestPackage:
    def test_defaults(self, make_package: Callable[..., Package]) -> None:
        pkg = make_package("a", "0.3.0")
        assert pkg.manifest_version == "0.3.0"
        assert pkg.version is None
        assert pkg.release_type is None
        assert pkg.changes == []
        assert pkg.latest.tag is None
        assert pkg.tag is None

    def test_tag_follows_git_context(self, make_package: Callable[..., Package]) -> None:
        pkg = make_package("a")
        pkg.context.git.tag = "2023.5.10-a.1.0.0-f0"
        assert pkg.tag == "2023.5.10-a.1.0.0-f0"

    def test_contexts_not_shared(self, make_package: Callable[..., Package]) -> None:
        a, b = make_package("a"), make_package("b")
        a.context.env["X"] = "1"
        assert b.context.env == {}


class TestChange:
    def test_rejects_unknown_release_type(self) -> None:
        with pytest.raises(ValidationError):
            Change(group="Changes", release_type="huge", change="chore", subj="x")


class TestTag:
    def test_lerna_has_no_date(self) -> None:
        tag = Tag(name="a", version="1.0.0", format="lerna", ref="a@1.0.0")
        assert tag.date is None

    def test_rejects_unknown_format(self) -> None:
        with pytest.raises(ValidationError):
            Tag(name="a", version="1.0.0", format="f9", ref="x")


class TestReleaseMeta:
    def test_dumps_with_manifest_keys(self) -> None:
        meta = ReleaseMeta(
            name="a",
            hash="abc",
            version="1.0.0",
            dependencies={"b": "^1.0.0"},
            dev_dependencies={"c": "2.0.0"},
        )
        data = meta.model_dump(by_alias=True)
        assert data["META_VERSION"] == "1"
        assert data["devDependencies"] == {"c": "2.0.0"}
        assert data["peerDependencies"] is None

    def test_loads_from_manifest_keys(self) -> None:
        meta = ReleaseMeta.model_validate(
            {"name": "a", "hash": "abc", "version": "1.0.0", "optionalDependencies": {"d": "1.0.0"}}
        )
        assert meta.optional_dependencies == {"d": "1.0.0"}
