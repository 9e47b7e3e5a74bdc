"""Run state: the live report of a release run.

A single RunState is created per run and mutated by every task of the
pipeline. It tracks a global status plus one status per package, keeps an
append-only event log, and (when a report file is configured) writes a full
JSON snapshot every time a status changes, so progress can be watched from
outside the process.

Status lifecycles:

    run:      initial → analyzing → pending → building ⇄ publishing → success
    package:  initial → analyzing → skipped
                                  → building → publishing → success
                                  → building → success         (dry run)

Any non-terminal status may move to failure. skipped, success and failure
are terminal; no status ever moves backwards.

All mutation happens on one event loop, and each task only writes its own
package record, so no lock is needed.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .models import Package


class Status(str, Enum):
    INITIAL = "initial"
    ANALYZING = "analyzing"
    PENDING = "pending"
    SKIPPED = "skipped"
    BUILDING = "building"
    PUBLISHING = "publishing"
    SUCCESS = "success"
    FAILURE = "failure"


GLOBAL_TRANSITIONS: dict[Status, set[Status]] = {
    Status.INITIAL: {Status.ANALYZING, Status.FAILURE},
    Status.ANALYZING: {Status.PENDING, Status.FAILURE},
    Status.PENDING: {Status.BUILDING, Status.PUBLISHING, Status.SUCCESS, Status.FAILURE},
    Status.BUILDING: {Status.PUBLISHING, Status.SUCCESS, Status.FAILURE},
    Status.PUBLISHING: {Status.BUILDING, Status.SUCCESS, Status.FAILURE},
}

PACKAGE_TRANSITIONS: dict[Status, set[Status]] = {
    Status.INITIAL: {Status.ANALYZING, Status.FAILURE},
    Status.ANALYZING: {Status.SKIPPED, Status.BUILDING, Status.FAILURE},
    Status.BUILDING: {Status.PUBLISHING, Status.SUCCESS, Status.FAILURE},
    Status.PUBLISHING: {Status.SUCCESS, Status.FAILURE},
}


class InvalidTransitionError(ValueError):
    """A status change that would move a run or package backwards."""


class Event(BaseModel):
    msg: str
    scope: str
    date: datetime
    level: str = "info"


def get_path(target: Any, key: str) -> Any:
    """Read a dotted key path from nested attributes and mappings."""
    value = target
    for part in key.split("."):
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
        if value is None:
            return None
    return value


def set_path(target: Any, key: str, value: Any) -> None:
    """Write a dotted key path, creating intermediate dicts as needed."""
    *parents, last = key.split(".")
    for part in parents:
        if isinstance(target, dict):
            target = target.setdefault(part, {})
        else:
            target = getattr(target, part)
    if isinstance(target, dict):
        target[last] = value
    else:
        setattr(target, last, value)


class RunState(BaseModel):
    """Live report of a release run.

    Attributes:
        status: Global run status.
        queue: Topological processing order.
        packages: Per-package records: status, name, version, path, relPath
                  plus whatever the pipeline attaches (config, prevVersion,
                  releaseType, tag, ...).
        events: Append-only log of everything reported through log().
        error: Description of the error that failed the run, if any.
        file: Where snapshots are written; None disables persistence.
    """

    status: Status = Status.INITIAL
    queue: list[str] = Field(default_factory=list)
    packages: dict[str, dict[str, Any]] = Field(default_factory=dict)
    events: list[Event] = Field(default_factory=list)
    error: str | None = None
    file: str | None = None
    debug: bool = Field(default=False, exclude=True)

    def set_queue(self, queue: list[str]) -> RunState:
        self.queue = list(queue)
        return self

    def set_packages(self, packages: Mapping[str, Package]) -> RunState:
        self.packages = {
            name: {
                "status": Status.INITIAL,
                "name": name,
                "version": pkg.manifest_version,
                "path": pkg.abs_path,
                "relPath": pkg.rel_path,
            }
            for name, pkg in packages.items()
        }
        return self

    def _target(self, pkg_name: str | None) -> Any:
        if pkg_name is None:
            return self
        if pkg_name not in self.packages:
            raise KeyError(f"Unknown package: {pkg_name}")
        return self.packages[pkg_name]

    def get(self, key: str, pkg_name: str | None = None) -> Any:
        """Read a key path from the report, or from one package record."""
        return get_path(self._target(pkg_name), key)

    def set(self, key: str, value: Any, pkg_name: str | None = None) -> RunState:
        """Write a key path on the report, or on one package record."""
        set_path(self._target(pkg_name), key, value)
        return self

    def get_status(self, pkg_name: str | None = None) -> Status:
        return Status(self.get("status", pkg_name))

    def set_status(self, status: Status | str, pkg_name: str | None = None) -> RunState:
        """Move the run (or one package) to a new status and save a snapshot.

        Raises:
            InvalidTransitionError: If the move is not allowed from the
                current status.
        """
        status = Status(status)
        current = self.get_status(pkg_name)
        transitions = PACKAGE_TRANSITIONS if pkg_name else GLOBAL_TRANSITIONS

        if status != current and status not in transitions.get(current, set()):
            subject = pkg_name or "run"
            raise InvalidTransitionError(f"{subject}: cannot go from {current.value} to {status.value}")

        self.set("status", status, pkg_name)
        return self.save()

    def log(self, scope: str = "~", level: str = "info") -> Callable[..., None]:
        """Return a logger bound to a scope (a package name, or "~" for the run).

        Each call records an event and echoes "[scope] message" to the
        terminal. Debug events are only echoed in debug mode.
        """

        def _log(*chunks: Any) -> None:
            msg = " ".join(str(chunk) for chunk in chunks)
            self.events.append(Event(msg=msg, scope=scope, date=datetime.now(timezone.utc), level=level))
            if level == "debug" and not self.debug:
                return
            stream = sys.stderr if level in ("warn", "error") else sys.stdout
            print(f"[{scope}] {msg}", file=stream)

        return _log

    def save(self) -> RunState:
        """Write the snapshot to the report file, if one is configured.

        Best-effort: a write failure is reported as a warning event and
        does not interrupt the run.
        """
        if not self.file:
            return self
        try:
            path = Path(self.file)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.model_dump_json(indent=2))
        except OSError as exc:
            self.log(level="warn")(f"cannot write report {self.file}: {exc}")
        return self
