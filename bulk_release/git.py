"""Git operations used by the release pipeline.

Every helper shells out to the git CLI through shell.git(); nothing here
touches repository internals directly.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .shell import git


def committer_env(name: str, email: str) -> dict[str, str]:
    return {
        "GIT_AUTHOR_NAME": name,
        "GIT_AUTHOR_EMAIL": email,
        "GIT_COMMITTER_NAME": name,
        "GIT_COMMITTER_EMAIL": email,
    }


async def get_tags(cwd: str, ref: str = "") -> list[str]:
    """List raw tag names, optionally filtered by a glob pattern."""
    args = ["tag", "--list"]
    if ref:
        args.append(ref)
    out = await git(*args, cwd=cwd, check=False)
    return [line.strip() for line in out.splitlines() if line.strip()]


async def get_sha(cwd: str) -> str:
    return await git("rev-parse", "HEAD", cwd=cwd)


async def get_root(cwd: str) -> str:
    return await git("rev-parse", "--show-toplevel", cwd=cwd)


async def get_commits(cwd: str, since: str | None = None) -> list[tuple[str, str]]:
    """List (sha, subject) of commits touching cwd, newest first.

    Args:
        cwd: Package directory; only commits changing files below it count.
        since: Exclusive starting point (usually the last release tag).
               None lists the whole history.
    """
    args = ["log", "--format=%H %s"]
    if since:
        args.append(f"{since}..HEAD")
    args.extend(["--", "."])

    commits: list[tuple[str, str]] = []
    for line in (await git(*args, cwd=cwd)).splitlines():
        sha, _, subj = line.partition(" ")
        if sha:
            commits.append((sha, subj))
    return commits


async def push_tag(cwd: str, tag: str, *, committer_name: str, committer_email: str) -> None:
    """Create an annotated tag at HEAD and push it to origin."""
    env = committer_env(committer_name, committer_email)
    await git("tag", "-m", tag, tag, cwd=cwd, env=env)
    await git("push", "origin", tag, cwd=cwd, env=env)


async def fetch_branch(cwd: str, branch: str) -> None:
    """Shallow-fetch origin/<branch>; a missing branch is not an error."""
    await git("fetch", "origin", branch, "--depth", "1", cwd=cwd, check=False)


async def read_branch_file(cwd: str, branch: str, relpath: str) -> str | None:
    """Return the contents of a file on origin/<branch>, or None if missing.

    Reads the last fetched state of the branch; see fetch_branch().
    """
    out = await git("show", f"origin/{branch}:{relpath}", cwd=cwd, check=False)
    return out or None


async def push_commit(
    cwd: str,
    *,
    branch: str,
    msg: str,
    files: Mapping[str, Any],
    committer_name: str,
    committer_email: str,
) -> None:
    """Commit JSON files onto a branch of origin and push it.

    The branch is cloned into a scratch directory so the working tree of the
    repository being released is left untouched. A missing branch is created
    as an orphan.

    Args:
        cwd: Any directory inside the repository.
        branch: Target branch name (e.g. "meta").
        msg: Commit message.
        files: Map of relative path → JSON-serializable contents.
    """
    env = committer_env(committer_name, committer_email)
    origin = await git("config", "--get", "remote.origin.url", cwd=cwd)

    with tempfile.TemporaryDirectory(prefix="bulk-release-") as tmp:
        await git(
            "clone", "--single-branch", "--branch", branch, "--depth", "1", origin, tmp,
            check=False,
        )
        if not (Path(tmp) / ".git").exists():
            await git("init", cwd=tmp)
            await git("checkout", "--orphan", branch, cwd=tmp)
            await git("remote", "add", "origin", origin, cwd=tmp)

        for relpath, contents in files.items():
            target = Path(tmp) / relpath
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(contents, indent=2) + "\n")

        await git("add", ".", cwd=tmp)
        await git("commit", "-m", msg, cwd=tmp, env=env)
        await git("push", "origin", f"HEAD:refs/heads/{branch}", cwd=tmp, env=env)
