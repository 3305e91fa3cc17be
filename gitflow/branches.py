"""Branch listing, resolution and thin state-changing wrappers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from .exceptions import AmbiguityError, NotFoundError, OutputParseError, ValidationError
from .models import Branch
from .remotes import Remote, find_upstream_remote

if TYPE_CHECKING:  # pragma: no cover
    from .repo import Repo

logger = logging.getLogger(__name__)

MAIN_BRANCH_NAMES = ("main", "master")
RELEASE_BRANCH_PREFIX = "release-"


def list_remote_branches(remote: Remote) -> list[Branch]:
    """List the remote-tracking branches of ``remote``."""

    args = ["for-each-ref", "--format=%(objectname) %(refname)"]
    result = remote.repo.exec_git(*args)
    prefix = f"refs/remotes/{remote.name}/"
    branches: list[Branch] = []
    for line in result.stdout.splitlines():
        tokens = line.split()
        if len(tokens) != 2:
            raise OutputParseError("unexpected ref line (expected 2 tokens)", line=line, command=["git", *args])
        ref_name = tokens[1]
        if not ref_name.startswith(prefix):
            continue
        short_name = ref_name[len(prefix):]
        if short_name == "HEAD":
            continue
        branches.append(Branch(name=f"{remote.name}/{short_name}", short_name=short_name, remote=remote))
    return branches


def is_release_branch(short_name: str) -> bool:
    return short_name in MAIN_BRANCH_NAMES or short_name.startswith(RELEASE_BRANCH_PREFIX)


def current_branch(repo: Repo) -> Branch:
    result = repo.exec_git("rev-parse", "--abbrev-ref", "HEAD")
    name = result.stdout.strip()
    if not name or name == "HEAD":
        raise NotFoundError(
            f"cannot find current branch (stdout was {result.stdout!r}, stderr was {result.stderr!r})",
            searched="HEAD",
        )
    return Branch(name=name, short_name=name)


def find_upstream_branch(repo: Repo) -> Branch:
    """Return the upstream remote's ``main`` or ``master`` branch."""

    upstream = find_upstream_remote(repo)
    branches = list_remote_branches(upstream)
    candidates = [branch for branch in branches if branch.short_name in MAIN_BRANCH_NAMES]
    if not candidates:
        logger.info("branches of %s: %s", upstream.name, ", ".join(b.name for b in branches) or "(none)")
        raise NotFoundError(
            f"cannot determine any upstream branch (looked for {' or '.join(MAIN_BRANCH_NAMES)} on {upstream.name!r})",
            searched=f"{upstream.name}/{{{','.join(MAIN_BRANCH_NAMES)}}}",
        )
    if len(candidates) > 1:
        raise AmbiguityError(
            "cannot determine unique upstream branch",
            candidates=[branch.name for branch in candidates],
        )
    return candidates[0]


def checkout_new_branch(repo: Repo, name: str, from_branch: Branch) -> Branch:
    repo.exec_git("checkout", "-b", name, from_branch.name)
    return Branch(name=name, short_name=name)


def checkout(repo: Repo, branch: Branch) -> None:
    repo.exec_git("checkout", branch.name)


def delete_branch(repo: Repo, name: str) -> None:
    repo.exec_git("branch", "-D", name)


def cherry_pick(repo: Repo, shas: Iterable[str]) -> None:
    shas = list(shas)
    if not shas:
        raise ValidationError("no commits to cherry-pick")
    repo.exec_git("cherry-pick", *shas)


def push(repo: Repo, remote: Remote, branch: str | None = None, *, set_upstream: bool = False) -> None:
    args = ["push"]
    if set_upstream:
        args.append("--set-upstream")
    args.append(remote.name)
    if branch:
        args.append(branch)
    repo.exec_git(*args)


@dataclass(slots=True)
class MergedBranches:
    """Parsed ``git branch --merged`` report."""

    branches: list[str] = field(default_factory=list)
    current: str | None = None


def merged_branches(repo: Repo, into: Branch) -> MergedBranches:
    """List local branches already merged into ``into``.

    Branches checked out in another worktree (``+``) are included; the current
    branch (``*``) is reported separately and never offered for deletion.
    """

    args = ["branch", "--merged", into.name]
    result = repo.exec_git(*args)
    report = MergedBranches()
    for line in result.stdout.splitlines():
        tokens = line.split()
        if not tokens:
            continue
        if len(tokens) == 2 and tokens[0] == "+":
            report.branches.append(tokens[1])
        elif len(tokens) == 2 and tokens[0] == "*":
            report.current = tokens[1]
        elif len(tokens) == 1:
            report.branches.append(tokens[0])
        else:
            raise OutputParseError("cannot interpret branch line", line=line, command=["git", *args])
    return report


def recent_branches(repo: Repo, count: int) -> list[str]:
    """Return up to ``count`` local branches, most recently committed first."""

    if count <= 0:
        raise ValidationError(f"branch count must be positive, got {count}")
    result = repo.exec_git(
        "for-each-ref",
        "--sort=-committerdate",
        f"--count={count}",
        "--format=%(refname:short)",
        "refs/heads",
    )
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


__all__ = [
    "MergedBranches",
    "checkout",
    "checkout_new_branch",
    "cherry_pick",
    "current_branch",
    "delete_branch",
    "find_upstream_branch",
    "is_release_branch",
    "list_remote_branches",
    "merged_branches",
    "push",
    "recent_branches",
]
