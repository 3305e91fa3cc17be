"""High-level orchestration for the pull-request and housekeeping commands.

Workflows fail fast: when a step fails, earlier steps are not rolled back.
A half-created branch or a cherry-pick in progress is left for the user to
inspect.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

from . import branches
from .config import Settings
from .exceptions import GitflowError, ValidationError
from .forge import create_pull_request, parse_pr_number
from .models import Branch, GithubRepo, PullRequest, UnknownForge
from .remotes import Remote, find_fork_remote, find_upstream_remote, normalize_fork_urls
from .repo import Repo

logger = logging.getLogger(__name__)

CHERRY_PICK_BRANCH_PREFIX = "automated-cherry-pick-of-#"


class PullRequestSource(Protocol):
    def get_pull_request(self, repo: GithubRepo, number: int) -> PullRequest: ...


PullRequestCreator = Callable[..., None]


def cherry_pick_branch_name(pr_number: int, target: Branch) -> str:
    return f"{CHERRY_PICK_BRANCH_PREFIX}{pr_number}-{target.name}"


def fork_owner(remote: Remote, settings: Settings) -> str:
    """The GitHub owner used in ``--head owner:branch`` for a fork remote."""

    info = remote.forge_info()
    if isinstance(info, GithubRepo):
        return info.organization
    if isinstance(info, UnknownForge):
        return settings.require_identity()
    raise TypeError(f"unhandled forge info {info!r}")


def _upstream_repo(remote: Remote) -> GithubRepo:
    info = remote.forge_info()
    if isinstance(info, GithubRepo):
        return info
    if isinstance(info, UnknownForge):
        raise ValidationError(f"cannot determine forge from {remote.fetch_url!r} (remote {remote.name!r})")
    raise TypeError(f"unhandled forge info {info!r}")


@dataclass(slots=True)
class CherryPickResult:
    branch: str
    target: Branch
    pull_request: PullRequest
    restored: Branch


def cherry_pick_pull_request(
    repo: Repo,
    settings: Settings,
    forge: PullRequestSource,
    pr_number: str,
    *,
    target_branch: str | None = None,
    open_pr: PullRequestCreator = create_pull_request,
) -> CherryPickResult:
    """Cherry-pick an upstream pull request onto a branch and propose it again."""

    number = parse_pr_number(pr_number)
    identity = settings.require_identity()
    fork = find_fork_remote(repo, identity, fix_urls=settings.fix_fork_urls)
    upstream = branches.find_upstream_branch(repo)
    assert upstream.remote is not None
    original = branches.current_branch(repo)
    target = Branch(name=target_branch, short_name=target_branch) if target_branch else original

    pr = forge.get_pull_request(_upstream_repo(upstream.remote), number)
    logger.info("pull request #%d has %d commit(s): %s", number, len(pr.commits), pr.title)

    new_branch = cherry_pick_branch_name(number, target)
    branches.checkout_new_branch(repo, new_branch, target)
    branches.cherry_pick(repo, pr.commits)
    branches.push(repo, fork, new_branch, set_upstream=True)

    title = f"Automated cherry pick of #{number}: {pr.title}"
    body = f"Cherry pick of #{number} on {target.short_name}\n\n#{number}: {pr.title}\n"
    open_pr(
        base=target.short_name,
        head=f"{fork_owner(fork, settings)}:{new_branch}",
        title=title,
        body=body,
        gh_binary=settings.gh_binary,
        cwd=repo.path,
        cancel=repo.cancel,
    )

    branches.checkout(repo, original)
    return CherryPickResult(branch=new_branch, target=target, pull_request=pr, restored=original)


def create_pull_request_from_commits(
    repo: Repo,
    settings: Settings,
    branch_name: str,
    shas: Sequence[str],
    *,
    open_pr: PullRequestCreator = create_pull_request,
) -> Branch:
    """Open a pull request carrying ``shas`` on a fresh branch off upstream.

    Returns the branch that was current before, which is checked out again.
    """

    if not branch_name.strip():
        raise ValidationError("branch name cannot be empty")
    if not shas:
        raise ValidationError("at least one commit is required")
    identity = settings.require_identity()
    fork = find_fork_remote(repo, identity, fix_urls=settings.fix_fork_urls)
    upstream = branches.find_upstream_branch(repo)
    assert upstream.remote is not None
    original = branches.current_branch(repo)

    upstream.remote.fetch()
    branches.checkout_new_branch(repo, branch_name, upstream)
    branches.cherry_pick(repo, shas)
    branches.push(repo, fork, branch_name, set_upstream=True)
    open_pr(
        base=upstream.short_name,
        head=f"{fork_owner(fork, settings)}:{branch_name}",
        fill=True,
        gh_binary=settings.gh_binary,
        cwd=repo.path,
        cancel=repo.cancel,
    )
    branches.checkout(repo, original)
    return original


@dataclass(slots=True)
class PruneReport:
    release_branches: list[Branch]
    merged: dict[str, list[str]] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def to_delete(self) -> list[str]:
        return sorted(self.merged)


class BranchDeletionError(GitflowError):
    """Raised after the batch when one or more deletions failed.

    ``failures`` keeps each branch's original error, captured git output
    included.
    """

    def __init__(self, failures: dict[str, GitflowError]):
        self.failures = failures
        noun = "branch" if len(failures) == 1 else "branches"
        super().__init__(f"could not delete {len(failures)} {noun}: {', '.join(sorted(failures))}")


def prune_merged_branches(
    repo: Repo,
    *,
    dry_run: bool = False,
    confirm: Callable[[list[str]], bool] | None = None,
) -> PruneReport:
    """Delete local branches already merged into any upstream release branch.

    The full scan finishes before anything is deleted. ``confirm`` may veto
    the batch; ``dry_run`` skips deletion but still reports the candidates.
    """

    upstream = find_upstream_remote(repo)
    upstream.fetch()
    release = sorted(
        (branch for branch in branches.list_remote_branches(upstream) if branches.is_release_branch(branch.short_name)),
        key=lambda branch: branch.name,
    )
    if not release:
        raise ValidationError(f"cannot determine any release branches on remote {upstream.name!r}")
    logger.info("checking for branches merged into any of %s", ", ".join(b.name for b in release))

    report = PruneReport(release_branches=release, dry_run=dry_run)
    for release_branch in release:
        merged = branches.merged_branches(repo, release_branch)
        if merged.current:
            logger.info("skipping current branch %s", merged.current)
        for name in merged.branches:
            if branches.is_release_branch(name):
                logger.info("won't delete release branch %s", name)
                continue
            logger.info("branch %s is merged into %s", name, release_branch.name)
            report.merged.setdefault(name, []).append(release_branch.name)

    candidates = report.to_delete
    if dry_run or not candidates:
        return report
    if confirm is not None and not confirm(candidates):
        return report

    failures: dict[str, GitflowError] = {}
    for name in candidates:
        try:
            branches.delete_branch(repo, name)
        except GitflowError as exc:
            failures[name] = exc
        else:
            report.deleted.append(name)
    if failures:
        raise BranchDeletionError(failures) from failures[min(failures)]
    return report


@dataclass(slots=True)
class RemoteSetup:
    fork: Remote
    upstream: Remote
    urls_fixed: bool


def configure_remotes(repo: Repo, settings: Settings, *, fix_urls: bool | None = None) -> RemoteSetup:
    """Normalise the fork/upstream remote configuration of a clone."""

    identity = settings.require_identity()
    fix = settings.fix_fork_urls if fix_urls is None else fix_urls
    fork = find_fork_remote(repo, identity)
    urls_fixed = normalize_fork_urls(repo, fork, identity) if fix else False
    upstream = find_upstream_remote(repo)
    return RemoteSetup(fork=fork, upstream=upstream, urls_fixed=urls_fixed)


def rebase_on_upstream(repo: Repo, *, interactive: bool = False) -> Branch:
    upstream = branches.find_upstream_branch(repo)
    assert upstream.remote is not None
    upstream.remote.fetch()
    args = ["rebase"]
    if interactive:
        args.append("-i")
    args.extend(["--autosquash", upstream.name])
    repo.exec_git_interactive(*args)
    return upstream


def show_toc(repo: Repo) -> None:
    upstream = branches.find_upstream_branch(repo)
    repo.exec_git_interactive("log", "--oneline", f"{upstream.name}...", "--reverse")


def parse_workspace_name(value: str) -> tuple[str, str]:
    user, sep, branch = value.partition(":")
    if not sep or not user or not branch:
        raise ValidationError("workspace name must be in the format 'user:branch'")
    return user, branch


def switch_workspace(repo: Repo, workspace: str) -> Branch:
    _, branch_name = parse_workspace_name(workspace)
    branch = Branch(name=branch_name, short_name=branch_name)
    branches.checkout(repo, branch)
    return branch


__all__ = [
    "BranchDeletionError",
    "CherryPickResult",
    "PruneReport",
    "RemoteSetup",
    "cherry_pick_branch_name",
    "cherry_pick_pull_request",
    "configure_remotes",
    "create_pull_request_from_commits",
    "parse_workspace_name",
    "prune_merged_branches",
    "rebase_on_upstream",
    "show_toc",
    "switch_workspace",
]
