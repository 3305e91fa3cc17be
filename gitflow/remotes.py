"""Remote discovery, mutation and fork/upstream resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from .exceptions import AmbiguityError, GitCommandError, NotFoundError, OutputParseError
from .forge import parse_forge_url
from .models import ForgeInfo, GithubRepo, UnknownForge

if TYPE_CHECKING:  # pragma: no cover
    from .repo import Repo

logger = logging.getLogger(__name__)

FORK_REMOTE_KEY = "gitflow.fork.remote"
UPSTREAM_REMOTE_KEY = "gitflow.upstream.remote"
UPSTREAM_REMOTE_NAME = "upstream"

# `git remote get-url` exits with 2 for an unknown remote
_NO_SUCH_REMOTE = 2


@dataclass(eq=False)
class Remote:
    name: str
    fetch_url: str
    push_url: str
    repo: Repo = field(repr=False)

    def forge_info(self) -> ForgeInfo:
        return parse_forge_url(self.fetch_url)

    def fetch(self) -> None:
        self.repo.exec_git("fetch", self.name)


def parse_remote_list(output: str, command: Sequence[str]) -> dict[str, tuple[str, str]]:
    """Parse ``git remote -v`` output into name -> (fetch url, push url)."""

    fetch_urls: dict[str, str] = {}
    push_urls: dict[str, str] = {}
    order: list[str] = []
    for line in output.splitlines():
        tokens = line.split()
        if len(tokens) != 3:
            raise OutputParseError("error parsing remote line (expected 3 tokens)", line=line, command=command)
        name, url, kind = tokens
        if name not in order:
            order.append(name)
        if kind == "(fetch)":
            target = fetch_urls
        elif kind == "(push)":
            target = push_urls
        else:
            raise OutputParseError("error parsing remote line (expected push or fetch)", line=line, command=command)
        if name in target:
            raise AmbiguityError(f"found multiple {kind.strip('()')} urls for remote {name!r}", candidates=[target[name], url])
        target[name] = url
    return {name: (fetch_urls.get(name, ""), push_urls.get(name, fetch_urls.get(name, ""))) for name in order}


class RemoteRegistry:
    """In-memory mirror of the repository's remotes.

    A full listing is cached once read; mutations go through git first and
    only then update the mirror so the two never disagree.
    """

    def __init__(self, repo: Repo):
        self._repo = repo
        self._remotes: dict[str, Remote] = {}
        self._listed = False

    def list(self, *, refresh: bool = False) -> dict[str, Remote]:
        if self._listed and not refresh:
            return dict(self._remotes)
        args = ["remote", "-v"]
        result = self._repo.exec_git(*args)
        parsed = parse_remote_list(result.stdout, ["git", *args])
        remotes: dict[str, Remote] = {}
        for name, (fetch_url, push_url) in parsed.items():
            remote = self._remotes.get(name)
            if remote is None:
                remote = Remote(name=name, fetch_url=fetch_url, push_url=push_url, repo=self._repo)
            else:
                remote.fetch_url, remote.push_url = fetch_url, push_url
            remotes[name] = remote
        self._remotes = remotes
        self._listed = True
        return dict(self._remotes)

    def get(self, name: str) -> Remote:
        """Return the named remote, querying only that remote when nothing is cached."""

        remote = self._remotes.get(name)
        if remote is not None:
            return remote
        if self._listed:
            raise NotFoundError(f"remote {name!r} not found", searched=name)
        fetch_url = self._single_url(name, push=False)
        push_url = self._single_url(name, push=True)
        remote = Remote(name=name, fetch_url=fetch_url, push_url=push_url, repo=self._repo)
        self._remotes[name] = remote
        return remote

    def _single_url(self, name: str, *, push: bool) -> str:
        args = ["remote", "get-url", "--all"]
        if push:
            args.append("--push")
        args.append(name)
        result = self._repo.exec_git(*args, check=False)
        if result.returncode == _NO_SUCH_REMOTE:
            raise NotFoundError(f"remote {name!r} not found", searched=name)
        if result.returncode != 0:
            raise GitCommandError(["git", *args], result.returncode, stdout=result.stdout, stderr=result.stderr)
        urls = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if len(urls) > 1:
            kind = "push" if push else "fetch"
            raise AmbiguityError(f"found multiple {kind} urls for remote {name!r}", candidates=urls)
        return urls[0] if urls else ""

    def rename(self, remote: Remote, new_name: str) -> None:
        if remote.name == new_name:
            return
        old_name = remote.name
        logger.info("renaming remote %s to %s", old_name, new_name)
        self._repo.exec_git("remote", "rename", old_name, new_name)
        remote.name = new_name
        self._remotes.pop(old_name, None)
        self._remotes[new_name] = remote
        # git rewrote remote.* and branch.*.remote keys
        self._repo.reload_config()

    def update_urls(self, remote: Remote, fetch_url: str, push_url: str) -> None:
        """Point ``remote`` at new fetch and push URLs, touching only what differs."""

        if remote.fetch_url != fetch_url:
            logger.info("setting url of remote %s to %s", remote.name, fetch_url)
            self._repo.exec_git("remote", "set-url", remote.name, fetch_url)
            remote.fetch_url = fetch_url
            # without an explicit pushurl git derives the push url from url
            remote.push_url = self._single_url(remote.name, push=True)
        if remote.push_url != push_url:
            logger.info("setting push url of remote %s to %s", remote.name, push_url)
            self._repo.exec_git("remote", "set-url", "--push", remote.name, push_url)
            remote.push_url = push_url


def find_upstream_remote(repo: Repo) -> Remote:
    """Resolve the remote pull requests are based on."""

    configured = repo.config.get_single(UPSTREAM_REMOTE_KEY)
    if configured:
        return repo.remotes.get(configured)

    candidates = [remote for remote in repo.remotes.list().values() if remote.name == UPSTREAM_REMOTE_NAME]
    remote = _only_candidate(candidates, "upstream remote for pull requests", UPSTREAM_REMOTE_KEY)
    repo.config.set(UPSTREAM_REMOTE_KEY, remote.name)
    return remote


def find_fork_remote(repo: Repo, identity: str, *, fix_urls: bool = False) -> Remote:
    """Resolve the contributor's own remote, the head of pull requests.

    The first successful resolution renames the remote after ``identity``,
    optionally normalises its URLs, and records it under ``gitflow.fork.remote``.
    """

    configured = repo.config.get_single(FORK_REMOTE_KEY)
    if configured:
        return repo.remotes.get(configured)

    candidates = []
    for remote in repo.remotes.list().values():
        info = remote.forge_info()
        if isinstance(info, GithubRepo) and identity and info.organization == identity:
            candidates.append(remote)
    remote = _only_candidate(candidates, f"fork remote for pull requests (owned by {identity!r})", FORK_REMOTE_KEY)

    repo.remotes.rename(remote, identity)
    if fix_urls:
        normalize_fork_urls(repo, remote, identity)
    repo.config.set(FORK_REMOTE_KEY, remote.name)
    return remote


def normalize_fork_urls(repo: Repo, remote: Remote, identity: str) -> bool:
    """Rewrite a fork to fetch over HTTPS and push over SSH.

    Returns False, leaving the remote untouched, when it is not a GitHub
    repository owned by ``identity``.
    """

    info = remote.forge_info()
    if isinstance(info, GithubRepo):
        if info.organization != identity:
            logger.warning("not rewriting urls of %s: owned by %s, not %s", remote.name, info.organization, identity)
            return False
        repo.remotes.update_urls(remote, info.https_url, info.ssh_url)
        return True
    if isinstance(info, UnknownForge):
        logger.warning("cannot determine correct urls for %s", remote.fetch_url)
        return False
    raise TypeError(f"unhandled forge info {info!r}")


def _only_candidate(candidates: list[Remote], what: str, config_key: str) -> Remote:
    if not candidates:
        raise NotFoundError(
            f"cannot determine any {what}; consider setting {config_key!r} with `git config {config_key} <name>`",
            searched=what,
        )
    if len(candidates) > 1:
        raise AmbiguityError(
            f"cannot determine unique {what}",
            candidates=sorted(remote.name for remote in candidates),
            config_key=config_key,
        )
    return candidates[0]


__all__ = [
    "FORK_REMOTE_KEY",
    "UPSTREAM_REMOTE_KEY",
    "Remote",
    "RemoteRegistry",
    "parse_remote_list",
    "find_fork_remote",
    "find_upstream_remote",
    "normalize_fork_urls",
]
