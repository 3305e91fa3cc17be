"""Forge helpers: remote URL parsing, the GitHub REST client and PR creation.

Fetching pull requests uses the GitHub REST API through ``requests``. Set
``GITHUB_TOKEN`` to authenticate; anonymous requests work for public
repositories but are heavily rate limited.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable
from urllib.parse import urlparse

import requests

from .exceptions import CommandCancelled, ForgeError, PaginationError, ValidationError
from .git import run_command
from .models import ForgeInfo, GithubRepo, PullRequest, UnknownForge

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
GITHUB_HTTPS_PREFIX = "https://github.com/"
GITHUB_SSH_PREFIX = "git@github.com:"
COMMITS_PER_PAGE = 100
REQUEST_TIMEOUT = 30


def parse_forge_url(url: str) -> ForgeInfo:
    """Map a remote URL onto a forge repository.

    HTTPS is tried before the SSH shorthand; anything that does not split into
    exactly ``<org>/<repo>`` is reported as unknown rather than raised.
    """

    path: str | None = None
    if url.startswith(GITHUB_HTTPS_PREFIX):
        path = urlparse(url).path
    elif url.startswith(GITHUB_SSH_PREFIX):
        path = url[len(GITHUB_SSH_PREFIX):]
    if path is not None:
        path = path.strip("/")
        if path.endswith(".git"):
            path = path[: -len(".git")]
        parts = path.split("/")
        if len(parts) == 2 and all(parts):
            return GithubRepo(organization=parts[0], name=parts[1])
    logger.warning("unknown forge for remote url %r", url)
    return UnknownForge(url=url)


def parse_pr_number(value: str) -> int:
    text = value.strip().lstrip("#")
    if not text.isdigit() or int(text) <= 0:
        raise ValidationError(f"invalid pull request number {value!r}")
    return int(text)


class GitHubClient:
    """Read-only GitHub REST client for pull request metadata. No retries."""

    def __init__(
        self,
        token: str | None = None,
        *,
        session: requests.Session | None = None,
        cancel: threading.Event | None = None,
    ):
        self.session = session or requests.Session()
        self.cancel = cancel
        if token:
            self.session.headers["Authorization"] = f"token {token}"
        self.session.headers["Accept"] = "application/vnd.github.v3+json"
        self.session.headers["User-Agent"] = "gitflow"

    def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> requests.Response:
        if self.cancel is not None and self.cancel.is_set():
            raise CommandCancelled(f"cancelled before requesting {endpoint}")
        url = f"{GITHUB_API_BASE}{endpoint}"
        logger.debug("GET %s %s", url, params or "")
        try:
            response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise ForgeError(f"GitHub request failed: {exc}") from exc
        if response.status_code >= 400:
            raise ForgeError(
                f"GitHub API error: {response.status_code} - {response.text.strip()}",
                response.status_code,
            )
        return response

    def get_pull_request(self, repo: GithubRepo, number: int) -> PullRequest:
        """Return the title and commit SHAs (oldest first) of a pull request."""

        pr = self._get(f"/repos/{repo.slug}/pulls/{number}").json()
        response = self._get(
            f"/repos/{repo.slug}/pulls/{number}/commits",
            params={"per_page": COMMITS_PER_PAGE},
        )
        if "next" in response.links:
            raise PaginationError(
                f"commits of {repo.slug}#{number} span more than one page; too many commits to cherry-pick"
            )
        commits = tuple(item["sha"] for item in response.json())
        return PullRequest(number=number, title=pr.get("title") or "", commits=commits)


def create_pull_request(
    *,
    base: str,
    head: str,
    title: str | None = None,
    body: str | None = None,
    fill: bool = False,
    gh_binary: str = "gh",
    cwd: Path | None = None,
    cancel: threading.Event | None = None,
    runner: Callable[..., Any] = run_command,
) -> None:
    """Open a pull request with the ``gh`` CLI, streaming the body on stdin."""

    command = [gh_binary, "pr", "create", "--base", base, "--head", head]
    if fill:
        command.append("--fill")
    else:
        if title is None:
            raise ValidationError("a pull request title is required unless --fill is used")
        command.extend(["--title", title, "--body-file", "-"])
    runner(
        command,
        cwd=cwd,
        input_text=None if fill else (body or ""),
        capture=False,
        cancel=cancel,
    )


__all__ = [
    "GitHubClient",
    "create_pull_request",
    "parse_forge_url",
    "parse_pr_number",
]
