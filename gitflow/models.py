"""Dataclasses shared across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:  # pragma: no cover
    from .remotes import Remote


@dataclass(frozen=True)
class UnknownForge:
    """A remote URL that matches none of the forge shapes we understand."""

    url: str


@dataclass(frozen=True)
class GithubRepo:
    """An organization/repository pair hosted on GitHub."""

    organization: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.organization}/{self.name}"

    @property
    def https_url(self) -> str:
        return f"https://github.com/{self.slug}"

    @property
    def ssh_url(self) -> str:
        return f"git@github.com:{self.slug}"


ForgeInfo = Union[UnknownForge, GithubRepo]


@dataclass(frozen=True)
class Branch:
    """Snapshot of a branch taken when it was listed."""

    name: str
    short_name: str
    remote: Remote | None = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str
    commits: tuple[str, ...]


@dataclass(frozen=True)
class Hunk:
    """One ``@@`` block of a diff together with its file preamble."""

    header: str
    content: str

    @property
    def patch(self) -> str:
        return self.header + self.content


__all__ = [
    "UnknownForge",
    "GithubRepo",
    "ForgeInfo",
    "Branch",
    "PullRequest",
    "Hunk",
]
