"""Repository handle: command execution plus the cached git configuration."""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, Sequence

from .exceptions import AmbiguityError, GitCommandError, NotFoundError, OutputParseError
from .git import run_git
from .remotes import RemoteRegistry

logger = logging.getLogger(__name__)

GitRunner = Callable[..., subprocess.CompletedProcess]


def normalize_config_key(key: str) -> str:
    """Lower-case the section and variable name, keeping any subsection as-is."""

    section, _, rest = key.partition(".")
    if not rest:
        return key.lower()
    subsection, dot, variable = rest.rpartition(".")
    if not dot:
        return f"{section.lower()}.{rest.lower()}"
    return f"{section.lower()}.{subsection}.{variable.lower()}"


def parse_config_list(output: str, command: Sequence[str]) -> dict[str, list[str]]:
    """Parse ``git config --list`` output into key -> values in listing order."""

    values: dict[str, list[str]] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            raise OutputParseError("error parsing config line (expected key=value)", line=line, command=command)
        values.setdefault(normalize_config_key(key), []).append(value)
    return values


class ConfigStore:
    """Lazily loaded view of ``git config --list`` with write-through updates."""

    def __init__(self, repo: Repo):
        self._repo = repo
        self._values: dict[str, list[str]] | None = None

    def load(self) -> None:
        args = ["config", "--list"]
        result = self._repo.exec_git(*args)
        # parse fully before swapping so a bad line never leaves a partial cache
        self._values = parse_config_list(result.stdout, ["git", *args])

    def _data(self) -> dict[str, list[str]]:
        if self._values is None:
            self.load()
        assert self._values is not None
        return self._values

    def get_all(self, key: str) -> list[str]:
        return list(self._data().get(normalize_config_key(key), []))

    def get(self, key: str) -> str:
        """Return all values of ``key`` joined with commas, or "" when unset."""

        return ",".join(self.get_all(key))

    def get_single(self, key: str) -> str:
        """Return the only value of ``key``, "" when unset.

        Keys the tool itself maintains are singletons, so several values is an error.
        """

        values = self.get_all(key)
        if len(values) > 1:
            raise AmbiguityError(f"config key {key!r} is set more than once", candidates=values)
        return values[0] if values else ""

    def set(self, key: str, value: str) -> None:
        self._repo.exec_git("config", key, value)
        data = self._data()
        data[normalize_config_key(key)] = [value]
        logger.info("set git config %s=%s", key, value)

    def __contains__(self, key: str) -> bool:
        return normalize_config_key(key) in self._data()


class Repo:
    """A git working directory for the lifetime of one command."""

    def __init__(
        self,
        path: Path,
        *,
        runner: GitRunner = run_git,
        cancel: threading.Event | None = None,
    ):
        self.path = path
        self.cancel = cancel
        self._runner = runner
        self.config = ConfigStore(self)
        self.remotes = RemoteRegistry(self)

    def exec_git(
        self,
        *args: str,
        check: bool = True,
        input_text: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        return self._runner(
            list(args),
            cwd=self.path,
            input_text=input_text,
            check=check,
            cancel=self.cancel,
        )

    def exec_git_interactive(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Run git attached to the terminal; output is not captured."""

        return self._runner(list(args), cwd=self.path, capture=False, cancel=self.cancel)

    def reload_config(self) -> None:
        self.config.load()

    def close(self) -> None:
        self.config = ConfigStore(self)
        self.remotes = RemoteRegistry(self)

    def __enter__(self) -> Repo:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_repo(
    path: Path | None = None,
    *,
    runner: GitRunner = run_git,
    cancel: threading.Event | None = None,
) -> Repo:
    """Open the repository containing ``path`` (default: the current directory)."""

    start = path.expanduser() if path else Path.cwd()
    try:
        result = runner(["rev-parse", "--show-toplevel"], cwd=start, check=True, cancel=cancel)
    except GitCommandError as exc:
        raise NotFoundError(f"failed to open git repo {str(start)!r}", searched=str(start)) from exc
    root = Path(result.stdout.strip())
    repo = Repo(root, runner=runner, cancel=cancel)
    # listing the config doubles as a check that git understands this directory
    repo.config.load()
    return repo


__all__ = ["ConfigStore", "Repo", "open_repo", "parse_config_list"]
