"""Custom error hierarchy for gitflow."""

from __future__ import annotations

from typing import Sequence


class GitflowError(RuntimeError):
    """Base error for the CLI."""


class MissingEnvError(GitflowError):
    """Raised when required environment variables are missing or invalid."""


class ValidationError(GitflowError):
    """Raised when user input fails validation."""


class UserAbort(GitflowError):
    """Raised when the user cancels an interactive flow."""


class NotFoundError(GitflowError):
    """Raised when a remote, branch or key we looked for does not exist."""

    def __init__(self, message: str, *, searched: str | None = None):
        super().__init__(message)
        self.searched = searched or ""


class AmbiguityError(GitflowError):
    """Raised when several candidates are equally valid and none can be picked."""

    def __init__(
        self,
        message: str,
        *,
        candidates: Sequence[str] = (),
        config_key: str | None = None,
    ):
        self.candidates = list(candidates)
        self.config_key = config_key
        if self.candidates:
            message = f"{message} (candidates: {', '.join(self.candidates)})"
        if config_key:
            message = f"{message}; consider setting {config_key!r} with `git config {config_key} <name>`"
        super().__init__(message)


class OutputParseError(GitflowError):
    """Raised when command output does not have the shape we expect."""

    def __init__(self, message: str, *, line: str, command: Sequence[str]):
        self.line = line
        self.command = list(command)
        super().__init__(f"{message}: {line!r} (from command {' '.join(self.command)})")


class CommandError(GitflowError):
    """Raised when an external command exits with a non-zero status."""

    tool = "command"

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        super().__init__(f"{self.tool} failed (exit {returncode}): {' '.join(self.command)}")


class GitCommandError(CommandError):
    """Raised when an underlying git command fails."""

    tool = "git command"


class CommandNotFoundError(GitflowError):
    """Raised when a required binary is not on PATH."""


class CommandCancelled(GitflowError):
    """Raised when the caller's cancellation signal fires around a command."""


class ForgeError(GitflowError):
    """Raised when the forge API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PaginationError(ForgeError):
    """Raised when a forge listing spans more than one page."""


def format_error_chain(exc: BaseException) -> str:
    """Render an exception and its causes on a single line."""

    parts: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current).strip().splitlines()
        parts.append(text[0] if text else type(current).__name__)
        current = current.__cause__
    return ": ".join(parts)


__all__ = [
    "GitflowError",
    "MissingEnvError",
    "ValidationError",
    "UserAbort",
    "NotFoundError",
    "AmbiguityError",
    "OutputParseError",
    "CommandError",
    "GitCommandError",
    "CommandNotFoundError",
    "CommandCancelled",
    "ForgeError",
    "PaginationError",
    "format_error_chain",
]
