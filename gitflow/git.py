"""Minimal utilities for invoking git and other external commands."""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path
from typing import Sequence

from .exceptions import CommandCancelled, CommandError, CommandNotFoundError, GitCommandError

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1


def run_command(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    input_text: str | None = None,
    capture: bool = True,
    check: bool = True,
    cancel: threading.Event | None = None,
    error_cls: type[CommandError] = CommandError,
) -> subprocess.CompletedProcess[str]:
    """Run a command, optionally capturing its output.

    With ``capture=False`` the child inherits our stdout and stderr (pagers,
    editors, rebase sessions) and the returned streams are empty. A set
    ``cancel`` event terminates the child and raises ``CommandCancelled``.
    """

    command = list(command)
    logger.debug("running %s", " ".join(command))
    if cancel is not None and cancel.is_set():
        raise CommandCancelled(f"cancelled before running {' '.join(command)}")

    pipe = subprocess.PIPE if capture else None
    try:
        proc = subprocess.Popen(
            command,
            cwd=str(cwd) if cwd else None,
            stdin=subprocess.PIPE if input_text is not None else None,
            stdout=pipe,
            stderr=pipe,
            text=True,
        )
    except FileNotFoundError as exc:
        raise CommandNotFoundError(f"Required binary not found in PATH: {command[0]}") from exc

    with proc:
        stdout, stderr = _communicate(proc, input_text, cancel)

    result = subprocess.CompletedProcess(command, proc.returncode, stdout or "", stderr or "")
    if check and result.returncode != 0:
        raise error_cls(command, result.returncode, stdout=result.stdout, stderr=result.stderr)
    return result


def _communicate(
    proc: subprocess.Popen[str],
    input_text: str | None,
    cancel: threading.Event | None,
) -> tuple[str | None, str | None]:
    if cancel is None:
        return proc.communicate(input_text)
    while True:
        try:
            return proc.communicate(input_text, timeout=_POLL_INTERVAL)
        except subprocess.TimeoutExpired:
            # input may only be handed to the first communicate() call
            input_text = None
            if cancel.is_set():
                proc.terminate()
                proc.communicate()
                raise CommandCancelled(f"cancelled while running {' '.join(proc.args)}")


def run_git(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    input_text: str | None = None,
    capture: bool = True,
    check: bool = True,
    cancel: threading.Event | None = None,
) -> subprocess.CompletedProcess[str]:
    return run_command(
        ["git", *args],
        cwd=cwd,
        input_text=input_text,
        capture=capture,
        check=check,
        cancel=cancel,
        error_cls=GitCommandError,
    )


__all__ = ["run_command", "run_git"]
