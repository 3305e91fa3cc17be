"""Scripted stand-in for ``run_git`` used by the test suites."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from gitflow.exceptions import GitCommandError


@dataclass(frozen=True)
class Reply:
    stdout: str = ""
    returncode: int = 0
    stderr: str = ""


@dataclass(frozen=True)
class Call:
    args: tuple[str, ...]
    input_text: str | None
    capture: bool
    cwd: Path | None


class FakeGit:
    """Answers git invocations from a script and records every call.

    Replies registered for the same arguments are consumed in order, the last
    one repeating. Unscripted commands succeed with empty output.
    """

    def __init__(self) -> None:
        self._replies: dict[tuple[str, ...], list[Reply]] = {}
        self.calls: list[Call] = []

    def on(self, *args: str, stdout: str = "", returncode: int = 0, stderr: str = "") -> "FakeGit":
        self._replies.setdefault(tuple(args), []).append(Reply(stdout, returncode, stderr))
        return self

    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        input_text: str | None = None,
        capture: bool = True,
        check: bool = True,
        cancel: object | None = None,
    ) -> subprocess.CompletedProcess[str]:
        key = tuple(args)
        self.calls.append(Call(args=key, input_text=input_text, capture=capture, cwd=cwd))
        queue = self._replies.get(key)
        if not queue:
            reply = Reply()
        elif len(queue) > 1:
            reply = queue.pop(0)
        else:
            reply = queue[0]
        command = ["git", *key]
        if check and reply.returncode != 0:
            raise GitCommandError(command, reply.returncode, stdout=reply.stdout, stderr=reply.stderr)
        return subprocess.CompletedProcess(command, reply.returncode, reply.stdout, reply.stderr)

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [call.args for call in self.calls]

    def count(self, *args: str) -> int:
        return self.commands.count(tuple(args))

    def find(self, *args: str) -> Call:
        for call in self.calls:
            if call.args == tuple(args):
                return call
        raise AssertionError(f"git {' '.join(args)} was never called; calls: {self.commands}")


def remote_listing(**remotes: str) -> str:
    """Build ``git remote -v`` output with identical fetch and push urls."""

    lines = []
    for name, url in remotes.items():
        lines.append(f"{name}\t{url} (fetch)")
        lines.append(f"{name}\t{url} (push)")
    return "\n".join(lines) + "\n"


def ref_listing(*refs: str) -> str:
    return "".join(f"{index:040x} {ref}\n" for index, ref in enumerate(refs, start=1))
