"""Split a zero-context diff into hunks and stage the ones matching a pattern."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Collection, Iterable, Pattern, Sequence

from .exceptions import OutputParseError, ValidationError
from .models import Hunk

if TYPE_CHECKING:  # pragma: no cover
    from .repo import Repo

FILE_MARKER = "diff --git"
HUNK_MARKER = "@@"
HUNK_RANGE = re.compile(r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? \+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@")
DIFF_COMMAND = ["git", "diff", "--no-color", "--no-ext-diff", "-U0"]


def parse_diff(text: str) -> list[Hunk]:
    """Partition unified diff text into hunks, in source order.

    Every line between a ``diff --git`` line and the first ``@@`` of that file
    (``index``, ``---``, ``+++``, mode and rename lines) forms the header that
    is stamped onto each hunk of the file.
    """

    hunks: list[Hunk] = []
    header_lines: list[str] = []
    in_preamble = False
    current_header: str | None = None
    content_lines: list[str] = []

    def flush() -> None:
        if current_header is not None:
            hunks.append(Hunk(header=current_header, content="".join(content_lines)))

    for line in text.splitlines(keepends=True):
        if not line.endswith("\n"):
            line += "\n"
        if line.startswith(FILE_MARKER):
            flush()
            current_header = None
            content_lines = []
            header_lines = [line]
            in_preamble = True
        elif line.startswith(HUNK_MARKER):
            flush()
            in_preamble = False
            current_header = "".join(header_lines)
            content_lines = [line]
        elif in_preamble:
            header_lines.append(line)
        elif current_header is not None:
            content_lines.append(line)
    flush()
    return hunks


def compile_pattern(pattern: str) -> Pattern[str]:
    if not pattern:
        raise ValidationError("pattern is required")
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ValidationError(f"invalid regex pattern {pattern!r}: {exc}") from exc


def select_hunks(hunks: Iterable[Hunk], pattern: Pattern[str]) -> list[Hunk]:
    """Keep hunks whose content (never their file header) matches ``pattern``."""

    return [hunk for hunk in hunks if pattern.search(hunk.content)]


def _hunk_range(hunk: Hunk) -> re.Match[str]:
    first_line = hunk.content.split("\n", 1)[0]
    match = HUNK_RANGE.match(first_line)
    if match is None:
        raise OutputParseError("malformed hunk header", line=first_line, command=DIFF_COMMAND)
    return match


def _line_delta(match: re.Match[str]) -> int:
    old_count = int(match.group("old_count") or 1)
    new_count = int(match.group("new_count") or 1)
    return new_count - old_count


def render_patch(hunks: Sequence[Hunk], selected: Collection[Hunk]) -> str:
    """Concatenate the ``selected`` subset of ``hunks`` into an applicable patch.

    With zero context git places each hunk at its new-side start line, which
    counts the lines added or removed by every earlier hunk of the file. The
    start of each selected hunk is moved back by the net change of the earlier
    hunks that were left out.
    """

    parts: list[str] = []
    header: str | None = None
    skipped = 0
    for hunk in hunks:
        if hunk.header != header:
            header = hunk.header
            skipped = 0
        match = _hunk_range(hunk)
        if hunk not in selected:
            skipped += _line_delta(match)
            continue
        content = hunk.content
        if skipped:
            new_start = int(match.group("new_start")) - skipped
            content = content[: match.start("new_start")] + str(new_start) + content[match.end("new_start"):]
        parts.append(hunk.header + content)
    return "".join(parts)


@dataclass(frozen=True)
class StageResult:
    pattern: str
    hunks: tuple[Hunk, ...]
    patch: str
    applied: bool

    @property
    def count(self) -> int:
        return len(self.hunks)


def stage_matching_hunks(repo: Repo, pattern: str, *, preview: bool = False) -> StageResult:
    """Stage every unstaged hunk whose changed lines match ``pattern``.

    Nothing matching is not an error; the result simply has no hunks. With
    ``preview`` the patch is built but not applied.
    """

    regex = compile_pattern(pattern)
    diff = repo.exec_git(*DIFF_COMMAND[1:]).stdout
    hunks = parse_diff(diff)
    selected = tuple(select_hunks(hunks, regex))
    patch = render_patch(hunks, set(selected))
    if not selected or preview:
        return StageResult(pattern=pattern, hunks=selected, patch=patch, applied=False)
    repo.exec_git("apply", "--cached", "--unidiff-zero", "-", input_text=patch)
    return StageResult(pattern=pattern, hunks=selected, patch=patch, applied=True)


__all__ = [
    "StageResult",
    "compile_pattern",
    "parse_diff",
    "render_patch",
    "select_hunks",
    "stage_matching_hunks",
]
