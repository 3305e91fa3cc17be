"""Interactive prompt helpers built on InquirerPy."""

from __future__ import annotations

import sys
from typing import Any, Sequence

from InquirerPy import inquirer
from InquirerPy.base.control import Choice

from .exceptions import UserAbort, ValidationError


def _ensure_tty() -> None:
    if not sys.stdin.isatty():
        raise ValidationError(
            "Interactive mode requires a TTY. Provide the missing arguments to run non-interactively."
        )


def fuzzy_select(message: str, choices: Sequence[Choice | str]) -> Any:
    _ensure_tty()
    selection = inquirer.fuzzy(message=message, choices=choices).execute()
    if selection is None:
        raise UserAbort("Selection cancelled.")
    return selection


def confirm(message: str, default: bool = True) -> bool:
    _ensure_tty()
    return bool(inquirer.confirm(message=message, default=default).execute())


def build_choices(options: Sequence[str], *, current: str | None = None) -> list[Choice]:
    """Return Choice objects, marking the current branch."""

    result: list[Choice] = []
    seen: set[str] = set()
    for item in options:
        if not item or item in seen:
            continue
        seen.add(item)
        name = f"{item} (current)" if item == current else item
        result.append(Choice(value=item, name=name))
    return result


def confirm_deletion(branches: Sequence[str]) -> bool:
    count = len(branches)
    plural = "branch" if count == 1 else "branches"
    return confirm(f"Delete {count} {plural}?", default=True)
