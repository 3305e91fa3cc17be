"""Entry point shim for `python -m gitflow`."""

from __future__ import annotations

from gitflow.cli import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
