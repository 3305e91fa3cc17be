"""Typer CLI entrypoint for gitflow."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from . import __version__, branches, render
from .config import Settings, load_settings
from .exceptions import CommandError, GitflowError, format_error_chain
from .forge import GitHubClient
from .hunks import stage_matching_hunks
from .interactive import build_choices, confirm_deletion, fuzzy_select
from .models import Branch
from .repo import Repo, open_repo
from .workflows import (
    BranchDeletionError,
    cherry_pick_pull_request,
    configure_remotes,
    create_pull_request_from_commits,
    prune_merged_branches,
    rebase_on_upstream,
    show_toc,
    switch_workspace,
)

app = typer.Typer(
    help="Automate repetitive git and GitHub pull-request workflows",
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

DEFAULT_TOP_COUNT = 10


@dataclass(slots=True)
class AppState:
    settings: Settings
    repo_path: Path | None
    verbose: bool = False


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gitflow {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    repo: Optional[Path] = typer.Option(
        None,
        "--repo",
        "-r",
        help="Path to the repository to operate on (defaults to current working directory).",
        dir_okay=True,
        file_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every git invocation."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the gitflow version and exit.",
    ),
) -> None:
    _ = version  # handled via callback
    configure_logging(verbose)
    with _handle_errors():
        settings = load_settings()
    ctx.obj = AppState(settings=settings, repo_path=repo, verbose=verbose)


def _require_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if not isinstance(state, AppState):  # pragma: no cover
        raise typer.Exit(1)
    return state


def _open(state: AppState) -> Repo:
    return open_repo(state.repo_path)


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except GitflowError as exc:
        _report(exc)
        raise typer.Exit(1) from exc


def _failed_commands(exc: GitflowError) -> list[CommandError]:
    if isinstance(exc, BranchDeletionError):
        return [failure for failure in exc.failures.values() if isinstance(failure, CommandError)]
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, CommandError):
            return [current]
        current = current.__cause__
    return []


def _report(exc: GitflowError) -> None:
    for failed in _failed_commands(exc):
        for stream in (failed.stdout, failed.stderr):
            if stream.strip():
                typer.echo(stream.rstrip("\n"), err=True)
    render.error(format_error_chain(exc))


@app.command(
    help=(
        "Cherry-pick an upstream pull request onto a branch and open a new pull request. "
        "The new branch is named automated-cherry-pick-of-#<pr-number>-<target-branch>."
    )
)
def cherry(
    ctx: typer.Context,
    pr_number: str = typer.Argument(..., help="Number of the upstream pull request."),
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        help="Target branch to cherry-pick to (defaults to current branch).",
    ),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        client = GitHubClient(state.settings.github_token, cancel=repo.cancel)
        result = cherry_pick_pull_request(repo, state.settings, client, pr_number, target_branch=branch)
    render.success(
        f"Cherry-picked {len(result.pull_request.commits)} commit(s) of #{result.pull_request.number} "
        f"onto {result.target.name} as {result.branch}"
    )


@app.command(help="Open a pull request from a list of commits, on a new branch off upstream.")
def pr(
    ctx: typer.Context,
    branch_name: str = typer.Argument(..., help="Name of the branch to create."),
    shas: List[str] = typer.Argument(..., help="Commits to cherry-pick, oldest first."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        original = create_pull_request_from_commits(repo, state.settings, branch_name, shas)
    render.success(f"Opened pull request from {branch_name}; back on {original.name}")


@app.command(help="Delete local branches already merged into an upstream release branch.")
def prune(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview only, don't make changes."),
    confirm: bool = typer.Option(False, "--confirm", help="Ask before deleting the branches found."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        report = prune_merged_branches(
            repo,
            dry_run=dry_run,
            confirm=confirm_deletion if confirm else None,
        )
    render.info(f"Checked branches merged into {render.describe_branches(report.release_branches)}")
    if not report.merged:
        render.info("No merged branches to prune.")
        return
    render.show_prune_table(report.merged, deleted=report.deleted, dry_run=dry_run)
    if not dry_run and not report.deleted:
        render.warning("Deletion declined; no branches were deleted.")


@app.command(help="Show the most recently changed local branches.")
def top(
    ctx: typer.Context,
    count: Optional[int] = typer.Argument(None, help="Max number of branches to show."),
    n: int = typer.Option(DEFAULT_TOP_COUNT, "--n", "-n", help="Max number of branches to show."),
    select: bool = typer.Option(False, "--select", "-s", help="Pick one of the branches and check it out."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        names = branches.recent_branches(repo, count if count is not None else n)
        if not select:
            render.show_branches(names)
            return
        current = branches.current_branch(repo)
        selection = fuzzy_select("Switch to branch", build_choices(names, current=current.name))
        branches.checkout(repo, Branch(name=str(selection), short_name=str(selection)))
    render.success(f"Switched to {selection}")


@app.command(help="Show the commits on this branch that are not on upstream, oldest first.")
def toc(ctx: typer.Context) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        show_toc(repo)


@app.command(help="Fetch upstream and rebase the current branch onto it with --autosquash.")
def rebase(
    ctx: typer.Context,
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Run the rebase interactively."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        rebase_on_upstream(repo, interactive=interactive)


@app.command(help="Detect and normalise the fork and upstream remotes.")
def forks(
    ctx: typer.Context,
    fix_urls: Optional[bool] = typer.Option(
        None,
        "--fix-urls/--no-fix-urls",
        help="Rewrite the fork to fetch over HTTPS and push over SSH (default from GITFLOW_FIX_FORK_URLS).",
    ),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        setup = configure_remotes(repo, state.settings, fix_urls=fix_urls)
    render.success(f"Fork remote: {setup.fork.name} ({setup.fork.fetch_url})")
    render.success(f"Upstream remote: {setup.upstream.name} ({setup.upstream.fetch_url})")
    if setup.urls_fixed:
        render.info(f"Fork urls: fetch {setup.fork.fetch_url}, push {setup.fork.push_url}")


@app.command(help="Switch to a workspace given as user:branch.")
def workspace(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Workspace in the form user:branch."),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        branch = switch_workspace(repo, name)
    render.success(f"Switched to {branch.name}")


@app.command(help="Stage only the unstaged hunks whose changes match a regex.")
def stage(
    ctx: typer.Context,
    pattern: str = typer.Option(..., "--pattern", "-p", help="Regex pattern to match hunks to stage."),
    preview: bool = typer.Option(
        False,
        "--preview",
        help="Print the hunks that would be staged without staging them.",
    ),
) -> None:
    state = _require_state(ctx)
    with _handle_errors(), _open(state) as repo:
        result = stage_matching_hunks(repo, pattern, preview=preview)
    if not result.hunks:
        render.info("No hunks matched the pattern.")
        return
    if preview:
        render.info(f"Previewing {result.count} hunk(s) matching '{pattern}':")
        typer.echo(result.patch, nl=False)
        return
    render.success(f"Successfully staged {result.count} hunk(s) matching '{pattern}'")


__all__ = ["app"]


if __name__ == "__main__":
    app()
