"""CLI entry point for gitprocess built with Typer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from gitprocess.actions import new_feature_branch, sync
from gitprocess.cli.runtime import WorkflowContext, build_workflow_context, load_cli_settings
from gitprocess.core.errors import GitProcessError, OptionsError
from gitprocess.git.facade import GitCommandError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from gitprocess.core.result import Failure


app = typer.Typer(add_completion=False, no_args_is_help=True)

EXIT_BAD_OPTIONS = 1
EXIT_FAILED = 2

# Typer may run on its own bundled click, so take UsageError from the classes it exposes.
_UsageError: type[Exception] = next(
    base for base in typer.BadParameter.__mro__ if base.__name__ == "UsageError"
)


def _resolve_repo(repo: Path | None) -> Path:
    return repo.resolve() if repo is not None else Path.cwd()


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False))


def _prepare_context(
    repo: Path | None,
    settings_path: Path | None,
    *,
    json_logs: bool,
    silence_logs: bool = False,
    dry_run: bool = False,
) -> WorkflowContext:
    repo_path = _resolve_repo(repo)
    try:
        settings = load_cli_settings(settings_path)
    except FileNotFoundError as exc:
        typer.echo(f"Settings file not found: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILED) from exc
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_FAILED) from exc

    return build_workflow_context(
        repo_path,
        settings,
        json_logs=json_logs,
        silence_logs=silence_logs,
        dry_run=dry_run,
    )


def _fail(failure: Failure, *, json_output: bool) -> None:
    if json_output:
        _emit_json(
            {
                "ok": False,
                "kind": failure.kind.value,
                "step": failure.step.value if failure.step else None,
                "message": failure.message,
                "detail": failure.detail,
            },
        )
    else:
        typer.echo(str(failure), err=True)
    raise typer.Exit(code=EXIT_FAILED)


@app.callback()
def cli_root() -> None:
    """Keep feature branches in sync with integration and the server."""


RepoOption = Annotated[Path | None, typer.Option(help="Path to the repository.")]
ConfigOption = Annotated[Path | None, typer.Option(help="Path to a settings TOML.")]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", "--json-output", help="Emit JSON instead of text."),
]
LocalFlag = Annotated[
    bool,
    typer.Option("--local", "-l", help="Do not fetch or push."),
]


@app.command("sync")
def sync_command(
    repo: RepoOption = None,
    config: ConfigOption = None,
    json_output: JsonFlag = False,
    local: LocalFlag = False,
    rebase: Annotated[bool, typer.Option("--rebase", "-r", help="Rebase onto integration.")] = False,
    merge: Annotated[bool, typer.Option("--merge", "-m", help="Merge integration in.")] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Report what would happen without changing anything."),
    ] = False,
) -> None:
    """Bring the current branch up to date with integration and push it."""
    context = _prepare_context(
        repo, config, json_logs=json_output, silence_logs=json_output, dry_run=dry_run,
    )
    try:
        result = sync(
            context.repository,
            context.logger,
            merge=merge,
            rebase=rebase,
            local_only=local,
        )
    except OptionsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_BAD_OPTIONS) from exc
    except GitCommandError as exc:
        typer.echo(f"{exc}: {exc.summary}" if exc.summary else str(exc), err=True)
        raise typer.Exit(code=EXIT_FAILED) from exc

    if result.failure is not None:
        _fail(result.failure, json_output=json_output)
    branch = result.unwrap()
    if json_output:
        _emit_json({"ok": True, "branch": branch.short_name, "sha": branch.sha(), "dry_run": dry_run})
        return
    if dry_run:
        typer.echo(f"Dry run: {branch.short_name} ({branch.sha()}) would be synced; nothing was changed")
        return
    typer.echo(f"Synced {branch.short_name} ({branch.sha()})")


@app.command("feature")
def feature_command(
    name: Annotated[str, typer.Argument(help="Name of the new feature branch.")],
    repo: RepoOption = None,
    config: ConfigOption = None,
    json_output: JsonFlag = False,
    local: LocalFlag = False,
) -> None:
    """Create and check out a feature branch off the integration branch."""
    context = _prepare_context(repo, config, json_logs=json_output, silence_logs=json_output)
    result = new_feature_branch(context.repository, name, logger=context.logger, local_only=local)
    if result.failure is not None:
        _fail(result.failure, json_output=json_output)
    branch = result.unwrap()
    if json_output:
        _emit_json({"ok": True, "branch": branch.short_name, "sha": branch.sha()})
        return
    typer.echo(f"Created {branch.short_name} ({branch.sha()})")


@app.command("integration-branch")
def integration_branch_command(
    name: Annotated[str | None, typer.Argument(help="Branch to use for integration.")] = None,
    repo: RepoOption = None,
    config: ConfigOption = None,
) -> None:
    """Print the integration branch, or set it when NAME is given."""
    context = _prepare_context(repo, config, json_logs=False)
    repository = context.repository
    if name is not None:
        branch = repository.branch(name)
        if branch is None:
            typer.echo(f'"{name}" is not a known branch', err=True)
            raise typer.Exit(code=EXIT_FAILED)
        repository.set_integration_branch(branch)
        typer.echo(branch.short_name)
        return
    integration = repository.integration_branch()
    if integration is None:
        typer.echo("There is no integration branch", err=True)
        raise typer.Exit(code=EXIT_FAILED)
    typer.echo(integration.short_name)


@app.command("status")
def status_command(
    repo: RepoOption = None,
    config: ConfigOption = None,
    json_output: JsonFlag = False,
) -> None:
    """Show the current, integration and parking branches and the sync point."""
    context = _prepare_context(repo, config, json_logs=json_output, silence_logs=json_output)
    repository = context.repository
    try:
        payload = _status_payload(context)
    except (GitCommandError, GitProcessError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_FAILED) from exc

    if json_output:
        _emit_json(payload)
        return
    lines = [
        f"Repository: {context.repo_path}",
        f"Current branch: {payload['current'] or '(detached)'}",
        f"Integration branch: {payload['integration'] or 'none'}",
        f"Parking branch: {payload['parking']}{' (checked out)' if repository.on_parking() else ''}",
        f"Remote: {payload['remote'] or 'none'}",
    ]
    if payload["current"] is not None:
        lines.append(f"Remote branch: {payload['remote_branch'] or 'none'}")
        lines.append(f"Last synced against: {payload['last_synced'] or 'never'}")
    typer.echo("\n".join(lines))


def _status_payload(context: WorkflowContext) -> dict[str, Any]:
    repository = context.repository
    current = repository.current_branch()
    integration = repository.integration_branch()
    payload: dict[str, Any] = {
        "repository": str(context.repo_path),
        "current": current.short_name if current else None,
        "integration": integration.short_name if integration else None,
        "parking": context.config.parking_branch_name(),
        "remote": context.config.remote_name(),
        "remote_branch": None,
        "last_synced": None,
    }
    if current is not None:
        payload["remote_branch"] = current.remote_branch_name()
        last_synced = current.last_synced_against()
        payload["last_synced"] = last_synced.value if last_synced.ok else None
    return payload


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the gitprocess CLI and return the exit status."""
    command = typer.main.get_command(app)
    try:
        result = command.main(
            args=list(argv) if argv is not None else None,
            prog_name="gitprocess",
            standalone_mode=False,
        )
    except _UsageError as exc:
        exc.show()  # type: ignore[attr-defined]
        return EXIT_BAD_OPTIONS
    except typer.Abort:
        return EXIT_BAD_OPTIONS
    except SystemExit as exc:  # pragma: no cover - Typer propagates exit codes via SystemExit
        return int(exc.code or 0)
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
