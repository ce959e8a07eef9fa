"""Helpers shared across CLI commands for wiring the sync engine."""

from __future__ import annotations

import io
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gitprocess.core.models import Settings
from gitprocess.core.repository import BranchRepository
from gitprocess.git.backend import CliGitBackend
from gitprocess.git.config import ProcessConfig
from gitprocess.git.facade import GitFacade
from gitprocess.io import StructuredLogger, load_settings

if TYPE_CHECKING:
    from pathlib import Path
    from gitprocess.git.backend import GitBackend


@dataclass(slots=True)
class WorkflowContext:
    """Container bundling CLI dependencies for one working copy."""

    repo_path: Path
    settings: Settings
    logger: StructuredLogger
    facade: GitFacade
    backend: GitBackend
    config: ProcessConfig
    repository: BranchRepository


def load_cli_settings(settings_path: Path | None) -> Settings:
    """Load settings from ``settings_path`` or fall back to defaults."""
    if settings_path is None:
        return Settings()
    return load_settings(path=settings_path)


def build_workflow_context(
    repo_path: Path,
    settings: Settings,
    *,
    json_logs: bool,
    silence_logs: bool,
    dry_run: bool = False,
) -> WorkflowContext:
    """Assemble the context required by CLI commands.

    With ``dry_run`` the facade skips every git command that would change the
    repository or the server.
    """
    stream = io.StringIO() if silence_logs else sys.stderr
    logger = StructuredLogger(
        name="gitprocess.cli",
        json_mode=json_logs or settings.json_logs,
        stream=stream,
        level=settings.log_level,
    )
    facade = GitFacade(repo_path=repo_path, logger=logger, dry_run=dry_run)
    backend = CliGitBackend(facade, logger)
    config = ProcessConfig(backend, logger, settings)
    repository = BranchRepository(backend, config, logger)
    return WorkflowContext(
        repo_path=repo_path,
        settings=settings,
        logger=logger,
        facade=facade,
        backend=backend,
        config=config,
        repository=repository,
    )


__all__ = ["WorkflowContext", "build_workflow_context", "load_cli_settings"]
