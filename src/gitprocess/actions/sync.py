"""Synchronise the current branch with integration and its remote."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitprocess.actions.combine import select_combiner
from gitprocess.actions.reconcile import Reconciler
from gitprocess.actions.safety import verify_sync_preconditions
from gitprocess.core.errors import ReferenceGone
from gitprocess.core.models import ErrorKind, SyncStep
from gitprocess.core.result import Result
from gitprocess.git.facade import GitCommandError

if TYPE_CHECKING:
    from gitprocess.actions.combine import Combiner
    from gitprocess.core.branch import Branch
    from gitprocess.core.models import FetchSummary
    from gitprocess.core.repository import BranchRepository
    from gitprocess.io.logging import StructuredLogger


def fetch_remote(
    repo: BranchRepository,
    logger: StructuredLogger,
    *,
    local_only: bool = False,
) -> Result[FetchSummary | None]:
    """Fetch the workflow remote unless working locally or no remote exists."""
    if local_only:
        logger.debug("not fetching because local-only was selected")
        return Result.success(None)
    config = repo.config
    if not config.has_remotes():
        logger.debug("not fetching because there are no remotes")
        return Result.success(None)
    remote = config.remote_name()
    if remote is None:
        return Result.fail(
            ErrorKind.no_remote_configured,
            'Could not find the remote name (e.g., "origin") for this repository',
        )
    try:
        summary = repo.backend.fetch(remote)
    except GitCommandError as error:
        return Result.from_git_error(error, f"Fetch from {remote}")
    if summary.updates:
        logger.info("fetched", remote=remote, updates=str(summary))
    return Result.success(summary)


class SyncOrchestrator:
    """Run preconditions, fetch, combine and push for the current branch."""

    def __init__(
        self,
        repo: BranchRepository,
        combiner: Combiner,
        logger: StructuredLogger,
        *,
        local_only: bool = False,
    ) -> None:
        """Configure one sync run."""
        self._repo = repo
        self._combiner = combiner
        self._logger = logger
        self._local_only = local_only

    def sync(self) -> Result[Branch]:
        """Return the synced branch or the first failure, tagged with its step."""
        failure = verify_sync_preconditions(self._repo)
        if failure is not None:
            return Result.from_failure(failure)

        current = self._repo.current_branch()
        integration = self._repo.integration_branch()
        if current is None or integration is None:
            return Result.fail(
                ErrorKind.precondition_failed,
                "Repository state changed during sync",
                step=SyncStep.preconditions,
            )
        logger = self._logger.bind(branch=current.short_name)
        logger.info(f"doing {self._combiner.kind.value}-based sync", integration=integration.short_name)

        fetched = fetch_remote(self._repo, logger, local_only=self._local_only).at(SyncStep.fetch)
        if fetched.failure is not None:
            return Result.from_failure(fetched.failure)

        combined = self._combiner.combine(self._repo, integration).at(SyncStep.combine)
        if combined.failure is not None:
            return Result.from_failure(combined.failure)
        logger.debug("combined with integration", result=str(combined.value))

        if self._local_only:
            logger.debug("not pushing because local-only was selected")
            return Result.success(current)
        if not self._repo.config.has_remotes():
            logger.debug("not pushing because there are no remotes")
            return Result.success(current)

        try:
            return self._push(current)
        except ReferenceGone as error:
            return Result.from_error(error).at(SyncStep.push)
        except GitCommandError as error:
            return Result.from_git_error(error, f"Sync of {current.short_name}").at(SyncStep.push)

    def _push(self, current: Branch) -> Result[Branch]:
        prepared = Reconciler(self._repo, self._combiner, self._logger).prepare(current)
        if prepared.failure is not None:
            return Result.from_failure(prepared.failure.at(SyncStep.reconcile))
        pusher = prepared.unwrap()
        pushed = pusher.push().at(SyncStep.push)
        if pushed.failure is not None:
            return Result.from_failure(pushed.failure)
        return Result.success(current)


def sync(
    repo: BranchRepository,
    logger: StructuredLogger,
    *,
    merge: bool = False,
    rebase: bool = False,
    local_only: bool = False,
) -> Result[Branch]:
    """Sync the current branch, choosing rebase or merge from flags and config.

    Raises:
        OptionsError: when both ``merge`` and ``rebase`` are requested.

    """
    combiner = select_combiner(
        merge=merge,
        rebase=rebase,
        default_rebase=repo.config.default_rebase_sync(),
        logger=logger,
    )
    return SyncOrchestrator(repo, combiner, logger, local_only=local_only).sync()


__all__ = ["SyncOrchestrator", "fetch_remote", "sync"]
