"""Decide how a synced branch is pushed and reconcile remote changes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitprocess.actions.push import PushRequest, Pusher
from gitprocess.core.errors import ReferenceGone
from gitprocess.core.models import ErrorKind, HasRemote, PushMode
from gitprocess.core.result import Result
from gitprocess.git.facade import GitCommandError

if TYPE_CHECKING:
    from collections.abc import Callable
    from gitprocess.actions.combine import Combiner
    from gitprocess.core.branch import Branch
    from gitprocess.core.models import RemoteState
    from gitprocess.core.repository import BranchRepository
    from gitprocess.io.logging import StructuredLogger


def decide_push_mode(
    remote: RemoteState,
    last_synced: str | None,
    local_contains: Callable[[str], bool],
) -> PushMode:
    """Return how the local branch may be pushed over ``remote``.

    A remote tip that moved since ``last_synced`` always needs reconciling.
    A force push without reconciling only happens when the remote is exactly
    what was pushed last time.
    """
    if not isinstance(remote, HasRemote):
        return PushMode.plain
    if last_synced is not None and remote.tip != last_synced:
        return PushMode.reconcile
    if local_contains(remote.tip):
        return PushMode.plain
    if last_synced is not None:
        return PushMode.force
    return PushMode.reconcile


class Reconciler:
    """Build the :class:`Pusher` for a branch that has just been combined."""

    def __init__(self, repo: BranchRepository, combiner: Combiner, logger: StructuredLogger) -> None:
        """Bind the reconciler to a repository and combine strategy."""
        self._repo = repo
        self._combiner = combiner
        self._logger = logger

    def prepare(self, branch: Branch) -> Result[Pusher]:
        """Return a pusher for ``branch``, reconciling with its remote first when needed."""
        logger = self._logger.bind(branch=branch.short_name)
        last_synced = branch.last_synced_against()
        if last_synced.failure is not None:
            return Result.from_failure(last_synced.failure)
        try:
            remote = branch.remote_state()
            mode = decide_push_mode(remote, last_synced.value, branch.contains)
        except GitCommandError as error:
            return Result.from_git_error(error, f"Reading the remote state of {branch.short_name}")
        except ReferenceGone as error:
            return Result.from_error(error)

        if last_synced.value is not None and not isinstance(remote, HasRemote):
            logger.warning("the remote version of this branch has disappeared")
        if mode is PushMode.reconcile:
            logger.warning(
                "remote branch changed since the last sync; reconciling",
                last_synced=last_synced.value,
                remote=remote.tip if isinstance(remote, HasRemote) else None,
            )
            reconciled = self._reconcile(branch)
            if reconciled.failure is not None:
                return Result.from_failure(reconciled.failure)
        else:
            logger.debug("push decision", mode=mode.value)

        request = PushRequest(
            local_branch=branch,
            remote_branch_name=branch.simple_name(),
            force=mode is not PushMode.plain,
        )
        return Result.success(Pusher(self._repo, request, self._logger))

    def _reconcile(self, branch: Branch) -> Result[None]:
        remote_branch_name = branch.remote_branch_name()
        if remote_branch_name is None:
            return Result.fail(
                ErrorKind.precondition_failed,
                f"Could not determine a remote branch name for {branch.short_name}",
            )
        remote_branch = self._repo.branch(remote_branch_name)
        if remote_branch is None:
            return Result.fail(ErrorKind.reference_gone, f'"{remote_branch_name}" no longer exists')
        with_remote = self._combiner.combine(self._repo, remote_branch)
        if with_remote.failure is not None:
            return Result.from_failure(with_remote.failure)

        integration = self._repo.integration_branch()
        if integration is None:
            return Result.fail(ErrorKind.precondition_failed, "There is no integration branch")
        with_integration = self._combiner.combine(self._repo, integration)
        if with_integration.failure is not None:
            return Result.from_failure(with_integration.failure)
        return Result.success(None)


__all__ = ["Reconciler", "decide_push_mode"]
