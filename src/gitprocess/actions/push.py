"""Guarded push of a local branch with sync point recording."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from gitprocess.core.errors import ReferenceGone
from gitprocess.core.models import ErrorKind, PushOutcome
from gitprocess.core.result import Result
from gitprocess.git.facade import GitCommandError

if TYPE_CHECKING:
    from collections.abc import Callable
    from gitprocess.core.branch import Branch
    from gitprocess.core.repository import BranchRepository
    from gitprocess.io.logging import StructuredLogger


@dataclass(frozen=True, slots=True)
class PushRequest:
    """What to push and where.

    ``remote_branch_name`` is the branch name on the server without the
    remote prefix, e.g. ``feature-x``.
    """

    local_branch: Branch
    remote_branch_name: str
    force: bool = False
    pre_push: Callable[[], None] | None = None
    post_push: Callable[[], None] | None = None


class Pusher:
    """Push one branch, refusing to touch the mainline."""

    def __init__(self, repo: BranchRepository, request: PushRequest, logger: StructuredLogger) -> None:
        """Prepare a push of ``request`` in ``repo``."""
        self._repo = repo
        self._request = request
        self._logger = logger.bind(branch=request.local_branch.short_name)

    @property
    def request(self) -> PushRequest:
        """Return the push request."""
        return self._request

    @property
    def force(self) -> bool:
        """Return whether the push overwrites the remote branch."""
        return self._request.force

    def push(self) -> Result[PushOutcome]:
        """Push the branch and record the sync point on success."""
        try:
            return self._push()
        except ReferenceGone as error:
            return Result.from_error(error)
        except GitCommandError as error:
            return Result.from_git_error(error, f"Push of {self._request.local_branch.short_name}")

    def _push(self) -> Result[PushOutcome]:
        request = self._request
        local = request.local_branch

        integration = self._repo.integration_branch()
        if integration is not None and integration.simple_name() == local.simple_name():
            return Result.fail(
                ErrorKind.refused_mainline_push,
                "Not pushing to the server because the current branch "
                f"({local.simple_name()}) is the mainline branch.",
            )

        config = self._repo.config
        if not config.has_remotes():
            return Result.fail(
                ErrorKind.no_remote_configured,
                "Not pushing to the server because there is no remote.",
            )

        if request.pre_push is not None:
            self._logger.debug("running pre-push hook")
            try:
                request.pre_push()
            except Exception as error:
                return Result.fail(ErrorKind.hook_failed, f"pre-push hook failed: {error}")

        remote = config.remote_name()
        if remote is None:
            return Result.fail(
                ErrorKind.no_remote_configured,
                'Could not find the remote name (e.g., "origin") for this repository',
            )

        refspec = f"{local.short_name}:refs/heads/{request.remote_branch_name}"
        self._logger.info("pushing", remote=remote, remote_branch=request.remote_branch_name, force=request.force)
        if self._logger.is_enabled_for("DEBUG"):
            tracking_ref = f"refs/remotes/{remote}/{request.remote_branch_name}"
            self._logger.debug("expected remote tip", remote_tip=self._repo.backend.resolve_ref(tracking_ref))
        try:
            updates = self._repo.backend.push(remote, refspec, force=request.force)
        except GitCommandError as error:
            return Result.from_git_error(error, f"Push of {local.short_name} to {remote}")

        outcome = PushOutcome(remote=remote, refspec=refspec, force=request.force, updates=tuple(updates))
        if not outcome.success():
            return Result.fail(
                ErrorKind.push_rejected,
                f"Push of {local.short_name} to {remote} was rejected",
                detail=str(outcome),
            )
        self._logger.info("pushed", result=str(outcome))

        if request.post_push is not None:
            self._logger.debug("running post-push hook")
            try:
                request.post_push()
            except Exception as error:
                return Result.fail(ErrorKind.hook_failed, f"post-push hook failed: {error}")
        elif local.simple_name() == request.remote_branch_name:
            recorded = local.record_last_synced_against()
            if not recorded.ok:
                return Result.from_failure(recorded.failure)  # type: ignore[arg-type]
        else:
            self._logger.debug(
                "local and remote names differ; not recording the sync point",
                remote_branch=request.remote_branch_name,
            )
        return Result.success(outcome)


__all__ = ["PushRequest", "Pusher"]
