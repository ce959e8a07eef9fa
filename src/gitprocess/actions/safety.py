"""Checks that must pass before the working copy is touched."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitprocess.core.models import ErrorKind, SyncStep
from gitprocess.core.result import Failure
from gitprocess.git.facade import GitCommandError

if TYPE_CHECKING:
    from gitprocess.core.repository import BranchRepository


def verify_sync_preconditions(repo: BranchRepository) -> Failure | None:
    """Return why a sync cannot start, or None when it can.

    Only reads repository state.
    """
    try:
        if repo.current_branch() is None:
            return _precondition("Not currently on a branch")
        if repo.integration_branch() is None:
            return _precondition("There is no integration branch")
        if repo.on_parking():
            return _precondition(f"You can not do a sync while on {repo.config.parking_branch_name()}")
        if repo.has_uncommitted_changes():
            return _precondition("You have uncommitted changes")
    except GitCommandError as error:
        detail = (error.stderr or error.stdout or "").strip() or str(error)
        return Failure(
            kind=ErrorKind.backend_failure,
            message="Reading repository state failed",
            detail=detail,
            step=SyncStep.preconditions,
        )
    return None


def _precondition(message: str) -> Failure:
    return Failure(kind=ErrorKind.precondition_failed, message=message, step=SyncStep.preconditions)


__all__ = ["verify_sync_preconditions"]
