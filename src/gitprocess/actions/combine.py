"""Combine the current branch with a base branch by rebasing or merging."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from gitprocess.core.errors import OptionsError, ReferenceGone
from gitprocess.core.models import CombineKind, CombineOutcome, ErrorKind, MergeStatus, RebaseStatus
from gitprocess.core.result import Result
from gitprocess.git.facade import GitCommandError

if TYPE_CHECKING:
    from gitprocess.core.branch import Branch
    from gitprocess.core.repository import BranchRepository
    from gitprocess.io.logging import StructuredLogger


NO_CURRENT_BRANCH = "No branch is currently checked out"
_CONFLICT_REBASE_STATUSES = {RebaseStatus.stopped, RebaseStatus.conflicts, RebaseStatus.edit}


class Combiner(Protocol):
    """Bring the current branch up to date with ``base``."""

    kind: CombineKind

    def combine(self, repo: BranchRepository, base: Branch) -> Result[CombineOutcome]:
        """Combine the checked out branch with ``base``."""
        ...


class Rebaser:
    """Replay the current branch's commits on top of the base branch."""

    kind = CombineKind.rebase

    def __init__(self, logger: StructuredLogger) -> None:
        """Store the logger used to report progress."""
        self._logger = logger

    def combine(self, repo: BranchRepository, base: Branch) -> Result[CombineOutcome]:
        current = repo.current_branch()
        if current is None:
            return Result.fail(ErrorKind.precondition_failed, NO_CURRENT_BRANCH)
        self._logger.debug("rebasing", branch=current.short_name, onto=base.short_name)
        try:
            outcome = repo.backend.rebase(base.name)
        except GitCommandError as error:
            return Result.from_git_error(error, f"Rebase of {current.short_name} onto {base.short_name}")

        status = outcome.status
        if status.successful:
            result = CombineOutcome(
                kind=self.kind,
                base=base.short_name,
                status=status.value,
                message=status.message,
                new_head=outcome.new_head,
            )
            self._logger.debug("rebase finished", result=str(result))
            return Result.success(result)
        if status in _CONFLICT_REBASE_STATUSES:
            return Result.fail(ErrorKind.combine_conflict, status.message)
        if status is RebaseStatus.uncommitted_changes:
            return Result.fail(ErrorKind.precondition_failed, status.message)
        return Result.fail(ErrorKind.backend_failure, status.message)


class Merger:
    """Create a merge commit joining the current branch and the base branch."""

    kind = CombineKind.merge

    def __init__(self, logger: StructuredLogger) -> None:
        """Store the logger used to report progress."""
        self._logger = logger

    def combine(self, repo: BranchRepository, base: Branch) -> Result[CombineOutcome]:
        current = repo.current_branch()
        if current is None:
            return Result.fail(ErrorKind.precondition_failed, NO_CURRENT_BRANCH)
        message = f"Sync merge from {base.short_name} into {current.short_name}"
        try:
            self._logger.debug(
                "merging",
                branch=current.short_name,
                branch_sha=current.sha(),
                base=base.short_name,
                base_sha=base.sha(),
            )
            outcome = repo.backend.merge(base.name, message)
        except GitCommandError as error:
            return Result.from_git_error(error, f"Merge of {base.short_name} into {current.short_name}")
        except ReferenceGone as error:
            return Result.from_error(error)

        status = outcome.status
        if status.successful:
            return Result.success(
                CombineOutcome(
                    kind=self.kind,
                    base=base.short_name,
                    status=status.value,
                    message=status.message,
                    new_head=outcome.new_head,
                ),
            )
        if status is MergeStatus.conflicting:
            return Result.fail(ErrorKind.combine_conflict, status.message)
        return Result.fail(ErrorKind.backend_failure, status.message)


def select_combiner(
    *,
    merge: bool,
    rebase: bool,
    default_rebase: bool,
    logger: StructuredLogger,
) -> Combiner:
    """Choose between rebasing and merging.

    Rebasing wins when asked for explicitly, or when neither flag is given
    and ``default_rebase`` is set.

    Raises:
        OptionsError: when both ``merge`` and ``rebase`` are requested.

    """
    if merge and rebase:
        msg = "--rebase and --merge are mutually exclusive"
        raise OptionsError(msg)
    use_rebase = (rebase or default_rebase) and not merge
    return Rebaser(logger) if use_rebase else Merger(logger)


__all__ = ["NO_CURRENT_BRANCH", "Combiner", "Merger", "Rebaser", "select_combiner"]
