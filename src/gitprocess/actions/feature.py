"""Start new feature branches off the integration branch."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitprocess.actions.sync import fetch_remote
from gitprocess.core.errors import GitProcessError
from gitprocess.core.models import ErrorKind
from gitprocess.core.result import Result
from gitprocess.git.facade import GitCommandError

if TYPE_CHECKING:
    from gitprocess.core.branch import Branch
    from gitprocess.core.repository import BranchRepository
    from gitprocess.io.logging import StructuredLogger


def new_feature_branch(
    repo: BranchRepository,
    name: str,
    *,
    logger: StructuredLogger,
    local_only: bool = False,
) -> Result[Branch]:
    """Create, check out and track a new branch called ``name``.

    The branch starts from the integration branch. When started from the
    parking branch and parking holds work integration does not have, the
    new branch starts from parking instead so that work is carried over.
    Parking is removed once the new branch is checked out.
    """
    try:
        return _new_feature_branch(repo, name, logger=logger, local_only=local_only)
    except GitProcessError as error:
        return Result.from_error(error)
    except GitCommandError as error:
        return Result.from_git_error(error, f"Creating {name}")


def _new_feature_branch(
    repo: BranchRepository,
    name: str,
    *,
    logger: StructuredLogger,
    local_only: bool,
) -> Result[Branch]:
    integration = repo.integration_branch()
    if integration is None:
        return Result.fail(ErrorKind.precondition_failed, "There is no integration branch")
    on_parking = repo.on_parking()
    base = _base_branch(repo, integration, on_parking=on_parking)

    fetched = fetch_remote(repo, logger, local_only=local_only)
    if fetched.failure is not None:
        return Result.from_failure(fetched.failure)

    logger.info("creating feature branch", branch=name, base=base.short_name)
    branch = repo.create_branch(name, base)
    checked_out = repo.checkout(branch)
    if checked_out.failure is not None:
        return checked_out
    new_branch = checked_out.unwrap()
    new_branch.set_upstream(integration)

    if on_parking:
        repo.remove_branch(repo.parking())
    return Result.success(new_branch)


def _base_branch(repo: BranchRepository, integration: Branch, *, on_parking: bool) -> Branch:
    if not on_parking:
        return integration
    parking = repo.parking()
    if integration.contains_all_of(parking):
        return integration
    return parking


__all__ = ["new_feature_branch"]
