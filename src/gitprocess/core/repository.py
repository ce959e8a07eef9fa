"""Catalog of the branches in a working copy."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitprocess.core.branch import HEADS_PREFIX, REMOTES_PREFIX, Branch
from gitprocess.core.errors import BranchAlreadyExists, InvalidReference, PreconditionError
from gitprocess.core.result import Result
from gitprocess.git.config import GIT_PROCESS_SECTION
from gitprocess.git.facade import GitCommandError
from gitprocess.git.parse import is_valid_ref_name, shorten_ref_name

if TYPE_CHECKING:
    from gitprocess.git.backend import GitBackend
    from gitprocess.git.config import ProcessConfig
    from gitprocess.io.logging import StructuredLogger


MASTER_BRANCH = "master"


class BranchRepository:
    """Look up, create and remove branches for one working copy."""

    def __init__(self, backend: GitBackend, config: ProcessConfig, logger: StructuredLogger) -> None:
        """Bind the repository to its backend, configuration and logger."""
        self._backend = backend
        self._config = config
        self._logger = logger

    @property
    def backend(self) -> GitBackend:
        """Return the git backend."""
        return self._backend

    @property
    def config(self) -> ProcessConfig:
        """Return the workflow configuration."""
        return self._config

    @property
    def logger(self) -> StructuredLogger:
        """Return the logger."""
        return self._logger

    def qualify(self, name: str) -> str:
        """Turn a short branch name into a fully-qualified, validated ref name.

        A name whose first segment matches a configured remote is a remote
        branch; anything else is a local branch.
        """
        if name.startswith("refs/"):
            ref_name = name
        elif self._config.has_remotes() and self._config.remote_prefix_of(name) is not None:
            ref_name = f"{REMOTES_PREFIX}{name}"
        else:
            ref_name = f"{HEADS_PREFIX}{shorten_ref_name(name)}"
        if not is_valid_ref_name(ref_name):
            msg = f'"{name}" is not a valid branch name'
            raise InvalidReference(msg)
        return ref_name

    def branch(self, name: str) -> Branch | None:
        """Return the branch called ``name`` or None when it does not exist."""
        try:
            return Branch.of(self, name)
        except InvalidReference:
            return None

    def current_branch(self) -> Branch | None:
        """Return the checked out branch, or None when HEAD is detached."""
        ref_name = self._backend.current_branch_ref()
        if ref_name is None:
            return None
        return Branch(self, ref_name)

    def all_branches(self) -> list[Branch]:
        """Return every local and remote-tracking branch."""
        return [Branch(self, ref_name) for ref_name in self._backend.list_branch_refs()]

    def local_branches(self) -> list[Branch]:
        """Return the local branches."""
        return [branch for branch in self.all_branches() if not branch.is_remote]

    def remote_branches(self) -> list[Branch]:
        """Return the remote-tracking branches."""
        return [branch for branch in self.all_branches() if branch.is_remote]

    def integration_branch(self) -> Branch | None:
        """Return the branch feature work is integrated into.

        The configured branch is used when set; otherwise ``<remote>/master``
        when a remote exists, then the local ``master``. Nothing is written.
        """
        configured = self._config.integration_branch_name()
        if configured:
            branch = self.branch(configured)
            if branch is None:
                self._logger.warning(
                    "configured integration branch does not exist",
                    branch=configured,
                    key=f"{GIT_PROCESS_SECTION}.integrationBranch",
                )
            return branch

        remote = self._config.remote_name()
        if remote is not None:
            branch = self.branch(f"{remote}/{MASTER_BRANCH}")
            if branch is not None:
                return branch
        branch = self.branch(MASTER_BRANCH)
        if branch is None:
            self._logger.warning(
                "no integration branch found; set one with "
                f"'git config {GIT_PROCESS_SECTION}.integrationBranch <branch>'",
            )
        return branch

    def set_integration_branch(self, branch: Branch) -> BranchRepository:
        """Persist ``branch`` as the integration branch."""
        self._config.set_integration_branch(branch.name)
        return self

    def parking(self) -> Branch:
        """Return the parking branch, creating it from integration when missing."""
        parking_name = self._config.parking_branch_name()
        existing = self.branch(parking_name)
        if existing is not None:
            return existing
        integration = self.integration_branch()
        if integration is None:
            msg = "No integration branch"
            raise PreconditionError(msg)
        self._logger.info("creating parking branch", branch=parking_name, base=integration.short_name)
        return self.create_branch(parking_name, integration)

    def on_parking(self) -> bool:
        """Return True when the parking branch is checked out."""
        current = self.current_branch()
        return current is not None and current.short_name == self._config.parking_branch_name()

    def create_branch(self, name: str, base: Branch) -> Branch:
        """Create local branch ``name`` at ``base``'s tip.

        Raises:
            BranchAlreadyExists: when a local branch called ``name`` exists.
            InvalidReference: when ``name`` is not a valid branch name.

        """
        ref_name = f"{HEADS_PREFIX}{name}"
        if not is_valid_ref_name(ref_name):
            msg = f'"{name}" is not a valid branch name'
            raise InvalidReference(msg)
        if self._backend.resolve_ref(ref_name) is not None:
            raise BranchAlreadyExists(name)
        self._backend.create_branch(name, base.name)
        self._logger.debug("created branch", branch=name, base=base.short_name)
        return Branch(self, ref_name)

    def remove_branch(self, branch: Branch) -> BranchRepository:
        """Force-delete local ``branch``."""
        self._backend.delete_branch(branch.short_name)
        self._logger.debug("removed branch", branch=branch.short_name)
        return self

    def checkout(self, branch: Branch) -> Result[Branch]:
        """Check out ``branch`` and return a fresh handle to it."""
        try:
            self._backend.checkout(branch.short_name)
        except GitCommandError as error:
            return Result.from_git_error(error, f"Checkout of {branch.short_name}")
        return Result.success(Branch(self, branch.name))

    def has_uncommitted_changes(self) -> bool:
        """Return True when tracked files differ from HEAD."""
        return self._backend.has_uncommitted_changes()


__all__ = ["MASTER_BRANCH", "BranchRepository"]
