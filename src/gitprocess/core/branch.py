"""Validated references to local and remote branches."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitprocess.core.errors import InvalidReference, ReferenceGone
from gitprocess.core.models import ErrorKind, HasRemote, NoRemote
from gitprocess.core.result import Result
from gitprocess.git.facade import GitCommandError
from gitprocess.git.parse import shorten_ref_name

if TYPE_CHECKING:
    from gitprocess.core.models import RemoteState
    from gitprocess.core.repository import BranchRepository


HEADS_PREFIX = "refs/heads/"
REMOTES_PREFIX = "refs/remotes/"
CONTROL_REF_PREFIX = "refs/gitProcess/"
_ABBREVIATED_LENGTH = 7


class Branch:
    """A branch that existed in the repository when it was looked up.

    The tip is resolved on every call so a Branch never reports a stale
    commit; once the ref is deleted the tip accessors raise
    :class:`ReferenceGone`.
    """

    def __init__(self, repo: BranchRepository, ref_name: str) -> None:
        """Wrap the fully-qualified ``ref_name``; prefer :meth:`of`."""
        self._repo = repo
        self._ref_name = ref_name
        self._is_remote = ref_name.startswith(REMOTES_PREFIX)

    @classmethod
    def of(cls, repo: BranchRepository, name: str) -> Branch:
        """Resolve a short or full branch name.

        Raises:
            InvalidReference: when the name is malformed or unknown.

        """
        ref_name = repo.qualify(name)
        if repo.backend.resolve_ref(ref_name) is None:
            msg = f'"{name}" is not a known reference name'
            raise InvalidReference(msg)
        return cls(repo, ref_name)

    @property
    def name(self) -> str:
        """Return the fully-qualified ref name."""
        return self._ref_name

    @property
    def short_name(self) -> str:
        """Return the ref name without its namespace."""
        return shorten_ref_name(self._ref_name)

    @property
    def is_remote(self) -> bool:
        """Return True for remote-tracking branches."""
        return self._is_remote

    def remote_name(self) -> str | None:
        """Return the remote this branch tracks, for remote branches only."""
        if not self._is_remote:
            return None
        return self._repo.config.remote_prefix_of(self.short_name)

    def simple_name(self) -> str:
        """Return the short name without any remote prefix."""
        remote = self.remote_name()
        if remote is None:
            return self.short_name
        return self.short_name[len(remote) + 1:]

    def object_id(self) -> str:
        """Return the current tip of the branch."""
        oid = self._repo.backend.resolve_ref(self._ref_name)
        if oid is None:
            raise ReferenceGone(self._ref_name)
        return oid

    def sha(self) -> str:
        """Return the abbreviated tip."""
        return self.object_id()[:_ABBREVIATED_LENGTH]

    def contains(self, oid: str) -> bool:
        """Return True when ``oid`` is reachable from this branch's tip."""
        return self._repo.backend.ancestry_contains(self.object_id(), oid)

    def contains_all_of(self, other: Branch | str) -> bool:
        """Return True when every commit of ``other`` is in this branch."""
        other_branch = other if isinstance(other, Branch) else Branch.of(self._repo, other)
        return self.contains(other_branch.object_id())

    def upstream(self) -> Branch | None:
        """Return the configured upstream branch, if it still exists."""
        upstream_name = self._repo.config.upstream(self.short_name)
        if upstream_name is None:
            return None
        return self._repo.branch(upstream_name)

    def set_upstream(self, upstream: Branch) -> Branch:
        """Configure ``upstream`` as this branch's upstream."""
        self._repo.config.set_upstream(self.short_name, upstream.short_name)
        return self

    def remote_branch_name(self) -> str | None:
        """Return ``<remote>/<simple name>`` or None when there is no remote."""
        return self._repo.config.remote_branch_name(self.simple_name())

    def remote_branch(self) -> Branch | None:
        """Return the remote counterpart when it exists locally."""
        remote_name = self.remote_branch_name()
        if remote_name is None:
            return None
        return self._repo.branch(remote_name)

    def remote_state(self) -> RemoteState:
        """Return :class:`HasRemote` or :class:`NoRemote` for this branch."""
        remote_name = self.remote_branch_name()
        if remote_name is None:
            return NoRemote()
        tip = self._repo.backend.resolve_ref(f"{REMOTES_PREFIX}{remote_name}")
        if tip is None:
            return NoRemote()
        return HasRemote(name=remote_name, tip=tip)

    def control_ref_name(self) -> str:
        """Return the ref recording what this branch was last synced against."""
        return f"{CONTROL_REF_PREFIX}{self.short_name}"

    def last_synced_against(self) -> Result[str | None]:
        """Return the remote tip seen at the last successful push, if any."""
        try:
            return Result.success(self._repo.backend.read_ref(self.control_ref_name()))
        except GitCommandError as error:
            return Result.from_git_error(error, f"Reading {self.control_ref_name()}")

    def record_last_synced_against(self, oid: str | None = None) -> Result[str]:
        """Write the control ref, defaulting to the current tip."""
        try:
            target = oid or self.object_id()
            self._repo.backend.update_ref(self.control_ref_name(), target, force=True)
        except ReferenceGone as error:
            return Result.fail(ErrorKind.control_ref_failure, str(error))
        except GitCommandError as error:
            detail = (error.stderr or error.stdout or "").strip() or str(error)
            return Result.fail(
                ErrorKind.control_ref_failure,
                f"Could not record the sync point for {self.short_name}",
                detail=detail,
            )
        self._repo.logger.debug("recorded sync point", ref=self.control_ref_name(), oid=target)
        return Result.success(target)

    def checkout(self) -> Branch:
        """Check out this branch."""
        self._repo.backend.checkout(self.short_name)
        return self

    def reset_hard(self, target: Branch | str) -> Branch:
        """Reset this (checked out) branch to ``target``."""
        ref = target.name if isinstance(target, Branch) else target
        self._repo.backend.reset_hard(ref)
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Branch):
            return NotImplemented
        return self._repo is other._repo and self._ref_name == other._ref_name

    def __hash__(self) -> int:
        return hash((id(self._repo), self._ref_name))

    def __repr__(self) -> str:
        return f"Branch({self.short_name})"


__all__ = ["CONTROL_REF_PREFIX", "Branch"]
