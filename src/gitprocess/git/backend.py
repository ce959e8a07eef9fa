"""Git backend protocol and the implementation driving the git executable."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from gitprocess.core.models import (
    FetchSummary,
    MergeOutcome,
    MergeStatus,
    RebaseOutcome,
    RebaseStatus,
    RefUpdate,
)
from gitprocess.git.facade import GitCommandError
from gitprocess.git.observe import WorkingCopyObserver
from gitprocess.git.parse import parse_fetch_output, parse_push_porcelain, parse_ref_listing

if TYPE_CHECKING:
    from gitprocess.core.models import WorkingCopyState
    from gitprocess.git.facade import GitFacade
    from gitprocess.io.logging import StructuredLogger


_NOT_ANCESTOR = 1
_CONFIG_KEY_MISSING = 1
_REBASE_STATE_DIRS = ("rebase-merge", "rebase-apply")
_DIRTY_REBASE_MARKERS = ("uncommitted changes", "unstaged changes", "would be overwritten")


class GitBackend(Protocol):
    """Capabilities the sync engine consumes from a git implementation.

    Hard failures raise :class:`~gitprocess.git.facade.GitCommandError`;
    conflicts and rejected ref updates are reported as return values.
    """

    def resolve_ref(self, name: str) -> str | None:
        """Return the commit id ``name`` points at, or None when unknown."""
        ...

    def current_branch_ref(self) -> str | None:
        """Return the full ref HEAD points to, or None when detached."""
        ...

    def list_branch_refs(self) -> list[str]:
        """Return every local and remote-tracking branch ref."""
        ...

    def fetch(self, remote: str) -> FetchSummary:
        """Fetch ``remote`` and prune deleted branches."""
        ...

    def merge(self, target: str, message: str) -> MergeOutcome:
        """Merge ``target`` into the current branch."""
        ...

    def rebase(self, onto: str) -> RebaseOutcome:
        """Rebase the current branch onto ``onto``."""
        ...

    def push(self, remote: str, refspec: str, *, force: bool) -> list[RefUpdate]:
        """Push ``refspec`` to ``remote`` and report per-ref statuses."""
        ...

    def has_uncommitted_changes(self) -> bool:
        """Return True when tracked files differ from HEAD."""
        ...

    def update_ref(self, name: str, new_oid: str, *, force: bool = True) -> None:
        """Point ``name`` at ``new_oid``."""
        ...

    def read_ref(self, name: str) -> str | None:
        """Return the object id stored in ``name`` or None when absent."""
        ...

    def ancestry_contains(self, tip: str, target: str) -> bool:
        """Return True when ``target`` is reachable from ``tip``."""
        ...

    def config_get(self, key: str) -> str | None:
        """Return a git config value or None when unset."""
        ...

    def config_set(self, key: str, value: str) -> None:
        """Write a repository-local git config value."""
        ...

    def remote_names(self) -> list[str]:
        """Return the configured remote names."""
        ...

    def create_branch(self, name: str, start_point: str) -> None:
        """Create local branch ``name`` at ``start_point``."""
        ...

    def delete_branch(self, name: str) -> None:
        """Force-delete local branch ``name``."""
        ...

    def checkout(self, name: str) -> None:
        """Check out local branch ``name``."""
        ...

    def reset_hard(self, ref: str) -> None:
        """Reset the index and working tree of the current branch to ``ref``."""
        ...


class CliGitBackend:
    """:class:`GitBackend` built on :class:`GitFacade` subprocess calls."""

    def __init__(self, facade: GitFacade, logger: StructuredLogger) -> None:
        """Bind the backend to a facade and logger."""
        self._facade = facade
        self._logger = logger
        self._observer = WorkingCopyObserver(facade)

    @property
    def facade(self) -> GitFacade:
        """Return the underlying facade."""
        return self._facade

    def resolve_ref(self, name: str) -> str | None:
        return self._facade.rev_parse(f"{name}^{{commit}}")

    def current_branch_ref(self) -> str | None:
        result = self._facade.run(["git", "symbolic-ref", "--quiet", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def list_branch_refs(self) -> list[str]:
        result = self._facade.run(
            ["git", "for-each-ref", "--format=%(refname)", "refs/heads", "refs/remotes"],
        )
        return parse_ref_listing(result.stdout or "")

    def fetch(self, remote: str) -> FetchSummary:
        self._logger.info("fetching latest", remote=remote)
        result = self._facade.fetch(remote, prune=True)
        summary = FetchSummary(remote=remote, updates=tuple(parse_fetch_output(result.stderr or "")))
        self._logger.debug("fetch summary", remote=remote, updates=len(summary.updates))
        return summary

    def merge(self, target: str, message: str) -> MergeOutcome:
        result = self._facade.merge(target, message=message, check=False)
        if result.returncode == 0:
            output = result.stdout or ""
            if "Already up to date" in output or "Already up-to-date" in output:
                status = MergeStatus.already_up_to_date
            elif "Fast-forward" in output:
                status = MergeStatus.fast_forward
            else:
                status = MergeStatus.merged
            return MergeOutcome(status=status, new_head=self._facade.rev_parse("HEAD"))
        if self._facade.rev_parse("MERGE_HEAD") is not None:
            return MergeOutcome(status=MergeStatus.conflicting)
        raise GitCommandError(
            ("git", "merge", target), result.returncode, result.stdout or "", result.stderr or "",
        )

    def rebase(self, onto: str) -> RebaseOutcome:
        original_head = self._facade.rev_parse("HEAD")
        result = self._facade.rebase(onto, check=False)
        if result.returncode == 0:
            new_head = self._facade.rev_parse("HEAD")
            if new_head == original_head:
                status = RebaseStatus.up_to_date
            elif new_head == self._facade.rev_parse(f"{onto}^{{commit}}"):
                status = RebaseStatus.fast_forward
            else:
                status = RebaseStatus.ok
            return RebaseOutcome(status=status, new_head=new_head)
        if self._rebase_in_progress():
            return RebaseOutcome(status=RebaseStatus.stopped)
        stderr = (result.stderr or "").lower()
        if any(marker in stderr for marker in _DIRTY_REBASE_MARKERS):
            return RebaseOutcome(status=RebaseStatus.uncommitted_changes, new_head=original_head)
        raise GitCommandError(
            ("git", "rebase", onto), result.returncode, result.stdout or "", result.stderr or "",
        )

    def _rebase_in_progress(self) -> bool:
        for state_dir in _REBASE_STATE_DIRS:
            result = self._facade.run(["git", "rev-parse", "--git-path", state_dir], check=False)
            relative = (result.stdout or "").strip()
            if relative and (self._facade.repo_path / Path(relative)).exists():
                return True
        return False

    def push(self, remote: str, refspec: str, *, force: bool) -> list[RefUpdate]:
        result = self._facade.push(remote, [refspec], force=force, check=False)
        updates = parse_push_porcelain(result.stdout or "")
        if result.returncode != 0 and not updates:
            raise GitCommandError(
                ("git", "push", remote, refspec), result.returncode, result.stdout or "", result.stderr or "",
            )
        return updates

    def observe(self) -> WorkingCopyState:
        """Return the current working copy status."""
        return self._observer.observe()

    def has_uncommitted_changes(self) -> bool:
        return self.observe().has_uncommitted_changes

    def update_ref(self, name: str, new_oid: str, *, force: bool = True) -> None:
        command = ["git", "update-ref", name, new_oid]
        if not force:
            command.append(self.read_ref(name) or "")
        self._facade.run(command)

    def read_ref(self, name: str) -> str | None:
        return self._facade.rev_parse(name)

    def ancestry_contains(self, tip: str, target: str) -> bool:
        command = ["git", "merge-base", "--is-ancestor", target, tip]
        result = self._facade.run(command, check=False)
        if result.returncode == 0:
            return True
        if result.returncode == _NOT_ANCESTOR:
            return False
        raise GitCommandError(command, result.returncode, result.stdout or "", result.stderr or "")

    def config_get(self, key: str) -> str | None:
        command = ["git", "config", "--get", key]
        result = self._facade.run(command, check=False)
        if result.returncode == 0:
            return result.stdout.strip()
        if result.returncode == _CONFIG_KEY_MISSING:
            return None
        raise GitCommandError(command, result.returncode, result.stdout or "", result.stderr or "")

    def config_set(self, key: str, value: str) -> None:
        self._facade.run(["git", "config", "--local", key, value])

    def remote_names(self) -> list[str]:
        result = self._facade.run(["git", "remote"])
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def create_branch(self, name: str, start_point: str) -> None:
        self._facade.run(["git", "branch", name, start_point])

    def delete_branch(self, name: str) -> None:
        self._facade.run(["git", "branch", "-D", name])

    def checkout(self, name: str) -> None:
        self._facade.run(["git", "checkout", name])

    def reset_hard(self, ref: str) -> None:
        self._facade.run(["git", "reset", "--hard", ref])


__all__ = ["CliGitBackend", "GitBackend"]
