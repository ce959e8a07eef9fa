"""Shared fixtures for the gitprocess test suite."""

from __future__ import annotations

import hashlib
import io
import subprocess
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from gitprocess.core.models import (
    FetchSummary,
    MergeOutcome,
    MergeStatus,
    RebaseOutcome,
    RebaseStatus,
    RefUpdate,
    RefUpdateStatus,
    Settings,
    TrackingUpdate,
)
from gitprocess.core.repository import BranchRepository
from gitprocess.git.config import ProcessConfig
from gitprocess.git.facade import GitCommandError, GitInvocation
from gitprocess.io.logging import StructuredLogger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

HEADS = "refs/heads/"
REMOTES = "refs/remotes/"


@dataclass(frozen=True)
class GitResponse:
    """Represents a scripted response for a git command."""

    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


class FakeGitFacade:
    """Test double for :class:`gitprocess.git.facade.GitFacade` answering from a script."""

    def __init__(
        self,
        script: dict[tuple[str, ...], list[GitResponse] | GitResponse],
        *,
        repo_path: Path | None = None,
    ) -> None:
        """Initialise the facade with scripted responses."""
        self._repo_path = Path(repo_path) if repo_path is not None else Path.cwd()
        self._script: dict[tuple[str, ...], deque[GitResponse]] = {
            command: deque([responses]) if isinstance(responses, GitResponse) else deque(responses)
            for command, responses in script.items()
        }
        self._history: list[GitInvocation] = []

    @property
    def repo_path(self) -> Path:
        """Return the repository root associated with the facade."""
        return self._repo_path

    @property
    def commands(self) -> list[list[str]]:
        """Return the commands executed so far."""
        return [list(invocation.command) for invocation in self._history]

    def run(
        self,
        args: Any,
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        check: bool = True,
        capture_output: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Execute a git command using the scripted responses."""
        del cwd, timeout, capture_output  # unused but kept for parity with real facade
        command = tuple(str(part) for part in args)
        response = self._resolve_response(command)
        completed = subprocess.CompletedProcess(
            command,
            response.returncode,
            stdout=response.stdout,
            stderr=response.stderr,
        )
        self._history.append(GitInvocation(command, self._repo_path, completed.returncode))
        if check and completed.returncode != 0:
            raise GitCommandError(command, completed.returncode, completed.stdout or "", completed.stderr or "")
        return completed

    def fetch(self, remote: str = "origin", *, prune: bool = True) -> subprocess.CompletedProcess[str]:
        """Simulate `git fetch` for the provided remote."""
        command = ["git", "fetch"]
        if prune:
            command.append("--prune")
        command.append(remote)
        return self.run(command)

    def rebase(self, upstream: str, *, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Simulate `git rebase`."""
        return self.run(["git", "rebase", upstream], check=check)

    def merge(
        self, target: str, *, message: str | None = None, check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Simulate `git merge`."""
        command = ["git", "merge", "--no-edit"]
        if message:
            command.extend(["-m", message])
        command.append(target)
        return self.run(command, check=check)

    def push(
        self, remote: str, refspecs: list[str], *, force: bool = False, check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Simulate `git push --porcelain`."""
        command = ["git", "push", "--porcelain"]
        if force:
            command.append("--force")
        command.append(remote)
        command.extend(refspecs)
        return self.run(command, check=check)

    def rev_parse(self, revision: str) -> str | None:
        """Simulate `git rev-parse --verify --quiet`."""
        result = self.run(["git", "rev-parse", "--verify", "--quiet", revision], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def _resolve_response(self, command: tuple[str, ...]) -> GitResponse:
        """Retrieve the scripted response for ``command``."""
        if command not in self._script:
            message = f"Unexpected git command: {command}"
            raise AssertionError(message)
        responses = self._script[command]
        return responses.popleft() if len(responses) > 1 else responses[0]


class FakeGitBackend:
    """In-memory git: a commit graph, refs, config and one server per remote."""

    def __init__(self) -> None:
        """Start with an empty repository and no remotes."""
        self.commits: dict[str, tuple[str, ...]] = {}
        self.messages: dict[str, str] = {}
        self.refs: dict[str, str] = {}
        self.head: str | None = None
        self.config: dict[str, str] = {}
        self.servers: dict[str, dict[str, str]] = {}
        self.dirty = False
        self.calls: list[tuple[Any, ...]] = []
        self.conflict_on: set[str] = set()
        self.fetch_error: str | None = None
        self.push_rejection: str | None = None
        self.update_ref_error: str | None = None
        self._counter = 0

    # -- test helpers -------------------------------------------------

    def commit(self, *parents: str, branch: str | None = None, message: str = "") -> str:
        """Create a commit with ``parents``, optionally moving local ``branch`` to it."""
        self._counter += 1
        oid = hashlib.sha1(f"commit-{self._counter}".encode()).hexdigest()  # noqa: S324
        self.commits[oid] = tuple(parents)
        self.messages[oid] = message or f"commit {self._counter}"
        if branch is not None:
            self.refs[f"{HEADS}{branch}"] = oid
        return oid

    def add_remote(self, name: str) -> None:
        """Register an empty server for remote ``name``."""
        self.servers.setdefault(name, {})

    def publish(self, remote: str, branch: str, oid: str) -> None:
        """Put ``oid`` on the server and in the matching tracking ref."""
        self.servers[remote][branch] = oid
        self.refs[f"{REMOTES}{remote}/{branch}"] = oid

    def server_commit(self, remote: str, branch: str) -> str:
        """Simulate someone else pushing a new commit to ``remote``/``branch``."""
        parent = self.servers[remote].get(branch)
        oid = self.commit(*(p for p in (parent,) if p is not None), message="someone else")
        self.servers[remote][branch] = oid
        return oid

    def ancestors(self, oid: str) -> set[str]:
        """Return ``oid`` and every commit reachable from it."""
        seen: set[str] = set()
        pending = [oid]
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self.commits.get(current, ()))
        return seen

    def call_names(self) -> list[str]:
        """Return the names of the mutating or network calls made so far."""
        return [call[0] for call in self.calls]

    def _resolve(self, name: str) -> str | None:
        if name == "HEAD":
            return self.refs.get(self.head) if self.head else None
        if name in self.refs:
            return self.refs[name]
        if name in self.commits:
            return name
        return None

    def _tip(self) -> str:
        if self.head is None or self.head not in self.refs:
            raise GitCommandError(("git", "rev-parse", "HEAD"), 128, "", "fatal: no branch checked out")
        return self.refs[self.head]

    # -- GitBackend ---------------------------------------------------

    def resolve_ref(self, name: str) -> str | None:
        return self._resolve(name)

    def current_branch_ref(self) -> str | None:
        return self.head

    def list_branch_refs(self) -> list[str]:
        return sorted(ref for ref in self.refs if ref.startswith((HEADS, REMOTES)))

    def fetch(self, remote: str) -> FetchSummary:
        self.calls.append(("fetch", remote))
        if self.fetch_error is not None:
            raise GitCommandError(("git", "fetch", "--prune", remote), 128, "", self.fetch_error)
        prefix = f"{REMOTES}{remote}/"
        updates: list[TrackingUpdate] = []
        for branch, oid in self.servers[remote].items():
            ref = f"{prefix}{branch}"
            if self.refs.get(ref) != oid:
                updates.append(TrackingUpdate(remote_ref=branch, local_ref=f"{remote}/{branch}", summary="updated"))
                self.refs[ref] = oid
        for ref in [ref for ref in self.refs if ref.startswith(prefix)]:
            if ref[len(prefix):] not in self.servers[remote]:
                del self.refs[ref]
        return FetchSummary(remote=remote, updates=tuple(updates))

    def rebase(self, onto: str) -> RebaseOutcome:
        self.calls.append(("rebase", onto))
        if onto in self.conflict_on:
            return RebaseOutcome(status=RebaseStatus.stopped)
        tip = self._tip()
        onto_oid = self._resolve(onto)
        if onto_oid is None:
            raise GitCommandError(("git", "rebase", onto), 128, "", f"fatal: invalid upstream '{onto}'")
        base_ancestors = self.ancestors(onto_oid)
        if tip in base_ancestors:
            if tip == onto_oid:
                return RebaseOutcome(status=RebaseStatus.up_to_date, new_head=tip)
            assert self.head is not None
            self.refs[self.head] = onto_oid
            return RebaseOutcome(status=RebaseStatus.fast_forward, new_head=onto_oid)
        if onto_oid in self.ancestors(tip):
            return RebaseOutcome(status=RebaseStatus.up_to_date, new_head=tip)
        chain: list[str] = []
        current: str | None = tip
        while current is not None and current not in base_ancestors:
            chain.append(current)
            parents = self.commits.get(current, ())
            current = parents[0] if parents else None
        new_head = onto_oid
        for original in reversed(chain):
            new_head = self.commit(new_head, message=self.messages[original])
        assert self.head is not None
        self.refs[self.head] = new_head
        return RebaseOutcome(status=RebaseStatus.ok, new_head=new_head)

    def merge(self, target: str, message: str) -> MergeOutcome:
        self.calls.append(("merge", target, message))
        if target in self.conflict_on:
            return MergeOutcome(status=MergeStatus.conflicting)
        tip = self._tip()
        target_oid = self._resolve(target)
        if target_oid is None:
            raise GitCommandError(("git", "merge", target), 1, "", f"merge: {target} - not something we can merge")
        assert self.head is not None
        if target_oid in self.ancestors(tip):
            return MergeOutcome(status=MergeStatus.already_up_to_date, new_head=tip)
        if tip in self.ancestors(target_oid):
            self.refs[self.head] = target_oid
            return MergeOutcome(status=MergeStatus.fast_forward, new_head=target_oid)
        merged = self.commit(tip, target_oid, message=message)
        self.refs[self.head] = merged
        return MergeOutcome(status=MergeStatus.merged, new_head=merged)

    def push(self, remote: str, refspec: str, *, force: bool) -> list[RefUpdate]:
        self.calls.append(("push", remote, refspec, force))
        source, _, destination = refspec.partition(":")
        branch = destination.removeprefix(HEADS)
        oid = self.refs.get(f"{HEADS}{source}")
        if oid is None:
            raise GitCommandError(("git", "push", remote, refspec), 1, "", f"error: src refspec {source} does not match any")
        if self.push_rejection is not None:
            return [
                RefUpdate(
                    source=source,
                    destination=destination,
                    status=RefUpdateStatus.remote_rejected,
                    summary=f"[remote rejected] ({self.push_rejection})",
                ),
            ]
        server = self.servers[remote]
        current = server.get(branch)
        if current == oid:
            status, summary = RefUpdateStatus.up_to_date, "[up to date]"
        elif current is None or current in self.ancestors(oid) or force:
            status = RefUpdateStatus.ok
            summary = "[new branch]" if current is None else f"{current[:7]}..{oid[:7]}"
            server[branch] = oid
            self.refs[f"{REMOTES}{remote}/{branch}"] = oid
        else:
            status, summary = RefUpdateStatus.rejected_nonfastforward, "[rejected] (non-fast-forward)"
        return [RefUpdate(source=source, destination=destination, status=status, summary=summary)]

    def has_uncommitted_changes(self) -> bool:
        return self.dirty

    def update_ref(self, name: str, new_oid: str, *, force: bool = True) -> None:
        self.calls.append(("update_ref", name, new_oid))
        if self.update_ref_error is not None:
            raise GitCommandError(("git", "update-ref", name, new_oid), 128, "", self.update_ref_error)
        self.refs[name] = new_oid

    def read_ref(self, name: str) -> str | None:
        return self.refs.get(name)

    def ancestry_contains(self, tip: str, target: str) -> bool:
        return target in self.ancestors(tip)

    def config_get(self, key: str) -> str | None:
        return self.config.get(key)

    def config_set(self, key: str, value: str) -> None:
        self.calls.append(("config_set", key, value))
        self.config[key] = value

    def remote_names(self) -> list[str]:
        return list(self.servers)

    def create_branch(self, name: str, start_point: str) -> None:
        self.calls.append(("create_branch", name, start_point))
        oid = self._resolve(start_point)
        if oid is None:
            raise GitCommandError(("git", "branch", name, start_point), 128, "", "fatal: not a valid object name")
        self.refs[f"{HEADS}{name}"] = oid

    def delete_branch(self, name: str) -> None:
        self.calls.append(("delete_branch", name))
        ref = f"{HEADS}{name}"
        if ref == self.head:
            raise GitCommandError(("git", "branch", "-D", name), 1, "", "error: cannot delete checked out branch")
        self.refs.pop(ref, None)

    def checkout(self, name: str) -> None:
        self.calls.append(("checkout", name))
        ref = f"{HEADS}{name}"
        if ref not in self.refs:
            raise GitCommandError(("git", "checkout", name), 1, "", f"error: pathspec '{name}' did not match")
        self.head = ref

    def reset_hard(self, ref: str) -> None:
        self.calls.append(("reset_hard", ref))
        oid = self._resolve(ref)
        if self.head is None or oid is None:
            raise GitCommandError(("git", "reset", "--hard", ref), 128, "", "fatal: ambiguous argument")
        self.refs[self.head] = oid


@dataclass
class World:
    """A working copy with ``master`` published to origin and ``feature`` checked out."""

    backend: FakeGitBackend
    repository: BranchRepository
    base: str
    feature_tip: str
    log: io.StringIO


@pytest.fixture
def log_stream() -> io.StringIO:
    """Return the buffer the test logger writes to."""
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> StructuredLogger:
    """Provide a structured logger backed by an in-memory stream."""
    return StructuredLogger(name="test", stream=log_stream)


@pytest.fixture
def backend() -> FakeGitBackend:
    """Return an empty in-memory backend."""
    return FakeGitBackend()


@pytest.fixture
def make_repository(
    logger: StructuredLogger,
) -> Callable[..., BranchRepository]:
    """Return a factory building a BranchRepository over a backend."""

    def factory(backend: FakeGitBackend, settings: Settings | None = None) -> BranchRepository:
        config = ProcessConfig(backend, logger, settings)
        return BranchRepository(backend, config, logger)

    return factory


@pytest.fixture
def world(
    backend: FakeGitBackend,
    make_repository: Callable[..., BranchRepository],
    log_stream: io.StringIO,
) -> World:
    """Build the common starting point: origin/master plus a local feature branch."""
    base = backend.commit(branch="master", message="initial")
    backend.add_remote("origin")
    backend.publish("origin", "master", base)
    feature_tip = backend.commit(base, branch="feature", message="feature work")
    backend.checkout("feature")
    backend.calls.clear()
    return World(
        backend=backend,
        repository=make_repository(backend),
        base=base,
        feature_tip=feature_tip,
        log=log_stream,
    )


@pytest.fixture
def configure_fake_backend(
    monkeypatch: pytest.MonkeyPatch, backend: FakeGitBackend,
) -> Iterator[FakeGitBackend]:
    """Make CLI commands talk to the in-memory backend."""

    def factory(facade: Any, logger: Any) -> FakeGitBackend:
        del facade, logger
        return backend

    monkeypatch.setattr("gitprocess.cli.runtime.CliGitBackend", factory)
    yield backend
