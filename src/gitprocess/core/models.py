"""Core data models for gitprocess."""

from __future__ import annotations

from enum import Enum
import typing

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ErrorKind(str, Enum):
    """Categories of expected failures reported by the sync engine."""

    precondition_failed = "precondition_failed"
    backend_failure = "backend_failure"
    combine_conflict = "combine_conflict"
    refused_mainline_push = "refused_mainline_push"
    no_remote_configured = "no_remote_configured"
    reference_gone = "reference_gone"
    push_rejected = "push_rejected"
    control_ref_failure = "control_ref_failure"
    hook_failed = "hook_failed"


class SyncStep(str, Enum):
    """Steps of a sync run, used to annotate failures."""

    preconditions = "preconditions"
    fetch = "fetch"
    combine = "combine"
    reconcile = "reconcile"
    push = "push"


class CombineKind(str, Enum):
    """How a branch is combined with another branch."""

    rebase = "rebase"
    merge = "merge"


class PushMode(str, Enum):
    """Push decision produced by the reconciler."""

    plain = "plain"
    force = "force"
    reconcile = "reconcile"


_REBASE_MESSAGES: dict[str, str] = {
    "ok": "OK; Rebase was successful, HEAD points to the new commit",
    "stopped": "Stopped due to a conflict; must either abort or resolve or skip",
    "aborted": "Aborted; the original HEAD was restored",
    "edit": "Stopped for editing in the context of an interactive rebase",
    "failed": "Failed; the original HEAD was restored",
    "uncommitted_changes": (
        "The repository contains uncommitted changes and the rebase is not a fast-forward"
    ),
    "conflicts": "Conflicts: checkout of target HEAD failed",
    "up_to_date": "Already up-to-date",
    "fast_forward": "Fast-forward, HEAD points to the new commit",
}


class RebaseStatus(str, Enum):
    """Status reported by the backend after a rebase."""

    ok = "ok"
    stopped = "stopped"
    aborted = "aborted"
    edit = "edit"
    failed = "failed"
    uncommitted_changes = "uncommitted_changes"
    conflicts = "conflicts"
    up_to_date = "up_to_date"
    fast_forward = "fast_forward"

    @property
    def successful(self) -> bool:
        """Return True when HEAD ended up on a finished rebase."""
        return self in {RebaseStatus.ok, RebaseStatus.up_to_date, RebaseStatus.fast_forward}

    @property
    def message(self) -> str:
        """Return the human readable description of the status."""
        return _REBASE_MESSAGES[self.value]


class MergeStatus(str, Enum):
    """Status reported by the backend after a merge."""

    fast_forward = "fast_forward"
    already_up_to_date = "already_up_to_date"
    merged = "merged"
    conflicting = "conflicting"
    failed = "failed"

    @property
    def successful(self) -> bool:
        """Return True when the merge produced a usable HEAD."""
        return self in {MergeStatus.fast_forward, MergeStatus.already_up_to_date, MergeStatus.merged}

    @property
    def message(self) -> str:
        """Return the human readable description of the status."""
        return self.value.replace("_", " ").upper()


class RebaseOutcome(BaseModel):
    """Raw rebase result returned by a git backend."""

    status: RebaseStatus
    new_head: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class MergeOutcome(BaseModel):
    """Raw merge result returned by a git backend."""

    status: MergeStatus
    new_head: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class CombineOutcome(BaseModel):
    """Successful result of combining the current branch with a base branch."""

    kind: CombineKind
    base: str
    status: str
    message: str
    new_head: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __str__(self) -> str:
        head = (self.new_head or "")[:7]
        return f"{self.kind.value} with {self.base}: {self.message} ({head})"


class RefUpdateStatus(str, Enum):
    """Per-ref status reported by a push."""

    ok = "ok"
    up_to_date = "up_to_date"
    rejected_nonfastforward = "rejected_nonfastforward"
    rejected_fetch_first = "rejected_fetch_first"
    rejected_other_reason = "rejected_other_reason"
    remote_rejected = "remote_rejected"


class RefUpdate(BaseModel):
    """Single ref update reported by the remote side of a push."""

    source: str
    destination: str
    status: RefUpdateStatus
    summary: str = ""

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def successful(self) -> bool:
        """Return True for updates that leave the remote ref as requested."""
        return self.status in {RefUpdateStatus.ok, RefUpdateStatus.up_to_date}

    def __str__(self) -> str:
        return f"{self.source}:{self.destination} {self.status.value} {self.summary}".rstrip()


class PushOutcome(BaseModel):
    """Aggregated result of a push."""

    remote: str
    refspec: str
    force: bool = False
    updates: tuple[RefUpdate, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def success(self) -> bool:
        """Return True iff every updated ref reports ok or up-to-date."""
        return all(update.successful for update in self.updates)

    def __str__(self) -> str:
        lines = [f"push {self.refspec} to {self.remote} (force={self.force})"]
        lines.extend(f"  {update}" for update in self.updates)
        return "\n".join(lines)


class TrackingUpdate(BaseModel):
    """Remote-tracking ref touched by a fetch."""

    remote_ref: str
    local_ref: str
    summary: str
    flag: str = " "

    model_config = ConfigDict(frozen=True, extra="forbid")


class FetchSummary(BaseModel):
    """Summary of the tracking refs updated by a fetch."""

    remote: str
    updates: tuple[TrackingUpdate, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __str__(self) -> str:
        return "\n".join(
            f"  {update.remote_ref} ({update.local_ref}): {update.summary}"
            for update in self.updates
        )


class HasRemote(BaseModel):
    """The branch has a remote counterpart with a known tip."""

    name: str
    tip: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class NoRemote(BaseModel):
    """The branch has no remote counterpart."""

    model_config = ConfigDict(frozen=True, extra="forbid")


RemoteState = typing.Union[HasRemote, NoRemote]


class WorkingCopyState(BaseModel):
    """Snapshot of the working copy as reported by ``git status``."""

    branch: str
    upstream: str | None = None
    sha: str | None = None
    ahead: int = 0
    behind: int = 0
    staged_changes: bool = False
    working_tree_dirty: bool = False
    untracked_present: bool = False
    conflicted_paths: tuple[str, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def has_uncommitted_changes(self) -> bool:
        """Return True when tracked files differ from HEAD."""
        return self.staged_changes or self.working_tree_dirty or bool(self.conflicted_paths)


class Settings(BaseModel):
    """Settings loaded from an optional TOML file."""

    integration_branch: str | None = None
    parking_branch: str = "_parking_"
    remote_name: str | None = None
    default_rebase: bool = True
    json_logs: bool = False
    log_level: str = "INFO"

    model_config = ConfigDict(extra="forbid")

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            msg = f"unknown log level: {value}"
            raise ValueError(msg)
        return level

    @field_validator("parking_branch")
    @classmethod
    def _non_blank_parking(cls, value: str) -> str:
        if not value.strip():
            msg = "parking branch name must not be blank"
            raise ValueError(msg)
        return value.strip()


__all__ = [
    "CombineKind",
    "CombineOutcome",
    "ErrorKind",
    "FetchSummary",
    "HasRemote",
    "MergeOutcome",
    "MergeStatus",
    "NoRemote",
    "PushMode",
    "PushOutcome",
    "RebaseOutcome",
    "RebaseStatus",
    "RefUpdate",
    "RefUpdateStatus",
    "RemoteState",
    "Settings",
    "SyncStep",
    "TrackingUpdate",
    "WorkingCopyState",
]
