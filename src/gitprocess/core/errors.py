"""Exceptions raised for broken invariants and invalid input."""

from __future__ import annotations

from gitprocess.core.models import ErrorKind


class GitProcessError(RuntimeError):
    """Base class for gitprocess exceptions."""

    kind: ErrorKind = ErrorKind.backend_failure


class InvalidReference(GitProcessError, ValueError):
    """Raised when a name cannot be resolved to a known, valid reference."""

    kind = ErrorKind.precondition_failed


class ReferenceGone(GitProcessError):
    """Raised when a branch's ref disappeared after the branch was resolved."""

    kind = ErrorKind.reference_gone

    def __init__(self, ref_name: str) -> None:
        """Record the ref that can no longer be resolved."""
        self.ref_name = ref_name
        super().__init__(f'"{ref_name}" no longer exists')


class BranchAlreadyExists(GitProcessError):
    """Raised when creating a branch whose name is already taken."""

    kind = ErrorKind.precondition_failed

    def __init__(self, branch_name: str) -> None:
        """Record the conflicting branch name."""
        self.branch_name = branch_name
        super().__init__(f'"{branch_name}" already exists')


class PreconditionError(GitProcessError):
    """Raised when an operation requires repository state that is missing."""

    kind = ErrorKind.precondition_failed


class OptionsError(GitProcessError, ValueError):
    """Raised for invalid option combinations before the engine runs."""

    kind = ErrorKind.precondition_failed


__all__ = [
    "BranchAlreadyExists",
    "GitProcessError",
    "InvalidReference",
    "OptionsError",
    "PreconditionError",
    "ReferenceGone",
]
