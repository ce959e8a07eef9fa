"""Explicit success/failure values for expected outcomes."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Generic, TypeVar

from gitprocess.core.models import ErrorKind, SyncStep

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from gitprocess.core.errors import GitProcessError
    from gitprocess.git.facade import GitCommandError


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Failure:
    """Describe why an operation did not succeed."""

    kind: ErrorKind
    message: str
    detail: str | None = None
    step: SyncStep | None = None

    def at(self, step: SyncStep) -> Failure:
        """Return a copy annotated with ``step`` unless already annotated."""
        if self.step is not None:
            return self
        return replace(self, step=step)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n{self.detail}"
        return self.message


class ResultError(RuntimeError):
    """Raised when unwrapping a failed result."""

    def __init__(self, failure: Failure) -> None:
        """Keep the failure that was unwrapped."""
        self.failure = failure
        super().__init__(str(failure))


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Either a value or a :class:`Failure`."""

    value: T | None = None
    failure: Failure | None = None

    @property
    def ok(self) -> bool:
        """Return True when the result carries a value."""
        return self.failure is None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        """Build a successful result."""
        return cls(value=value)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        detail: str | None = None,
        step: SyncStep | None = None,
    ) -> Result[T]:
        """Build a failed result."""
        return cls(failure=Failure(kind=kind, message=message, detail=detail, step=step))

    @classmethod
    def from_failure(cls, failure: Failure) -> Result[T]:
        """Re-wrap an existing failure, typically to change the value type."""
        return cls(failure=failure)

    @classmethod
    def from_git_error(cls, error: GitCommandError, action: str) -> Result[T]:
        """Convert a failed git invocation into a backend failure."""
        detail = (error.stderr or error.stdout or "").strip() or str(error)
        return cls.fail(ErrorKind.backend_failure, f"{action} failed", detail=detail)

    @classmethod
    def from_error(cls, error: GitProcessError) -> Result[T]:
        """Convert a gitprocess exception into a failure of the same kind."""
        return cls.fail(error.kind, str(error))

    def at(self, step: SyncStep) -> Result[T]:
        """Annotate a failure with the step that produced it."""
        if self.failure is None:
            return self
        return Result(failure=self.failure.at(step))

    def unwrap(self) -> T:
        """Return the value or raise :class:`ResultError`."""
        if self.failure is not None:
            raise ResultError(self.failure)
        return self.value  # type: ignore[return-value]


__all__ = ["Failure", "Result", "ResultError"]
