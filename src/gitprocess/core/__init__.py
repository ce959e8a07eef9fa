"""Core models, results and errors for gitprocess."""

from .errors import (
    BranchAlreadyExists,
    GitProcessError,
    InvalidReference,
    OptionsError,
    PreconditionError,
    ReferenceGone,
)
from .models import (
    CombineKind,
    CombineOutcome,
    ErrorKind,
    FetchSummary,
    HasRemote,
    MergeStatus,
    NoRemote,
    PushMode,
    PushOutcome,
    RebaseStatus,
    RefUpdate,
    RefUpdateStatus,
    Settings,
    SyncStep,
)
from .result import Failure, Result, ResultError

__all__ = [
    "BranchAlreadyExists",
    "CombineKind",
    "CombineOutcome",
    "ErrorKind",
    "Failure",
    "FetchSummary",
    "GitProcessError",
    "HasRemote",
    "InvalidReference",
    "MergeStatus",
    "NoRemote",
    "OptionsError",
    "PreconditionError",
    "PushMode",
    "PushOutcome",
    "RebaseStatus",
    "RefUpdate",
    "RefUpdateStatus",
    "ReferenceGone",
    "Result",
    "ResultError",
    "Settings",
    "SyncStep",
]
