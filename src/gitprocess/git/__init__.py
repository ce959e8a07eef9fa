"""Git related helpers for gitprocess."""

from gitprocess.git.backend import CliGitBackend, GitBackend
from gitprocess.git.config import ProcessConfig
from gitprocess.git.facade import GitCommandError, GitFacade
from gitprocess.git.observe import WorkingCopyObserver
from gitprocess.git.parse import (
    is_valid_ref_name,
    parse_push_porcelain,
    shorten_ref_name,
)

__all__ = [
    "CliGitBackend",
    "GitBackend",
    "GitCommandError",
    "GitFacade",
    "ProcessConfig",
    "WorkingCopyObserver",
    "is_valid_ref_name",
    "parse_push_porcelain",
    "shorten_ref_name",
]
