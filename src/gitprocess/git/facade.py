"""Subprocess wrapper around the ``git`` executable."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from gitprocess.io.logging import StructuredLogger


# Output is parsed, so git must speak untranslated English and never prompt.
_BASE_ENV: dict[str, str] = {"LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0"}

_QUERY_SUBCOMMANDS = frozenset(
    {"rev-parse", "for-each-ref", "status", "merge-base", "log", "show-ref"},
)


def is_query(command: Sequence[str]) -> bool:
    """Return True when ``command`` only reads repository state."""
    if len(command) < 2 or command[0] != "git":  # noqa: PLR2004
        return False
    subcommand = command[1]
    if subcommand == "config":
        return "--get" in command
    if subcommand == "remote":
        return len(command) == 2 or command[2] in {"-v", "--verbose", "get-url", "show"}  # noqa: PLR2004
    if subcommand == "symbolic-ref":
        # "symbolic-ref <name>" reads; "symbolic-ref <name> <ref>" and --delete write.
        if {"-d", "--delete"} & set(command):
            return False
        return len([arg for arg in command[2:] if not arg.startswith("-")]) <= 1
    return subcommand in _QUERY_SUBCOMMANDS


class GitCommandError(RuntimeError):
    """A git command exited with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"{' '.join(self.command)} exited with status {returncode}")

    @property
    def summary(self) -> str:
        """First non-empty line git printed, preferring stderr."""
        for text in (self.stderr, self.stdout):
            for line in (text or "").splitlines():
                if line.strip():
                    return line.strip()
        return ""


@dataclass(frozen=True, slots=True)
class GitInvocation:
    """One recorded git command."""

    command: tuple[str, ...]
    cwd: Path
    returncode: int
    skipped: bool = False


class GitFacade:
    """Run git commands inside one working copy.

    Every command is logged at debug level and appended to
    :attr:`command_history`. In dry-run mode commands that would change the
    repository or the server are recorded but not executed, while queries
    still run so that callers see the real state of the repository.
    """

    def __init__(
        self,
        repo_path: Path,
        logger: StructuredLogger,
        *,
        dry_run: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._repo_path = Path(repo_path)
        self._logger = logger
        self._dry_run = dry_run
        self._env = {**_BASE_ENV, **(env or {})}
        self._history: list[GitInvocation] = []
        self._subprocess_run: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run

    @property
    def repo_path(self) -> Path:
        return self._repo_path

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    @property
    def command_history(self) -> tuple[GitInvocation, ...]:
        return tuple(self._history)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        check: bool = True,
        capture_output: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run ``args`` and return the completed process.

        Raises :class:`GitCommandError` on a non-zero exit when ``check`` is set.
        """
        command = tuple(str(part) for part in args)
        working_dir = Path(cwd) if cwd is not None else self._repo_path

        if self._dry_run and not is_query(command):
            self._logger.info("dry run: git command skipped", command=list(command))
            self._history.append(GitInvocation(command, working_dir, 0, skipped=True))
            return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

        self._logger.debug("running git", command=list(command), cwd=str(working_dir))
        completed = self._subprocess_run(
            command,
            cwd=str(working_dir),
            capture_output=capture_output,
            text=True,
            timeout=timeout,
            check=False,
            env={**os.environ, **self._env},
        )
        stdout = completed.stdout or ""
        stderr = completed.stderr or ""
        self._history.append(GitInvocation(command, working_dir, completed.returncode))
        if completed.returncode != 0:
            self._logger.debug("git exited non-zero", returncode=completed.returncode, stderr=stderr)
        if check and completed.returncode != 0:
            raise GitCommandError(command, completed.returncode, stdout, stderr)
        return completed

    def fetch(self, remote: str, *, prune: bool = True) -> subprocess.CompletedProcess[str]:
        command = ["git", "fetch"]
        if prune:
            command.append("--prune")
        return self.run([*command, remote])

    def rebase(self, upstream: str, *, check: bool = True) -> subprocess.CompletedProcess[str]:
        return self.run(["git", "rebase", upstream], check=check)

    def merge(
        self,
        target: str,
        *,
        message: str | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Merge ``target`` into HEAD; ``--no-edit`` keeps git from opening an editor."""
        command = ["git", "merge", "--no-edit"]
        if message:
            command += ["-m", message]
        return self.run([*command, target], check=check)

    def push(
        self,
        remote: str,
        refspecs: Sequence[str],
        *,
        force: bool = False,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Push with ``--porcelain`` so per-ref results can be parsed."""
        command = ["git", "push", "--porcelain"]
        if force:
            command.append("--force")
        return self.run([*command, remote, *refspecs], check=check)

    def rev_parse(self, revision: str) -> str | None:
        """Object id of ``revision``, or None when it does not resolve."""
        result = self.run(["git", "rev-parse", "--verify", "--quiet", revision], check=False)
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip() or None


__all__ = ["GitCommandError", "GitFacade", "GitInvocation", "is_query"]
