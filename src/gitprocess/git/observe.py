"""Working-copy snapshots from ``git status --porcelain=v2 --branch``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from gitprocess.core.models import WorkingCopyState

if TYPE_CHECKING:
    from collections.abc import Iterable
    from gitprocess.git.facade import GitFacade

STATUS_COMMAND = ("git", "status", "--porcelain=v2", "--branch")

# Number of space separated fields before the path, per porcelain v2 entry type.
_PATH_FIELD = {"1": 8, "2": 9, "u": 10}


def _entry_path(kind: str, line: str) -> str:
    path = line.split(" ", _PATH_FIELD[kind])[-1]
    # Renames carry "<path>\t<original path>".
    return path.split("\t", 1)[0]


def _apply_header(fields: dict[str, Any], header: str) -> None:
    key, _, value = header.partition(" ")
    if key == "branch.head":
        fields["branch"] = value
    elif key == "branch.upstream":
        fields["upstream"] = value
    elif key == "branch.oid":
        fields["sha"] = None if value == "(initial)" else value
    elif key == "branch.ab":
        ahead, _, behind = value.partition(" ")
        fields["ahead"] = int(ahead.lstrip("+"))
        fields["behind"] = int(behind.lstrip("-") or 0)


def parse_porcelain(lines: Iterable[str]) -> WorkingCopyState:
    """Fold porcelain v2 status lines into a :class:`WorkingCopyState`.

    Untracked (``?``) and ignored (``!``) entries never make the working copy
    dirty; only tracked changes and unmerged paths do.
    """
    fields: dict[str, Any] = {"branch": "HEAD"}
    conflicted: list[str] = []
    for raw in lines:
        line = raw.rstrip("\n")
        if not line:
            continue
        kind = line[0]
        if line.startswith("# "):
            _apply_header(fields, line[2:])
        elif kind == "u":
            conflicted.append(_entry_path(kind, line))
        elif kind in {"1", "2"}:
            xy = line[2:4]
            if xy[0] != ".":
                fields["staged_changes"] = True
            if xy[1] != ".":
                fields["working_tree_dirty"] = True
        elif kind == "?":
            fields["untracked_present"] = True
    return WorkingCopyState(conflicted_paths=tuple(conflicted), **fields)


class WorkingCopyObserver:
    """Reads the state of the working copy through a facade."""

    def __init__(self, facade: GitFacade) -> None:
        self._facade = facade

    def observe(self) -> WorkingCopyState:
        result = self._facade.run(list(STATUS_COMMAND))
        return parse_porcelain((result.stdout or "").splitlines())


__all__ = ["STATUS_COMMAND", "WorkingCopyObserver", "parse_porcelain"]
