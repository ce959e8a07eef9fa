"""Parsing utilities for git output and reference names."""

from __future__ import annotations

import logging
import re

from gitprocess.core.models import RefUpdate, RefUpdateStatus, TrackingUpdate


LOGGER = logging.getLogger(__name__)

_REF_PREFIXES = ("refs/heads/", "refs/remotes/", "refs/tags/", "refs/")
_INVALID_REF_CHARACTERS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")
_FETCH_LINE = re.compile(
    r"^ (?P<flag>.) (?P<summary>\[[^\]]+\]|\S+)\s+(?P<source>\S+)\s+->\s+(?P<target>\S+)"
    r"(?:\s+\((?P<reason>[^)]*)\))?\s*$",
)
_PUSH_COLUMNS = 3
_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def shorten_ref_name(ref_name: str) -> str:
    """Strip the namespace from a fully-qualified ref (``refs/heads/x`` -> ``x``)."""
    for prefix in _REF_PREFIXES:
        if ref_name.startswith(prefix):
            return ref_name[len(prefix):]
    return ref_name


def is_valid_ref_name(ref_name: str) -> bool:
    """Apply the ``git check-ref-format`` rules to ``ref_name``."""
    if not ref_name or ref_name == "@":
        return False
    if ref_name.startswith(("/", "-")) or ref_name.endswith(("/", ".")):
        return False
    if ".." in ref_name or "//" in ref_name or "@{" in ref_name:
        return False
    if _INVALID_REF_CHARACTERS.search(ref_name):
        return False
    return all(
        component and not component.startswith(".") and not component.endswith(".lock")
        for component in ref_name.split("/")
    )


def parse_git_bool(value: str | None) -> bool | None:
    """Interpret a git config boolean, returning None for unknown values."""
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def parse_ref_listing(output: str) -> list[str]:
    """Parse ``git for-each-ref --format=%(refname)`` output into branch refs."""
    refs: list[str] = []
    for line in output.splitlines():
        ref_name = line.strip()
        if not ref_name:
            continue
        if ref_name.startswith("refs/remotes/") and ref_name.endswith("/HEAD"):
            continue
        refs.append(ref_name)
    return refs


def parse_push_porcelain(output: str) -> list[RefUpdate]:
    """Parse ``git push --porcelain`` output into per-ref updates."""
    updates: list[RefUpdate] = []
    for line in output.splitlines():
        if "\t" not in line:
            continue
        parts = line.split("\t")
        if len(parts) < _PUSH_COLUMNS:
            LOGGER.warning("Skipping unrecognised push output line: %s", line)
            continue
        flag = parts[0][:1]
        source, _, destination = parts[1].partition(":")
        summary = parts[2].strip()
        updates.append(
            RefUpdate(
                source=source,
                destination=destination,
                status=_push_status(flag, summary),
                summary=summary,
            ),
        )
    return updates


def _push_status(flag: str, summary: str) -> RefUpdateStatus:
    if flag == "=":
        return RefUpdateStatus.up_to_date
    if flag != "!":
        return RefUpdateStatus.ok
    if "remote rejected" in summary:
        return RefUpdateStatus.remote_rejected
    if "fetch first" in summary:
        return RefUpdateStatus.rejected_fetch_first
    if "non-fast-forward" in summary:
        return RefUpdateStatus.rejected_nonfastforward
    return RefUpdateStatus.rejected_other_reason


def parse_fetch_output(output: str) -> list[TrackingUpdate]:
    """Parse the ref update lines git fetch writes to stderr."""
    updates: list[TrackingUpdate] = []
    for line in output.splitlines():
        match = _FETCH_LINE.match(line)
        if match is None:
            continue
        summary = match.group("summary")
        reason = match.group("reason")
        if reason:
            summary = f"{summary} ({reason})"
        updates.append(
            TrackingUpdate(
                remote_ref=match.group("source"),
                local_ref=match.group("target"),
                summary=summary,
                flag=match.group("flag"),
            ),
        )
    return updates


__all__ = [
    "is_valid_ref_name",
    "parse_fetch_output",
    "parse_git_bool",
    "parse_push_porcelain",
    "parse_ref_listing",
    "shorten_ref_name",
]
