"""Workflow configuration stored in git config and the settings file."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitprocess.core.models import Settings
from gitprocess.git.parse import parse_git_bool, shorten_ref_name

if TYPE_CHECKING:
    from gitprocess.git.backend import GitBackend
    from gitprocess.io.logging import StructuredLogger


GIT_PROCESS_SECTION = "gitProcess"
INTEGRATION_BRANCH_KEY = "integrationBranch"
REMOTE_NAME_KEY = "remoteName"
DEFAULT_REBASE_SYNC_KEY = "defaultRebaseSync"
DEFAULT_REMOTE_NAME = "origin"
LOCAL_REMOTE = "."


class ProcessConfig:
    """Read and write the settings that drive the branch workflow.

    Values stored in git config win over the settings file, and the settings
    file wins over built-in defaults.
    """

    def __init__(
        self,
        backend: GitBackend,
        logger: StructuredLogger,
        settings: Settings | None = None,
    ) -> None:
        """Bind the configuration to a backend and optional settings."""
        self._backend = backend
        self._logger = logger
        self._settings = settings or Settings()

    @property
    def settings(self) -> Settings:
        """Return the settings file values in effect."""
        return self._settings

    def integration_branch_name(self) -> str | None:
        """Return the configured integration branch name, if any."""
        configured = self._backend.config_get(f"{GIT_PROCESS_SECTION}.{INTEGRATION_BRANCH_KEY}")
        if configured:
            return configured
        return self._settings.integration_branch

    def set_integration_branch(self, ref_name: str) -> None:
        """Persist ``ref_name`` as the integration branch."""
        self._backend.config_set(f"{GIT_PROCESS_SECTION}.{INTEGRATION_BRANCH_KEY}", ref_name)
        self._logger.info("integration branch configured", branch=ref_name)

    def default_rebase_sync(self) -> bool:
        """Return whether sync rebases unless told to merge."""
        raw = self._backend.config_get(f"{GIT_PROCESS_SECTION}.{DEFAULT_REBASE_SYNC_KEY}")
        parsed = parse_git_bool(raw)
        if parsed is None:
            if raw is not None:
                self._logger.warning(
                    "ignoring unparseable git config value",
                    key=f"{GIT_PROCESS_SECTION}.{DEFAULT_REBASE_SYNC_KEY}",
                    value=raw,
                )
            return self._settings.default_rebase
        return parsed

    def remote_names(self) -> list[str]:
        """Return the configured remote names."""
        return self._backend.remote_names()

    def has_remotes(self) -> bool:
        """Return True when at least one remote is configured."""
        return bool(self.remote_names())

    def remote_name(self) -> str | None:
        """Return the remote the workflow talks to.

        Uses ``gitProcess.remoteName`` (or the settings file), then ``origin``
        when it exists, then the alphabetically first remote.
        """
        configured = self._backend.config_get(f"{GIT_PROCESS_SECTION}.{REMOTE_NAME_KEY}")
        if configured:
            return configured
        if self._settings.remote_name:
            return self._settings.remote_name
        names = self.remote_names()
        if not names:
            return None
        if DEFAULT_REMOTE_NAME in names:
            return DEFAULT_REMOTE_NAME
        return sorted(names)[0]

    def remote_prefix_of(self, short_name: str) -> str | None:
        """Return the remote whose name is the first segment of ``short_name``."""
        head, separator, _ = short_name.partition("/")
        if not separator:
            return None
        lowered = head.lower()
        for name in self.remote_names():
            if name.lower() == lowered:
                return name
        return None

    def remote_branch_name(self, branch_name: str) -> str | None:
        """Return ``<remote>/<branch_name>`` or None when there is no remote."""
        remote = self.remote_name()
        if remote is None:
            return None
        return f"{remote}/{branch_name}"

    def upstream(self, branch_name: str) -> str | None:
        """Return the short name of ``branch_name``'s upstream, if configured."""
        remote = self._backend.config_get(f"branch.{branch_name}.remote")
        merge = self._backend.config_get(f"branch.{branch_name}.merge")
        if not remote or not merge:
            return None
        simple = shorten_ref_name(merge)
        if remote == LOCAL_REMOTE:
            return simple
        return f"{remote}/{simple}"

    def set_upstream(self, branch_name: str, upstream_short_name: str) -> None:
        """Point ``branch_name``'s upstream at ``upstream_short_name``."""
        remote = self.remote_prefix_of(upstream_short_name)
        if remote is None:
            remote_value = LOCAL_REMOTE
            simple = upstream_short_name
        else:
            remote_value = remote
            simple = upstream_short_name[len(remote) + 1:]
        self._backend.config_set(f"branch.{branch_name}.remote", remote_value)
        self._backend.config_set(f"branch.{branch_name}.merge", f"refs/heads/{simple}")
        self._logger.debug(
            "upstream configured", branch=branch_name, upstream=upstream_short_name,
        )

    def parking_branch_name(self) -> str:
        """Return the name of the parking branch."""
        return self._settings.parking_branch


__all__ = [
    "DEFAULT_REMOTE_NAME",
    "GIT_PROCESS_SECTION",
    "ProcessConfig",
]
