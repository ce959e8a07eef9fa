"""Settings file loading for gitprocess."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from gitprocess.core.models import Settings

# (section, key) in the TOML file -> Settings field
_LAYOUT: dict[tuple[str, str], str] = {
    ("branches", "integration"): "integration_branch",
    ("branches", "parking"): "parking_branch",
    ("remote", "name"): "remote_name",
    ("sync", "default_rebase"): "default_rebase",
    ("logging", "json"): "json_logs",
    ("logging", "level"): "log_level",
}
_SECTIONS = frozenset(section for section, _ in _LAYOUT)


def load_settings(
    *,
    path: Path | str | None = None,
    data: str | bytes | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load and validate settings from TOML.

    Exactly one of ``path`` or ``data`` must be provided. ``overrides`` uses
    the file's section layout (``{"sync": {"default_rebase": False}}``) and
    wins over values read from the file.
    """
    if (path is None) == (data is None):
        msg = "Provide exactly one of 'path' or 'data' when loading settings."
        raise ValueError(msg)

    if path is not None:
        text = _read_settings_file(Path(path))
    else:
        text = data if isinstance(data, str) else bytes(data or b"").decode()
    raw = tomllib.loads(text)

    unknown = sorted(set(raw).union(overrides or {}) - _SECTIONS)
    if unknown:
        msg = f"Unknown settings sections: {', '.join(unknown)}"
        raise ValueError(msg)

    values: dict[str, Any] = {}
    for source in (raw, overrides or {}):
        for (section, key), field_name in _LAYOUT.items():
            table = source.get(section) or {}
            if key in table:
                values[field_name] = table[key]
    return Settings.model_validate(values)


def _read_settings_file(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(path)
    if not path.is_file():
        msg = f"Settings path is not a file: {path}"
        raise ValueError(msg)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Settings file could not be read: {path}"
        raise ValueError(msg) from exc


__all__ = ["load_settings"]
