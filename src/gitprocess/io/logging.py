"""Structured logging for gitprocess.

Records go to a text stream either as JSON lines or as
``[timestamp] LEVEL name: message | key=value`` text. Remote URLs routinely
carry credentials, so every message and field value is masked before it is
written.
"""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Mapping
from datetime import datetime, UTC
from typing import Any, TextIO

from pydantic import BaseModel, SecretStr, field_validator


_LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

_MASKS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b([a-z][a-z0-9+.-]*)://[^:/@\s]+:[^@\s]+@", re.IGNORECASE), r"\1://***:***@"),
    (re.compile(r"(authorization:\s*\w+)\s+\S+", re.IGNORECASE), r"\1 ***"),
    (re.compile(r"token[=:]\s*\S+", re.IGNORECASE), "token=***"),
)


class _MaskedText(BaseModel):
    text: SecretStr

    @field_validator("text", mode="before")
    @classmethod
    def _apply_masks(cls, value: Any) -> str:
        text = str(value)
        for pattern, replacement in _MASKS:
            text = pattern.sub(replacement, text)
        return text


def mask(value: Any) -> Any:
    """Mask credentials in ``value``, descending into mappings and sequences."""
    if isinstance(value, str):
        return _MaskedText.model_validate({"text": value}).text.get_secret_value()
    if isinstance(value, Mapping):
        return {key: mask(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(mask(item) for item in value)
    return value


class StructuredLogger:
    """Logger writing structured records to a stream.

    ``level`` drops records below the threshold. :meth:`bind` derives a logger
    that shares the stream and settings and adds fields to every record.
    """

    def __init__(
        self,
        *,
        name: str,
        json_mode: bool = False,
        stream: TextIO | None = None,
        level: str = "DEBUG",
        fields: Mapping[str, Any] | None = None,
    ) -> None:
        threshold = level.upper()
        if threshold not in _LEVELS:
            msg = f"unknown log level: {level}"
            raise ValueError(msg)
        self._name = name
        self._json_mode = json_mode
        self._stream: TextIO = stream or sys.stdout
        self._level = threshold
        self._bound: dict[str, Any] = dict(fields or {})

    @property
    def name(self) -> str:
        return self._name

    @property
    def json_mode(self) -> bool:
        return self._json_mode

    @property
    def level(self) -> str:
        return self._level

    def is_enabled_for(self, level: str) -> bool:
        """Return True when records at ``level`` would be written."""
        return _LEVELS[level.upper()] >= _LEVELS[self._level]

    def bind(self, **fields: Any) -> StructuredLogger:
        return StructuredLogger(
            name=self._name,
            json_mode=self._json_mode,
            stream=self._stream,
            level=self._level,
            fields={**self._bound, **fields},
        )

    def debug(self, message: str, **fields: Any) -> None:
        self._emit("DEBUG", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit("INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit("WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit("ERROR", message, fields)

    def _emit(self, level: str, message: str, fields: dict[str, Any]) -> None:
        if not self.is_enabled_for(level):
            return
        timestamp = datetime.now(UTC).isoformat()
        text = mask(message)
        extras: dict[str, Any] = mask({**self._bound, **fields})
        if self._json_mode:
            record = {"timestamp": timestamp, "level": level, "logger": self._name, "message": text, **extras}
            line = json.dumps(record, ensure_ascii=False, default=str)
        else:
            line = f"[{timestamp}] {level:<7} {self._name}: {text}"
            if extras:
                pairs = (f"{key}={json.dumps(value, ensure_ascii=False, default=str)}" for key, value in extras.items())
                line += " | " + " ".join(pairs)
        self._stream.write(line + "\n")
        self._stream.flush()


__all__ = ["StructuredLogger", "mask"]
