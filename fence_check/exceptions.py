"""Error taxonomy and utilities for the fence checker."""

from __future__ import annotations

import logging
import re
import traceback
from collections.abc import Mapping
from datetime import datetime
from typing import Any


class ScriptError(Exception):
    """Base application error with standardized fields and safe messaging."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        *,
        error_code: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.original_error = original_error
        self.error_code = error_code
        self.timestamp = datetime.now()
        self.context = dict(context or {})
        self.traceback = traceback.format_exc() if original_error else None
        super().__init__(self.get_error_message())

    def get_error_message(self) -> str:
        base_msg = f"[{self.error_code}] {self.message}" if self.error_code else self.message
        if self.original_error:
            return f"{base_msg} (caused by {self.original_error.__class__.__name__})"
        return base_msg

    def log_error(self, logger: logging.Logger) -> None:
        payload = {
            "event": "error",
            "timestamp": self.timestamp.isoformat(),
            "error_code": self.error_code,
            "message": redact(self.message),
            "context": self.context,
        }
        logger.error("%s", payload)
        if self.traceback:
            logger.debug("traceback=%s", self.traceback)


class ConfigError(ScriptError):
    """Invalid inputs or environment (bad version, bad minimum, missing input)."""


class NetworkError(ScriptError):
    """The artifact could not be downloaded."""


class ToolError(ScriptError):
    """The disassembler pipeline could not be spawned or exited non-zero."""


class ParseError(ScriptError):
    """The disassembler pipeline printed something that is not a count."""


class ThresholdError(ScriptError):
    """Fewer fence instructions were found than the configured minimum."""

    def __init__(self, count: int, minimum: int) -> None:
        self.count = count
        self.minimum = minimum
        super().__init__(
            f"LFENCE instructions found is less than minimum: {count} vs minimum expected: {minimum}",
            error_code="below_minimum",
            context={"count": count, "minimum": minimum},
        )


def redact(text: str) -> str:
    """Redact potentially sensitive tokens from text.

    Long alphanumeric runs that resemble keys or SAS tokens are masked; URLs
    and short tokens are left untouched.
    """

    def _mask(match: re.Match[str]) -> str:
        token = match.group(0)
        return token[:4] + "…" + token[-2:]

    return re.sub(r"[A-Za-z0-9_\-]{40,}", _mask, text or "")
