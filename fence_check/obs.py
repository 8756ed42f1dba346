"""Structured log events and stage spans for a check run."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from contextlib import contextmanager
from typing import Any

from .exceptions import redact

LogEvent = Callable[[dict[str, Any]], None]


def _should_redact_key(key: str) -> bool:
    key_l = key.lower()
    return any(tok in key_l for tok in ("password", "secret", "token", "credential", "sig"))


def sanitize(obj: Any) -> Any:
    """Recursively redact sensitive values before they reach the log."""

    if isinstance(obj, dict):
        result: dict[str, Any] = {}
        for k, v in obj.items():
            if _should_redact_key(str(k)):
                result[k] = redact(v) if isinstance(v, str) else "<redacted>"
            else:
                result[k] = sanitize(v)
        return result
    if isinstance(obj, list):
        return [sanitize(x) for x in obj]
    if isinstance(obj, str):
        return redact(obj)
    return obj


def make_log_event(logger: logging.Logger) -> LogEvent:
    """Return a callable that logs payloads as one-line JSON."""

    def _log(payload: dict[str, Any]) -> None:
        logger.info("%s", json.dumps(sanitize(payload), ensure_ascii=False, default=str))

    return _log


@contextmanager
def span(
    name: str,
    log: LogEvent,
    *,
    attrs: Mapping[str, Any] | None = None,
) -> Any:
    """Log ``span_start``/``span_end`` around a stage with elapsed ms.

    The end event carries ``ok: false`` when the stage raised.
    """

    start = time.monotonic()
    payload: dict[str, Any] = {"event": "span_start", "name": name}
    if attrs:
        payload["attrs"] = dict(attrs)
    log(payload)
    ok = False
    try:
        yield
        ok = True
    finally:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        log({"event": "span_end", "name": name, "ms": elapsed_ms, "ok": ok})
