"""Download an enclave build and check its LFENCE density.

The run is a fixed sequence of stages: resolve the artifact URL, fetch it,
write it to disk, disassemble it, then compare the fence count against the
minimum. Every stage raises a ``ScriptError`` subclass on failure and later
stages never run after an earlier one failed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Protocol

from .config import CheckConfig, InspectConfig
from .disasm import parse_count, run_disassembler
from .exceptions import ConfigError, ScriptError, ThresholdError
from .net import FetchMetadata, fetch_artifact, resolve_artifact_url
from .obs import LogEvent, make_log_event, span

LOGGER = logging.getLogger(__name__)

Fetcher = Callable[..., FetchMetadata]
Disassembler = Callable[[Path, InspectConfig], str]


class Reporter(Protocol):
    def set_output(self, name: str, value: Any) -> None: ...

    def fail(self, message: str) -> int: ...


@dataclass(slots=True)
class CheckResult:
    """Outcome of a completed check."""

    version: str
    url: str
    filename: str
    count: int
    minimum: int
    size: int
    sha256: str

    @property
    def passed(self) -> bool:
        return self.count >= self.minimum

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["passed"] = self.passed
        return payload


def parse_minimum(value: str | int) -> int:
    """Parse the ``min-fence`` input into a non-negative integer."""

    if isinstance(value, bool):
        raise ConfigError("min-fence must be an integer", error_code="invalid_minimum")
    try:
        minimum = int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(
            f"min-fence must be an integer, got {value!r}",
            exc,
            error_code="invalid_minimum",
            context={"min_fence": value},
        ) from exc
    if minimum < 0:
        raise ConfigError(
            f"min-fence must be >= 0, got {minimum}",
            error_code="invalid_minimum",
            context={"min_fence": value},
        )
    return minimum


def persist_artifact(content: bytes, path: Path) -> Path:
    """Write ``content`` to ``path``, replacing whatever was there."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        raise ScriptError(
            f"Failed to save {path}: {exc}",
            exc,
            error_code="persist_failed",
            context={"path": str(path)},
        ) from exc
    return path


def evaluate(count: int, minimum: int) -> None:
    if count < minimum:
        raise ThresholdError(count, minimum)


class FenceChecker:
    """Run the fetch/persist/inspect/evaluate pipeline for one version."""

    def __init__(
        self,
        config: CheckConfig | None = None,
        reporter: Reporter | None = None,
        *,
        fetcher: Fetcher = fetch_artifact,
        disassembler: Disassembler = run_disassembler,
        log_event: LogEvent | None = None,
    ) -> None:
        self.config = config or CheckConfig.create_default()
        self.reporter = reporter
        self.fetcher = fetcher
        self.disassembler = disassembler
        self.log_event = log_event or make_log_event(LOGGER)

    def _output(self, name: str, value: Any) -> None:
        if self.reporter is not None:
            self.reporter.set_output(name, value)

    def run(self, version: str, min_fence: str | int) -> CheckResult:
        """Check ``version`` against ``min_fence``.

        Outputs ``filename`` after the artifact is saved and ``lfence`` once
        the count is known, so both are set even when the threshold fails.
        """

        minimum = parse_minimum(min_fence)
        network = self.config.network
        url = resolve_artifact_url(version, network.base_url, self.config.artifact.filename)

        with span("fetch", self.log_event, attrs={"url": url, "version": version}):
            fetched = self.fetcher(url, version=version, ua=network.user_agent, timeout=network.timeout)
        LOGGER.info("Download completed (%d bytes, sha256=%s)", fetched.size, fetched.sha256)

        with span("persist", self.log_event):
            path = persist_artifact(fetched.content, self.config.artifact.path)
        LOGGER.info("File saved to %s", path)
        self._output("filename", str(path))

        with span("inspect", self.log_event, attrs={"mnemonic": self.config.inspect.mnemonic}):
            count = parse_count(self.disassembler(path, self.config.inspect))
        self._output("lfence", count)

        result = CheckResult(
            version=version,
            url=url,
            filename=str(path),
            count=count,
            minimum=minimum,
            size=fetched.size,
            sha256=fetched.sha256,
        )
        evaluate(count, minimum)
        self.log_event({"event": "check_passed", "count": count, "minimum": minimum})
        return result


def run_check(
    version: str,
    min_fence: str | int,
    *,
    config: CheckConfig | None = None,
    reporter: Reporter | None = None,
) -> CheckResult:
    """Convenience wrapper around ``FenceChecker(...).run``."""

    return FenceChecker(config or CheckConfig.from_env(), reporter).run(version, min_fence)
