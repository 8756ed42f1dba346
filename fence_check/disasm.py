"""Run the disassembler pipeline over an artifact and read back the count."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from .config import InspectConfig
from .exceptions import ParseError, ToolError

LOGGER = logging.getLogger(__name__)

_COUNT_RE = re.compile(r"\d+")


def run_disassembler(path: Path, inspect: InspectConfig | None = None) -> str:
    """Run the configured shell pipeline against ``path`` and return its stdout.

    Blocks until the pipeline exits. A missing or failing disassembler makes
    the pipeline exit non-zero and raises ``ToolError``.
    """

    inspect = inspect or InspectConfig()
    command = inspect.render(path)
    LOGGER.info("Running %s", command)
    try:
        proc = subprocess.run(
            inspect.argv(path),
            text=True,
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise ToolError(
            f"Error executing command: {exc}",
            exc,
            error_code="tool_spawn_failed",
            context={"command": command},
        ) from exc

    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        raise ToolError(
            f"Error executing command: exit status {proc.returncode}: {stderr}",
            error_code="tool_exit_status",
            context={"command": command, "returncode": proc.returncode},
        )
    return proc.stdout


def parse_count(output: str) -> int:
    """Parse the pipeline output as a non-negative decimal count."""

    text = (output or "").strip()
    if not _COUNT_RE.fullmatch(text):
        raise ParseError(
            f"Disassembler output is not a number: {text!r}",
            error_code="non_numeric_count",
            context={"output": text[:200]},
        )
    return int(text)


def count_fences(path: Path, inspect: InspectConfig | None = None) -> int:
    return parse_count(run_disassembler(path, inspect))
