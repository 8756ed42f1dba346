"""Workflow-runner commands: read inputs, set outputs, report failure.

These mirror the toolkit calls an action makes (``getInput``, ``setOutput``,
``setFailed``) using the environment variables and stdout commands the
GitHub Actions runner understands.
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from collections.abc import Mapping
from typing import Any, TextIO

from .exceptions import ConfigError, ScriptError

LOGGER = logging.getLogger(__name__)


def escape_data(value: Any) -> str:
    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: Any) -> str:
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def issue_command(
    command: str,
    message: Any = "",
    properties: Mapping[str, Any] | None = None,
    *,
    stream: TextIO | None = None,
) -> None:
    """Write a ``::command key=value::message`` line to stdout."""

    line = f"::{command}"
    if properties:
        line += " " + ",".join(
            f"{key}={escape_property(value)}" for key, value in properties.items() if value is not None
        )
    line += f"::{escape_data(message)}"
    print(line, file=stream or sys.stdout, flush=True)


def input_env_name(name: str) -> str:
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(
    name: str,
    *,
    required: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    env = os.environ if environ is None else environ
    value = env.get(input_env_name(name), "").strip()
    if required and not value:
        raise ConfigError(
            f"Input required and not supplied: {name}",
            error_code="missing_input",
            context={"input": name},
        )
    return value


def set_output(
    name: str,
    value: Any,
    *,
    environ: Mapping[str, str] | None = None,
    stream: TextIO | None = None,
) -> None:
    """Publish ``name=value`` to the step outputs.

    Appends a heredoc-style record to the file named by ``GITHUB_OUTPUT``;
    when that is unset falls back to the legacy ``set-output`` command.
    """

    env = os.environ if environ is None else environ
    text = str(value)
    output_file = env.get("GITHUB_OUTPUT")
    if not output_file:
        issue_command("set-output", text, {"name": name}, stream=stream)
        return

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in name or delimiter in text:  # pragma: no cover - uuid collision
        raise ValueError("Unexpected input: name or value contains the output delimiter")
    try:
        with open(output_file, "a", encoding="utf-8") as handle:
            handle.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
    except OSError as exc:
        raise ScriptError(
            f"Unable to write output {name} to {output_file}: {exc}",
            exc,
            error_code="output_write_failed",
            context={"output": name, "path": output_file},
        ) from exc


def error(message: Any, *, stream: TextIO | None = None) -> None:
    issue_command("error", message, stream=stream)


def set_failed(message: Any, *, stream: TextIO | None = None) -> int:
    """Annotate the run as failed and return the exit code to use."""

    error(message, stream=stream)
    return 1


class ActionsReporter:
    """Reporter that forwards outputs and failures to the workflow runner."""

    def __init__(self, environ: Mapping[str, str] | None = None, stream: TextIO | None = None) -> None:
        self.environ = environ
        self.stream = stream

    def set_output(self, name: str, value: Any) -> None:
        LOGGER.info("Output %s=%s", name, value)
        set_output(name, value, environ=self.environ, stream=self.stream)

    def fail(self, message: str) -> int:
        return set_failed(message, stream=self.stream)


class MemoryReporter:
    """Reporter that only records what would be published."""

    def __init__(self) -> None:
        self.outputs: dict[str, str] = {}
        self.failures: list[str] = []

    def set_output(self, name: str, value: Any) -> None:
        self.outputs[name] = str(value)

    def fail(self, message: str) -> int:
        self.failures.append(message)
        return 1
