"""CLI entry point for the enclave LFENCE check."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import click

from .actions import ActionsReporter, get_input
from .checker import FenceChecker, evaluate, parse_minimum
from .config import CheckConfig
from .disasm import count_fences
from .exceptions import ScriptError
from .net import resolve_artifact_url

LOGGER = logging.getLogger("fence_check")

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()), format=LOG_FORMAT, datefmt=LOG_DATEFMT
    )


def _echo_json(payload: dict[str, Any], *, indent: int | None = 2) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=indent))


def _write_summary(path: Path, payload: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ScriptError(
            f"Unable to write summary to {path}: {exc}",
            exc,
            error_code="summary_write_failed",
            context={"path": str(path)},
        ) from exc


def _fail(exc: ScriptError, reporter: ActionsReporter) -> None:
    exc.log_error(LOGGER)
    raise SystemExit(reporter.fail(str(exc))) from exc


@click.group()
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set the logging verbosity.",
)
def cli(log_level: str) -> None:
    """Check signed enclave builds for LFENCE mitigations."""

    _configure_logging(log_level)


@cli.command()
@click.option(
    "--version",
    "version",
    help="Release version of the enclave, e.g. 1.2.3 (defaults to $INPUT_VERSION).",
)
@click.option(
    "--min-fence",
    help="Minimum number of LFENCE instructions (defaults to $INPUT_MIN-FENCE).",
)
@click.option("--workdir", default=None, help="Directory the enclave is downloaded into.")
@click.option("--base-url", default=None, help="Override the blob store base URL.")
@click.option("--summary", default=None, help="Write the check result as JSON to this path.")
@click.option("--compact", is_flag=True, help="Emit JSON in a single line.")
def check(
    version: str | None,
    min_fence: str | None,
    workdir: str | None,
    base_url: str | None,
    summary: str | None,
    compact: bool,
) -> None:
    """Download the enclave for --version and enforce the LFENCE minimum."""

    reporter = ActionsReporter()
    try:
        version = version or get_input("version", required=True)
        min_fence = min_fence or get_input("min-fence", required=True)
        config = CheckConfig.from_env()
        if workdir:
            config.artifact.workdir = Path(workdir)
        if base_url:
            config.network.base_url = base_url.rstrip("/")
        payload = FenceChecker(config, reporter).run(version, min_fence).to_dict()
        if summary:
            _write_summary(Path(summary), payload)
    except ScriptError as exc:
        _fail(exc, reporter)

    _echo_json(payload, indent=None if compact else 2)


@cli.command("resolve-url")
@click.argument("version")
@click.option("--base-url", default=None, help="Override the blob store base URL.")
def resolve_url(version: str, base_url: str | None) -> None:
    """Print the download URL for VERSION."""

    try:
        config = CheckConfig.from_env()
        url = resolve_artifact_url(
            version, base_url or config.network.base_url, config.artifact.filename
        )
    except ScriptError as exc:
        raise click.BadParameter(exc.message, param_hint="VERSION") from exc
    click.echo(url)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--min-fence", default=None, help="Fail when fewer LFENCE lines are found.")
def count(path: Path, min_fence: str | None) -> None:
    """Count LFENCE instructions in an already downloaded binary."""

    reporter = ActionsReporter()
    try:
        config = CheckConfig.from_env()
        minimum = parse_minimum(min_fence) if min_fence is not None else None
        found = count_fences(path, config.inspect)
        click.echo(found)
        if minimum is not None:
            evaluate(found, minimum)
    except ScriptError as exc:
        _fail(exc, reporter)


if __name__ == "__main__":
    cli()
