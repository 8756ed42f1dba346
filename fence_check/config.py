"""Application configuration for the enclave fence check."""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigError

ARTIFACT_FILENAME = "librust_cosmwasm_enclave.signed.so"
DEFAULT_BASE_URL = "https://engfilestorage.blob.core.windows.net"
# grep exits 1 when nothing matches; only a status of 2 or more is an error.
DEFAULT_COMMAND = "objdump -d {filename} | {{ grep -w {mnemonic} || test $? -eq 1; }} | wc -l"


@dataclass
class NetworkConfig:
    """Network related configuration."""

    user_agent: str = "fence-check/1.0"
    timeout: int = 60
    base_url: str = DEFAULT_BASE_URL


@dataclass
class ArtifactConfig:
    """Where the downloaded enclave is written."""

    filename: str = ARTIFACT_FILENAME
    workdir: Path = field(default_factory=lambda: Path("."))

    @property
    def path(self) -> Path:
        return self.workdir / self.filename


@dataclass
class InspectConfig:
    """Disassembler pipeline settings.

    ``command`` is a shell template; ``{filename}`` and ``{mnemonic}`` are
    shell-quoted and substituted before it is run. The pipeline runs under
    ``bash -o pipefail`` so a failing disassembler fails the whole pipeline.
    """

    command: str = DEFAULT_COMMAND
    mnemonic: str = "lfence"
    shell: str = "bash"

    def render(self, filename: str | os.PathLike[str]) -> str:
        return self.command.format(
            filename=shlex.quote(os.fspath(filename)), mnemonic=shlex.quote(self.mnemonic)
        )

    def argv(self, filename: str | os.PathLike[str]) -> list[str]:
        return [self.shell, "-o", "pipefail", "-c", self.render(filename)]


@dataclass
class CheckConfig:
    """Top level configuration container."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    artifact: ArtifactConfig = field(default_factory=ArtifactConfig)
    inspect: InspectConfig = field(default_factory=InspectConfig)

    @classmethod
    def create_default(cls) -> "CheckConfig":
        """Create a default configuration instance."""

        return cls()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CheckConfig":
        """Build the default configuration with ``FENCE_CHECK_*`` overrides applied."""

        env = os.environ if environ is None else environ
        config = cls.create_default()

        base_url = env.get("FENCE_CHECK_BASE_URL")
        if base_url:
            config.network.base_url = base_url.rstrip("/")

        timeout = env.get("FENCE_CHECK_TIMEOUT")
        if timeout:
            try:
                config.network.timeout = int(timeout)
            except ValueError as exc:
                raise ConfigError(
                    "FENCE_CHECK_TIMEOUT must be an integer",
                    exc,
                    error_code="invalid_timeout",
                    context={"value": timeout},
                ) from exc
            if config.network.timeout < 1:
                raise ConfigError(
                    "FENCE_CHECK_TIMEOUT must be >= 1",
                    error_code="invalid_timeout",
                    context={"value": timeout},
                )

        workdir = env.get("FENCE_CHECK_WORKDIR")
        if workdir:
            config.artifact.workdir = Path(workdir)

        mnemonic = env.get("FENCE_CHECK_MNEMONIC")
        if mnemonic:
            config.inspect.mnemonic = mnemonic.strip()

        return config
