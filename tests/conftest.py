from collections.abc import Callable
from pathlib import Path

import pytest

from fence_check.config import CheckConfig
from fence_check.net import FetchMetadata

ENCLAVE_BYTES = b"\x7fELF\x02\x01\x01\x00enclave\x00\x0f\xae\xe8"


@pytest.fixture()
def check_config(tmp_path: Path) -> CheckConfig:
    config = CheckConfig.create_default()
    config.network.base_url = "https://blobs.example.test"
    config.artifact.workdir = tmp_path
    return config


@pytest.fixture()
def fake_fetcher() -> Callable[..., FetchMetadata]:
    calls: list[str] = []

    def _fetch(url: str, *, version: str, ua: str, timeout: int) -> FetchMetadata:  # noqa: ARG001
        calls.append(url)
        return FetchMetadata(url=url, content=ENCLAVE_BYTES)

    _fetch.calls = calls  # type: ignore[attr-defined]
    return _fetch


@pytest.fixture()
def enclave_bytes() -> bytes:
    return ENCLAVE_BYTES
