"""HTTP helpers for fetching signed enclave artifacts."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

import requests

from .config import ARTIFACT_FILENAME, DEFAULT_BASE_URL
from .exceptions import ConfigError, NetworkError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchMetadata:
    """Metadata returned alongside the downloaded artifact bytes."""

    url: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def sha256(self) -> str:
        """Return the SHA-256 digest of the response body."""
        return hashlib.sha256(self.content).hexdigest()


def short_version(version: str) -> str:
    """Return the ``major.minor`` part of ``version``.

    ``"1.2.3"`` becomes ``"1.2"`` and ``"10.0.0-rc1"`` becomes ``"10.0"``.
    """

    parts = (version or "").strip().split(".")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise ConfigError(
            f"Version must have at least major and minor components: {version!r}",
            error_code="invalid_version",
            context={"version": version},
        )
    return f"{parts[0]}.{parts[1]}"


def resolve_artifact_url(
    version: str,
    base_url: str = DEFAULT_BASE_URL,
    filename: str = ARTIFACT_FILENAME,
) -> str:
    """Build the blob store URL of the enclave for ``version``."""

    return f"{base_url.rstrip('/')}/{short_version(version)}/{filename}"


def fetch_artifact(
    url: str,
    *,
    version: str,
    ua: str = "fence-check/1.0",
    timeout: int = 60,
) -> FetchMetadata:
    """GET ``url`` once and return the body plus metadata.

    Any connection error, non-2xx status or empty body raises ``NetworkError``
    carrying the requested (untruncated) version.
    """

    headers = {"User-Agent": ua, "Accept": "application/octet-stream"}
    try:
        response = requests.get(url, headers=headers, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as err:
        raise NetworkError(
            f"Fail to download file for version {version} from {url}: {err}",
            err,
            error_code="download_failed",
            context={"url": url, "version": version},
        ) from err

    content = response.content
    if not content:
        raise NetworkError(
            f"Fail to download file for version {version} from {url}: no body",
            error_code="empty_body",
            context={"url": url, "version": version},
        )

    LOGGER.debug("Fetched %s (%d bytes)", url, len(content))
    return FetchMetadata(url=url, content=content)
