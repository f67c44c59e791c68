"""Network and local-file collaborators used by the POM resolver."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from maven_pin.exceptions import CacheWriteFailure, ConfigurationError, FetchFailure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Download:
    """Downloaded bytes and their observed sha256."""

    content: bytes
    sha256: str


class Fetcher(Protocol):
    def download(self, urls: Sequence[str], sha256: str | None = None) -> Download:
        """Download the first URL that succeeds, verifying `sha256` when given."""
        ...


class FileStore(Protocol):
    def read(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if `key` was never written."""
        ...

    def write(self, key: str, data: bytes) -> None:
        """Persist `data` under `key`, raising CacheWriteFailure on error."""
        ...


def sha256_hex(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(temp_path, path)
    except BaseException:
        os.unlink(temp_path)
        raise


class HttpFetcher:
    """Fetcher backed by httpx.

    When `cas_dir` is set, verified downloads are stored under
    `<cas_dir>/sha256/<hash>` and a download requested by hash is served from
    there without touching the network.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        cas_dir: Path | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.timeout = timeout_seconds
        self.cas_dir = cas_dir
        self._http = client

    def __enter__(self) -> "HttpFetcher":
        if self._http is None:
            self._http = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self

    def __exit__(self, *args) -> None:
        if self._http:
            self._http.close()
            self._http = None

    def _cas_path(self, sha256: str) -> Path | None:
        if self.cas_dir is None:
            return None
        return self.cas_dir / "sha256" / sha256

    def download(self, urls: Sequence[str], sha256: str | None = None) -> Download:
        if self._http is None:
            raise FetchFailure("HTTP client not initialized - use HttpFetcher as a context manager")

        cas_path = self._cas_path(sha256) if sha256 else None
        if cas_path is not None and cas_path.is_file():
            content = cas_path.read_bytes()
            if sha256_hex(content) == sha256:
                logger.debug("Content-addressed cache hit for %s", sha256)
                return Download(content=content, sha256=sha256)

        failures: list[str] = []
        for url in urls:
            try:
                response = self._http.get(url)
                response.raise_for_status()
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                logger.debug("Download of %s failed: %s", url, exc)
                failures.append(f"{url}: {exc}")
                continue

            observed = sha256_hex(response.content)
            if sha256 and observed != sha256:
                raise FetchFailure(f"Checksum mismatch for {url}: expected {sha256}, got {observed}")
            cas_path = self._cas_path(observed)
            if cas_path is not None:
                try:
                    _atomic_write(cas_path, response.content)
                except OSError as exc:
                    raise CacheWriteFailure(f"Could not store {url} in {cas_path}") from exc
            return Download(content=response.content, sha256=observed)

        details = "\n    ".join(failures) or "no repository urls configured"
        raise FetchFailure(f"Could not download any of:\n    {details}")


class LocalFileStore:
    """FileStore rooted at a directory; writes are atomic renames."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ConfigurationError(f"Cache key escapes the cache directory: {key}")
        return path

    def read(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise ConfigurationError(f"Cannot read cache entry {path}: {exc}") from exc

    def write(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            _atomic_write(path, data)
        except OSError as exc:
            raise CacheWriteFailure(f"Cache write failed for {path}: {exc}") from exc
