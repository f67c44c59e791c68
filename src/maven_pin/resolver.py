"""Fetch POMs and resolve their parent-inheritance chains."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence

from maven_pin import pom
from maven_pin.exceptions import CacheWriteFailure, ConfigurationError, InheritanceDepthExceeded
from maven_pin.fetch import Fetcher, FileStore
from maven_pin.models import Coordinate, EffectiveManifest, ManifestNode


logger = logging.getLogger(__name__)

MAX_INHERITANCE_DEPTH = 100
POM_HASH_INFIX = "sha256"

_SHA256_RE = re.compile(r"[0-9a-f]{64}")


def _gav(coordinate: Coordinate) -> str:
    return f"{coordinate.versionless}:{coordinate.version}"


def pom_hash_cache_key(coordinate: Coordinate) -> str:
    """Stable FileStore key for the cached sha256 of a coordinate's POM."""
    return f"{POM_HASH_INFIX}/{coordinate.group_path}/{coordinate.artifact_id}-{coordinate.version}.pom.sha256"


class PomResolver:
    """Fetches POMs through a `Fetcher` and merges their inheritance chains.

    Args:
        fetcher: Download collaborator.
        file_store: Local store for the POM hash cache.
        repository_urls: Repository roots, tried in order.
        pom_hashes: Explicit POM sha256 per original artifact spec.
        cache_poms: Download POMs by a cached hash so a content-addressed cache
            can serve them.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        file_store: FileStore,
        repository_urls: Sequence[str],
        pom_hashes: Mapping[str, str] | None = None,
        cache_poms: bool = False,
    ) -> None:
        self.fetcher = fetcher
        self.file_store = file_store
        self.repository_urls = [u.rstrip("/") for u in repository_urls]
        self.pom_hashes = dict(pom_hashes or {})
        self.cache_poms = cache_poms

    def pom_urls(self, coordinate: Coordinate) -> list[str]:
        return [f"{repo}/{coordinate.pom_path}" for repo in self.repository_urls]

    def pom_sha256(self, coordinate: Coordinate, urls: Sequence[str]) -> str:
        """Obtain the sha256 of a POM so it can be fetched by hash.

        The first download is trusted and its hash cached. A hostile POM can
        only point at declared artifacts or pinning fails, and the
        `pom_sha256` property gives a stricter option.

        Raises:
            CacheWriteFailure: If the hash cannot be persisted.
            ConfigurationError: If the cached entry is not a sha256 digest.
        """
        explicit = self.pom_hashes.get(coordinate.original_spec)
        if explicit:
            return explicit

        key = pom_hash_cache_key(coordinate)
        cached = self.file_store.read(key)
        if cached is not None and cached.strip():
            logger.debug("POM hash cache hit for %s", key)
            digest = cached.decode("utf-8", errors="replace").strip()
            if not _SHA256_RE.fullmatch(digest):
                raise ConfigurationError(f"Corrupt POM hash cache entry {key}; delete it to re-fetch")
            return digest

        logger.info("%s not locally cached, fetching and hashing", key)
        result = self.fetcher.download(urls)
        try:
            self.file_store.write(key, f"{result.sha256}\n".encode("utf-8"))
        except OSError as exc:
            raise CacheWriteFailure(f"Cache write failed for {key}: {exc}") from exc
        return result.sha256

    def fetch_pom(self, coordinate: Coordinate) -> bytes:
        """Download the POM of `coordinate`."""
        urls = self.pom_urls(coordinate)
        logger.info("Fetching %s", coordinate.pom_path)
        explicit = self.pom_hashes.get(coordinate.original_spec)
        sha256 = self.pom_sha256(coordinate, urls) if self.cache_poms else explicit
        return self.fetcher.download(urls, sha256=sha256).content

    def _fetch_node(self, coordinate: Coordinate) -> ManifestNode:
        return pom.parse_pom(self.fetch_pom(coordinate), source=coordinate.pom_path)

    def inheritance_chain(self, coordinate: Coordinate) -> list[ManifestNode]:
        """Return the manifests from `coordinate` up to its root parent.

        Raises:
            InheritanceDepthExceeded: If the chain revisits a coordinate or is
                longer than MAX_INHERITANCE_DEPTH.
        """
        current = self._fetch_node(coordinate)
        chain = [current]
        seen = {_gav(coordinate)}
        while current.parent is not None:
            parent = current.parent
            if _gav(parent) in seen:
                raise InheritanceDepthExceeded(
                    f"Cyclic parent chain for {coordinate}: {parent.format()} is its own ancestor"
                )
            if len(chain) >= MAX_INHERITANCE_DEPTH:
                raise InheritanceDepthExceeded(
                    f"Parent chain of {coordinate} is deeper than {MAX_INHERITANCE_DEPTH} POMs"
                )
            seen.add(_gav(parent))
            current = self._fetch_node(parent)
            chain.append(current)
        return chain

    def effective_manifest(self, coordinate: Coordinate) -> EffectiveManifest:
        return pom.effective_manifest(self.inheritance_chain(coordinate))
