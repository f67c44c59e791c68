"""Pytest configuration and fixtures for maven-pin tests."""
from __future__ import annotations

import hashlib
from collections.abc import Sequence

import pytest

from maven_pin.exceptions import CacheWriteFailure, FetchFailure
from maven_pin.fetch import Download

REPO = "https://repo.example.com/maven2"


def make_pom(
    group_id: str | None,
    artifact_id: str,
    version: str | None,
    deps: Sequence[dict] = (),
    parent: tuple[str, str, str] | None = None,
    managed: Sequence[dict] = (),
    namespace: bool = True,
    packaging: str | None = None,
) -> bytes:
    """Render a small POM document."""

    def dep_xml(d: dict) -> str:
        fields = "".join(
            f"<{key}>{d[key]}</{key}>"
            for key in ("groupId", "artifactId", "version", "classifier", "type", "scope", "optional", "systemPath")
            if key in d
        )
        return f"<dependency>{fields}</dependency>"

    xmlns = ' xmlns="http://maven.apache.org/POM/4.0.0"' if namespace else ""
    parts = [f"<project{xmlns}>", "<modelVersion>4.0.0</modelVersion>"]
    if parent:
        parts.append(
            f"<parent><groupId>{parent[0]}</groupId><artifactId>{parent[1]}</artifactId>"
            f"<version>{parent[2]}</version></parent>"
        )
    if group_id:
        parts.append(f"<groupId>{group_id}</groupId>")
    parts.append(f"<artifactId>{artifact_id}</artifactId>")
    if version:
        parts.append(f"<version>{version}</version>")
    if packaging:
        parts.append(f"<packaging>{packaging}</packaging>")
    if managed:
        parts.append("<dependencyManagement><dependencies>")
        parts.extend(dep_xml(d) for d in managed)
        parts.append("</dependencies></dependencyManagement>")
    if deps:
        parts.append("<dependencies>")
        parts.extend(dep_xml(d) for d in deps)
        parts.append("</dependencies>")
    parts.append("</project>")
    return "\n".join(parts).encode("utf-8")


def dep(group_id: str, artifact_id: str, version: str = "1.0.0", **extra: str) -> dict:
    return {"groupId": group_id, "artifactId": artifact_id, "version": version, **extra}


def pom_url(group_id: str, artifact_id: str, version: str, repo: str = REPO) -> str:
    return f"{repo}/{group_id.replace('.', '/')}/{artifact_id}/{version}/{artifact_id}-{version}.pom"


class FakeFetcher:
    """In-memory Fetcher recording every download request."""

    def __init__(self) -> None:
        self.responses: dict[str, bytes] = {}
        self.calls: list[tuple[tuple[str, ...], str | None]] = []

    def add_pom(self, group_id: str, artifact_id: str, version: str, content: bytes) -> None:
        self.responses[pom_url(group_id, artifact_id, version)] = content

    def download(self, urls: Sequence[str], sha256: str | None = None) -> Download:
        self.calls.append((tuple(urls), sha256))
        for url in urls:
            content = self.responses.get(url)
            if content is None:
                continue
            observed = hashlib.sha256(content).hexdigest()
            if sha256 and sha256 != observed:
                raise FetchFailure(f"Checksum mismatch for {url}")
            return Download(content=content, sha256=observed)
        raise FetchFailure(f"Could not download any of {list(urls)}")


class MemoryFileStore:
    def __init__(self, fail_writes: bool = False) -> None:
        self.data: dict[str, bytes] = {}
        self.fail_writes = fail_writes

    def read(self, key: str) -> bytes | None:
        return self.data.get(key)

    def write(self, key: str, data: bytes) -> None:
        if self.fail_writes:
            raise CacheWriteFailure(f"Cache write failed for {key}")
        self.data[key] = data


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def store() -> MemoryFileStore:
    return MemoryFileStore()
