from __future__ import annotations

import hashlib

import pytest

from maven_pin.coordinates import parse_coordinate
from maven_pin.exceptions import CacheWriteFailure, ConfigurationError, FetchFailure, InheritanceDepthExceeded
from maven_pin.resolver import MAX_INHERITANCE_DEPTH, PomResolver, pom_hash_cache_key

from conftest import REPO, FakeFetcher, MemoryFileStore, dep, make_pom, pom_url

CORE = parse_coordinate("com.acme:core:1.0.0")


def _resolver(fetcher: FakeFetcher, store: MemoryFileStore, **kwargs) -> PomResolver:
    return PomResolver(fetcher, store, [REPO + "/"], **kwargs)


def test_pom_urls_cover_every_repository(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    resolver = PomResolver(fetcher, store, ["https://a.example/m2", "https://b.example/m2/"])

    assert resolver.pom_urls(CORE) == [
        "https://a.example/m2/com/acme/core/1.0.0/core-1.0.0.pom",
        "https://b.example/m2/com/acme/core/1.0.0/core-1.0.0.pom",
    ]


def test_first_repository_with_the_pom_wins(store: MemoryFileStore) -> None:
    fetcher = FakeFetcher()
    fetcher.responses[pom_url("com.acme", "core", "1.0.0", repo="https://b.example")] = b"second"
    resolver = PomResolver(fetcher, store, ["https://a.example", "https://b.example"])

    assert resolver.fetch_pom(CORE) == b"second"


def test_plain_fetch_without_caching(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    fetcher.add_pom("com.acme", "core", "1.0.0", make_pom("com.acme", "core", "1.0.0"))

    _resolver(fetcher, store).fetch_pom(CORE)

    assert fetcher.calls == [((pom_url("com.acme", "core", "1.0.0"),), None)]
    assert store.data == {}


def test_cache_miss_downloads_and_records_the_hash(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    content = make_pom("com.acme", "core", "1.0.0")
    fetcher.add_pom("com.acme", "core", "1.0.0", content)
    sha = hashlib.sha256(content).hexdigest()

    _resolver(fetcher, store, cache_poms=True).fetch_pom(CORE)

    key = pom_hash_cache_key(CORE)
    assert key == "sha256/com/acme/core-1.0.0.pom.sha256"
    assert store.data[key].decode().strip() == sha
    assert [c[1] for c in fetcher.calls] == [None, sha]


def test_cache_hit_downloads_by_hash(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    content = make_pom("com.acme", "core", "1.0.0")
    fetcher.add_pom("com.acme", "core", "1.0.0", content)
    sha = hashlib.sha256(content).hexdigest()
    store.data[pom_hash_cache_key(CORE)] = f"{sha}\n".encode()

    _resolver(fetcher, store, cache_poms=True).fetch_pom(CORE)

    assert [c[1] for c in fetcher.calls] == [sha]


def test_explicit_pom_hash_beats_the_cache(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    content = make_pom("com.acme", "core", "1.0.0")
    fetcher.add_pom("com.acme", "core", "1.0.0", content)
    sha = hashlib.sha256(content).hexdigest()
    store.data[pom_hash_cache_key(CORE)] = b"stale"

    resolver = _resolver(fetcher, store, cache_poms=True, pom_hashes={"com.acme:core:1.0.0": sha})
    resolver.fetch_pom(CORE)

    assert [c[1] for c in fetcher.calls] == [sha]
    assert store.data[pom_hash_cache_key(CORE)] == b"stale"


def test_explicit_pom_hash_is_verified_without_caching(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    fetcher.add_pom("com.acme", "core", "1.0.0", make_pom("com.acme", "core", "1.0.0"))
    resolver = _resolver(fetcher, store, pom_hashes={"com.acme:core:1.0.0": "0" * 64})

    with pytest.raises(FetchFailure):
        resolver.fetch_pom(CORE)


def test_cache_write_failure_is_fatal(fetcher: FakeFetcher) -> None:
    fetcher.add_pom("com.acme", "core", "1.0.0", make_pom("com.acme", "core", "1.0.0"))
    resolver = _resolver(fetcher, MemoryFileStore(fail_writes=True), cache_poms=True)

    with pytest.raises(CacheWriteFailure):
        resolver.fetch_pom(CORE)


@pytest.mark.parametrize("entry", [b"\xff\xfe\x00garbage", b"not-a-digest\n"])
def test_corrupt_cache_entry_is_reported(fetcher: FakeFetcher, store: MemoryFileStore, entry: bytes) -> None:
    fetcher.add_pom("com.acme", "core", "1.0.0", make_pom("com.acme", "core", "1.0.0"))
    store.data[pom_hash_cache_key(CORE)] = entry

    with pytest.raises(ConfigurationError, match="Corrupt POM hash cache entry"):
        _resolver(fetcher, store, cache_poms=True).fetch_pom(CORE)

    assert fetcher.calls == []


def test_missing_pom_is_a_fetch_failure(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    with pytest.raises(FetchFailure):
        _resolver(fetcher, store).effective_manifest(CORE)


def test_inheritance_chain_and_effective_manifest(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    fetcher.add_pom(
        "com.acme", "core", "1.0.0",
        make_pom("com.acme", "core", "1.0.0", parent=("com.acme", "parent", "3"), deps=[dep("com.acme", "util")]),
    )
    fetcher.add_pom(
        "com.acme", "parent", "3",
        make_pom("com.acme", "parent", "3", parent=("com.acme", "root", "1"), deps=[dep("org.slf4j", "slf4j-api")]),
    )
    fetcher.add_pom("com.acme", "root", "1", make_pom("com.acme", "root", "1", deps=[dep("com.acme", "util", "0.1")]))
    resolver = _resolver(fetcher, store)

    chain = resolver.inheritance_chain(CORE)
    assert [n.coordinate.artifact_id for n in chain] == ["core", "parent", "root"]

    merged = resolver.effective_manifest(CORE)
    assert [d.format() for d in merged.dependencies] == ["com.acme:util:1.0.0", "org.slf4j:slf4j-api:1.0.0"]


def test_parent_cycle_fails(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    fetcher.add_pom("com.acme", "core", "1.0.0", make_pom("com.acme", "core", "1.0.0", parent=("com.acme", "a", "1")))
    fetcher.add_pom("com.acme", "a", "1", make_pom("com.acme", "a", "1", parent=("com.acme", "b", "1")))
    fetcher.add_pom("com.acme", "b", "1", make_pom("com.acme", "b", "1", parent=("com.acme", "a", "1")))

    with pytest.raises(InheritanceDepthExceeded):
        _resolver(fetcher, store).inheritance_chain(CORE)


def test_overly_deep_chain_fails(fetcher: FakeFetcher, store: MemoryFileStore) -> None:
    fetcher.add_pom("com.acme", "core", "1.0.0", make_pom("com.acme", "core", "1.0.0", parent=("com.acme", "p0", "1")))
    for i in range(MAX_INHERITANCE_DEPTH + 1):
        fetcher.add_pom("com.acme", f"p{i}", "1", make_pom("com.acme", f"p{i}", "1", parent=("com.acme", f"p{i + 1}", "1")))

    with pytest.raises(InheritanceDepthExceeded):
        _resolver(fetcher, store).inheritance_chain(CORE)
