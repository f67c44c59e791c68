from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from maven_pin import cli
from maven_pin.config import GeneratorSettings, RepositorySpecification
from maven_pin.generator import RepositoryGenerator

from conftest import FakeFetcher, dep, make_pom

runner = CliRunner()

SPEC = """
repository_urls: ["https://repo.example.com/maven2"]
artifacts:
  "com.acme:core:1.0.0": {sha256: abc}
  "com.acme:util:1.0.0": {sha256: def}
"""


@pytest.fixture
def spec_file(tmp_path: Path) -> Path:
    path = tmp_path / "artifacts.yaml"
    path.write_text(SPEC, encoding="utf-8")
    return path


@pytest.fixture
def offline(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> FakeFetcher:
    """Route the CLI's downloads through an in-memory fetcher."""
    monkeypatch.setenv("MAVEN_PIN_CACHE_DIR", str(tmp_path / "cache"))
    fetcher = FakeFetcher()
    fetcher.add_pom("com.acme", "core", "1.0.0", make_pom("com.acme", "core", "1.0.0", deps=[dep("com.acme", "util")]))
    fetcher.add_pom("com.acme", "util", "1.0.0", make_pom("com.acme", "util", "1.0.0"))

    def fake_generate(spec, settings):
        resolver = cli.build_resolver(spec, settings, fetcher)
        return RepositoryGenerator(spec, resolver).generate(workers=settings.workers)

    monkeypatch.setattr(cli, "_generate", fake_generate)
    return fetcher


def test_parse_command() -> None:
    result = runner.invoke(cli.app, ["parse", "com.acme:core:1.0.0:tests@aar"])

    assert result.exit_code == 0
    assert "com/acme/core/1.0.0/core-1.0.0-tests.aar" in result.output


def test_parse_command_rejects_bad_coordinates() -> None:
    result = runner.invoke(cli.app, ["parse", "com.acme:core"])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_validate_command(spec_file: Path) -> None:
    result = runner.invoke(cli.app, ["validate", str(spec_file)])

    assert result.exit_code == 0
    assert "com.acme:core:1.0.0" in result.output


def test_validate_command_lists_every_error(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text('artifacts:\n  "a:b:1": {}\n  "c:d:1-SNAPSHOT": {insecure: true}\n', encoding="utf-8")

    result = runner.invoke(cli.app, ["validate", str(path)])

    assert result.exit_code == 1
    assert result.output.count("Error:") == 2


def test_generate_command(spec_file: Path, tmp_path: Path, offline: FakeFetcher) -> None:
    out = tmp_path / "out"

    result = runner.invoke(cli.app, ["generate", str(spec_file), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert (out / "WORKSPACE").exists()
    assert '":util",' in (out / "com/acme/BUILD.bazel").read_text()


def test_generate_command_fails_on_unpinned_dependency(tmp_path: Path, offline: FakeFetcher) -> None:
    path = tmp_path / "artifacts.yaml"
    path.write_text('artifacts:\n  "com.acme:core:1.0.0": {sha256: abc}\n', encoding="utf-8")
    out = tmp_path / "out"

    result = runner.invoke(cli.app, ["generate", str(path), "--out", str(out)])

    assert result.exit_code == 1
    assert "com.acme:util:1.0.0" in result.output
    assert not out.exists()


def test_reverse_command(spec_file: Path, offline: FakeFetcher) -> None:
    result = runner.invoke(cli.app, ["reverse", str(spec_file), "com.acme:util"])

    assert result.exit_code == 0
    assert "com.acme:core" in result.output


def test_generate_command_caches_pom_hashes(tmp_path: Path, offline: FakeFetcher) -> None:
    path = tmp_path / "artifacts.yaml"
    path.write_text(SPEC + "cache_poms_insecurely: true\n", encoding="utf-8")

    result = runner.invoke(cli.app, ["generate", str(path), "--out", str(tmp_path / "out")])

    assert result.exit_code == 0, result.output
    cached = tmp_path / "cache" / "sha256" / "com" / "acme" / "core-1.0.0.pom.sha256"
    pom = offline.responses[next(u for u in offline.responses if u.endswith("core-1.0.0.pom"))]
    assert cached.read_text().strip() == hashlib.sha256(pom).hexdigest()
    assert [sha for _, sha in offline.calls][-1] is not None


def test_build_resolver_uses_the_specification(tmp_path: Path, fetcher: FakeFetcher) -> None:
    spec = RepositorySpecification.from_mapping(
        {
            "artifacts": {"com.acme:core:1.0.0": {"sha256": "a", "pom_sha256": "b"}},
            "insecure_cache": str(tmp_path / "hashes"),
            "cache_poms_insecurely": True,
        }
    )

    resolver = cli.build_resolver(spec, GeneratorSettings(), fetcher)

    assert resolver.file_store.root == tmp_path / "hashes"
    assert resolver.pom_hashes == {"com.acme:core:1.0.0": "b"}
    assert resolver.cache_poms is True
    assert cli.build_resolver(spec, GeneratorSettings(cache_dir=tmp_path), fetcher).file_store.root == tmp_path


def test_reverse_command_transitive(tmp_path: Path, offline: FakeFetcher) -> None:
    offline.add_pom("com.acme", "app", "1.0.0", make_pom("com.acme", "app", "1.0.0", deps=[dep("com.acme", "core")]))
    path = tmp_path / "artifacts.yaml"
    path.write_text(SPEC + '  "com.acme:app:1.0.0": {sha256: fed}\n', encoding="utf-8")

    direct = runner.invoke(cli.app, ["reverse", str(path), "com.acme:util"])
    transitive = runner.invoke(cli.app, ["reverse", str(path), "com.acme:util", "--transitive"])

    assert direct.exit_code == 0 and transitive.exit_code == 0
    assert "com.acme:app" not in direct.output
    assert "com.acme:app" in transitive.output
    assert "com.acme:core" in transitive.output


def test_order_command(spec_file: Path, offline: FakeFetcher) -> None:
    result = runner.invoke(cli.app, ["order", str(spec_file)])

    assert result.exit_code == 0
    keys = [line for line in result.output.splitlines() if line.startswith("com.acme:")]
    assert keys == ["com.acme:util", "com.acme:core"]


def test_tree_command(spec_file: Path, offline: FakeFetcher) -> None:
    result = runner.invoke(cli.app, ["tree", str(spec_file)])

    assert result.exit_code == 0
    assert "com/acme/BUILD.bazel" in result.output
    assert ":util" in result.output
