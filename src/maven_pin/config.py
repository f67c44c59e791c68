"""Configuration for a generated Maven repository.

Two layers:

  - `RepositorySpecification`: what to generate, read from a YAML/JSON file.
  - `GeneratorSettings`: how this process runs, read from environment variables.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from maven_pin.coordinates import parse_coordinate
from maven_pin.exceptions import ConfigurationError
from maven_pin.legacy import normalize_legacy_input
from maven_pin.models import ArtifactProperties, Coordinate
from maven_pin.validation import validate_artifacts


logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY_URLS = ["https://repo1.maven.org/maven2"]
DEFAULT_INSECURE_CACHE = ".cache/bazel_maven_repository/hashes"
DEFAULT_RULES_REPOSITORY = "maven_repository_rules"

_LEGACY_KEYS = ("insecure_artifacts", "build_substitutes")


class RepositorySpecification(BaseModel):
    """The validated description of one generated repository.

    Attributes:
        name: Name of the generated repository, used in target labels.
        artifacts: Artifact spec to its properties, in declaration order.
        repository_urls: Maven repository roots, tried in order.
        dependency_target_substitutes: Per group id, full label to replacement label.
        cache_poms_insecurely: Cache POM hashes from their first download.
        insecure_cache: POM hash cache directory, absolute or relative to $HOME.
        maven_rules_repository: Repository providing `maven_jvm_artifact`.
        include_runtime: Also emit runtime-scoped POM dependencies.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="maven", min_length=1)
    artifacts: dict[str, ArtifactProperties] = Field(..., min_length=1)
    repository_urls: list[str] = Field(default_factory=lambda: list(DEFAULT_REPOSITORY_URLS), min_length=1)
    dependency_target_substitutes: dict[str, dict[str, str]] = Field(default_factory=dict)
    cache_poms_insecurely: bool = False
    insecure_cache: str = DEFAULT_INSECURE_CACHE
    maven_rules_repository: str = DEFAULT_RULES_REPOSITORY
    include_runtime: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RepositorySpecification":
        """Normalize, validate and build a specification from raw data.

        Legacy input shapes are rewritten and a warning is logged for each.

        Raises:
            ArtifactValidationError: If any artifact is invalid.
            ConfigurationError: For any other invalid setting.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("Repository specification must be a mapping")
        raw = dict(data)
        legacy = {k: raw.pop(k) for k in _LEGACY_KEYS if k in raw}
        artifacts = raw.pop("artifacts", None) or {}
        if not isinstance(artifacts, Mapping):
            raise ConfigurationError("'artifacts' must map artifact specs to property records")

        normalized = normalize_legacy_input(
            artifacts,
            insecure_artifacts=legacy.get("insecure_artifacts") or (),
            build_substitutes=legacy.get("build_substitutes") or {},
        )
        for warning in normalized.warnings:
            logger.warning(warning)

        if "repository_urls" in raw and not raw["repository_urls"]:
            raise ConfigurationError("You must specify at least one repository root url.")

        properties = validate_artifacts(normalized.artifacts)
        try:
            return cls(artifacts=properties, **raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid repository specification: {exc}") from exc

    @property
    def declared(self) -> list[tuple[Coordinate, ArtifactProperties]]:
        """Parsed coordinates with their properties, in declaration order."""
        return [(parse_coordinate(spec), props) for spec, props in self.artifacts.items()]

    @property
    def pom_hashes(self) -> dict[str, str]:
        return {spec: p.pom_sha256 for spec, p in self.artifacts.items() if p.pom_sha256}

    def cache_dir(self, home: Path | None = None) -> Path:
        path = Path(self.insecure_cache).expanduser()
        if path.is_absolute():
            return path
        return (home or Path.home()) / path


def load_specification(path: Path) -> RepositorySpecification:
    """Load a specification from a YAML (or JSON) file.

    Raises:
        ConfigurationError: If the file is missing or not valid YAML.
    """
    if not path.exists():
        raise ConfigurationError(f"Specification file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse specification file: {path}") from exc
    return RepositorySpecification.from_mapping(data or {})


@dataclass
class GeneratorSettings:
    """Process-level settings.

    Attributes:
        cache_dir: Overrides the specification's POM hash cache directory.
        cas_dir: Content-addressed download cache directory, if any.
        timeout_seconds: Per-request HTTP timeout.
        workers: Number of artifacts resolved concurrently.
    """

    cache_dir: Path | None = None
    cas_dir: Path | None = None
    timeout_seconds: float = 30.0
    workers: int = 1

    @classmethod
    def from_env(cls) -> "GeneratorSettings":
        """Create settings from environment variables.

        Environment variables:
            MAVEN_PIN_CACHE_DIR: POM hash cache directory
            MAVEN_PIN_CAS_DIR: Content-addressed download cache directory
            MAVEN_PIN_TIMEOUT: HTTP timeout in seconds (default: 30)
            MAVEN_PIN_WORKERS: Concurrent artifact resolutions (default: 1)
        """
        cache_dir = os.getenv("MAVEN_PIN_CACHE_DIR")
        cas_dir = os.getenv("MAVEN_PIN_CAS_DIR")
        try:
            timeout = float(os.getenv("MAVEN_PIN_TIMEOUT", "30"))
            workers = int(os.getenv("MAVEN_PIN_WORKERS", "1"))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
        return cls(
            cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
            cas_dir=Path(cas_dir).expanduser() if cas_dir else None,
            timeout_seconds=timeout,
            workers=workers,
        )

    def validate(self) -> None:
        """Validate the settings.

        Raises:
            ConfigurationError: If a value is out of range.
        """
        if self.timeout_seconds <= 0:
            raise ConfigurationError("MAVEN_PIN_TIMEOUT must be positive")
        if self.workers < 1:
            raise ConfigurationError("MAVEN_PIN_WORKERS must be at least 1")
