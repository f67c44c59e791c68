"""Pydantic models for Maven coordinates, manifests and generated targets."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_PACKAGING = "jar"
DEFAULT_SCOPE = "compile"

_TARGET_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")


def munge_target(artifact_id: str) -> str:
    """Turn an artifactId into a valid build target name."""
    return _TARGET_UNSAFE_RE.sub("_", artifact_id)


class Coordinate(BaseModel):
    """Maven coordinates (groupId, artifactId, version, classifier, packaging)."""

    model_config = ConfigDict(frozen=True)

    group_id: str = Field(..., min_length=1)
    artifact_id: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    classifier: str | None = None
    packaging: str = DEFAULT_PACKAGING
    explicit_packaging: bool = False
    original_spec: str = ""

    @property
    def versionless(self) -> str:
        """Return `groupId:artifactId`, the key used for pinning."""
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def group_path(self) -> str:
        return self.group_id.replace(".", "/")

    @property
    def target_name(self) -> str:
        return munge_target(self.artifact_id)

    @property
    def base_path(self) -> str:
        return f"{self.group_path}/{self.artifact_id}/{self.version}/{self.artifact_id}-{self.version}"

    @property
    def path(self) -> str:
        """Repository-relative path of the artifact file."""
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.base_path}{suffix}.{self.packaging}"

    @property
    def pom_path(self) -> str:
        """Repository-relative path of the artifact's POM."""
        return f"{self.base_path}.pom"

    def format(self) -> str:
        """Render the canonical `group:artifact:version[:classifier][@packaging]` form."""
        spec = f"{self.group_id}:{self.artifact_id}:{self.version}"
        if self.classifier:
            spec += f":{self.classifier}"
        if self.explicit_packaging or self.packaging != DEFAULT_PACKAGING:
            spec += f"@{self.packaging}"
        return spec

    def __str__(self) -> str:
        return self.original_spec or self.format()


class ArtifactProperties(BaseModel):
    """Typed per-artifact configuration record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sha256: str | None = None
    pom_sha256: str | None = None
    insecure: bool = False
    exclude: tuple[str, ...] = ()
    build_snippet: str | None = None
    testonly: bool = False

    @field_validator("exclude", mode="before")
    @classmethod
    def _exclude_as_tuple(cls, value: object) -> object:
        if isinstance(value, str):
            return (value,)
        if isinstance(value, (list, set, frozenset)):
            return tuple(value)
        return value

    @model_validator(mode="after")
    def _check_hash_policy(self) -> "ArtifactProperties":
        if bool(self.sha256) == self.insecure:
            raise ValueError("exactly one of sha256 or insecure=true must be set")
        return self


class Dependency(BaseModel):
    """A `<dependency>` entry of a POM."""

    group_id: str = Field(..., min_length=1)
    artifact_id: str = Field(..., min_length=1)
    version: str | None = None
    classifier: str | None = None
    type: str | None = None
    scope: str | None = None
    optional: bool = False
    system_path: str | None = None

    @property
    def coordinate(self) -> str:
        """Return `groupId:artifactId`."""
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def effective_scope(self) -> str:
        return self.scope or DEFAULT_SCOPE

    def format(self) -> str:
        """Return a user-facing `group:artifact:version[:classifier]` label."""
        parts = [self.group_id, self.artifact_id, self.version or "<unversioned>"]
        if self.classifier:
            parts.append(self.classifier)
        return ":".join(parts)


class ManifestNode(BaseModel):
    """A single parsed POM, before inheritance is applied."""

    coordinate: Coordinate
    parent: Coordinate | None = None
    packaging: str = DEFAULT_PACKAGING
    properties: dict[str, str] = Field(default_factory=dict)
    dependency_management: list[Dependency] = Field(default_factory=list)
    dependencies: list[Dependency] = Field(default_factory=list)


class EffectiveManifest(ManifestNode):
    """A POM merged with its whole parent chain."""


class TargetDefinition(BaseModel):
    """One generated build target for a declared artifact."""

    coordinate: Coordinate
    deps: list[str] = Field(default_factory=list)
    testonly: bool = False
    snippet: str | None = None

    @property
    def target_name(self) -> str:
        return self.coordinate.target_name


class BuildFile(BaseModel):
    """All generated targets of a single group id."""

    group_id: str
    header: str
    targets: list[TargetDefinition] = Field(default_factory=list)

    @property
    def path(self) -> str:
        return f"{self.group_id.replace('.', '/')}/BUILD.bazel"
