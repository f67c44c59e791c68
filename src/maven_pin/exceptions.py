"""Custom exceptions for maven-pin."""

from __future__ import annotations

from collections.abc import Iterable, Sequence


class MavenPinError(Exception):
    """Base exception for maven-pin."""


class ConfigurationError(MavenPinError):
    """Raised when the repository specification itself is unusable."""


class MalformedCoordinate(MavenPinError):
    """Raised when a coordinate string cannot be parsed."""


class VersionConflict(MavenPinError):
    """Raised when one group:artifact is declared with several versions."""

    def __init__(self, coordinate: str, versions: Sequence[str]) -> None:
        self.coordinate = coordinate
        self.versions = list(versions)
        super().__init__(f"Several versions of {coordinate} are specified: {', '.join(self.versions)}")


class UnpinnedVersion(MavenPinError):
    """Raised for SNAPSHOT, range, or otherwise floating versions."""


class MissingHash(MavenPinError):
    """Raised when an artifact has neither a sha256 nor insecure=true."""


class ConflictingHashPolicy(MavenPinError):
    """Raised when an artifact has both a sha256 and insecure=true."""


class UnsupportedProperty(MavenPinError):
    """Raised when an artifact property record has unknown keys or shape."""


class NoArtifactsDeclared(MavenPinError):
    """Raised when the artifact mapping is empty."""


class UnknownBuildSubstitute(MavenPinError):
    """Raised when a legacy build substitute names an undeclared artifact."""


class ArtifactValidationError(MavenPinError):
    """All validation failures for one input batch, reported together."""

    def __init__(self, errors: Iterable[MavenPinError]) -> None:
        self.errors = list(errors)
        lines = "\n    ".join(str(e) for e in self.errors)
        super().__init__(f"Errors found:\n    {lines}")


class PomParseError(MavenPinError):
    """Raised when a POM document cannot be parsed."""


class PomModelError(MavenPinError):
    """Raised when required Maven model fields are missing or invalid."""


class FetchFailure(MavenPinError):
    """Raised when a download fails on every candidate URL."""


class CacheWriteFailure(MavenPinError):
    """Raised when the local POM hash cache cannot be written."""


class InheritanceDepthExceeded(MavenPinError):
    """Raised when a parent chain is cyclic or deeper than the walk allows."""


class UnpinnedTransitiveDependency(MavenPinError):
    """Raised when a POM dependency is missing from the declared artifacts."""

    def __init__(self, spec: str, missing: Sequence[str]) -> None:
        self.spec = spec
        self.missing = list(missing)
        listing = "\n".join(f"    {m}" for m in self.missing)
        super().__init__(f"Some dependencies of {spec} were not pinned in the artifacts list:\n{listing}")


class UnsupportedPackaging(MavenPinError):
    """Raised when an artifact's packaging has no matching import rule."""


class TargetNameCollision(MavenPinError):
    """Raised when two artifacts of a group mangle to the same target name."""


class DependencyCycle(MavenPinError):
    """Raised when the generated targets depend on each other cyclically."""
