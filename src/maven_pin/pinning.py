from __future__ import annotations

from collections.abc import Iterable, Sequence

from maven_pin.exceptions import UnpinnedTransitiveDependency
from maven_pin.models import Coordinate, Dependency
from maven_pin.pom import format_dependency


def resolved_artifact_set(coordinates: Iterable[Coordinate]) -> frozenset[str]:
    """Build the closed world of declared `group:artifact` pairs."""
    return frozenset(c.versionless for c in coordinates)


def unpinned_dependencies(dependencies: Sequence[Dependency], resolved: frozenset[str]) -> list[Dependency]:
    return [d for d in dependencies if d.coordinate not in resolved]


def check_pinned(spec: str, dependencies: Sequence[Dependency], resolved: frozenset[str]) -> None:
    """Fail unless every dependency of `spec` is itself declared.

    Raises:
        UnpinnedTransitiveDependency: Listing each offending dependency.
    """
    missing = unpinned_dependencies(dependencies, resolved)
    if missing:
        raise UnpinnedTransitiveDependency(spec, [format_dependency(d) for d in missing])
