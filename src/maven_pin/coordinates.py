"""Parse Maven coordinate strings."""

from __future__ import annotations

from pydantic import ValidationError

from maven_pin.exceptions import MalformedCoordinate
from maven_pin.models import DEFAULT_PACKAGING, Coordinate


_FLOATING_VERSIONS = frozenset({"LATEST", "RELEASE"})


def parse_coordinate(spec: str) -> Coordinate:
    """Parse `group:artifact:version[:classifier][@packaging]`.

    Args:
        spec: The coordinate string, e.g. `com.google.guava:guava:31.1-jre`.

    Raises:
        MalformedCoordinate: If the string does not have 3 or 4 non-empty
            colon-delimited segments, or names an empty packaging.

    Returns:
        A `Coordinate` remembering `spec` as its original form.
    """
    if not isinstance(spec, str) or not spec.strip():
        raise MalformedCoordinate(f"Invalid artifact coordinate {spec!r}: empty")

    body, sep, packaging = spec.partition("@")
    if sep and not packaging:
        raise MalformedCoordinate(f"Invalid artifact coordinate {spec!r}: empty packaging after '@'")

    parts = body.split(":")
    if len(parts) not in (3, 4):
        raise MalformedCoordinate(
            f"Invalid artifact coordinate {spec!r}: expected group:artifact:version[:classifier][@packaging]"
        )
    if any(not p for p in parts):
        raise MalformedCoordinate(f"Invalid artifact coordinate {spec!r}: empty segment")

    group_id, artifact_id, version = parts[:3]
    classifier = parts[3] if len(parts) == 4 else None
    try:
        return Coordinate(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            classifier=classifier,
            packaging=packaging or DEFAULT_PACKAGING,
            explicit_packaging=bool(sep),
            original_spec=spec,
        )
    except ValidationError as exc:
        raise MalformedCoordinate(f"Invalid artifact coordinate {spec!r}") from exc


def is_pinned_version(version: str) -> bool:
    """Return False for SNAPSHOT, range, or keyword versions."""
    if version.upper().endswith("-SNAPSHOT"):
        return False
    if version in _FLOATING_VERSIONS:
        return False
    return not any(c in version for c in "[](),")
