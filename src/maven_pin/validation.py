"""Up-front validation of the declared artifact set.

Every problem found in one input batch is collected and raised together as a
single `ArtifactValidationError`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from maven_pin.coordinates import is_pinned_version, parse_coordinate
from maven_pin.exceptions import (
    ArtifactValidationError,
    ConflictingHashPolicy,
    MalformedCoordinate,
    MavenPinError,
    MissingHash,
    NoArtifactsDeclared,
    UnpinnedVersion,
    UnsupportedProperty,
    VersionConflict,
)
from maven_pin.models import ArtifactProperties, Coordinate


SUPPORTED_PROPERTIES: tuple[str, ...] = (
    "sha256",
    "pom_sha256",
    "insecure",
    "exclude",
    "build_snippet",
    "testonly",
)

_BOOLEAN_PROPERTIES = ("insecure", "testonly")


def fix_string_boolean(value: Any) -> bool:
    """Interpret `"true"`/`"false"` strings the way the artifact files use them."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def unsupported_keys(keys: Any) -> list[str]:
    return [k for k in keys if k not in SUPPORTED_PROPERTIES]


def _check_properties(spec: str, properties: Any) -> list[MavenPinError]:
    if not isinstance(properties, Mapping):
        return [
            UnsupportedProperty(
                f"Artifact {spec} has an invalid property dictionary. Should not be a {type(properties).__name__}"
            )
        ]

    errors: list[MavenPinError] = []
    unsupported = unsupported_keys(properties.keys())
    if unsupported:
        errors.append(
            UnsupportedProperty(
                f"Artifact {spec} has unsupported property keys: {unsupported}. "
                f"Only {list(SUPPORTED_PROPERTIES)} are supported"
            )
        )

    has_sha = bool(properties.get("sha256"))
    insecure = fix_string_boolean(properties.get("insecure", False))
    if not has_sha and not insecure:
        errors.append(MissingHash(f'Artifact "{spec}" is missing a sha256. Either supply it or mark it "insecure".'))
    if has_sha and insecure:
        errors.append(
            ConflictingHashPolicy(f'Artifact "{spec}" cannot be both insecure and have a sha256. Specify one or the other.')
        )
    return errors


def check_versions(coordinates: list[Coordinate]) -> list[MavenPinError]:
    """Find group:artifact pairs with several versions, and floating versions.

    Args:
        coordinates: Parsed coordinates in declaration order.

    Returns:
        A list of `VersionConflict` / `UnpinnedVersion` errors, possibly empty.
    """
    distinct: dict[str, list[str]] = {}
    for c in coordinates:
        versions = distinct.setdefault(c.versionless, [])
        if c.version not in versions:
            versions.append(c.version)

    errors: list[MavenPinError] = []
    for key, versions in distinct.items():
        if len(versions) > 1:
            errors.append(VersionConflict(key, sorted(versions)))
        errors.extend(
            UnpinnedVersion(f"Floating version {v} of {key} is not supported. Please fix it to a pinned version.")
            for v in versions
            if not is_pinned_version(v)
        )
    return errors


def validate_artifacts(artifacts: Mapping[str, Any]) -> dict[str, ArtifactProperties]:
    """Validate the canonical artifact mapping and build typed properties.

    Args:
        artifacts: `{spec: {property: value}}`, already normalized from legacy shapes.

    Raises:
        ArtifactValidationError: With every individual error found.

    Returns:
        `{spec: ArtifactProperties}` in declaration order.
    """
    errors: list[MavenPinError] = []
    if not artifacts:
        errors.append(NoArtifactsDeclared("At least one artifact must be specified."))

    coordinates: list[Coordinate] = []
    checked: dict[str, Mapping[str, Any]] = {}
    for spec, properties in artifacts.items():
        try:
            coordinates.append(parse_coordinate(spec))
        except MalformedCoordinate as exc:
            errors.append(exc)
        property_errors = _check_properties(spec, properties)
        errors.extend(property_errors)
        if not property_errors:
            checked[spec] = properties

    errors.extend(check_versions(coordinates))
    if errors:
        raise ArtifactValidationError(errors)

    result: dict[str, ArtifactProperties] = {}
    for spec, properties in checked.items():
        values = dict(properties)
        for key in _BOOLEAN_PROPERTIES:
            if key in values:
                values[key] = fix_string_boolean(values[key])
        try:
            result[spec] = ArtifactProperties(**values)
        except ValidationError as exc:
            errors.append(UnsupportedProperty(f"Artifact {spec} has invalid property values: {exc}"))
    if errors:
        raise ArtifactValidationError(errors)
    return result
