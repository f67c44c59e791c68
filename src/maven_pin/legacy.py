"""Normalize deprecated artifact input shapes into the canonical form.

Three legacy shapes are still accepted:

  - a bare string as the artifact value, meaning its sha256
  - a separate list of insecure artifacts
  - a separate `group:artifact -> snippet` table of build substitutes

Each one is rewritten into the `{spec: {property: value}}` form and reported as
a warning. Nothing here touches the caller's objects.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from maven_pin.exceptions import UnknownBuildSubstitute, UnsupportedProperty


INSECURE_DEPRECATION_WARNING = """Using "insecure_artifacts" is deprecated.
Please use the regular artifacts and set insecure to true. e.g.:
artifacts = {{
    "{spec}": {{ "insecure" : True }}
}}"""

STRING_SHA_VALUE_DEPRECATION_WARNING = """Passing the sha256 as the dictionary value for an artifact is deprecated.
Please pass in a dictionary for the artifact like this:
artifacts = {{
    "{spec}": {{ "sha256" : "{sha256}" }}
}}"""

LEGACY_BUILD_SUBSTITUTES_DEPRECATION_WARNING = """Passing the build snippet via build_substitutes is deprecated.
Please pass the snippet for {spec} as a configuration property in the artifact dictionary."""


@dataclass
class NormalizedInput:
    """Canonical artifact mapping plus the deprecation warnings it produced."""

    artifacts: dict[str, Any]
    warnings: list[str] = field(default_factory=list)


def _versionless(spec: str) -> str | None:
    parts = spec.partition("@")[0].split(":")
    if len(parts) < 2:
        return None
    return f"{parts[0]}:{parts[1]}"


def normalize_legacy_input(
    artifacts: Mapping[str, Any],
    insecure_artifacts: Iterable[str] = (),
    build_substitutes: Mapping[str, str] | None = None,
) -> NormalizedInput:
    """Rewrite legacy shapes into `{spec: {property: value}}`.

    Args:
        artifacts: Artifact spec to property record (or, legacy, to a sha256 string).
        insecure_artifacts: Legacy list of specs to treat as insecure.
        build_substitutes: Legacy `group:artifact` to build snippet table.

    Raises:
        UnknownBuildSubstitute: If a build substitute names no declared artifact.

    Returns:
        A `NormalizedInput` with fresh dictionaries.
    """
    warnings: list[str] = []
    normalized: dict[str, Any] = {}

    for spec, value in artifacts.items():
        if isinstance(value, str):
            warnings.append(STRING_SHA_VALUE_DEPRECATION_WARNING.format(spec=spec, sha256=value))
            normalized[spec] = {"sha256": value}
        elif isinstance(value, Mapping):
            normalized[spec] = dict(value)
        else:
            # Left for validation to report.
            normalized[spec] = value

    for spec in insecure_artifacts:
        warnings.append(INSECURE_DEPRECATION_WARNING.format(spec=spec))
        existing = normalized.get(spec)
        if isinstance(existing, dict):
            existing["insecure"] = True
        else:
            normalized[spec] = {"insecure": True}

    if build_substitutes:
        versionless_mapping: dict[str, str] = {}
        for spec in normalized:
            key = _versionless(spec)
            if key:
                versionless_mapping[key] = spec
        for key, snippet in build_substitutes.items():
            spec = versionless_mapping.get(key)
            if spec is None:
                raise UnknownBuildSubstitute(
                    f"Artifact {key} listed in build_substitutes not present in main artifact list."
                )
            config = normalized[spec]
            if not isinstance(config, dict):
                raise UnsupportedProperty(f"Artifact {spec} has an invalid property record: {config!r}")
            config["build_snippet"] = snippet
            warnings.append(LEGACY_BUILD_SUBSTITUTES_DEPRECATION_WARNING.format(spec=spec))

    return NormalizedInput(artifacts=normalized, warnings=warnings)
