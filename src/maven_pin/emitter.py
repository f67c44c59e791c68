"""Turn resolved dependencies into Bazel target definitions and BUILD files."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from maven_pin.exceptions import TargetNameCollision, UnsupportedPackaging
from maven_pin.models import (
    ArtifactProperties,
    BuildFile,
    Coordinate,
    Dependency,
    TargetDefinition,
    munge_target,
)


SUPPORTED_PACKAGING = ("jar", "aar")

BUILD_FILE_HEADER = """# Generated bazel build file for maven group {group_id}

load("@{rules_repository}//maven:maven.bzl", "maven_jvm_artifact")
"""

TARGET_TEMPLATE = """maven_jvm_artifact(
    name = "{target}",{testonly}
    artifact = "{artifact}",
{deps})
"""

WORKSPACE_TEMPLATE = 'workspace(name = "{name}")\n'


def convert_dependency(repo_name: str, dep: Dependency) -> str:
    """Return the full label `@repo//group/path:target` for a dependency."""
    group_path = dep.group_id.replace(".", "/")
    return f"@{repo_name}//{group_path}:{munge_target(dep.artifact_id)}"


def coordinate_label(repo_name: str, coordinate: Coordinate) -> str:
    return f"@{repo_name}//{coordinate.group_path}:{coordinate.target_name}"


def substituted_labels(
    repo_name: str, dependencies: Sequence[Dependency], substitutions: Mapping[str, str] | None = None
) -> list[str]:
    """Full labels of `dependencies` after target substitution, before shortening."""
    labels = [convert_dependency(repo_name, d) for d in dependencies]
    return [(substitutions or {}).get(x, x) for x in labels]


def normalize_target(label: str, current_package: str, substitutions: Mapping[str, str]) -> str:
    """Shorten a full label relative to the package being generated.

    Examples, from package `com/acme`:
        `@maven//com/acme:util`         -> `:util`
        `@maven//org/slf4j:slf4j`       -> `@maven//org/slf4j`
        `@maven//org/slf4j:slf4j-api`   -> unchanged
    """
    label = substitutions.get(label, label)
    full_package, _, target = label.rpartition(":")
    local_package = full_package.split("//", 1)[-1]
    if local_package == current_package:
        return f":{target}"
    if full_package.rsplit("/", 1)[-1] == target:
        return full_package
    return label


def _dedupe(labels: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(labels))


def build_target(
    coordinate: Coordinate,
    properties: ArtifactProperties,
    dependencies: Sequence[Dependency],
    repo_name: str,
    substitutions: Mapping[str, str] | None = None,
) -> TargetDefinition:
    """Build the target for one artifact from its filtered dependencies.

    Raises:
        UnsupportedPackaging: If no import rule handles the packaging.
    """
    if coordinate.packaging not in SUPPORTED_PACKAGING:
        raise UnsupportedPackaging(
            f"Packaging {coordinate.packaging} of {coordinate} not supported by maven_jvm_artifact."
        )
    labels = substituted_labels(repo_name, dependencies, substitutions)
    deps = [normalize_target(x, coordinate.group_path, {}) for x in labels]
    return TargetDefinition(coordinate=coordinate, deps=_dedupe(deps), testonly=properties.testonly)


def snippet_target(coordinate: Coordinate, properties: ArtifactProperties) -> TargetDefinition:
    return TargetDefinition(coordinate=coordinate, testonly=properties.testonly, snippet=properties.build_snippet)


def render_deps(deps: Sequence[str]) -> str:
    if not deps:
        return ""
    lines = "\n".join(f'        "{x}",' for x in deps)
    return f"    deps = [\n{lines}\n    ],\n"


def render_target(target: TargetDefinition) -> str:
    """Render a target block; snippets are emitted verbatim."""
    if target.snippet is not None:
        return target.snippet
    return TARGET_TEMPLATE.format(
        target=target.target_name,
        testonly="\n    testonly = True," if target.testonly else "",
        artifact=target.coordinate.original_spec or target.coordinate.format(),
        deps=render_deps(target.deps),
    )


def render_build_file(build_file: BuildFile) -> str:
    return "\n".join([build_file.header] + [render_target(t) for t in build_file.targets])


def render_workspace(name: str) -> str:
    return WORKSPACE_TEMPLATE.format(name=name)


def group_by_namespace(targets: Iterable[TargetDefinition], rules_repository: str) -> list[BuildFile]:
    """Group targets by group id, keeping declaration order.

    Raises:
        TargetNameCollision: If two artifacts of one group share a target name.
    """
    files: dict[str, BuildFile] = {}
    names: dict[str, dict[str, Coordinate]] = {}
    for target in targets:
        group_id = target.coordinate.group_id
        if group_id not in files:
            files[group_id] = BuildFile(
                group_id=group_id,
                header=BUILD_FILE_HEADER.format(group_id=group_id, rules_repository=rules_repository),
            )
            names[group_id] = {}
        other = names[group_id].get(target.target_name)
        if other is not None:
            raise TargetNameCollision(
                f"{other} and {target.coordinate} both map to target {target.target_name} in {group_id}"
            )
        names[group_id][target.target_name] = target.coordinate
        files[group_id].targets.append(target)
    return list(files.values())
