"""Parse, merge and query Maven POM documents using lxml."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from lxml import etree

from maven_pin.exceptions import PomModelError, PomParseError
from maven_pin.models import (
    DEFAULT_PACKAGING,
    Coordinate,
    Dependency,
    EffectiveManifest,
    ManifestNode,
)


RUNTIME_DEPENDENCY_SCOPES = frozenset({"compile", "runtime"})

_PROJECT = "/*[local-name()='project']"


def _text_first(node: etree._Element, xpath_expr: str) -> str | None:
    """Get text of the first matching element using namespace-agnostic XPath.

    Args:
        node: Root element to query under.
        xpath_expr: XPath expression (should use local-name()).

    Returns:
        Text content if found and non-empty, otherwise None.
    """
    found = node.xpath(xpath_expr)
    if not found:
        return None
    first = found[0]
    if isinstance(first, etree._Element):
        text = (first.text or "").strip()
        return text or None
    if isinstance(first, str):
        text = first.strip()
        return text or None
    return None


def _bool_text(value: str | None) -> bool:
    """Convert Maven boolean-ish text to bool; anything but 'true' is False."""
    return value is not None and value.strip().lower() == "true"


def _parse_xml(content: bytes, source: str) -> etree._Element:
    """Parse XML bytes and return the root element.

    Raises:
        PomParseError: If XML cannot be parsed.
    """
    try:
        parser = etree.XMLParser(resolve_entities=False, no_network=True, recover=False)
        return etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise PomParseError(f"Failed to parse POM: {source}") from exc


def _parse_properties(root: etree._Element) -> dict[str, str]:
    props: dict[str, str] = {}
    for n in root.xpath(f"{_PROJECT}/*[local-name()='properties']/*"):
        if not isinstance(n, etree._Element):
            continue
        key = etree.QName(n).localname
        val = (n.text or "").strip()
        if key and val:
            props[key] = val
    return props


def _parse_dependencies(root: etree._Element, xpath_expr: str) -> list[Dependency]:
    deps: list[Dependency] = []
    for dep in root.xpath(xpath_expr):
        group_id = _text_first(dep, "./*[local-name()='groupId']")
        artifact_id = _text_first(dep, "./*[local-name()='artifactId']")
        if group_id is None or artifact_id is None:
            continue
        deps.append(
            Dependency(
                group_id=group_id,
                artifact_id=artifact_id,
                version=_text_first(dep, "./*[local-name()='version']"),
                classifier=_text_first(dep, "./*[local-name()='classifier']"),
                type=_text_first(dep, "./*[local-name()='type']"),
                scope=_text_first(dep, "./*[local-name()='scope']"),
                optional=_bool_text(_text_first(dep, "./*[local-name()='optional']")),
                system_path=_text_first(dep, "./*[local-name()='systemPath']"),
            )
        )
    return deps


def _parse_parent(root: etree._Element) -> Coordinate | None:
    parent_nodes = root.xpath(f"{_PROJECT}/*[local-name()='parent']")
    if not parent_nodes:
        return None
    parent = parent_nodes[0]
    group_id = _text_first(parent, "./*[local-name()='groupId']")
    artifact_id = _text_first(parent, "./*[local-name()='artifactId']")
    version = _text_first(parent, "./*[local-name()='version']")
    if group_id is None or artifact_id is None or version is None:
        raise PomModelError("<parent> must declare groupId, artifactId and version")
    spec = f"{group_id}:{artifact_id}:{version}@pom"
    return Coordinate(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        packaging="pom",
        original_spec=spec,
    )


def parse_pom(content: bytes, source: str = "<pom>") -> ManifestNode:
    """Parse one POM document without applying inheritance.

    Notes:
        - Namespace handling: uses `local-name()` XPath so it works with or without XML namespaces.
        - groupId and version fall back to the `<parent>` values, as Maven does.

    Args:
        content: Raw POM bytes.
        source: Description of where the bytes came from, for error messages.

    Raises:
        PomParseError: If the XML is malformed.
        PomModelError: If required fields are missing.

    Returns:
        A `ManifestNode`.
    """
    root = _parse_xml(content, source)
    parent = _parse_parent(root)

    artifact_id = _text_first(root, f"{_PROJECT}/*[local-name()='artifactId']")
    if artifact_id is None:
        raise PomModelError(f"Missing required <artifactId> in {source}")
    group_id = _text_first(root, f"{_PROJECT}/*[local-name()='groupId']") or (parent and parent.group_id)
    version = _text_first(root, f"{_PROJECT}/*[local-name()='version']") or (parent and parent.version)
    if group_id is None or version is None:
        raise PomModelError(f"Missing required <groupId>/<version> (or <parent>) in {source}")
    packaging = _text_first(root, f"{_PROJECT}/*[local-name()='packaging']") or DEFAULT_PACKAGING

    return ManifestNode(
        coordinate=Coordinate(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            packaging=packaging,
            original_spec=f"{group_id}:{artifact_id}:{version}",
        ),
        parent=parent,
        packaging=packaging,
        properties=_parse_properties(root),
        dependency_management=_parse_dependencies(
            root,
            f"{_PROJECT}/*[local-name()='dependencyManagement']"
            "/*[local-name()='dependencies']/*[local-name()='dependency']",
        ),
        dependencies=_parse_dependencies(
            root,
            f"{_PROJECT}/*[local-name()='dependencies']/*[local-name()='dependency']",
        ),
    )


def _merge_dependency_lists(parent: Sequence[Dependency], child: Sequence[Dependency]) -> list[Dependency]:
    """Child entries first in their own order, then parent entries the child does not shadow."""
    merged: dict[str, Dependency] = {}
    for dep in child:
        merged[dep.coordinate] = dep
    for dep in parent:
        merged.setdefault(dep.coordinate, dep)
    return list(merged.values())


def merge_parent(parent: ManifestNode, child: ManifestNode) -> EffectiveManifest:
    """Merge a parent manifest into its child; the child always wins."""
    return EffectiveManifest(
        coordinate=child.coordinate,
        parent=child.parent,
        packaging=child.packaging,
        properties={**parent.properties, **child.properties},
        dependency_management=_merge_dependency_lists(parent.dependency_management, child.dependency_management),
        dependencies=_merge_dependency_lists(parent.dependencies, child.dependencies),
    )


def effective_manifest(inheritance_chain: Sequence[ManifestNode]) -> EffectiveManifest:
    """Fold a leaf-to-root chain into one manifest, starting from the root.

    Raises:
        ValueError: If the chain is empty.
    """
    if not inheritance_chain:
        raise ValueError("inheritance chain must contain at least one manifest")
    root = inheritance_chain[-1]
    merged = EffectiveManifest(**root.model_dump())
    for node in reversed(inheritance_chain[:-1]):
        merged = merge_parent(parent=merged, child=node)
    return merged


def _apply_management(dep: Dependency, managed: dict[str, Dependency]) -> Dependency:
    entry = managed.get(dep.coordinate)
    if entry is None:
        return dep
    updates: dict[str, object] = {}
    if dep.version is None and entry.version is not None:
        updates["version"] = entry.version
    if dep.scope is None and entry.scope is not None:
        updates["scope"] = entry.scope
    return dep.model_copy(update=updates) if updates else dep


def extract_dependencies(project: ManifestNode, include_runtime: bool = True) -> list[Dependency]:
    """Select the dependencies of an effective manifest that a build needs.

    Dependencies without a version or scope take them from
    `<dependencyManagement>` when it lists the same coordinate.

    Args:
        project: The effective manifest.
        include_runtime: Also select `runtime` scoped dependencies. When False
            only unscoped and `compile` dependencies are selected.

    Returns:
        Dependencies in manifest order.
    """
    managed = {d.coordinate: d for d in project.dependency_management}
    scopes = RUNTIME_DEPENDENCY_SCOPES if include_runtime else frozenset({"compile"})
    selected = []
    for dep in project.dependencies:
        dep = _apply_management(dep, managed)
        if dep.effective_scope in scopes:
            selected.append(dep)
    return selected


def should_include_dependency(dep: Dependency) -> bool:
    return dep.effective_scope in RUNTIME_DEPENDENCY_SCOPES and not dep.system_path and not dep.optional


def filter_dependencies(deps: Iterable[Dependency], exclusions: Iterable[str] = ()) -> list[Dependency]:
    """Drop excluded, optional, system-path and non-runtime dependencies."""
    excluded = set(exclusions)
    return [d for d in deps if d.coordinate not in excluded and should_include_dependency(d)]


def format_dependency(dep: Dependency) -> str:
    return dep.format()
