"""Generate the build description of a pinned Maven repository.

Generation runs in two phases. First the closed world of declared
`group:artifact` pairs is built from the specification. Then each artifact is
resolved (POM chain, dependency filtering, pinning check) and turned into a
target, possibly on several threads. Results are placed by declaration index,
so output never depends on which download finishes first.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from maven_pin import emitter, graph, pom
from maven_pin.config import RepositorySpecification
from maven_pin.models import ArtifactProperties, BuildFile, Coordinate, Dependency, TargetDefinition
from maven_pin.pinning import check_pinned, resolved_artifact_set
from maven_pin.resolver import PomResolver


logger = logging.getLogger(__name__)


@dataclass
class ResolvedArtifact:
    """One declared artifact after resolution."""

    coordinate: Coordinate
    target: TargetDefinition
    dependencies: list[Dependency] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)


@dataclass
class GeneratedRepository:
    """Everything needed to write the generated repository to disk."""

    name: str
    build_files: list[BuildFile]
    artifacts: list[ResolvedArtifact]

    def files(self) -> dict[str, str]:
        """Relative path to rendered content, WORKSPACE first."""
        rendered = {"WORKSPACE": emitter.render_workspace(self.name)}
        for build_file in self.build_files:
            rendered[build_file.path] = emitter.render_build_file(build_file)
        return rendered

    def dependency_edges(self) -> dict[str, list[str]]:
        """Edges between declared artifacts as emitted, after target substitution.

        A dependency whose label was substituted away from its declared target
        is not an edge.
        """
        declared = {emitter.coordinate_label(self.name, a.coordinate): a.coordinate.versionless for a in self.artifacts}
        return {
            a.coordinate.versionless: list(dict.fromkeys(declared[x] for x in a.labels if x in declared))
            for a in self.artifacts
        }


class RepositoryGenerator:
    """Resolve every declared artifact of a specification into build targets."""

    def __init__(self, spec: RepositorySpecification, resolver: PomResolver) -> None:
        self.spec = spec
        self.resolver = resolver
        self._declared = spec.declared
        self._resolved = resolved_artifact_set(c for c, _ in self._declared)

    @property
    def resolved(self) -> frozenset[str]:
        return self._resolved

    def dependencies_of(self, coordinate: Coordinate, properties: ArtifactProperties) -> list[Dependency]:
        """Fetch, merge, extract and filter the POM dependencies of one artifact."""
        project = self.resolver.effective_manifest(coordinate)
        deps = pom.extract_dependencies(project, include_runtime=self.spec.include_runtime)
        return pom.filter_dependencies(deps, properties.exclude)

    def resolve_artifact(self, coordinate: Coordinate, properties: ArtifactProperties) -> ResolvedArtifact:
        """Resolve one artifact, skipping POM work for build snippets.

        Raises:
            UnpinnedTransitiveDependency: If a dependency is not declared.
        """
        if properties.build_snippet:
            logger.debug("Using build snippet for %s", coordinate)
            return ResolvedArtifact(coordinate=coordinate, target=emitter.snippet_target(coordinate, properties))

        deps = self.dependencies_of(coordinate, properties)
        check_pinned(str(coordinate), deps, self._resolved)
        substitutions = self.spec.dependency_target_substitutes.get(coordinate.group_id, {})
        target = emitter.build_target(coordinate, properties, deps, self.spec.name, substitutions)
        labels = emitter.substituted_labels(self.spec.name, deps, substitutions)
        return ResolvedArtifact(coordinate=coordinate, target=target, dependencies=deps, labels=labels)

    def generate(self, workers: int = 1) -> GeneratedRepository:
        """Resolve all artifacts and group their targets per group id.

        Args:
            workers: Number of artifacts resolved concurrently.

        Raises:
            MavenPinError: On the first failure; nothing is returned.
        """
        for group_id in dict.fromkeys(c.group_id for c, _ in self._declared):
            logger.info("Generating build details for artifacts in %s", group_id)

        if workers > 1 and len(self._declared) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(self.resolve_artifact, c, p) for c, p in self._declared]
                done, _ = wait(futures, return_when=FIRST_EXCEPTION)
                failed = [f for f in futures if f in done and f.exception() is not None]
                if failed:
                    pool.shutdown(wait=False, cancel_futures=True)
                    failed[0].result()
                results = [f.result() for f in futures]
        else:
            results = [self.resolve_artifact(c, p) for c, p in self._declared]

        generated = GeneratedRepository(
            name=self.spec.name,
            build_files=emitter.group_by_namespace(
                (r.target for r in results), self.spec.maven_rules_repository
            ),
            artifacts=results,
        )
        graph.check_acyclic(graph.build_graph(generated.dependency_edges()))
        return generated
