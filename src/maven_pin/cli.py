"""Typer CLI entry point for maven-pin."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from maven_pin.config import GeneratorSettings, RepositorySpecification, load_specification
from maven_pin.coordinates import parse_coordinate
from maven_pin.exceptions import ArtifactValidationError, MavenPinError
from maven_pin.fetch import Fetcher, HttpFetcher, LocalFileStore
from maven_pin.generator import GeneratedRepository, RepositoryGenerator
from maven_pin.graph import build_graph, leaf_first_order, reverse_dependencies, transitive_dependents
from maven_pin.output import write_repository
from maven_pin.resolver import PomResolver
from maven_pin.visualize import build_repository_tree

app = typer.Typer(add_completion=False, help="Generate Bazel targets for a pinned set of Maven artifacts.")
console = Console()

SpecArgument = Annotated[Path, typer.Argument(help="YAML or JSON repository specification.")]
WorkersOption = Annotated[
    int | None, typer.Option("--workers", help="Artifacts resolved concurrently (default: MAVEN_PIN_WORKERS or 1).")
]


@app.callback()
def _configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug details.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(exc: MavenPinError) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
    return typer.Exit(code=1)


def build_resolver(spec: RepositorySpecification, settings: GeneratorSettings, fetcher: Fetcher) -> PomResolver:
    """Wire a resolver for `spec` around an open fetcher."""
    return PomResolver(
        fetcher,
        LocalFileStore(settings.cache_dir or spec.cache_dir()),
        spec.repository_urls,
        pom_hashes=spec.pom_hashes,
        cache_poms=spec.cache_poms_insecurely,
    )


def _generate(spec: RepositorySpecification, settings: GeneratorSettings) -> GeneratedRepository:
    settings.validate()
    with HttpFetcher(timeout_seconds=settings.timeout_seconds, cas_dir=settings.cas_dir) as fetcher:
        resolver = build_resolver(spec, settings, fetcher)
        return RepositoryGenerator(spec, resolver).generate(workers=settings.workers)


def _settings(workers: int | None) -> GeneratorSettings:
    settings = GeneratorSettings.from_env()
    if workers is not None:
        settings.workers = workers
    return settings


@app.command()
def generate(
    spec_file: SpecArgument,
    out: Annotated[Path, typer.Option("--out", help="Output directory for WORKSPACE and BUILD files.")] = Path(
        "maven"
    ),
    workers: WorkersOption = None,
) -> None:
    """Resolve the specification and write the generated repository."""
    try:
        spec = load_specification(spec_file)
        generated = _generate(spec, _settings(workers))
        written = write_repository(generated, out)
    except MavenPinError as exc:
        raise _fail(exc) from None
    console.print(f"[green]Wrote[/green] {len(written)} file(s) to [bold]{out}[/bold].")


@app.command()
def validate(spec_file: SpecArgument) -> None:
    """Validate the specification without fetching anything."""
    try:
        spec = load_specification(spec_file)
    except ArtifactValidationError as exc:
        for error in exc.errors:
            console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
        raise typer.Exit(code=1) from None
    except MavenPinError as exc:
        raise _fail(exc) from None

    table = Table(title=f"Artifacts of @{spec.name}")
    table.add_column("Artifact")
    table.add_column("Target")
    table.add_column("Hash policy")
    table.add_column("Notes", style="dim")
    for coordinate, props in spec.declared:
        notes = [n for n, on in (("testonly", props.testonly), ("snippet", bool(props.build_snippet))) if on]
        table.add_row(
            str(coordinate),
            f"//{coordinate.group_path}:{coordinate.target_name}",
            "insecure" if props.insecure else "sha256",
            ", ".join(notes),
        )
    console.print(table)


@app.command()
def parse(coordinate: Annotated[str, typer.Argument(help="group:artifact:version[:classifier][@packaging]")]) -> None:
    """Show how a coordinate is parsed and where its files live."""
    try:
        c = parse_coordinate(coordinate)
    except MavenPinError as exc:
        raise _fail(exc) from None

    table = Table(show_header=False)
    for key, value in (
        ("groupId", c.group_id),
        ("artifactId", c.artifact_id),
        ("version", c.version),
        ("classifier", c.classifier or ""),
        ("packaging", c.packaging),
        ("canonical", c.format()),
        ("target", f"//{c.group_path}:{c.target_name}"),
        ("path", c.path),
        ("pom", c.pom_path),
    ):
        table.add_row(key, value)
    console.print(table)


@app.command()
def tree(spec_file: SpecArgument, workers: WorkersOption = None) -> None:
    """Resolve the specification and print the generated targets."""
    try:
        generated = _generate(load_specification(spec_file), _settings(workers))
    except MavenPinError as exc:
        raise _fail(exc) from None
    console.print(build_repository_tree(generated))


@app.command()
def reverse(
    spec_file: SpecArgument,
    target: Annotated[str, typer.Argument(help="Target artifact: groupId:artifactId")],
    transitive: Annotated[bool, typer.Option("--transitive", help="Include indirect dependents.")] = False,
    workers: WorkersOption = None,
) -> None:
    """Show which declared artifacts depend on TARGET."""
    try:
        generated = _generate(load_specification(spec_file), _settings(workers))
    except MavenPinError as exc:
        raise _fail(exc) from None

    g = build_graph(generated.dependency_edges())
    preds = transitive_dependents(g, target) if transitive else reverse_dependencies(g, target)
    kind = "Transitive reverse" if transitive else "Reverse"
    table = Table(title=f"{kind} dependencies (who depends on {target})")
    table.add_column("#", style="dim", width=6)
    table.add_column("Dependent (predecessor)")
    if not preds:
        console.print(table)
        console.print("[dim]No reverse dependencies found (or target not declared).[/dim]")
        return
    for i, key in enumerate(preds, start=1):
        table.add_row(str(i), key)
    console.print(table)


@app.command()
def order(spec_file: SpecArgument, workers: WorkersOption = None) -> None:
    """List declared artifacts leaf-first (dependencies before dependents)."""
    try:
        generated = _generate(load_specification(spec_file), _settings(workers))
    except MavenPinError as exc:
        raise _fail(exc) from None
    for key in leaf_first_order(build_graph(generated.dependency_edges())):
        console.print(key)


def main() -> None:
    """Console-script entry point."""
    app()
