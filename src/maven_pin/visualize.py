"""Rich rendering utilities for generated repositories."""

from __future__ import annotations

from rich.tree import Tree

from maven_pin.generator import GeneratedRepository


def build_repository_tree(generated: GeneratedRepository) -> Tree:
    """Build a Rich Tree of BUILD files, their targets and target deps.

    Args:
        generated: Result of a generation run.

    Returns:
        A Rich Tree object for rendering.
    """
    root = Tree(f"[bold]@{generated.name}[/bold]")
    for build_file in generated.build_files:
        branch = root.add(f"[bold]{build_file.path}[/bold]")
        for target in build_file.targets:
            label = f":{target.target_name} [dim]{target.coordinate}[/dim]"
            if target.testonly:
                label += " (testonly)"
            if target.snippet is not None:
                branch.add(f"{label} [yellow](build snippet)[/yellow]")
                continue
            node = branch.add(label)
            if not target.deps:
                node.add("[dim]No dependencies[/dim]")
            for dep in target.deps:
                node.add(dep)
    return root
