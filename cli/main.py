"""
driftgraph CLI

Command-line interface for the documentation drift engine.
Provides commands for inspecting source files, capturing snapshots,
detecting drift between snapshots, and exploring call graphs.

Commands:
    driftgraph analyze <file>          Print the structural model of one file
    driftgraph snapshot <project>      Capture and save a snapshot
    driftgraph detect <project>        Compare the latest snapshot with the current code
    driftgraph callgraph <entry> [root]  Print the call tree of a function
    driftgraph history <project>       List saved snapshots

Usage:
    $ driftgraph snapshot ./my-project --docs ./my-project/docs
    $ driftgraph detect ./my-project
    $ driftgraph callgraph main ./my-project --max-depth 4
"""

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from engine import __version__
from engine.config import load_config
from engine.drift import DriftDetector
from engine.graph import CallGraphBuilder, CallGraphOptions
from engine.models import (
    CallGraph,
    CallGraphNode,
    DriftDetectionResult,
    FileAnalysis,
    Severity,
)
from engine.parser import StructuralExtractor, format_function_signature
from engine.storage import SnapshotStore

app = typer.Typer(
    name="driftgraph",
    help="driftgraph: detect when documentation drifts away from the code it describes",
    add_completion=False,
)
console = Console()


SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.NONE: "dim",
}


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr, WARNING and above unless verbose."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold]driftgraph[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """
    driftgraph: detect when documentation drifts away from the code it describes.
    """
    configure_logging(verbose)


@app.command()
def analyze(
    file: Path = typer.Argument(
        ...,
        help="Source file to analyze",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the model as JSON"),
) -> None:
    """
    Print the structural model of a single source file.
    """
    extractor = StructuralExtractor()
    if not extractor.supports(file):
        console.print(f"[bold red]Error:[/bold red] unsupported file type: {file.suffix}")
        raise typer.Exit(1)

    analysis = extractor.analyze_file(file)
    if analysis is None:
        console.print(f"[bold red]Error:[/bold red] could not read {file}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(analysis.to_dict(), indent=2))
        return
    _print_analysis(analysis)


@app.command()
def snapshot(
    project: Path = typer.Argument(
        ...,
        help="Project directory to snapshot",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    docs: Optional[Path] = typer.Option(
        None,
        "--docs",
        "-d",
        help="Documentation directory (default: <project>/docs)",
    ),
) -> None:
    """
    Capture the current code and documentation structure and save it.
    """
    store = SnapshotStore(project, config=load_config(project))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Extracting code and documentation...", total=None)
        current = store.create_snapshot(docs_path=docs)
        progress.update(task, description="Saving snapshot...")
        path = store.save_snapshot(current)
        progress.update(task, description="Done!")

    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Label", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Source files", str(len(current.files)))
    table.add_row("Documentation files", str(len(current.documentation)))
    table.add_row("Functions", str(sum(len(a.functions) for a in current.files.values())))
    table.add_row("Snapshot", str(path))
    console.print(Panel(table, title="[bold green]✓ Snapshot Saved[/bold green]", border_style="green"))


@app.command()
def detect(
    project: Path = typer.Argument(
        ...,
        help="Project directory to check",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    docs: Optional[Path] = typer.Option(
        None,
        "--docs",
        "-d",
        help="Documentation directory (default: <project>/docs)",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
    no_save: bool = typer.Option(
        False,
        "--no-save",
        help="Do not save the fresh snapshot after comparing",
    ),
) -> None:
    """
    Compare the latest saved snapshot with the current project.

    Exits with code 1 when critical drift is found.
    """
    store = SnapshotStore(project, config=load_config(project))
    previous = store.load_latest_snapshot()
    current = store.create_snapshot(docs_path=docs)

    if previous is None:
        path = store.save_snapshot(current)
        console.print(
            f"[yellow]No previous snapshot found.[/yellow] Baseline saved to [bold]{path}[/bold]."
        )
        return

    results = DriftDetector().detect_drift(previous, current)
    if not no_save:
        store.save_snapshot(current)

    if as_json:
        typer.echo(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        _print_drift_results(results)

    if any(r.severity == Severity.CRITICAL for r in results):
        raise typer.Exit(1)


@app.command()
def callgraph(
    entry: str = typer.Argument(..., help="Function or method name to start from"),
    root: Optional[Path] = typer.Argument(
        None,
        help="Project directory or file (default: current directory)",
        exists=True,
        resolve_path=True,
    ),
    max_depth: Optional[int] = typer.Option(
        None,
        "--max-depth",
        "-m",
        min=0,
        help="Maximum call depth (default from configuration: 3)",
    ),
    no_imports: bool = typer.Option(False, "--no-imports", help="Do not follow imports"),
    no_conditionals: bool = typer.Option(False, "--no-conditionals", help="Skip conditional paths"),
    no_exceptions: bool = typer.Option(False, "--no-exceptions", help="Skip exception paths"),
    as_json: bool = typer.Option(False, "--json", help="Print the call graph as JSON"),
) -> None:
    """
    Print the call tree rooted at ENTRY.
    """
    if root is None:
        root = Path.cwd()

    overrides = {}
    if max_depth is not None:
        overrides["max_depth"] = max_depth
    if no_imports:
        overrides["resolve_imports"] = False
    if no_conditionals:
        overrides["extract_conditionals"] = False
    if no_exceptions:
        overrides["track_exceptions"] = False
    options = CallGraphOptions.from_config(load_config(root), **overrides)

    graph = CallGraphBuilder().build_call_graph(entry, root, options)

    if as_json:
        typer.echo(json.dumps(graph.to_dict(), indent=2))
        return
    _print_call_graph(graph)


@app.command()
def history(
    project: Optional[Path] = typer.Argument(
        None,
        help="Path to the project (default: current directory)",
    ),
    limit: int = typer.Option(
        10,
        "--limit",
        "-n",
        help="Number of snapshots to show",
    ),
) -> None:
    """
    Show saved snapshots, newest first.
    """
    if project is None:
        project = Path.cwd()

    store = SnapshotStore(project, config=load_config(project))
    paths = store.list_snapshots()[:limit]
    if not paths:
        console.print("[yellow]No snapshots recorded.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Snapshot History", box=box.ROUNDED)
    table.add_column("Timestamp", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Docs", justify="right")
    table.add_column("Snapshot")

    for path in paths:
        saved = store.load_snapshot(path)
        if saved is None:
            table.add_row("-", "-", "-", f"[red]{path.name} (unreadable)[/red]")
            continue
        table.add_row(saved.timestamp, str(len(saved.files)), str(len(saved.documentation)), path.name)

    console.print(table)


# Helper functions for output formatting

def _print_analysis(analysis: FileAnalysis) -> None:
    """Print functions, classes and types of one file."""
    console.print(f"\n[bold blue]📄 {analysis.file_path}[/bold blue] [dim]({analysis.language})[/dim]\n")

    if analysis.warnings:
        for warning in analysis.warnings:
            console.print(f"[yellow]⚠️  {warning}[/yellow]")

    table = Table(box=box.ROUNDED)
    table.add_column("Kind", style="dim")
    table.add_column("Signature", style="cyan")
    table.add_column("Exported", justify="center")
    table.add_column("Lines", justify="right")
    table.add_column("Complexity", justify="right")

    for func in analysis.functions:
        table.add_row(
            "function",
            format_function_signature(func),
            "✓" if func.is_exported else "",
            f"{func.start_line}-{func.end_line}",
            str(func.complexity),
        )
    for cls in analysis.classes:
        table.add_row("class", cls.name, "✓" if cls.is_exported else "", f"{cls.start_line}-{cls.end_line}", "")
        for method in cls.methods:
            table.add_row(
                "  method",
                format_function_signature(method),
                "",
                f"{method.start_line}-{method.end_line}",
                str(method.complexity),
            )
    for iface in analysis.interfaces:
        table.add_row("interface", iface.name, "✓" if iface.is_exported else "", f"{iface.start_line}-{iface.end_line}", "")
    for alias in analysis.types:
        table.add_row("type", f"{alias.name} = {alias.definition}", "✓" if alias.is_exported else "", f"{alias.start_line}-{alias.end_line}", "")

    console.print(table)
    console.print(
        f"\n[dim]{analysis.lines_of_code} lines, {len(analysis.imports)} imports, "
        f"total complexity {analysis.complexity}[/dim]"
    )


def _print_drift_results(results: list[DriftDetectionResult]) -> None:
    """Print one panel per drifted file."""
    if not results:
        console.print("[green]✓ No documentation drift detected.[/green]")
        return

    console.print(f"\n[bold yellow]⚠️  Drift detected in {len(results)} file(s)[/bold yellow]\n")

    for result in results:
        style = SEVERITY_STYLES[result.severity]
        table = Table(box=box.SIMPLE)
        table.add_column("Change", style="bold")
        table.add_column("Severity")
        table.add_column("Description")
        for drift in result.drifts:
            drift_style = SEVERITY_STYLES[drift.severity]
            table.add_row(
                drift.type.value,
                f"[{drift_style}]{drift.severity.value}[/{drift_style}]",
                drift.description,
            )

        impact = result.impact_analysis
        footer = (
            f"breaking {impact.breaking_changes}, major {impact.major_changes}, "
            f"minor {impact.minor_changes}; effort {impact.estimated_update_effort.value}"
        )
        if impact.requires_manual_review:
            footer += "; [bold]manual review required[/bold]"

        console.print(
            Panel(
                table,
                title=f"[{style}]{result.file_path} ({result.severity.value})[/{style}]",
                subtitle=footer,
                border_style=style,
            )
        )

        if impact.affected_doc_files:
            console.print("[bold]Affected documentation:[/bold]")
            for doc in impact.affected_doc_files:
                console.print(f"   • {doc}")
        for suggestion in result.suggestions:
            console.print(
                f"   [cyan]→[/cyan] {suggestion.doc_file} § {suggestion.section}: "
                f"{suggestion.reasoning} [dim](confidence {suggestion.confidence:.1f})[/dim]"
            )
        console.print()


def _node_label(node: CallGraphNode) -> str:
    label = f"[cyan]{node.function.name}[/cyan]"
    if node.is_external:
        label += " [dim](external)[/dim]"
    else:
        label += f" [dim]{Path(node.location.file).name}:{node.location.line}[/dim]"
    if node.truncated:
        label += " [yellow]…[/yellow]"
    return label


def _add_subtree(tree: Tree, node: CallGraphNode) -> None:
    for exc in node.exceptions:
        marker = "caught" if exc.is_caught else "uncaught"
        tree.add(f"[red]throws {exc.exception_type}[/red] [dim]line {exc.line_number}, {marker}[/dim]")
    for branch in node.conditional_branches:
        branch_tree = tree.add(f"[magenta]{branch.type}[/magenta] {branch.condition} [dim]line {branch.line_number}[/dim]")
        for child in branch.true_branch:
            _add_subtree(branch_tree.add(f"✓ {_node_label(child)}"), child)
        for child in branch.false_branch:
            _add_subtree(branch_tree.add(f"✗ {_node_label(child)}"), child)
    for child in node.calls:
        _add_subtree(tree.add(_node_label(child)), child)


def _print_call_graph(graph: CallGraph) -> None:
    """Print the call tree and a summary of unresolved calls and cycles."""
    tree = Tree(f"[bold]{_node_label(graph.root)}[/bold]")
    _add_subtree(tree, graph.root)
    console.print(tree)

    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Label", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Functions", str(len(graph.all_functions)))
    table.add_row("Max depth reached", str(graph.max_depth_reached))
    table.add_row("Files analyzed", str(len(graph.analyzed_files)))
    table.add_row("Circular references", str(len(graph.circular_references)))
    table.add_row("Unresolved calls", str(len(graph.unresolved_calls)))
    table.add_row("Build time", f"{graph.build_time_ms:.1f}ms")
    console.print(table)

    for ref in graph.circular_references:
        console.print(f"   [yellow]↻[/yellow] {ref.from_function} → {ref.to_function} [dim]({Path(ref.file).name}:{ref.line})[/dim]")
    for call in graph.unresolved_calls[:10]:
        console.print(f"   [dim]? {call.name} ({Path(call.file).name}:{call.line})[/dim]")
    if len(graph.unresolved_calls) > 10:
        console.print(f"   [dim]... and {len(graph.unresolved_calls) - 10} more[/dim]")


if __name__ == "__main__":
    app()
