"""Deadwood CLI - unreferenced class and method rules with frozen baselines."""
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape
from rich.table import Table

from .analyzer.graph_provider import load_symbol_graph
from .config import __version__, get_config, load_settings
from .errors import DeadwoodError
from .freeze.baseline import BaselineStore
from .rules.report import render_outcome, summary_table, violations_table
from .rules.rule import build_rules
from .rules.runner import RuleRunner
from .utils.console import SafeConsole, configure_logging

app = typer.Typer(
    name="deadwood",
    help="Report classes and methods nothing refers to",
    add_completion=False
)
console = SafeConsole()

# Baseline inspection sub-command
baseline_app = typer.Typer(name="baseline", help="Inspect stored violation baselines")

EXIT_VIOLATIONS = 1
EXIT_ERROR = 2


def _fail(error: Exception):
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}", soft_wrap=True)
    raise typer.Exit(EXIT_ERROR)


@app.command()
def check(
    graph: Optional[Path] = typer.Argument(None, help="Symbol graph document (JSON); defaults to DEADWOOD_GRAPH"),
    project_root: Path = typer.Option(Path("."), "--project-root", "-p", help="Project holding pyproject.toml and the baselines"),
    rule: List[str] = typer.Option([], "--rule", "-r", help="Only run the named rule (repeatable)"),
    accept_baseline: bool = typer.Option(False, "--accept-baseline", help="Accept all current violations into the baselines"),
    no_freeze: bool = typer.Option(False, "--no-freeze", help="Ignore baselines and report every violation"),
    include_tests: bool = typer.Option(False, "--include-tests", help="Analyze test code too"),
    include_archives: bool = typer.Option(False, "--include-archives", help="Analyze library (archive) code too"),
    package: List[str] = typer.Option([], "--package", help="Restrict analysis to a package prefix (repeatable)"),
    table: bool = typer.Option(False, "--table", help="Print violations as a table instead of the plain report"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Run the configured rules against a symbol graph."""
    if accept_baseline and no_freeze:
        console.print("[bold red]Error:[/bold red] --accept-baseline cannot be combined with --no-freeze")
        raise typer.Exit(EXIT_ERROR)

    try:
        config = get_config(project_root)
        configure_logging(verbose or config.verbose)
        settings = load_settings(project_root, config)

        overrides = {}
        if include_tests:
            overrides['include_tests'] = True
        if include_archives:
            overrides['include_archives'] = True
        if package:
            overrides['packages'] = tuple(package)
        if overrides:
            settings = replace(settings, **overrides)

        graph_path = graph or (Path(config.graph_path) if config.graph_path else None)
        if graph_path is None:
            console.print("[bold red]Error:[/bold red] No graph document given (argument or DEADWOOD_GRAPH)")
            raise typer.Exit(EXIT_ERROR)

        rules = build_rules(settings, rule or None)
        symbol_graph = load_symbol_graph(graph_path, settings.import_options())
        store = None if no_freeze else BaselineStore(settings.baseline_path(project_root))
        runner = RuleRunner(rules, store, accept=accept_baseline, shrink_baseline=settings.shrink_baseline)
        outcome = runner.run(symbol_graph)
    except DeadwoodError as e:
        _fail(e)

    if outcome.failed:
        if table:
            console.print(violations_table(outcome))
        else:
            # Plain report goes out unstyled so it can be diffed and grepped
            console.print(escape(render_outcome(outcome)), soft_wrap=True, highlight=False)
        console.print()

    console.print(summary_table(outcome))
    for result in outcome.results:
        if result.baseline_written:
            console.print(f"[dim]✓ Baseline updated for rule '{result.rule.name}'[/dim]")

    if outcome.failed:
        console.print(f"[bold red]✗ {outcome.violation_count} unreferenced symbol(s)[/bold red]")
        raise typer.Exit(EXIT_VIOLATIONS)
    console.print("[bold green]✓ No unreferenced symbols[/bold green]")


@app.command("rules")
def list_rules(
    project_root: Path = typer.Option(Path("."), "--project-root", "-p", help="Project holding pyproject.toml"),
):
    """Show the configured rules."""
    try:
        settings = load_settings(project_root)
        rules = build_rules(settings)
    except DeadwoodError as e:
        _fail(e)

    rules_table = Table(title="Configured Rules", show_header=True, header_style="bold cyan")
    rules_table.add_column("Name", style="cyan")
    rules_table.add_column("Kind")
    rules_table.add_column("Priority")
    rules_table.add_column("Frozen")
    rules_table.add_column("Rule", overflow="fold")
    for r in rules:
        rules_table.add_row(r.name, r.kind.value, r.priority.value, "yes" if r.frozen else "no", escape(r.full_text))
    console.print(rules_table)


@baseline_app.command("show")
def baseline_show(
    project_root: Path = typer.Option(Path("."), "--project-root", "-p", help="Project holding the baselines"),
    rule: List[str] = typer.Option([], "--rule", "-r", help="Only show the named rule (repeatable)"),
):
    """Show the stored baseline entries per rule."""
    try:
        settings = load_settings(project_root)
        store = BaselineStore(settings.baseline_path(project_root))
        names = rule or store.rule_names()
        if not names:
            console.print(f"[yellow]No baselines in {escape(str(store.directory))}[/yellow]")
            return
        for name in names:
            entries = store.read(name)
            if entries is None:
                console.print(f"[yellow]{escape(name)}: no baseline[/yellow]")
                continue
            console.print(f"[bold cyan]{escape(name)}[/bold cyan] ({len(entries)} entries)")
            for identity in sorted(entries):
                console.print(f"  {escape(identity)}", highlight=False, soft_wrap=True)
    except (DeadwoodError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """Show the Deadwood version."""
    console.print(f"deadwood {__version__}")


app.add_typer(baseline_app)


def main():
    app()


if __name__ == "__main__":
    main()
