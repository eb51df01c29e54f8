"""Plain-text and rich renderings of rule results."""
from rich.table import Table

from .runner import RuleResult, RunOutcome


def render_report(result: RuleResult) -> str:
    """Render one rule's effective violations.

    Returns an empty string when the rule passed.
    """
    if not result.effective:
        return ""
    rule = result.rule
    header = (
        f"Architecture Violation [Priority: {rule.priority.value}] - "
        f"Rule '{rule.full_text}' was violated ({len(result.effective)} times):"
    )
    return "\n".join([header] + [violation.message for violation in result.effective])


def render_outcome(outcome: RunOutcome) -> str:
    reports = [render_report(result) for result in outcome.results]
    return "\n\n".join(report for report in reports if report)


def violations_table(outcome: RunOutcome) -> Table:
    table = Table(title="Unreferenced Symbols", show_header=True, header_style="bold magenta")
    table.add_column("Rule", style="cyan")
    table.add_column("Symbol", style="yellow")
    table.add_column("Location", style="dim")

    for result in outcome.results:
        for violation in result.effective:
            table.add_row(result.rule.name, violation.symbol.description, str(violation.symbol.location))
    return table


def summary_table(outcome: RunOutcome) -> Table:
    table = Table(title="Rule Summary", show_header=True, header_style="bold cyan", box=None)
    table.add_column("Rule", style="cyan")
    table.add_column("Found", justify="right")
    table.add_column("Frozen", justify="right")
    table.add_column("Failing", justify="right")

    for result in outcome.results:
        failing = len(result.effective)
        table.add_row(
            result.rule.name,
            str(len(result.fresh)),
            str(result.frozen_count),
            f"[red]{failing}[/red]" if failing else "[green]0[/green]",
        )
    return table
