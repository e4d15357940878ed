"""CLI color utilities for terminal output.

Uses rich for formatting. Generated commands themselves are written with
click.echo so they reach stdout untouched.
"""

from typing import Dict

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from coge.observability.usage_stats import UsageEntry
from coge.routing.bandit import BanditState

custom_theme = Theme({
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "dim": "dim white",
})

console = Console(theme=custom_theme)
err_console = Console(theme=custom_theme, stderr=True)


def print_success(text: str):
    """Print success message."""
    console.print(f"[success]✓[/success]  {escape(text)}")


def print_error(text: str):
    """Print error message to stderr."""
    err_console.print(f"[error]✗[/error]  {escape(text)}", highlight=False)


def print_warning(text: str):
    console.print(f"[warning]![/warning]  {escape(text)}")


def print_debug(text: str):
    console.print(f"[dim]{escape(text)}[/dim]", highlight=False, emoji=False)


def stats_table(stats: Dict[str, UsageEntry]) -> Table:
    """Usage stats per arm, in recording order."""
    table = Table(title="Usage Stats")
    table.add_column("Provider/Model", style="cyan")
    table.add_column("Exec", justify="right")
    table.add_column("Copy", justify="right")
    table.add_column("Cancel", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Accept%", justify="right")

    for key, entry in stats.items():
        rate = entry.accept_rate * 100
        rate_color = "green" if rate >= 80 else "yellow" if rate >= 50 else "red"
        table.add_row(
            escape(key),
            str(entry.execute),
            str(entry.copy),
            str(entry.cancel),
            str(entry.total),
            f"[{rate_color}]{rate:.0f}%[/{rate_color}]",
        )
    return table


def arms_table(state: BanditState) -> Table:
    """Learned bandit state, best reward first."""
    table = Table(title="Bandit Arms")
    table.add_column("Provider/Model", style="cyan")
    table.add_column("Samples", justify="right")
    table.add_column("Avg Latency", justify="right")
    table.add_column("Success Rate", justify="right")
    table.add_column("Reward", justify="right")
    table.add_column("Last Used", style="dim")

    for key, arm in sorted(state.items(), key=lambda item: item[1].reward, reverse=True):
        samples = f"{arm.n} [dim](cold)[/dim]" if arm.is_cold() else str(arm.n)
        table.add_row(
            escape(key),
            samples,
            f"{arm.avg_latency:.0f}ms",
            f"{arm.success_rate * 100:.1f}%",
            f"{arm.reward:.3f}",
            arm.last_used.strftime("%Y-%m-%d %H:%M") if arm.last_used else "-",
        )
    return table
