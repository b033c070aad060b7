"""Config command - Show effective settings."""

import typer
from rich.console import Console
from rich.table import Table

from interviewcoach.config.settings import TIME_BUDGETS, Settings

app = typer.Typer(help="Configuration management")
console = Console()


@app.command("show")
def show_config():
    """Show effective settings and agent time budgets."""
    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    for key, value in sorted(Settings().as_dict().items()):
        table.add_row(key, str(value))
    console.print(table)

    budgets = Table(title="Agent Time Budgets")
    budgets.add_column("Module", style="cyan")
    budgets.add_column("Max (ms)", justify="right")
    budgets.add_column("Warning (ms)", justify="right")
    budgets.add_column("Priority")
    for module, budget in TIME_BUDGETS.items():
        budgets.add_row(module, str(budget.max_time_ms), str(budget.warning_ms), budget.priority)
    console.print(budgets)
