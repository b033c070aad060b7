"""Interview Coach CLI entry point."""

import logging

import structlog
import typer
from rich.console import Console

from interviewcoach.api.cli.commands import config, practice

app = typer.Typer(
    name="interviewcoach",
    help="Interview Coach - topic-based interview practice",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.add_typer(practice.app, name="practice", help="Interview practice sessions")
app.add_typer(config.app, name="config", help="Configuration management")


def log_level(verbose: bool = False, debug: bool = False) -> int:
    if debug:
        return logging.DEBUG
    return logging.INFO if verbose else logging.WARNING


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show info logs"),
    debug: bool = typer.Option(False, "--debug", help="Show debug logs"),
):
    """Interview Coach CLI."""
    level = log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))
    ctx.obj = {"verbose": verbose, "debug": debug}


@app.command()
def version():
    """Show Interview Coach version."""
    from interviewcoach import __version__

    console.print(f"[bold blue]Interview Coach[/bold blue] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
