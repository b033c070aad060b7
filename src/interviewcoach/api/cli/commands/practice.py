"""Practice command - Interactive interview practice in the terminal."""

import asyncio
import getpass
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from interviewcoach.application.factory import create_practice_service
from interviewcoach.application.practice_service import EndSessionResult, TopicPracticeService
from interviewcoach.core.domain.models import TopicFeedback

app = typer.Typer(help="Interview practice sessions")
console = Console()

EXIT_COMMANDS = {"exit", "quit", "bye"}


def print_feedback(feedback: TopicFeedback) -> None:
    lines = [f"[bold]Score:[/bold] {feedback.score}/10"]
    if feedback.strengths:
        lines.append("[green]Strengths:[/green] " + "; ".join(feedback.strengths))
    if feedback.gaps:
        lines.append("[yellow]Gaps:[/yellow] " + "; ".join(feedback.gaps))
    if feedback.immediate_suggestions:
        lines.append("[cyan]Next time:[/cyan] " + "; ".join(feedback.immediate_suggestions))
    console.print(Panel("\n".join(lines), title=f"Feedback - {feedback.topic_name}", border_style="blue"))


def print_report(report: EndSessionResult) -> None:
    for feedback in report.feedbacks:
        print_feedback(feedback)

    table = Table(title="Companies to consider")
    table.add_column("Company", style="cyan")
    table.add_column("Match", justify="right")
    table.add_column("Why")
    for match in report.recommendations:
        table.add_row(match.company, f"{match.match_score}%", "; ".join(match.reasons))
    console.print(table)
    console.print(Panel(report.summary, title="Summary", border_style="green"))


async def run_practice(
    service: TopicPracticeService,
    user_id: str,
    position: str,
    resume_text: Optional[str],
) -> None:
    started = await service.start_session(user_id, position, resume_text)
    console.print(f"[dim]Session {started.session_id} | topic: {started.topic_name}[/dim]")
    console.print(Panel(started.opening_message, title="Interviewer", border_style="magenta"))

    while True:
        try:
            user_input = Prompt.ask("[bold green]You[/bold green]")
        except (KeyboardInterrupt, EOFError):
            break

        if user_input.strip().lower() in EXIT_COMMANDS:
            break
        if not user_input.strip():
            continue

        result = await service.send_message(started.session_id, user_id, user_input)
        console.print(Panel(result.response, title="Interviewer", border_style="magenta"))
        if result.feedback is not None:
            print_feedback(result.feedback)
        if result.interview_ended:
            break

    with console.status("Preparing your report..."):
        report = await service.end_session(started.session_id, user_id)
    print_report(report)


@app.command("start")
def start(
    position: str = typer.Option(..., "--position", "-p", help="Target position, e.g. 'Backend Engineer'"),
    resume: Optional[typer.FileText] = typer.Option(None, "--resume", help="Resume text file"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="User id (defaults to the OS user)"),
):
    """Start an interactive practice session.

    Type 'exit' to finish; ask for a hint, an easier or harder question,
    or say you want to switch topics at any time.
    """
    service = create_practice_service()
    resume_text = resume.read() if resume else None
    console.print(
        Panel(
            f"Practicing for [bold]{position}[/bold]. Type 'exit' to finish and see your report.",
            title="Interview Coach",
            border_style="blue",
        )
    )
    asyncio.run(run_practice(service, user_id or getpass.getuser(), position, resume_text))
