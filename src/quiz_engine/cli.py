"""Command-line interface using Typer."""

from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from quiz_engine import __version__
from quiz_engine.errors import QuizEngineError
from quiz_engine.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="quiz-engine",
    help="Quiz Shorts Engine - pipeline, analytics and refinement CLI",
    add_completion=False,
)

# Subcommand groups
jobs_app = typer.Typer(help="Job queue commands")
pipeline_app = typer.Typer(help="Pipeline step triggers")
analytics_app = typer.Typer(help="Analytics collection and reports")
refine_app = typer.Typer(help="Content refinement commands")
personas_app = typer.Typer(help="Persona configuration commands")
app.add_typer(jobs_app, name="jobs")
app.add_typer(pipeline_app, name="pipeline")
app.add_typer(analytics_app, name="analytics")
app.add_typer(refine_app, name="refine")
app.add_typer(personas_app, name="personas")

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Quiz Shorts Engine v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Quiz Shorts Engine - Generate, publish and refine quiz shorts."""
    pass


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error: {error}[/bold red]")
    raise typer.Exit(code=1)


def _stats_table(title: str, stats: dict[str, Any]) -> Table:
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in stats.items():
        if isinstance(value, (list, dict)):
            value = len(value)
        table.add_row(key, str(value))
    return table


@app.command("init-db")
def init_db() -> None:
    """Create all tables directly from the models (development only)."""
    from quiz_engine.db.session import create_all

    create_all()
    console.print("[bold green]✓ Tables created[/bold green]")


@app.command()
def health() -> None:
    """Check the health of all services."""
    import httpx

    from quiz_engine.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()

        table = Table(title="Service Health")
        table.add_column("Component", style="cyan")
        table.add_column("Status")

        table.add_row("Database", "✓" if data.get("database") else "✗")
        table.add_row("Redis", "✓" if data.get("redis") else "✗")

        console.print(table)

        if data.get("ready"):
            console.print("[bold green]All services healthy![/bold green]")
        else:
            console.print("[bold yellow]Some services unhealthy[/bold yellow]")
            raise typer.Exit(code=1)

    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)


@app.command()
def worker() -> None:
    """Start a Celery worker (for development)."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    import subprocess
    import sys

    subprocess.run(
        [sys.executable, "-m", "celery", "-A", "quiz_engine.worker", "worker", "--loglevel=info"],
        check=True,
    )


# =============================================================================
# JOBS COMMANDS
# =============================================================================


@jobs_app.command("create")
def jobs_create(
    persona: str = typer.Argument(..., help="Persona name"),
    category: str = typer.Argument(..., help="Quiz category key"),
    difficulty: str = typer.Option("medium", "--difficulty", "-d", help="easy, medium or hard"),
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Publishing account"),
    count: int = typer.Option(1, "--count", "-n", help="Number of jobs to create"),
) -> None:
    """Create jobs in pending@step1."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.job_store import JobStore
    from quiz_engine.services.personas import PersonaStore

    try:
        with get_session_context() as session:
            config = PersonaStore(session).get_config(persona)
            if category not in config.categories:
                console.print(
                    f"[bold red]Category {category} is not valid for {persona}. "
                    f"Choose one of: {', '.join(config.categories)}[/bold red]"
                )
                raise typer.Exit(code=1)

            store = JobStore(session)
            jobs = [store.create_job(persona, category, difficulty, account) for _ in range(count)]
    except (QuizEngineError, ValueError) as e:
        _fail(e)

    for job in jobs:
        console.print(f"[green]Created job {job.id}[/green] [dim]({job.state.label})[/dim]")


@jobs_app.command("stats")
def jobs_stats() -> None:
    """Show job counts by phase and step."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.job_store import JobStore

    try:
        with get_session_context() as session:
            store = JobStore(session)
            stats = store.get_stats()
            steps = store.get_step_counts()
    except QuizEngineError as e:
        _fail(e)

    console.print(_stats_table("Jobs", stats))
    if steps:
        console.print(_stats_table("Unfinished by step", dict(sorted(steps.items()))))


@jobs_app.command("recent")
def jobs_recent(
    limit: int = typer.Option(20, "--limit", "-l", help="Number of jobs to show"),
) -> None:
    """List the most recently created jobs."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.job_store import JobStore

    try:
        with get_session_context() as session:
            jobs = JobStore(session).get_recent_jobs(limit)
    except QuizEngineError as e:
        _fail(e)

    if not jobs:
        console.print("[dim]No jobs found. Create one with 'quiz-engine jobs create'[/dim]")
        return

    table = Table(title="Recent Jobs")
    table.add_column("ID", style="dim")
    table.add_column("Persona", style="cyan")
    table.add_column("Category")
    table.add_column("State")
    table.add_column("Retries", justify="right")
    table.add_column("Error")

    for job in jobs:
        table.add_row(
            str(job.id),
            job.persona,
            job.category,
            job.state.label,
            str(job.retry_count),
            (job.error_message or "-")[:50],
        )

    console.print(table)


@jobs_app.command("cleanup")
def jobs_cleanup(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete every job. Irreversible."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.job_store import JobStore

    if not yes:
        typer.confirm("Delete ALL jobs?", abort=True)

    try:
        with get_session_context() as session:
            deleted = JobStore(session).delete_all_jobs()
    except QuizEngineError as e:
        _fail(e)

    console.print(f"[yellow]Deleted {deleted} jobs[/yellow]")


@jobs_app.command("requeue-stale")
def jobs_requeue_stale(
    minutes: Optional[int] = typer.Option(
        None, "--minutes", "-m", help="Processing age threshold (default from settings)"
    ),
) -> None:
    """Return jobs stuck in processing to pending at their current step."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.job_store import JobStore

    try:
        with get_session_context() as session:
            requeued = JobStore(session).requeue_stale_jobs(minutes)
    except QuizEngineError as e:
        _fail(e)

    console.print(f"[green]Requeued {requeued} jobs[/green]")


# =============================================================================
# PIPELINE COMMANDS
# =============================================================================


def _print_step_result(stats: dict[str, Any]) -> None:
    table = _stats_table(f"Step {stats['step']}", {
        k: v for k, v in stats.items() if k not in ("step", "errors", "skipped_reason")
    })
    console.print(table)
    if stats.get("skipped_reason"):
        console.print(f"[dim]Skipped: {stats['skipped_reason']}[/dim]")
    for error in stats.get("errors", []):
        console.print(f"[red]  {error['job_id']}: {error['error']}[/red]")


@pipeline_app.command("run-step")
def pipeline_run_step(
    step: int = typer.Argument(..., min=1, max=4, help="Step number (1-4)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Override batch size"),
    persona: Optional[list[str]] = typer.Option(
        None, "--persona", "-p", help="Restrict to persona (repeatable)"
    ),
) -> None:
    """Claim and process one batch for a step."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.driver import PipelineDriver

    try:
        with get_session_context() as session:
            result = PipelineDriver(session).run_step(step, limit=limit, personas=persona or None)
    except QuizEngineError as e:
        _fail(e)

    _print_step_result(result.to_dict())


@pipeline_app.command("tick")
def pipeline_tick() -> None:
    """Run one batch of every step, last step first."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.driver import run_pipeline_tick

    try:
        with get_session_context() as session:
            results = run_pipeline_tick(session)
    except QuizEngineError as e:
        _fail(e)

    for stats in results.values():
        _print_step_result(stats)


# =============================================================================
# ANALYTICS COMMANDS
# =============================================================================


@analytics_app.command("collect")
def analytics_collect(
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Account filter"),
    persona: Optional[str] = typer.Option(None, "--persona", "-p", help="Persona filter"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum videos"),
    refresh: bool = typer.Option(
        False, "--refresh", help="Append new snapshots for already collected videos"
    ),
) -> None:
    """Fetch metrics for published videos."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.analytics import AnalyticsService

    try:
        with get_session_context() as session:
            service = AnalyticsService(session)
            if refresh:
                stats = service.refresh(account, persona, limit)
            else:
                stats = service.collect(account, persona, limit)
    except QuizEngineError as e:
        _fail(e)

    console.print(_stats_table("Analytics Collection", stats))


@analytics_app.command("summary")
def analytics_summary(
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Account filter"),
    persona: Optional[str] = typer.Option(None, "--persona", "-p", help="Persona filter"),
) -> None:
    """Show performance grouped by persona, format, timing and audio."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.domain.enums import RefinementDimension
    from quiz_engine.services.analytics import AnalyticsService

    try:
        with get_session_context() as session:
            summary = AnalyticsService(session).get_analytics_summary(account, persona)
    except QuizEngineError as e:
        _fail(e)

    if not summary["total_videos"]:
        console.print("[dim]No analytics recorded yet. Run 'quiz-engine analytics collect'[/dim]")
        return

    console.print(
        Panel(
            f"Videos: {summary['total_videos']}\n"
            f"Views: {summary['total_views']:,}\n"
            f"Avg engagement: {summary['avg_engagement_rate']:.2f}%\n"
            f"Avg reward: {summary['avg_reward']:.3f}",
            title="Analytics Summary",
        )
    )

    for key in ["persona"] + [str(d) for d in RefinementDimension]:
        groups = summary["by_persona"] if key == "persona" else summary[key]
        table = Table(title=f"By {key}")
        table.add_column("Value", style="cyan")
        table.add_column("Videos", justify="right")
        table.add_column("Avg reward", justify="right")
        table.add_column("Avg engagement", justify="right")
        table.add_column("Confidence")
        for group in groups:
            table.add_row(
                group["value"],
                str(group["count"]),
                f"{group['mean_reward']:.3f}",
                f"{group['mean_engagement_rate']:.2f}%",
                "[yellow]low[/yellow]" if group["low_confidence"] else "[green]ok[/green]",
            )
        console.print(table)


# =============================================================================
# REFINEMENT COMMANDS
# =============================================================================


def _print_recommendations(report: dict[str, Any]) -> None:
    table = Table(title="Recommendations")
    table.add_column("Persona", style="cyan")
    table.add_column("Dimension")
    table.add_column("Value")
    table.add_column("Status")
    table.add_column("Delta", justify="right")
    table.add_column("Videos", justify="right")
    table.add_column("Reason", style="dim")

    colors = {"accepted": "green", "rejected": "red", "low_confidence": "yellow"}
    for rec in report["recommendations"]:
        color = colors.get(rec["status"], "white")
        table.add_row(
            rec["persona"],
            rec["dimension"],
            rec["value"],
            f"[{color}]{rec['status']}[/{color}]",
            "-" if rec["delta"] is None else f"{rec['delta']:+.1%}",
            str(rec["count"]),
            rec["reason"],
        )
    console.print(table)


@refine_app.command("run")
def refine_run() -> None:
    """Evaluate analytics and apply accepted persona changes."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.refinement import RefinementService

    try:
        with get_session_context() as session:
            outcome = RefinementService(session).perform_content_refinement()
    except QuizEngineError as e:
        _fail(e)

    _print_recommendations(outcome["report"])
    applied = outcome["applied"]
    for change in applied["recommendations"]:
        console.print(
            f"[green]Updated {change['persona']} → v{change['version']}: {change['changes']}[/green]"
        )
    for skipped in applied["skipped"]:
        console.print(f"[yellow]Skipped {skipped['persona']}: {skipped['reason']}[/yellow]")
    console.print(f"[bold]{applied['updated']} personas updated[/bold]")


@refine_app.command("summary")
def refine_summary() -> None:
    """Show the latest stored refinement report."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.refinement import RefinementService

    try:
        with get_session_context() as session:
            summary = RefinementService(session).get_refinement_summary()
    except QuizEngineError as e:
        _fail(e)

    if summary is None:
        console.print("[dim]No refinement reports yet. Run 'quiz-engine refine run'[/dim]")
        return

    report = summary["report"]
    console.print(f"[bold]Report date:[/bold] {report['report_date']}")
    _print_recommendations(report)


# =============================================================================
# PERSONA COMMANDS
# =============================================================================


@personas_app.command("list")
def personas_list() -> None:
    """List persona configurations."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.personas import PersonaStore

    try:
        with get_session_context() as session:
            configs = PersonaStore(session).list_configs()
    except QuizEngineError as e:
        _fail(e)

    if not configs:
        console.print("[dim]No personas found. Seed them with 'quiz-engine personas seed'[/dim]")
        return

    table = Table(title="Personas")
    table.add_column("Persona", style="cyan")
    table.add_column("Format")
    table.add_column("Timing")
    table.add_column("Audio")
    table.add_column("Version", justify="right")
    table.add_column("Source")
    table.add_column("Categories", style="dim")

    for config in configs:
        table.add_row(
            config.persona,
            config.format,
            config.timing_profile,
            config.audio_track,
            str(config.version),
            str(config.updated_source),
            ", ".join(config.categories),
        )

    console.print(table)


@personas_app.command("seed")
def personas_seed() -> None:
    """Create configuration rows for built-in personas that have none."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.personas import PersonaStore

    try:
        with get_session_context() as session:
            created = PersonaStore(session).seed_defaults()
    except QuizEngineError as e:
        _fail(e)

    console.print(f"[green]Seeded {created} personas[/green]")


@personas_app.command("set")
def personas_set(
    persona: str = typer.Argument(..., help="Persona name"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Quiz format"),
    timing: Optional[str] = typer.Option(None, "--timing", "-t", help="Timing profile"),
    audio: Optional[str] = typer.Option(None, "--audio", "-a", help="Audio track"),
) -> None:
    """Manually override persona generation parameters."""
    from quiz_engine.db.session import get_session_context
    from quiz_engine.services.personas import PersonaStore

    changes = {
        key: value
        for key, value in (("format", format), ("timing_profile", timing), ("audio_track", audio))
        if value is not None
    }
    if not changes:
        console.print("[yellow]Nothing to change[/yellow]")
        raise typer.Exit(code=1)

    try:
        with get_session_context() as session:
            config = PersonaStore(session).set_manual(persona, **changes)
    except (QuizEngineError, ValueError) as e:
        _fail(e)

    console.print(f"[green]{persona} updated to version {config.version}[/green]")


if __name__ == "__main__":
    app()
