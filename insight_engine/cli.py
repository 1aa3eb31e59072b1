import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from typing_extensions import Annotated

from insight_engine.client.insight_engine import InsightEngine
from insight_engine.domains.insight import Insight

# --- Basic Logging Configuration ---
logging.basicConfig(level=logging.WARNING, format="%(levelname)s:%(name)s:%(message)s")
# --- End Logging Configuration ---

app = typer.Typer(help="Generate and query insights from captured memories.")
console = Console()

ConfigOption = Annotated[str, typer.Option(help="Path to the configuration JSON file.")]


def load_engine(config: str) -> InsightEngine:
    try:
        with console.status("[bold green]Initializing insight engine...", spinner="dots"):
            return InsightEngine(config_path=config)
    except FileNotFoundError:
        console.print(f"[bold red]Error:[/bold red] Configuration file not found at '{config}'")
        raise typer.Exit(code=1)
    except (ValueError, ValidationError) as e:
        console.print(f"[bold red]Error loading configuration:[/bold red] {e}")
        raise typer.Exit(code=1)


def run_with_engine(engine: InsightEngine, action: Callable[[], Awaitable[Any]]) -> Any:
    """Initialize the engine, run one async action and shut it down."""

    async def runner():
        await engine.initialize()
        try:
            return await action()
        finally:
            await engine.shutdown()

    try:
        return asyncio.run(runner())
    except Exception as e:
        console.print(f"[bold red]Error during processing:[/bold red] {e}")
        raise typer.Exit(code=1)


def read_json(path: str) -> Any:
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[bold red]Error reading {path}:[/bold red] {e}")
        raise typer.Exit(code=1)


def print_insights(insights: List[Insight], title: str = "Insights") -> None:
    if not insights:
        console.print("[yellow]No insights.[/yellow]")
        return
    table = Table(title=title)
    table.add_column("Type", style="cyan")
    table.add_column("Category")
    table.add_column("Title", style="bold")
    table.add_column("Confidence", justify="right")
    table.add_column("Tags", style="dim")
    for insight in insights:
        table.add_row(
            insight.insight_type,
            insight.insight_category,
            insight.title,
            f"{insight.confidence_score:.2f}",
            ", ".join(insight.tags[:5]),
        )
    console.print(table)


@app.command()
def process(
    config: ConfigOption = "config.json",
    memory_file: Annotated[
        str, typer.Option(help="JSON file holding a single memory.")
    ] = "memory.json",
    realtime: Annotated[bool, typer.Option(help="Run the real-time strategy.")] = True,
    comprehensive: Annotated[
        bool, typer.Option(help="Add template analysis to the strategy.")
    ] = False,
):
    """Generate insights for one memory."""
    memory = read_json(memory_file)
    engine = load_engine(config)
    options = {"real_time": realtime, "comprehensive": comprehensive}
    result = run_with_engine(engine, lambda: engine.process(memory, options))
    print_insights(result["insights"], title=f"Stored insights ({result['processing_id']})")
    console.print(f"[dim]{result['metrics']['duration_ms']} ms[/dim]")


@app.command()
def batch(
    config: ConfigOption = "config.json",
    memories_file: Annotated[
        str, typer.Option(help="JSON file holding a list of memories.")
    ] = "memories.json",
    cluster: Annotated[bool, typer.Option(help="Also run cluster analysis.")] = False,
):
    """Generate insights for a batch of memories."""
    memories = read_json(memories_file)
    engine = load_engine(config)
    result = run_with_engine(engine, lambda: engine.process_batch(memories, {"cluster": cluster}))
    console.print(
        f"[green]{result['successful']} successful[/green], "
        f"[red]{result['failed']} failed[/red]"
    )
    print_insights(result["insights"])


@app.command()
def insights(
    config: ConfigOption = "config.json",
    analysis_type: Annotated[
        str, typer.Option(help="comprehensive, patterns, learning, progress, quality, productivity or technical_debt.")
    ] = "comprehensive",
    project_id: Annotated[Optional[str], typer.Option(help="Restrict to a project.")] = None,
    limit: Annotated[int, typer.Option(help="Maximum insights to return.")] = 50,
):
    """Query stored insights by analysis type."""
    engine = load_engine(config)
    filters = {"limit": limit}
    if project_id:
        filters["project_id"] = project_id
    response = engine.get_insights(analysis_type, filters)
    print_insights(response["insights"], title=f"{analysis_type} insights")
    metadata = response["metadata"]
    console.print(f"Total found: {metadata['total_found']}")
    console.print(f"Confidence: {metadata['confidence_distribution']}")
    console.print(f"Categories: {', '.join(metadata['categories']) or '-'}")
    for rec in response["recommendations"][:10]:
        console.print(f"  [bright_blue]{rec.priority}[/bright_blue] {rec.action}")


@app.command()
def enqueue(
    task_type: Annotated[str, typer.Option(help="Queue task type.")],
    source_id: Annotated[List[str], typer.Option(help="Source id, repeatable.")],
    config: ConfigOption = "config.json",
    priority: Annotated[int, typer.Option(min=1, max=10, help="Task priority.")] = 5,
):
    """Queue memories for asynchronous processing."""
    engine = load_engine(config)
    try:
        task = engine.enqueue(task_type, source_id, {"priority": priority})
    except Exception as e:
        console.print(f"[bold red]Failed to enqueue task:[/bold red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Enqueued task {task.id}[/green]")


@app.command()
def worker(
    config: ConfigOption = "config.json",
    max_tasks: Annotated[Optional[int], typer.Option(help="Stop after this many tasks.")] = None,
):
    """Drain due queue tasks."""
    engine = load_engine(config)
    handled = run_with_engine(engine, lambda: engine.work(max_tasks))
    console.print(f"[green]Processed {handled} queue tasks[/green]")


@app.command()
def health(config: ConfigOption = "config.json"):
    """Print engine health."""
    engine = load_engine(config)
    console.print_json(json.dumps(engine.health(), default=str))


if __name__ == "__main__":
    app()
