"""
Command-line interface for healthref.

Commands:
- analyze: Search sources and extract grounded recommendations
- search: Show the documents fetched for a condition
- terms: Look up technical terms in the glossary
- serve: Start the API server
"""

import asyncio
import json

import click
from rich.console import Console
from rich.table import Table

from healthref.logging import configure_logging

console = Console()


@click.group()
@click.version_option()
def main() -> None:
    """healthref - evidence-grounded food and activity recommendations."""
    configure_logging()


@main.command()
@click.argument("condition")
@click.option("--budget", is_flag=True, help="Include budget-friendly options")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON result")
def analyze(condition: str, budget: bool, as_json: bool) -> None:
    """Analyze a health condition."""
    from healthref.analysis.pipeline import HealthAnalyzer
    from healthref.generation.backends import ConfigurationError

    async def _run():
        async with HealthAnalyzer() as analyzer:
            return await analyzer.run(condition, include_budget=budget)

    if not as_json:
        console.print(f"[yellow]Analyzing: {condition}[/yellow]")

    try:
        run = asyncio.run(_run())
    except (ConfigurationError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(
            {"analysis": run.result.to_dict(), "searchStats": run.search_stats},
            indent=2,
        ))
        return

    stats = ", ".join(f"{k}={v}" for k, v in run.search_stats.items())
    console.print(f"[blue]Sources:[/blue] {stats}")

    result = run.result
    if not result.recommendations:
        console.print("[yellow]No grounded recommendations found.[/yellow]")
        return

    if result.mechanisms:
        console.print("\n[bold]Mechanisms[/bold]")
        for mechanism in result.mechanisms:
            console.print(f"  • {mechanism}")

    console.print(f"\n[green]Found {len(result.recommendations)} recommendations:[/green]\n")

    for i, rec in enumerate(result.recommendations, 1):
        color = "green" if rec.category == "beneficial" else "red"
        console.print(f"[bold]--- {i}. {rec.name} ({rec.type}, [{color}]{rec.category}[/{color}]) ---[/bold]")
        console.print(f"[blue]Summary:[/blue] {rec.summary_simplified or rec.summary}")
        if rec.mechanism:
            console.print(f"[blue]How it works:[/blue] {rec.mechanism_simplified or rec.mechanism}")

        details = {
            "Exercises": ", ".join(rec.specific_exercises or []),
            "Reps": rec.reps,
            "Sets": rec.sets,
            "Duration": rec.duration,
            "Frequency": rec.frequency,
            "Dosage": rec.dosage,
            "Serving size": rec.serving_size,
            "How often": rec.frequency_of_intake,
        }
        for label, value in details.items():
            if value:
                console.print(f"[blue]{label}:[/blue] {value}")

        for ev in rec.evidence:
            console.print(f"  [dim]{ev.paper_title} - {ev.paper_url}[/dim]")
        console.print()

    if result.budget_options:
        console.print("[bold]Budget-friendly options[/bold]")
        for option in result.budget_options:
            console.print(f"  • {option.name}: {option.description} ({option.source})")


@main.command()
@click.argument("condition")
@click.option("--limit", default=10, help="Number of documents to show")
def search(condition: str, limit: int) -> None:
    """Show the source documents fetched for a condition."""
    from healthref.condition import ConditionQuery
    from healthref.sources.search import SourceSearch

    try:
        query = ConditionQuery.parse(condition)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    async def _gather():
        async with SourceSearch() as source_search:
            return await source_search.gather(query)

    console.print(f"[yellow]Searching for: {query.raw}[/yellow]")
    gathered = asyncio.run(_gather())

    if not gathered.documents:
        console.print("[yellow]No documents found.[/yellow]")
        return

    console.print(f"\n[green]Found {len(gathered)} documents:[/green]\n")

    for i, doc in enumerate(gathered.documents[:limit], 1):
        console.print(f"[bold]--- {i}. {doc.title} ---[/bold]")
        console.print(f"[blue]Source:[/blue] {doc.display_source}")
        console.print(f"[blue]URL:[/blue] {doc.url}")
        preview = doc.abstract_text[:300] + "..." if len(doc.abstract_text) > 300 else doc.abstract_text
        console.print(f"[blue]Abstract:[/blue] {preview}")
        console.print()


@main.command()
@click.argument("query", required=False)
@click.option("--category", type=click.Choice(["medical", "exercise", "nutrition"]), default=None)
def terms(query: str | None, category: str | None) -> None:
    """Look up technical terms in the glossary."""
    from healthref.analysis.glossary import TECHNICAL_TERMS, search_terms, terms_by_category

    if query:
        matches = search_terms(query)
    elif category:
        matches = terms_by_category(category)
    else:
        matches = list(TECHNICAL_TERMS.values())

    if category:
        matches = [m for m in matches if m.category.value == category]

    if not matches:
        console.print(f"[yellow]No terms matching '{query}'.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Term")
    table.add_column("Category")
    table.add_column("Explanation")
    for definition in sorted(matches, key=lambda d: d.term.lower()):
        table.add_row(definition.term, definition.category.value, definition.explanation)
    console.print(table)


@main.command()
@click.option("--host", default=None, help="API host")
@click.option("--port", default=None, type=int, help="API port")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    from healthref.config import settings

    uvicorn.run(
        "healthref.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
