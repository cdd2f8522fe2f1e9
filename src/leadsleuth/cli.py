"""Command-line interface for LeadSleuth."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from leadsleuth.exceptions import BatchFailedError, LeadSleuthError
from leadsleuth.logging_config import configure_logging, get_logger
from leadsleuth.models import EnrichmentRequest, EnrichmentResult
from leadsleuth.pipeline.aggregator import build_aggregator
from leadsleuth.resilience.batch import BatchSummary
from leadsleuth.resilience.circuit_breaker import CircuitBreakerRegistry
from leadsleuth.sources.email_discovery import EmailPatternGenerator
from leadsleuth.storage.export import (
    export_batch_report,
    export_results_to_csv,
    export_results_to_jsonl,
    read_requests,
)

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="leadsleuth",
    help="LeadSleuth - business contact enrichment (website, email patterns, LinkedIn)",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


def print_result(result: EnrichmentResult) -> None:
    console.print(f"[bold]Business:[/bold] {result.business_name}")
    owner = result.owner_name or "N/A"
    if result.owner_title:
        owner = f"{owner} ({result.owner_title})"
    console.print(f"[bold]Owner:[/bold] {owner}")
    console.print(f"[bold]Confidence:[/bold] {result.confidence}")
    console.print(f"[bold]Sources used:[/bold] {', '.join(result.sources_used) or 'None'}")
    console.print(f"[bold]Sources failed:[/bold] {', '.join(result.sources_failed) or 'None'}")

    if result.emails:
        table = Table(title="Emails")
        table.add_column("Address", style="green")
        table.add_column("Pattern")
        table.add_column("Confidence", justify="right")
        table.add_column("Verified")
        table.add_column("Method")

        for email in result.emails:
            table.add_row(
                email.address,
                email.pattern_used,
                str(email.pattern_confidence),
                "[green]yes[/green]" if email.verified else "[red]no[/red]",
                email.verification_method,
            )

        console.print(table)

    if result.phones:
        console.print(f"[bold]Phones:[/bold] {', '.join(result.phones)}")

    if result.profiles:
        table = Table(title="Profiles")
        table.add_column("Name", style="green")
        table.add_column("Title")
        table.add_column("URL", style="cyan")

        for profile in result.profiles:
            table.add_row(profile.name, profile.title, profile.profile_url)

        console.print(table)

    if result.social_urls:
        console.print(f"[bold]Social:[/bold] {', '.join(result.social_urls)}")

    for name, source in result.source_results.items():
        for error in source.errors:
            console.print(f"  [yellow]{name}:[/yellow] {error}")


def print_summary(summary: BatchSummary) -> None:
    console.print(
        f"[bold]Total:[/bold] {summary.total}  "
        f"[bold]Successful:[/bold] {summary.successful}  "
        f"[bold]Failed:[/bold] {summary.failed}  "
        f"[bold]Success rate:[/bold] {summary.percent_successful:.1f}%"
    )

    if summary.errors:
        table = Table(title="Failed items")
        table.add_column("Item", style="cyan")
        table.add_column("Error Type", style="red")
        table.add_column("Error")

        for item_error in summary.errors:
            data = item_error.to_dict()
            table.add_row(data["item"], data["error_type"], data["error"][:100])

        console.print(table)


async def _enrich_one(request: EnrichmentRequest, timeout: float | None) -> EnrichmentResult:
    async with build_aggregator() as aggregator:
        return await aggregator.enrich(request, timeout=timeout)


async def _enrich_batch(
    requests: list[EnrichmentRequest],
    concurrency: int | None,
    fail_below: float | None,
    timeout: float | None,
) -> BatchSummary:
    async with build_aggregator() as aggregator:
        return await aggregator.enrich_many(
            requests,
            concurrency=concurrency,
            hard_fail_threshold=fail_below,
            timeout=timeout,
        )


@app.command("enrich")
def enrich(
    business_name: Annotated[str, typer.Argument(help="Business name")] = "",
    website: Annotated[str | None, typer.Option("--website", "-w", help="Business website URL")] = None,
    owner: Annotated[str | None, typer.Option("--owner", help="Known or suspected owner name")] = None,
    business_type: Annotated[str | None, typer.Option("--type", help="Business type, e.g. HVAC")] = None,
    location: Annotated[str | None, typer.Option("--location", "-l", help="City or region")] = None,
    timeout: Annotated[float | None, typer.Option("--timeout", help="Deadline in seconds")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON")] = False,
) -> None:
    """Enrich a single business."""
    request = EnrichmentRequest(
        business_name=business_name,
        website_url=website,
        owner_name_hint=owner,
        business_type=business_type,
        location=location,
    )

    if not as_json:
        console.print(f"[bold blue]Enriching {request.label}...[/bold blue]")

    try:
        result = asyncio.run(_enrich_one(request, timeout))
    except LeadSleuthError as e:
        console.print(f"[bold red]✗[/bold red] Enrichment failed: {str(e)}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    print_result(result)


@app.command("enrich-batch")
def enrich_batch(
    input_path: Annotated[Path, typer.Argument(help="CSV or JSONL file of businesses")],
    output_path: Annotated[Path, typer.Option("--output", "-o", help="Output file path")] = Path("enriched.jsonl"),
    format: Annotated[str, typer.Option("--format", "-f", help="Export format (jsonl or csv)")] = "jsonl",
    report_path: Annotated[Path | None, typer.Option("--report", help="Write the per-item breakdown as JSON")] = None,
    concurrency: Annotated[int | None, typer.Option("--concurrency", "-c", help="Businesses in flight")] = None,
    fail_below: Annotated[
        float | None,
        typer.Option("--fail-below", min=0.0, max=1.0, help="Exit 1 when the success rate is below this (0-1)"),
    ] = None,
    timeout: Annotated[float | None, typer.Option("--timeout", help="Deadline per business in seconds")] = None,
) -> None:
    """Enrich every business in a file."""
    if format not in ("jsonl", "csv"):
        console.print(f"[red]Unknown format: {format}[/red]")
        raise typer.Exit(1)

    try:
        requests = read_requests(input_path)
    except (OSError, LeadSleuthError) as e:
        console.print(f"[bold red]✗[/bold red] Could not read {input_path}: {str(e)}")
        raise typer.Exit(1)

    console.print(f"[bold blue]Enriching {len(requests)} businesses from {input_path}...[/bold blue]")

    failed_threshold = False
    try:
        summary = asyncio.run(_enrich_batch(requests, concurrency, fail_below, timeout))
    except BatchFailedError as e:
        console.print(f"[bold red]✗[/bold red] {str(e)}")
        summary = e.summary
        failed_threshold = True

    if format == "csv":
        export_results_to_csv(summary, output_path)
    else:
        export_results_to_jsonl(summary, output_path)
    if report_path:
        export_batch_report(summary, report_path)

    print_summary(summary)
    console.print(f"[bold green]✓[/bold green] Exported {summary.successful} results to {output_path}")

    if failed_threshold:
        raise typer.Exit(1)


@app.command("patterns")
def show_patterns(
    owner_name: Annotated[str, typer.Argument(help="Owner full name, e.g. 'John Smith'")],
    domain: Annotated[str, typer.Argument(help="Email domain, e.g. acme.com")],
) -> None:
    """Show the ranked email patterns for a name and domain."""
    candidates = EmailPatternGenerator().generate(owner_name, domain)

    table = Table(title=f"Email patterns for {owner_name} @ {domain}")
    table.add_column("Address", style="green")
    table.add_column("Pattern")
    table.add_column("Confidence", justify="right")

    for candidate in candidates:
        table.add_row(candidate.address, candidate.pattern_used, str(candidate.pattern_confidence))

    console.print(table)


@app.command("breakers")
def show_breakers() -> None:
    """Show the default circuit breaker configuration."""
    registry = CircuitBreakerRegistry()

    table = Table(title="Circuit breakers")
    table.add_column("Dependency", style="cyan")
    table.add_column("Failure Threshold", justify="right")
    table.add_column("Recovery Timeout (s)", justify="right")
    table.add_column("Ignored Statuses")
    table.add_column("State")

    for name, state in registry.snapshot().items():
        config = registry.get(name).config
        table.add_row(
            name,
            str(state.failure_threshold),
            f"{state.recovery_timeout:.0f}",
            ", ".join(str(code) for code in sorted(config.ignored_status_codes)) or "-",
            state.state.value,
        )

    console.print(table)


if __name__ == "__main__":
    app()
