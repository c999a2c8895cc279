"""Model Prober CLI."""

import asyncio
import json

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from model_prober import __version__
from model_prober.config import settings
from model_prober.errors import PreconditionError
from model_prober.models import ModelListing, ProbeResult, ProbeRun, ProbeState, RunOutcome

app = typer.Typer(
    name="model-prober",
    help="Check which of a provider's models respond under an API key",
    no_args_is_help=True,
)
console = Console()

API_KEY_ENVVAR = "MODEL_PROBER_API_KEY"


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Configure console logging for every command."""
    from model_prober.logging_config import configure_cli_logging

    configure_cli_logging(verbose)


def _resolve_api_key(api_key: str | None) -> str:
    if api_key is None:
        api_key = typer.prompt("API key", hide_input=True, default="", show_default=False)
    return api_key


@app.command()
def models(
    api_key: str = typer.Option(
        None, "--api-key", "-k", envvar=API_KEY_ENVVAR, help="Provider API key"
    ),
    json_output: bool = typer.Option(False, "--json", help="Machine-readable JSON output"),
):
    """List the models the API key can see."""
    from model_prober.prober import list_models

    key = _resolve_api_key(api_key)
    try:
        listing = asyncio.run(list_models(key))
    except PreconditionError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(2)

    if json_output:
        print(listing.model_dump_json(indent=2))
    else:
        _print_listing(listing)

    if not listing.ok:
        raise typer.Exit(1)


@app.command()
def check(
    api_key: str = typer.Option(
        None, "--api-key", "-k", envvar=API_KEY_ENVVAR, help="Provider API key"
    ),
    model: list[str] = typer.Option(
        None, "--model", "-m", help="Model ID to probe (repeatable). Default: all listed models"
    ),
    fallback: bool = typer.Option(
        False, "--fallback", help="Skip the listing and probe the built-in model catalog"
    ),
    json_output: bool = typer.Option(False, "--json", help="Emit one JSON object per update"),
):
    """Probe each model in turn with a short prompt and report the results."""
    if model and fallback:
        console.print("[red]--model and --fallback cannot be combined[/red]")
        raise typer.Exit(2)
    key = _resolve_api_key(api_key)
    try:
        run = asyncio.run(_check(key, model or None, fallback=fallback, json_output=json_output))
    except PreconditionError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(2)

    if json_output:
        print(_summary_json(run))
    else:
        console.print()
        _print_results_table(run)
        _print_outcome(run)

    if run.outcome != RunOutcome.SUCCESS:
        raise typer.Exit(1)


async def _check(
    api_key: str,
    models: list[str] | None,
    *,
    fallback: bool,
    json_output: bool,
) -> ProbeRun:
    from model_prober.prober import ModelProber, fallback_models

    async with ModelProber(api_key) as prober:
        if models is not None:
            targets = models
        elif fallback:
            targets = fallback_models()
        else:
            listing = await prober.list_models()
            if not json_output:
                _print_listing_notice(listing)
            targets = listing.models or fallback_models()

        run = ProbeRun(models=[])
        async for run in prober.run(targets):
            latest = run.results[-1]
            if json_output:
                print(latest.model_dump_json(exclude_none=True))
            else:
                _print_result(latest)
        return run


def _print_listing_notice(listing: ModelListing) -> None:
    if listing.models:
        console.print(f"[bold]Found {len(listing.models)} models[/bold]\n")
    elif listing.ok:
        console.print("[yellow]No models listed, using the built-in catalog[/yellow]\n")
    else:
        console.print(
            f"[yellow]Could not list models ({escape(listing.error or '')}), "
            "using the built-in catalog[/yellow]\n"
        )


def _summary_json(run: ProbeRun) -> str:
    return json.dumps(run.summary())


def _print_result(result: ProbeResult) -> None:
    """Print one line per finished model."""
    if not result.is_terminal:
        return
    timing = f" [dim]({result.elapsed_ms} ms)[/dim]" if result.elapsed_ms is not None else ""
    name = escape(result.model_id)
    if result.state == ProbeState.SUCCESS:
        console.print(f"[green]✓[/green] {name}{timing} {escape(result.response_text or '')}")
    else:
        console.print(f"[red]✗[/red] {name}{timing} [red]{escape(result.error_message or '')}[/red]")


def _print_results_table(run: ProbeRun) -> None:
    table = Table(title="Model Probe Results")
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Owner", style="magenta")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Response / Error", overflow="fold")

    for result in run.results:
        status = {
            ProbeState.SUCCESS: "[green]success[/green]",
            ProbeState.ERROR: "[red]error[/red]",
            ProbeState.TESTING: "[yellow]testing[/yellow]",
        }[result.state]
        elapsed = f"{result.elapsed_ms} ms" if result.elapsed_ms is not None else "-"
        detail = result.response_text or result.error_message or ""
        owner = escape(result.owner or "Unknown")
        table.add_row(escape(result.model_id), owner, status, elapsed, escape(detail))

    console.print(table)


def _print_outcome(run: ProbeRun) -> None:
    if run.outcome == RunOutcome.SUCCESS:
        console.print(
            f"[green]API key works: {run.success_count} of {run.total} models responded[/green]"
        )
    else:
        console.print("[red]API key failed: no model responded successfully[/red]")


def _print_listing(listing: ModelListing) -> None:
    if not listing.ok:
        console.print(f"[red]Failed to fetch models: {escape(listing.error or '')}[/red]")
        return
    if not listing.models:
        console.print("[yellow]No models reported[/yellow]")
        return

    table = Table(title=f"Available Models ({len(listing.models)})")
    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Owner", style="magenta")
    for descriptor in listing.models:
        table.add_row(escape(descriptor.id), escape(descriptor.owner) or "-")
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload (dev)"),
):
    """Start the HTTP API."""
    import uvicorn

    console.print(f"[green]Starting Model Prober API on http://{host}:{port}[/green]")
    uvicorn.run("model_prober.server:app", host=host, port=port, reload=reload)


@app.command()
def version():
    """Show version information."""
    console.print(f"Model Prober v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
