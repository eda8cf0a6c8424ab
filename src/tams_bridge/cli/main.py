#!/usr/bin/env python3
"""
TAMS Bridge CLI

Command-line interface for inspecting and switching TAMS backends:
- tams-bridge backends: List catalog backends and their features
- tams-bridge status: Show the selected backend and test its connection
- tams-bridge switch <id>: Switch to another backend
- tams-bridge test <id>: Test a backend connection
- tams-bridge flows: List flows from the selected backend
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console

from .. import __version__
from ..clients.factory import ClientFactory
from ..errors import TamsApiError
from ..protocol import FilterOptions, get_all_navigation_cursors
from ..settings.catalog import BackendCatalog, get_feature_summary
from ..settings.storage import SelectionStorage
from ..state.selection import BackendSelection
from .output import OutputManager

app = typer.Typer(
    name="tams-bridge",
    help="TAMS Bridge - one client for many TAMS backends",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()
output = OutputManager(console)


@app.callback()
def main_options(
    ctx: typer.Context,
    config_dir: str | None = typer.Option(None, "--config-dir", help="Directory holding config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Global options."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    ctx.obj = {"config_dir": Path(config_dir) if config_dir else None}


def _build_selection(ctx: typer.Context) -> BackendSelection:
    config_dir = (ctx.obj or {}).get("config_dir")
    return BackendSelection(
        ClientFactory(),
        catalog=BackendCatalog(),
        storage=SelectionStorage(config_dir),
    )


@app.command()
def backends(
    ctx: typer.Context,
    compare: bool = typer.Option(False, "--compare", "-c", help="Show the feature comparison matrix"),
):
    """
    List catalog backends.

    Examples:
        tams-bridge backends
        tams-bridge backends --compare
    """
    selection = _build_selection(ctx)
    catalog = selection.catalog
    available = catalog.get_available_backends()

    output.print_header(f"TAMS Bridge v{__version__}", f"{len(available)} backends available")
    output.backends_table(available, current_id=selection.storage.get_selected_backend())

    if compare:
        output.comparison_table(catalog.get_backend_comparison(), [b.id for b in available])


@app.command()
def status(ctx: typer.Context):
    """Show the selected backend and test its connection."""
    asyncio.run(_status(_build_selection(ctx)))


async def _status(selection: BackendSelection) -> None:
    try:
        backend = await selection.initialize()
        with output.spinner(f"Testing {backend.name}..."):
            connected = await selection.test_backend_connection(backend.id)

        last_test = selection.state.connection_history[-1]
        summary = get_feature_summary(backend.features)
        output.status_panel(
            {
                "Backend": f"{backend.name} ({backend.id})",
                "Type": backend.backend_type.value,
                "URL": backend.base_url,
                "Connected": connected,
                "Response time (ms)": (
                    f"{last_test.response_time_ms:.1f}" if last_test.response_time_ms is not None else None
                ),
                "Error": last_test.error,
                "Features": f"{summary['enabled_count']}/{summary['total']}",
            },
            title="Backend Status",
        )
    finally:
        await selection.factory.close()


@app.command()
def switch(
    ctx: typer.Context,
    backend_id: str = typer.Argument(..., help="Backend id to switch to"),
):
    """
    Switch to another backend.

    The backend is connection-tested first; the previous selection is kept
    if the switch fails.
    """
    asyncio.run(_switch(_build_selection(ctx), backend_id))


async def _switch(selection: BackendSelection, backend_id: str) -> None:
    try:
        await selection.initialize()
        with output.spinner(f"Switching to {backend_id}..."):
            backend = await selection.switch_backend(backend_id, reason="cli")
        output.print_success(f"Switched to {backend.name} ({backend.id})")
    except TamsApiError as e:
        output.print_error(f"Switch failed: {e}")
        current = selection.current_backend
        if current is not None:
            output.print_info(f"Still using {current.id}")
        raise typer.Exit(code=1) from e
    finally:
        await selection.factory.close()


@app.command()
def test(
    ctx: typer.Context,
    backend_id: str | None = typer.Argument(None, help="Backend id (defaults to the selected backend)"),
):
    """Test the connection to a backend."""
    asyncio.run(_test(_build_selection(ctx), backend_id))


async def _test(selection: BackendSelection, backend_id: str | None) -> None:
    try:
        if backend_id is None:
            backend_id = (await selection.initialize()).id
        elif not selection.catalog.is_valid_backend_id(backend_id):
            output.print_error(f"Unknown backend: {backend_id}")
            raise typer.Exit(code=1)

        connected = await selection.test_backend_connection(backend_id)
        last_test = selection.state.connection_history[-1]
        if connected:
            timing = f" in {last_test.response_time_ms:.1f} ms" if last_test.response_time_ms is not None else ""
            output.print_success(f"{backend_id} is reachable{timing}")
            if last_test.error:
                output.print_warning(last_test.error)
        else:
            output.print_error(f"{backend_id} is not reachable: {last_test.error or 'unknown error'}")
            raise typer.Exit(code=1)
    finally:
        await selection.factory.close()


@app.command()
def flows(
    ctx: typer.Context,
    limit: int | None = typer.Option(None, "--limit", "-l", help="Page size"),
    page: str | None = typer.Option(None, "--page", "-p", help="Page cursor"),
):
    """
    List flows from the selected backend.

    Examples:
        tams-bridge flows --limit 10
        tams-bridge flows --page <cursor>
    """
    asyncio.run(_flows(_build_selection(ctx), FilterOptions(page=page, limit=limit)))


async def _flows(selection: BackendSelection, options: FilterOptions) -> None:
    try:
        backend = await selection.initialize()
        client = await selection.get_client()
        response = await client.get_flows(options)

        output.flows_table(response, title=f"Flows on {backend.id}")
        cursors = get_all_navigation_cursors(response)
        for relation, cursor in cursors.items():
            output.print(f"[dim]{relation}:[/dim] {cursor}")
    except TamsApiError as e:
        output.print_error(str(e))
        raise typer.Exit(code=1) from e
    finally:
        await selection.factory.close()


@app.command()
def version():
    """Show version information."""
    output.print(f"TAMS Bridge v{__version__}")


def main():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
