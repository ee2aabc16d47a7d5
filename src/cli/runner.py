# src/cli/runner.py

"""Headless CLI runner over the catalog service."""

import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from src.filters.query_validator import QueryValidator
from src.models.product import Product
from src.services.catalog_service import CatalogService
from src.services.errors import AllSourcesFailedError, QueryValidationError
from src.storage.file_manager import FileManager

logger = logging.getLogger("retail_radar.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _print_table(brand: str, products: list[Product]) -> None:
    """Render a Rich table of products to stdout."""
    table = Table(
        title=f"{brand} below retail",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", max_width=50)
    table.add_column("Size", justify="center")
    table.add_column("Retail", justify="right")
    table.add_column("Ask", justify="right", style="green")
    table.add_column("Discount", justify="right", style="bold")
    table.add_column("Source", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, p in enumerate(products, 1):
        table.add_row(
            str(idx),
            p.name[:50],
            p.size or "—",
            f"${p.retail_price:,.2f}",
            f"${p.current_price:,.2f}",
            f"{p.discount_percentage:.1%}",
            p.source,
            p.url,
        )

    Console().print(table)


async def cli_below_retail(
    brand: str,
    params: dict[str, Any],
    output_format: str,
    save: bool = False,
    service: CatalogService | None = None,
) -> int:
    """Print one below-retail page and return an exit code.

    0 = products found, 1 = empty page or upstream failure,
    2 = invalid arguments.
    """
    try:
        brand = QueryValidator.validate_brand(brand)
        query = QueryValidator.validate(params)
    except QueryValidationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 2

    owned = service is None
    service = service or CatalogService.from_settings()
    _err.print(f"[bold]Searching:[/bold] {brand} below retail")
    try:
        page = await service.get_below_retail(brand, query)
    except AllSourcesFailedError as exc:
        for message in exc.errors:
            _err.print(f"[red]Error: {message}[/red]")
        return 1
    finally:
        if owned:
            service.close()

    if not page.data:
        _err.print("[yellow]No below-retail products found.[/yellow]")
        return 1

    _err.print(
        f"[green]✓ {len(page.data)} products of {page.total}"
        f"{' (more available)' if page.has_next else ''}[/green]"
    )
    if page.cursor:
        _err.print(f"[dim]Next cursor: {page.cursor}[/dim]")

    if save:
        try:
            path = FileManager().save_results(brand, page)
            _err.print(f"[dim]Saved → {path}[/dim]")
        except OSError as exc:
            logger.error("Save failed: %s", exc, exc_info=True)
            _err.print(f"[red]Save failed: {exc}[/red]")

    if output_format == "table":
        _print_table(brand, page.data)
    else:
        json.dump(page.to_dict(), sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    return 0


async def run_health_check(service: CatalogService | None = None) -> int:
    """Probe every source and print a status table."""
    owned = service is None
    service = service or CatalogService.from_settings()
    _err.print("[bold]Running source health check...[/bold]")
    try:
        results = await service.get_health_status()
    finally:
        if owned:
            service.close()

    table = Table(
        title="Source Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Source", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Circuit", justify="center")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "—"
        table.add_row(
            r.source_id, status, latency, r.circuit_state, r.message,
        )

    Console().print(table)
    return 1 if any_down else 0
