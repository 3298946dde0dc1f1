# src/cli/runner.py

"""Headless CLI commands built on the loader and the parse pipeline."""

import json
import logging
import sys

from rich.console import Console
from rich.table import Table

from src.cli.api_client import KaspiApiClient, LocalSource
from src.config.settings import Settings
from src.filters.url_validator import build_page_url
from src.models.parse_response import ProductSource
from src.models.product import ProductRecord
from src.services.catalog_loader import (
    CatalogLoader,
    CategoryListing,
    find_category,
)
from src.services.errors import ApiClientError
from src.storage.client_cache import ClientCache

logger = logging.getLogger("kaspi_catalog.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def build_source(api_base_url: str | None) -> ProductSource:
    """HTTP client when an API URL is given, in-process pipeline otherwise."""
    if api_base_url:
        return KaspiApiClient(api_base_url)
    return LocalSource()


def _products_to_dicts(
    products: list[ProductRecord],
) -> list[dict[str, object]]:
    """Serialise a product list to plain dicts for JSON output."""
    return [p.to_dict() for p in products]


def _print_table(products: list[ProductRecord], title: str) -> None:
    """Render a Rich table of products to stdout."""
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="dim")
    table.add_column("Name", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Link", overflow="fold", style="dim")

    for idx, p in enumerate(products, 1):
        table.add_row(
            str(idx),
            str(p.id),
            p.name[:60],
            f"{p.price:,} ₸".replace(",", " ") if p.price > 0 else "N/A",
            f"{p.rating:.1f}",
            p.link,
        )

    Console().print(table)


def _emit(
    products: list[ProductRecord],
    fetched_at_iso: str | None,
    output_format: str,
    title: str,
) -> None:
    if output_format == "table":
        _print_table(products, title)
        return
    json.dump(
        {
            "products": _products_to_dicts(products),
            "fetchedAtISO": fetched_at_iso,
        },
        sys.stdout,
        ensure_ascii=False,
        indent=2,
    )
    sys.stdout.write("\n")


def _report_listing(listing: CategoryListing, output_format: str) -> int:
    if listing.error and not listing.products:
        _err.print(f"[red]Error: {listing.error}[/red]")
        return 1
    origin = "cache" if listing.from_cache else "kaspi.kz"
    _err.print(
        f"[green]✓ {len(listing.products)} products[/green] "
        f"[dim](page {listing.page}, from {origin}, "
        f"more={'yes' if listing.has_more else 'no'})[/dim]"
    )
    _emit(
        listing.products,
        listing.fetched_at_iso,
        output_format,
        f"Kaspi: {listing.category}",
    )
    return 0


def cli_fetch(
    target: str,
    count: int | None,
    page: int | None,
    output_format: str,
    api_base_url: str | None,
    use_cache: bool,
) -> int:
    """Load a category key or an arbitrary category URL (0=ok, 1=fail)."""
    source = build_source(api_base_url)

    if find_category(target) is not None and count is None and page is None:
        loader = CatalogLoader(source)
        _err.print(f"[bold]Loading category:[/bold] {target}")
        return _report_listing(
            loader.load(target, use_cache=use_cache), output_format
        )

    entry = find_category(target)
    url = entry["url"] if entry else target
    if page is not None:
        url = build_page_url(url, page)

    _err.print(f"[bold]Fetching:[/bold] {url}")
    try:
        response = source.load_products_with_meta(
            url, count if count is not None else Settings.DEFAULT_COUNT
        )
    except ApiClientError as exc:
        _err.print(f"[red]Error: {exc.message}[/red]")
        return 1

    if not response.products:
        _err.print("[yellow]No products found.[/yellow]")
    _emit(response.products, response.fetched_at_iso, output_format, url)
    return 0


def cli_more(category: str, output_format: str, api_base_url: str | None) -> int:
    """Append the next page of *category* to its cached listing."""
    if find_category(category) is None:
        return _unknown_category(category)
    loader = CatalogLoader(build_source(api_base_url))
    return _report_listing(loader.load_more(category), output_format)


def cli_clear_cache(category: str | None) -> int:
    """Remove the client cache for one category, or for all of them."""
    cache = ClientCache()
    keys = (
        [category]
        if category
        else [c["key"] for c in Settings.CATEGORIES]
    )
    if category and find_category(category) is None:
        return _unknown_category(category)
    removed = sum(1 for key in keys if cache.clear(key))
    _err.print(f"[green]✓ Cleared {removed} cached categories[/green]")
    return 0


def _unknown_category(category: str) -> int:
    valid = ", ".join(c["key"] for c in Settings.CATEGORIES)
    _err.print(f"[red]Unknown category: {category}[/red]")
    _err.print(f"[dim]Available: {valid}[/dim]")
    return 1


def run_health_check() -> int:
    """Probe the upstream origin and print the result."""
    from src.services.health_checker import probe_upstream

    _err.print("[bold]Running upstream health check...[/bold]")
    result = probe_upstream()

    table = Table(
        title="Upstream Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Target", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    if result.status == "ok":
        status = "[green]✅ OK[/green]"
    elif result.status == "slow":
        status = "[yellow]⚠️  SLOW[/yellow]"
    else:
        status = "[red]❌ DOWN[/red]"

    latency = (
        f"{result.latency_ms:.0f}ms" if result.latency_ms > 0 else "—"
    )
    table.add_row(result.target, status, latency, result.message)

    Console().print(table)
    return 1 if result.status == "down" else 0
