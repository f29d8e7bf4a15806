#!/usr/bin/env python3
"""
CLI for banner content extraction.

Usage:
    # Extract content from a page (auto is the default mode)
    banner-scraper scrape <url> [auto|manual]

    # Show the selectors learned for a site
    banner-scraper selectors <url>

    # Run the HTTP API
    banner-scraper serve
"""

import json
import sys

from rich.console import Console
from rich.table import Table

from banner_scraper.config import config
from banner_scraper.errors import ValidationError
from banner_scraper.models import normalize_domain

console = Console()


def print_elements(elements):
    """Pretty print extracted elements."""
    table = Table(title="Extracted elements")
    table.add_column("Type", style="cyan")
    table.add_column("Selector", style="magenta")
    table.add_column("Value")

    for el in elements:
        value = el.value if isinstance(el.value, str) else json.dumps(el.value)
        table.add_row(el.category.value, el.locator or "-", value[:120])

    console.print(table)


def cmd_scrape(args):
    """Run one extraction."""
    if len(args) < 1:
        console.print("Usage: banner-scraper scrape <url> [auto|manual]")
        return 1

    from banner_scraper.extraction import Orchestrator

    url = args[0]
    mode = args[1] if len(args) > 1 else "auto"

    try:
        outcome = Orchestrator(config).run_sync(url, mode)
    except ValidationError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 2

    if not outcome.success:
        console.print(f"[red]✗ {outcome.error}[/red]")
        return 1

    print_elements(outcome.content)
    if outcome.suggestions:
        console.print(f"Stored selectors: {[s.to_dict() for s in outcome.suggestions]}")
    return 0


def cmd_selectors(args):
    """Show the stored selector set for a site."""
    if len(args) < 1:
        console.print("Usage: banner-scraper selectors <url>")
        return 1

    from banner_scraper.storage import SelectorStore

    target = args[0]
    domain = normalize_domain(target) if target.startswith("http") else target
    entries = SelectorStore(config.DATA_DIR).load(domain)

    if not entries:
        console.print(f"No stored selectors for {domain}")
        return 0

    table = Table(title=f"Selectors for {domain}")
    table.add_column("Type", style="cyan")
    table.add_column("Selector", style="magenta")
    for entry in entries:
        table.add_row(entry.category.value, entry.locator)
    console.print(table)
    return 0


def cmd_serve(args):
    """Run the HTTP API."""
    from banner_scraper.app import main as serve
    serve()
    return 0


COMMANDS = {
    "scrape": cmd_scrape,
    "selectors": cmd_selectors,
    "serve": cmd_serve,
}


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in COMMANDS:
        console.print(__doc__)
        return 1
    return COMMANDS[argv[0]](argv[1:])


if __name__ == "__main__":
    sys.exit(main())
