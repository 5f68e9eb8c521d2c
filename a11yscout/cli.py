"""a11yscout CLI - Typer-based command line interface."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from a11yscout import __version__
from a11yscout.browser import BrowserSession
from a11yscout.config import ConfigError, CrawlerConfig, build_crawler_config, load_config
from a11yscout.crawler import discover_routes
from a11yscout.discovery.url_utils import canonicalize

app = typer.Typer(
    name="a11yscout",
    help="a11yscout - Find the pages of a site worth auditing",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

VALID_PROFILES = ["quick", "standard", "deep"]


def _setup_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    # HTTP client internals are noise even in verbose mode
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


@app.command()
def discover(
    url: Annotated[str, typer.Argument(help="Start URL (https:// is assumed if omitted)")],
    limit: Annotated[int | None, typer.Option("--limit", "-l", help="Maximum pages")] = None,
    timeout: Annotated[
        int | None, typer.Option("--timeout", help="Per-page navigation timeout in ms")
    ] = None,
    max_depth: Annotated[int | None, typer.Option("--max-depth", help="Maximum link depth")] = None,
    profile: Annotated[str | None, typer.Option("--profile", "-p", help="Discovery profile")] = None,
    include: Annotated[
        list[str] | None, typer.Option("--include", help="Glob a URL must match (repeatable)")
    ] = None,
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", help="Glob that rejects a URL (repeatable)")
    ] = None,
    no_sitemap: Annotated[bool, typer.Option("--no-sitemap", help="Skip sitemaps")] = False,
    ignore_robots: Annotated[
        bool, typer.Option("--ignore-robots", help="Ignore robots.txt")
    ] = False,
    no_spa: Annotated[
        bool, typer.Option("--no-spa", help="Do not detect client-side routes")
    ] = False,
    no_shadow_dom: Annotated[
        bool, typer.Option("--no-shadow-dom", help="Do not search shadow roots for links")
    ] = False,
    no_common_paths: Annotated[
        bool, typer.Option("--no-common-paths", help="Do not probe conventional paths")
    ] = False,
    no_follow_nav: Annotated[
        bool, typer.Option("--no-follow-nav", help="Do not seed from start page links")
    ] = False,
    strip_query: Annotated[
        bool, typer.Option("--strip-query", help="Treat URLs differing only by query as one")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print routes as JSON")] = False,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write routes to a JSON file")
    ] = None,
    config_file: Annotated[Path | None, typer.Option("--config", help="Custom config file")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Discover the same-origin pages of a site to audit."""
    _setup_logging(verbose)

    if profile is not None and profile not in VALID_PROFILES:
        err_console.print(
            f"[red]Error:[/] Invalid profile '{profile}'. Must be one of: {', '.join(VALID_PROFILES)}"
        )
        raise typer.Exit(1)

    try:
        config = load_config(config_file)
        crawler_config = build_crawler_config(
            config,
            url,
            profile=profile,
            limit=limit,
            timeout_ms=timeout,
            max_depth=max_depth,
            include_patterns=include or None,
            exclude_patterns=exclude or None,
            use_sitemap=False if no_sitemap else None,
            respect_robots_txt=False if ignore_robots else None,
            detect_spa_routes=False if no_spa else None,
            pierce_shadow_dom=False if no_shadow_dom else None,
            discover_common_paths=False if no_common_paths else None,
            follow_navigation=False if no_follow_nav else None,
            include_query=False if strip_query else None,
        )
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/] {e}")
        raise typer.Exit(1)
    except ValidationError as e:
        err_console.print(f"[red]Invalid settings:[/] {e}")
        raise typer.Exit(1)

    try:
        routes = asyncio.run(_run_discovery(crawler_config, show_progress=not as_json))
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Discovery interrupted by user.[/]")
        raise typer.Exit(130)
    except Exception as e:
        err_console.print(f"\n[red]Discovery failed:[/] {e}")
        raise typer.Exit(1)

    if not routes:
        logging.getLogger(__name__).warning(
            "No routes discovered, falling back to the start URL"
        )
        routes = [
            canonicalize(crawler_config.origin, crawler_config.include_query, crawler_config.start_url)
        ]

    result = {
        "start_url": crawler_config.start_url,
        "count": len(routes),
        "routes": routes,
    }

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2)

    if as_json:
        typer.echo(json.dumps(result, indent=2))
    else:
        _display_routes(crawler_config, routes)
        if output:
            console.print(f"\n[bold]Routes saved to:[/] {output.absolute()}")


async def _run_discovery(crawler_config: CrawlerConfig, show_progress: bool = True) -> list[str]:
    """Launch a browser and run discovery with a live status line."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
        disable=not show_progress,
    ) as progress:
        task = progress.add_task("[cyan]Launching browser...", total=None)

        def on_progress(message: str) -> None:
            progress.update(task, description=f"[cyan]{message}")

        async with BrowserSession() as browser:
            return await discover_routes(crawler_config, browser, on_progress)


def _display_routes(crawler_config: CrawlerConfig, routes: list[str]) -> None:
    """Display discovered routes."""
    table = Table(title=f"Routes for {crawler_config.start_url}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("URL", style="cyan")

    for i, route in enumerate(routes, 1):
        table.add_row(str(i), route)

    console.print(table)
    console.print(
        f"\n[bold green]{len(routes)}[/] of at most {crawler_config.limit} pages discovered"
    )


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"a11yscout v{__version__}")


if __name__ == "__main__":
    app()
