"""CLI interface for quick-search."""

import asyncio
import json

import typer

from .config import settings
from .exceptions import BrowserError, InvalidQueryError
from .models import SourceOutcome
from .orchestrator import create_components
from .sources import get_source
from .utils import validate_query, web_search_url

app = typer.Typer(help="Quick search across GitHub, linux.do, X, Stack Overflow, Reddit and Hacker News")


def _status_line(outcome: SourceOutcome) -> str:
    if outcome.needs_login:
        return f"[{outcome.source_id}] login required (run: quick-search login {outcome.source_id})"
    if outcome.error:
        return f"[{outcome.source_id}] failed: {outcome.error}"
    return f"[{outcome.source_id}] {outcome.display_count} result(s)"


def _print_results(outcome: SourceOutcome, limit: int) -> None:
    for result in outcome.results[:limit]:
        print(f"  {result.title}\n    {result.url}")
        if result.snippet:
            print(f"    {result.snippet}")


@app.command()
def aggregate(
    query: str = typer.Argument(..., help="Query to send to every source"),
    limit: int = typer.Option(5, "--limit", "-n", help="Results to print per source"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result map as JSON"),
) -> None:
    """Search every source at once, printing each one as it finishes."""
    components = create_components()

    def on_partial(source_id: str, outcome: SourceOutcome) -> None:
        if not as_json:
            print(_status_line(outcome))
            _print_results(outcome, limit)

    try:
        results = asyncio.run(components.search.run_aggregate(query, on_partial=on_partial))
    except InvalidQueryError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=2) from e

    if as_json:
        print(json.dumps({"ok": True, "results": {sid: o.to_payload() for sid, o in results.items()}}, indent=2, ensure_ascii=False))
    else:
        summary = ", ".join(f"{sid}={'login' if o.needs_login else 'error' if o.error else o.display_count}" for sid, o in results.items())
        print(f"Done: {summary}")


@app.command()
def single(
    query: str = typer.Argument(..., help="Query to search"),
    source_id: str = typer.Argument(..., help="Source id, e.g. github"),
    limit: int = typer.Option(10, "--limit", "-n", help="Results to print"),
) -> None:
    """Search a single source."""
    components = create_components()
    try:
        outcome = asyncio.run(components.search.run_single(query, source_id))
    except InvalidQueryError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=2) from e

    print(_status_line(outcome))
    _print_results(outcome, limit)


@app.command()
def web(
    query: str = typer.Argument(..., help="Query for the default search engine"),
    source_id: str = typer.Option(None, "--source", "-s", help="Use a source's own web search page instead"),
    open_browser: bool = typer.Option(False, "--open", "-o", help="Open the URL in the default browser"),
) -> None:
    """Print (or open) the web search URL for a query."""
    try:
        if source_id:
            components = create_components()
            source = get_source(components.sources, source_id)
            if source is None:
                print(f"Error: unknown source '{source_id}'")
                raise typer.Exit(code=2)
            url = source.search_url(validate_query(query))
        else:
            url = web_search_url(query)
    except InvalidQueryError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=2) from e

    print(url)
    if open_browser:
        typer.launch(url)


@app.command()
def sources() -> None:
    """List the configured sources."""
    for source in create_components().sources:
        login = " (login required)" if source.search_needs_login else ""
        print(f"{source.icon:>2}  {source.id:<14} {source.name}{login}")


@app.command("auth-status")
def auth_status() -> None:
    """Show which sources have a stored login."""
    components = create_components()
    status = asyncio.run(components.probe.get_all_auth_status())
    for source_id, logged_in in status.items():
        print(f"{source_id:<14} {'logged in' if logged_in else '-'}")


@app.command()
def login(source_id: str = typer.Argument(..., help="Source to log in to")) -> None:
    """Log in to a source in a browser window and keep its cookies."""
    from .browser.login import capture_login

    components = create_components()
    source = get_source(components.sources, source_id)
    if source is None:
        print(f"Error: unknown source '{source_id}'")
        raise typer.Exit(code=2)

    async def wait_for_user() -> None:
        await asyncio.to_thread(typer.prompt, "Press Enter once you have logged in", default="", show_default=False)

    try:
        count = asyncio.run(capture_login(source, components.store, wait_for_user))
    except BrowserError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1) from e
    print(f"auth changed: {source_id} ({count} cookie(s) stored)")


@app.command()
def logout(source_id: str = typer.Argument(..., help="Source to log out of")) -> None:
    """Forget a source's stored login."""
    components = create_components()
    if get_source(components.sources, source_id) is None:
        print(f"Error: unknown source '{source_id}'")
        raise typer.Exit(code=2)
    cleared = components.store.clear(source_id)
    print(f"auth changed: {source_id} ({'cleared' if cleared else 'nothing stored'})")


@app.command()
def config() -> None:
    """Show current configuration."""
    print(f"Fetch timeout: {settings.fetch_timeout_ms} ms")
    print(f"Max query length: {settings.max_query_length}")
    print(f"Web search: {settings.web_search_url}")
    print(f"Credentials: {settings.get_credentials_dir()}")
    print(f"Scrape: headless={settings.scrape.headless} timeout={settings.scrape.timeout}s attempts={settings.scrape.max_attempts}")


if __name__ == "__main__":
    app()
