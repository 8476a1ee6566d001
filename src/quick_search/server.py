"""MCP server exposing aggregate quick search as tools."""

import json
import logging
import os
import sys


def _configure_stdio_logging() -> None:
    """Configure logging for stdio MCP mode - all logs MUST go to stderr.

    In stdio mode, stdout is reserved exclusively for JSON-RPC messages.
    """
    os.environ.setdefault("BROWSER_USE_LOGGING_LEVEL", "warning")

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    root = logging.getLogger()
    root.handlers = [stderr_handler]
    root.setLevel(logging.WARNING)

    for logger_name in ["httpx", "httpcore", "asyncio", "browser_use"]:
        dep_logger = logging.getLogger(logger_name)
        dep_logger.setLevel(logging.WARNING)
        dep_logger.handlers = [stderr_handler]
        dep_logger.propagate = False


# Configure logging BEFORE importing browser_use through the adapters
_configure_stdio_logging()

# ruff: noqa: E402 - Intentional late imports after logging configuration
from fastmcp import FastMCP
from fastmcp.dependencies import CurrentContext, Progress
from fastmcp.server.context import Context
from fastmcp.server.tasks.config import TaskConfig

from .config import settings
from .exceptions import InvalidQueryError
from .models import SourceOutcome
from .observability import setup_structured_logging
from .orchestrator import SearchComponents, create_components
from .sources import get_source
from .utils import validate_query, web_search_url

logger = logging.getLogger("quick_search")
logger.setLevel(getattr(logging, settings.server.logging_level.upper()))


def _envelope(ok: bool, outcomes: dict[str, SourceOutcome] | None = None) -> str:
    results = {sid: outcome.to_payload() for sid, outcome in (outcomes or {}).items()}
    return json.dumps({"ok": ok, "results": results}, ensure_ascii=False)


def serve(components: SearchComponents | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        components: Pre-wired store, transport and adapters (defaults from settings)
    """
    setup_structured_logging(settings.server.logging_level)

    server = FastMCP("quick_search")
    wired = components or create_components()

    @server.tool(task=TaskConfig(mode="optional"))
    async def aggregate_search(
        query: str,
        ctx: Context = CurrentContext(),
        progress: Progress = Progress(),
    ) -> str:
        """
        Search every source at once: GitHub, linux.do, X, Stack Overflow, Reddit and Hacker News.

        Each source reports as soon as it finishes. A source that needs a login
        is returned with needsLogin=true rather than an error; use auth_status
        and the `quick-search login <source>` command to fix it.

        Args:
            query: Search text (trimmed; must be non-empty and at most the configured length)

        Returns:
            JSON object {"ok": bool, "results": {sourceId: {results, totalCount, error, needsLogin}}}
        """
        await progress.set_total(len(wired.search.source_ids))

        async def on_partial(source_id: str, outcome: SourceOutcome) -> None:
            if outcome.needs_login:
                await ctx.info(f"{source_id}: login required")
            elif outcome.error:
                await ctx.info(f"{source_id}: {outcome.error}")
            else:
                await ctx.info(f"{source_id}: {outcome.display_count} result(s)")
            await progress.increment()

        try:
            outcomes = await wired.search.run_aggregate(query, on_partial=on_partial)
        except InvalidQueryError as e:
            logger.info(f"Rejected query: {e}")
            return _envelope(False)
        return _envelope(True, outcomes)

    @server.tool()
    async def search_source(query: str, source_id: str) -> str:
        """
        Re-run the search for exactly one source, e.g. after logging in to it.

        Args:
            query: Search text
            source_id: One of the ids returned by list_sources

        Returns:
            JSON object in the same shape as aggregate_search, holding one source
        """
        try:
            outcome = await wired.search.run_single(query, source_id)
        except InvalidQueryError as e:
            logger.info(f"Rejected query: {e}")
            return _envelope(False)
        return _envelope(True, {source_id: outcome})

    @server.tool()
    async def list_sources() -> str:
        """
        List the configured sources.

        Returns:
            JSON array of {id, name, icon, loginUrl, webSearchUrl, searchNeedsLogin}
        """
        return json.dumps([source.to_dict() for source in wired.sources], indent=2, ensure_ascii=False)

    @server.tool()
    async def auth_status() -> str:
        """
        Report which sources hold a stored login.

        Returns:
            JSON object mapping source id to true/false
        """
        return json.dumps(await wired.probe.get_all_auth_status(), indent=2)

    @server.tool()
    async def logout_source(source_id: str, ctx: Context = CurrentContext()) -> str:
        """
        Forget the stored login for one source.

        Args:
            source_id: Source to log out of

        Returns:
            JSON object {"sourceId": str, "cleared": bool}
        """
        if get_source(wired.sources, source_id) is None:
            return json.dumps({"sourceId": source_id, "cleared": False, "error": "Unknown source"})

        cleared = await wired.store.aclear(source_id)
        await ctx.info(f"auth changed: {source_id}")
        return json.dumps({"sourceId": source_id, "cleared": cleared})

    @server.tool()
    async def web_search(query: str, source_id: str | None = None) -> str:
        """
        Build the URL for searching the query in a regular browser.

        Args:
            query: Search text
            source_id: Optional source whose own search page to use instead of the default engine

        Returns:
            JSON object {"ok": bool, "url": str | null}
        """
        try:
            q = validate_query(query)
        except InvalidQueryError:
            return json.dumps({"ok": False, "url": None})

        if source_id is None:
            return json.dumps({"ok": True, "url": web_search_url(q)})

        source = get_source(wired.sources, source_id)
        if source is None:
            return json.dumps({"ok": False, "url": None})
        return json.dumps({"ok": True, "url": source.search_url(q)})

    return server


server_instance = serve()


def main() -> None:
    """Entry point for MCP server."""
    transport = settings.server.transport

    if transport == "stdio":
        server_instance.run(transport="stdio")
    elif transport in ("streamable-http", "sse"):
        logger.info(f"Starting quick-search MCP server (transport: {transport})")
        logger.info(f"HTTP server at http://{settings.server.host}:{settings.server.port}/mcp")
        server_instance.run(transport=transport, host=settings.server.host, port=settings.server.port)
    else:
        raise ValueError(f"Unknown transport: {transport}")


if __name__ == "__main__":
    main()
