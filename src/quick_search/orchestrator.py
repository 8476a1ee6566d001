"""Aggregate search: fan a query out to every source and deliver outcomes as they settle."""

import asyncio
import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from .adapters import SourceAdapter, build_adapters
from .auth import AuthProbe
from .credentials import CredentialStore
from .exceptions import AuthRequiredError
from .models import AggregateResultMap, SourceDescriptor, SourceOutcome
from .observability import bind_search_context, clear_search_context, get_current_search_id, get_search_logger
from .sources import default_sources
from .transport import FetchTransport
from .utils import validate_query

logger = logging.getLogger(__name__)

# Delivery sink: called once per source with (source_id, outcome)
PartialCallback = Callable[[str, SourceOutcome], Awaitable[None] | None]


class AggregateSearch:
    """Runs source adapters concurrently and joins their outcomes.

    Holds no per-query state: every `run_aggregate()` call builds its own
    result map, so overlapping calls cannot see each other's outcomes.
    """

    def __init__(self, adapters: Sequence[SourceAdapter]):
        self.adapters: dict[str, SourceAdapter] = {}
        for adapter in adapters:
            if adapter.source_id in self.adapters:
                raise ValueError(f"Duplicate adapter for source '{adapter.source_id}'")
            self.adapters[adapter.source_id] = adapter

    @staticmethod
    def _log_prefix(source_id: str) -> str:
        search_id = get_current_search_id()
        return f"[{search_id}] {source_id}" if search_id else source_id

    @property
    def source_ids(self) -> list[str]:
        return list(self.adapters)

    async def _settle(self, adapter: SourceAdapter, query: str) -> SourceOutcome:
        """Run one adapter and fold whatever happens into an outcome."""
        source_id = adapter.source_id
        try:
            page = await adapter.search(query)
        except AuthRequiredError:
            logger.info(f"{self._log_prefix(source_id)}: login required")
            return SourceOutcome.auth_required(source_id)
        except Exception as e:
            logger.warning(f"{self._log_prefix(source_id)}: search failed: {e}")
            return SourceOutcome.failed(source_id, str(e))

        logger.debug(f"{self._log_prefix(source_id)}: {len(page.results)} result(s), total={page.total_count}")
        return SourceOutcome.ok(source_id, page.results, page.total_count)

    async def _deliver(self, on_partial: PartialCallback, outcome: SourceOutcome) -> None:
        try:
            result = on_partial(outcome.source_id, outcome)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"{self._log_prefix(outcome.source_id)}: partial delivery failed: {e}")

    async def run_aggregate(self, query: str, on_partial: PartialCallback | None = None) -> AggregateResultMap:
        """Search every source and return one outcome per source.

        Outcomes are passed to `on_partial` the moment each source settles,
        in completion order. The call returns once all sources have settled.

        Raises:
            InvalidQueryError: The query is blank or too long; no source ran
        """
        q = validate_query(query)
        results: AggregateResultMap = {}
        search_id = str(uuid.uuid4())
        bind_search_context(search_id, q)
        search_logger = get_search_logger()
        search_logger.info("aggregate_started", sources=self.source_ids)

        async def run_one(adapter: SourceAdapter) -> None:
            outcome = await self._settle(adapter, q)
            results[outcome.source_id] = outcome
            if on_partial is not None:
                await self._deliver(on_partial, outcome)

        try:
            await asyncio.gather(*(run_one(adapter) for adapter in self.adapters.values()))
            search_logger.info(
                "aggregate_completed",
                ok=sum(1 for o in results.values() if o.error is None and not o.needs_login),
                needs_login=[o.source_id for o in results.values() if o.needs_login],
                failed=[o.source_id for o in results.values() if o.error],
            )
        finally:
            clear_search_context()

        return results

    async def run_single(self, query: str, source_id: str) -> SourceOutcome:
        """Re-run exactly one source, e.g. after the user logged in to it.

        Raises:
            InvalidQueryError: The query is blank or too long
        """
        q = validate_query(query)
        adapter = self.adapters.get(source_id)
        if adapter is None:
            return SourceOutcome.failed(source_id, "Unknown source")
        return await self._settle(adapter, q)


@dataclass
class SearchComponents:
    """Everything the outer surfaces need, wired together."""

    sources: tuple[SourceDescriptor, ...]
    store: CredentialStore
    transport: FetchTransport
    probe: AuthProbe
    search: AggregateSearch


def create_components(
    store: CredentialStore | None = None,
    sources: Sequence[SourceDescriptor] | None = None,
    transport: FetchTransport | None = None,
) -> SearchComponents:
    """Wire the default store, transport, probe and adapters."""
    sources = tuple(sources) if sources is not None else default_sources()
    store = store or CredentialStore()
    transport = transport or FetchTransport(credentials=store)
    probe = AuthProbe(sources, store)
    search = AggregateSearch(build_adapters(sources, transport, probe))
    return SearchComponents(sources=sources, store=store, transport=transport, probe=probe, search=search)
