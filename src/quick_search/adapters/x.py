"""X (Twitter): no usable public API, so a hidden browser renders the search page.

The cookie check runs first so that a logged-out user costs nothing: no
browser is started and no timer armed. Past that point every failure
resolves to an empty list instead of an error, since polling a script-heavy
page is racy by nature.
"""

import logging
from collections.abc import Callable

from ..auth import AuthProbe
from ..browser.machine import ScrapeMachine
from ..browser.surface import BrowserSurface, RenderingSurface
from ..config import ScrapeSettings, settings
from ..exceptions import AuthRequiredError
from ..models import SearchPage, SourceDescriptor
from ..transport import FetchTransport
from ..utils import encode_query
from .base import SourceAdapter

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[[SourceDescriptor], RenderingSurface]


class XAdapter(SourceAdapter):
    def __init__(
        self,
        source: SourceDescriptor,
        transport: FetchTransport,
        probe: AuthProbe,
        surface_factory: SurfaceFactory | None = None,
        scrape: ScrapeSettings | None = None,
    ):
        super().__init__(source, transport)
        self.probe = probe
        self.scrape = scrape or settings.scrape
        self.surface_factory = surface_factory or self._default_surface

    def _default_surface(self, source: SourceDescriptor) -> RenderingSurface:
        if self.transport.credentials is None:
            raise RuntimeError("XAdapter needs a transport with a credential store")
        return BrowserSurface(source, self.transport.credentials, headless=self.scrape.headless)

    def search_url(self, query: str) -> str:
        return f"https://x.com/search?q={encode_query(query)}&src=typed_query&f=top"

    def make_machine(self, surface: RenderingSurface) -> ScrapeMachine:
        return ScrapeMachine(
            surface,
            timeout=self.scrape.timeout,
            settle_delay=self.scrape.settle_delay,
            poll_interval=self.scrape.poll_interval,
            max_attempts=self.scrape.max_attempts,
            max_items=self.scrape.max_items,
        )

    async def search(self, query: str) -> SearchPage:
        if not await self.probe.has_session(self.source_id):
            raise AuthRequiredError(self.source_id)

        machine = self.make_machine(self.surface_factory(self.source))
        results = await machine.run(self.search_url(query))
        logger.debug(f"X scrape resolved with {len(results)} result(s) after {machine.attempts} poll(s)")
        return SearchPage(results=results, total_count=None)
