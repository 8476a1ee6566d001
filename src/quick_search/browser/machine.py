"""Bounded polling state machine for scraping a page rendered by client-side script."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from ..models import SearchResult
from .surface import RenderingSurface

logger = logging.getLogger(__name__)

# Address fragments meaning the page bounced to a login flow
LOGIN_REDIRECT_MARKERS = ("/login", "/i/flow")


class ScrapeState(str, Enum):
    """Where a scrape is in its lifecycle."""

    IDLE = "idle"
    AWAITING_LOAD = "awaiting_load"
    POLLING = "polling"
    RESOLVED = "resolved"


class ScrapeMachine:
    """Drives one surface from load to a resolved result list.

    IDLE -> AWAITING_LOAD -> POLLING(attempt 1..max_attempts) -> RESOLVED

    `run()` never raises for ordinary failures: a stale session, a load
    failure, exhausted attempts or the global deadline all resolve to an
    empty list. The surface is closed exactly once, whatever the path.
    """

    def __init__(
        self,
        surface: RenderingSurface,
        timeout: float = 15.0,
        settle_delay: float = 2.0,
        poll_interval: float = 1.5,
        max_attempts: int = 8,
        max_items: int = 10,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.surface = surface
        self.timeout = timeout
        self.settle_delay = settle_delay
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.max_items = max_items
        self._sleep = sleep

        self.state = ScrapeState.IDLE
        self.attempts = 0
        self.final_url: str | None = None
        self.results: list[SearchResult] = []
        self._torn_down = False

    async def run(self, url: str) -> list[SearchResult]:
        """Scrape `url` and return what was found (possibly nothing)."""
        if self.state is not ScrapeState.IDLE:
            raise RuntimeError(f"ScrapeMachine already used (state={self.state.value})")

        try:
            async with asyncio.timeout(self.timeout):
                results = await self._drive(url)
        except TimeoutError:
            logger.info(f"Scrape deadline of {self.timeout}s reached after {self.attempts} poll(s)")
            results = []
        except Exception as e:
            logger.info(f"Scrape failed in state {self.state.value}: {e}")
            results = []
        finally:
            await self._teardown()

        return self._resolve(results)

    async def _drive(self, url: str) -> list[SearchResult]:
        self.state = ScrapeState.AWAITING_LOAD
        self.final_url = await self.surface.load(url)

        if any(marker in self.final_url for marker in LOGIN_REDIRECT_MARKERS):
            logger.info(f"Redirected to login ({self.final_url}), session is stale")
            return []

        self.state = ScrapeState.POLLING
        await self._sleep(self.settle_delay)

        while True:
            self.attempts += 1
            try:
                found = await self.surface.extract(self.max_items)
            except Exception as e:
                logger.debug(f"Poll {self.attempts} failed: {e}")
                found = None

            if found:
                logger.debug(f"Poll {self.attempts} found {len(found)} entries")
                return found
            if self.attempts >= self.max_attempts:
                logger.debug(f"No entries after {self.attempts} polls")
                return []
            await self._sleep(self.poll_interval)

    def _resolve(self, results: list[SearchResult]) -> list[SearchResult]:
        self.state = ScrapeState.RESOLVED
        self.results = list(results)
        return self.results

    async def _teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        try:
            await self.surface.close()
        except Exception as e:
            logger.warning(f"Surface teardown failed: {e}")
