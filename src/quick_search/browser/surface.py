"""Hidden rendering surface backed by a browser-use session.

Uses session-scoped CDP commands (``session_id``) for navigation and
evaluation, which bypasses browser-use's watchdog system. The Page and
Runtime domains are enabled on the CDP session before use.
"""

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Protocol

from ..credentials import CookieRecord, CredentialStore, to_cdp_cookie_params
from ..exceptions import BrowserError
from ..models import SearchResult, SourceDescriptor
from ..utils import SNIPPET_MAX_LENGTH

if TYPE_CHECKING:
    from browser_use.browser.session import BrowserSession, CDPSession

logger = logging.getLogger(__name__)

READY_POLL_INTERVAL = 0.25
CLOSE_TIMEOUT = 5.0

# Pulls tweet cards out of the rendered search page; null means "nothing yet"
EXTRACT_POSTS_JS = """
(() => {
    const articles = document.querySelectorAll('article[data-testid="tweet"]');
    if (!articles.length) return null;
    return JSON.stringify(Array.from(articles).slice(0, %(max_items)d).map(a => {
        const text = a.querySelector('[data-testid="tweetText"]');
        const link = a.querySelector('a[href*="/status/"]');
        const nameEl = a.querySelector('[data-testid="User-Name"]');
        return {
            title: nameEl ? nameEl.innerText.split('\\n')[0] : 'Tweet',
            url: link ? link.href : '',
            snippet: text ? text.innerText.substring(0, %(snippet_len)d) : '',
        };
    }).filter(r => r.url));
})()
"""


class RenderingSurface(Protocol):
    """What the scrape machine needs from a page it cannot see."""

    async def load(self, url: str) -> str:
        """Navigate and wait for load; return the final address. Raises on load failure."""
        ...

    async def extract(self, max_items: int) -> list[SearchResult] | None:
        """Current entries on the page, or None when none are rendered yet."""
        ...

    async def close(self) -> None:
        """Tear the surface down. Calling it again is a no-op."""
        ...


def parse_extracted(value: Any) -> list[SearchResult] | None:
    """Normalize the extraction script's return value."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if not isinstance(value, list):
        return None

    results = []
    for entry in value:
        if not isinstance(entry, dict) or not entry.get("url"):
            continue
        results.append(
            SearchResult(
                title=str(entry.get("title") or "Tweet"),
                url=str(entry["url"]),
                snippet=str(entry.get("snippet") or "")[:SNIPPET_MAX_LENGTH],
            )
        )
    return results


class BrowserSurface:
    """A browser-use session bound to one source's cookie context.

    The session's profile directory lives next to the source's stored
    cookies; stored cookies are injected on start and cookies the page set
    are written back on close.
    """

    def __init__(self, source: SourceDescriptor, store: CredentialStore, headless: bool = True):
        self.source = source
        self.store = store
        self.headless = headless
        self._session: "BrowserSession | None" = None
        self._cdp_session: "CDPSession | None" = None
        self._closed = False

    async def start(self) -> None:
        from browser_use import BrowserProfile
        from browser_use.browser.session import BrowserSession

        if self._session is not None:
            return
        if self._closed:
            raise BrowserError("Surface already closed")

        profile = BrowserProfile(
            headless=self.headless,
            user_data_dir=str(self.store.browser_profile_dir(self.source.id)),
        )
        self._session = BrowserSession(browser_profile=profile)
        try:
            await self._session.start()
            self._cdp_session = await self._get_cdp_session(self._session)
            await self._inject_cookies(await self.store.aload(self.source.id))
        except BrowserError:
            raise
        except Exception as e:
            raise BrowserError(f"Browser start failed: {e}") from e

    async def _get_cdp_session(self, browser_session: "BrowserSession") -> "CDPSession":
        """Get or create a CDP session with Page and Runtime enabled."""
        cdp_session = await browser_session.get_or_create_cdp_session()

        try:
            await browser_session.cdp_client.send.Page.enable(session_id=cdp_session.session_id)
        except Exception as e:
            # May already be enabled by session manager
            logger.debug(f"Page.enable: {e}")

        try:
            await browser_session.cdp_client.send.Runtime.enable(session_id=cdp_session.session_id)
        except Exception as e:
            logger.debug(f"Runtime.enable: {e}")

        return cdp_session

    async def _inject_cookies(self, cookies: list[CookieRecord]) -> None:
        if not cookies:
            return
        await self._session.cdp_client.send.Network.setCookies(
            params={"cookies": to_cdp_cookie_params(cookies)},
            session_id=self._cdp_session.session_id,
        )
        logger.debug(f"Injected {len(cookies)} cookie(s) for {self.source.id}")

    async def _evaluate(self, expression: str) -> Any:
        result = await self._session.cdp_client.send.Runtime.evaluate(
            params={"expression": expression, "returnByValue": True, "awaitPromise": False},
            session_id=self._cdp_session.session_id,
        )
        if result.get("exceptionDetails"):
            raise BrowserError(result["exceptionDetails"].get("text", "Evaluation failed"))
        return result.get("result", {}).get("value")

    async def _current_url(self) -> str:
        result = await self._session.cdp_client.send.Page.getFrameTree(session_id=self._cdp_session.session_id)
        return result.get("frameTree", {}).get("frame", {}).get("url") or ""

    async def load(self, url: str) -> str:
        await self.start()

        nav_result = await self._session.cdp_client.send.Page.navigate(
            params={"url": url, "transitionType": "address_bar"},
            session_id=self._cdp_session.session_id,
        )
        if nav_result.get("errorText"):
            raise BrowserError(f"Navigation failed: {nav_result['errorText']}")

        # Callers bound this loop with their own deadline
        while await self._evaluate("document.readyState") != "complete":
            await asyncio.sleep(READY_POLL_INTERVAL)

        return await self._current_url()

    async def extract(self, max_items: int) -> list[SearchResult] | None:
        value = await self._evaluate(EXTRACT_POSTS_JS % {"max_items": max_items, "snippet_len": SNIPPET_MAX_LENGTH})
        return parse_extracted(value)

    async def export_cookies(self) -> list[CookieRecord]:
        """Cookies the browser currently holds for the source's origin."""
        result = await self._session.cdp_client.send.Network.getCookies(
            params={"urls": [self.source.origin]},
            session_id=self._cdp_session.session_id,
        )
        return list(result.get("cookies", []))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._session is None:
            return

        try:
            if self._cdp_session is not None:
                cookies = await asyncio.wait_for(self.export_cookies(), CLOSE_TIMEOUT)
                if cookies:
                    await self.store.amerge(self.source.id, cookies)
        except Exception as e:
            logger.debug(f"Cookie write-back skipped for {self.source.id}: {e}")

        try:
            await asyncio.wait_for(self._session.stop(), CLOSE_TIMEOUT)
        except Exception as e:
            logger.warning(f"Browser stop failed for {self.source.id}: {e}")
        finally:
            self._session = None
            self._cdp_session = None
