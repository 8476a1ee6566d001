"""HTTP transport with an enforced total timeout and per-source cookie contexts."""

import asyncio
import logging

import httpx

from .config import settings
from .credentials import EXPIRED, CookieRecord, CredentialStore, cookies_matching, cookies_set_by, is_expired, to_httpx_cookies
from .exceptions import RequestTimeoutError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"


def _with_widened_deletions(updates: list[CookieRecord], sent: list[CookieRecord]) -> list[CookieRecord]:
    """Extend host-only deletions to the sent cookies they were aimed at.

    A server clearing a cookie often omits the Domain attribute, which makes
    the deletion host-only while the stored cookie is domain-wide.
    """
    widened = list(updates)
    for update in updates:
        if not is_expired(update) or update["domain"].startswith("."):
            continue
        for cookie in sent:
            if cookie["name"] == update["name"] and (cookie.get("path") or "/") == update["path"]:
                widened.append({**cookie, "expires": EXPIRED})
    return widened


class FetchTransport:
    """Performs source requests with abort-at-timeout semantics.

    Usage:
        transport = FetchTransport(credentials=CredentialStore())
        response = await transport.fetch("https://api.example.com/search?q=x")
        response = await transport.fetch_with_credentials("reddit", "https://www.reddit.com/search.json?q=x")
    """

    def __init__(
        self,
        credentials: CredentialStore | None = None,
        default_timeout_ms: int | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize transport.

        Args:
            credentials: Store backing fetch_with_credentials
            default_timeout_ms: Timeout when a call passes none (default from settings)
            http_transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.credentials = credentials
        self.default_timeout_ms = default_timeout_ms or settings.fetch_timeout_ms
        self._http_transport = http_transport

    def _client(self, timeout: float, cookies: httpx.Cookies | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            cookies=cookies,
            follow_redirects=True,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            transport=self._http_transport,
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        url: str,
        method: str,
        headers: dict[str, str] | None,
        timeout: float,
    ) -> httpx.Response:
        try:
            async with asyncio.timeout(timeout):
                return await client.request(method, url, headers=headers)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.debug(f"Request timed out after {timeout}s: {method} {url}")
            raise RequestTimeoutError() from e
        except httpx.HTTPError as e:
            logger.debug(f"Request failed: {method} {url}: {e}")
            raise TransportError(str(e) or type(e).__name__) from e

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        timeout_ms: int | None = None,
    ) -> httpx.Response:
        """Perform a request without any stored cookies.

        Raises:
            RequestTimeoutError: The call did not finish within the timeout
            TransportError: Any other network-level failure
        """
        timeout = (timeout_ms or self.default_timeout_ms) / 1000
        async with self._client(timeout) as client:
            return await self._send(client, url, method, headers, timeout)

    async def fetch_with_credentials(
        self,
        context_id: str,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        timeout_ms: int | None = None,
    ) -> httpx.Response:
        """Perform a request inside a source's isolated cookie context.

        Stored cookies for the source are attached; cookies set by the
        response are persisted back into the same context.
        """
        if self.credentials is None:
            raise TransportError("No credential store configured")

        timeout = (timeout_ms or self.default_timeout_ms) / 1000
        stored = await self.credentials.aload(context_id)
        async with self._client(timeout, cookies=to_httpx_cookies(stored)) as client:
            response = await self._send(client, url, method, headers, timeout)

        updates = _with_widened_deletions(cookies_set_by(response), cookies_matching(stored, url))
        if updates:
            stored_count = await self.credentials.amerge(context_id, updates)
            logger.debug(f"Persisted cookies for {context_id} ({stored_count} stored)")
        return response
