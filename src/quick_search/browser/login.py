"""Interactive login: let the user sign in inside a visible browser, then keep its cookies."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..credentials import CredentialStore
from ..exceptions import BrowserError
from ..models import SourceDescriptor
from .surface import BrowserSurface

logger = logging.getLogger(__name__)

# Seconds the login page gets to finish loading before the capture is abandoned
LOGIN_LOAD_TIMEOUT = 30.0


async def capture_login(
    source: SourceDescriptor,
    store: CredentialStore,
    wait_for_user: Callable[[], Awaitable[None]],
    surface: BrowserSurface | None = None,
    load_timeout: float = LOGIN_LOAD_TIMEOUT,
) -> int:
    """Open the source's login page and store the session once the user is done.

    Args:
        source: Source to log in to
        store: Credential store receiving the cookies
        wait_for_user: Resolves when the user says they have finished logging in
        surface: Optional pre-built surface (defaults to a visible BrowserSurface)
        load_timeout: Seconds allowed for the login page to load

    Returns:
        Number of cookies held for the source's origin afterwards.

    Raises:
        BrowserError: The login page did not load in time
    """
    surface = surface or BrowserSurface(source, store, headless=False)
    try:
        try:
            async with asyncio.timeout(load_timeout):
                await surface.load(source.login_url)
        except TimeoutError as e:
            raise BrowserError(f"Login page for {source.id} did not load within {load_timeout:g}s") from e
        logger.info(f"Login page opened for {source.id}: {source.login_url}")
        await wait_for_user()
    finally:
        # close() writes the browser's cookies back into the store
        await surface.close()

    count = len(await store.acookies_for(source.id, source.origin))
    logger.info(f"Login capture for {source.id} finished with {count} cookie(s)")
    return count
