"""Cookie-presence checks for per-source login state."""

import asyncio
import logging
from collections.abc import Iterable, Sequence

from .credentials import CredentialStore
from .models import SourceDescriptor

logger = logging.getLogger(__name__)


class AuthProbe:
    """Answers "does this source have a usable credential?" without network calls."""

    def __init__(self, sources: Sequence[SourceDescriptor], store: CredentialStore):
        self.sources = {s.id: s for s in sources}
        self.store = store

    async def is_authenticated(self, source_id: str, cookie_names: Iterable[str] | None = None) -> bool:
        """True iff the source's context holds a live cookie for its canonical origin.

        Args:
            source_id: Source to probe
            cookie_names: If given, only cookies with one of these names count
        """
        source = self.sources.get(source_id)
        if source is None:
            return False

        cookies = await self.store.acookies_for(source_id, source.origin)
        if cookie_names is not None:
            wanted = set(cookie_names)
            cookies = [c for c in cookies if c["name"] in wanted]
        return len(cookies) > 0

    async def has_session(self, source_id: str) -> bool:
        """Like is_authenticated, restricted to the source's session cookie names if it declares any."""
        source = self.sources.get(source_id)
        if source is None:
            return False
        return await self.is_authenticated(source_id, source.auth_cookies or None)

    async def get_all_auth_status(self) -> dict[str, bool]:
        """Login status for every configured source."""
        ids = list(self.sources)
        statuses = await asyncio.gather(*(self.is_authenticated(source_id) for source_id in ids))
        status = dict(zip(ids, statuses))
        logger.debug(f"Auth status: {status}")
        return status
