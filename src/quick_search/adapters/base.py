"""Base class for source adapters: request helpers and failure classification."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..exceptions import AuthRequiredError, UpstreamError
from ..models import SearchPage, SourceDescriptor
from ..transport import FetchTransport

logger = logging.getLogger(__name__)

# Statuses meaning the source wants a logged-in (or less suspicious) client
AUTH_STATUSES = frozenset({401, 403, 429})


class SourceAdapter(ABC):
    """Translates a query into one source's requests and parses its response.

    Subclasses implement `search()` and raise `AuthRequiredError`,
    `UpstreamError` or `TransportError` on failure; the orchestrator turns
    those into outcomes.
    """

    def __init__(self, source: SourceDescriptor, transport: FetchTransport):
        self.source = source
        self.transport = transport

    @property
    def source_id(self) -> str:
        return self.source.id

    @abstractmethod
    async def search(self, query: str) -> SearchPage:
        """Search the source for an already-validated query."""

    def check_status(self, response: httpx.Response) -> None:
        """Raise the classified failure for a non-success response."""
        if response.status_code in AUTH_STATUSES:
            raise AuthRequiredError(self.source_id)
        if not response.is_success:
            raise UpstreamError(response.status_code)

    def parse_json(self, response: httpx.Response) -> Any:
        """Decode a JSON body.

        Challenge-gated sources answer with an HTML interstitial when they
        distrust the client, so an undecodable body there means "log in".
        """
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug(f"{self.source_id}: non-JSON body ({response.headers.get('content-type', '?')})")
            if self.source.challenge_gated:
                raise AuthRequiredError(self.source_id) from e
            raise UpstreamError(response.status_code, f"Malformed response (HTTP {response.status_code})") from e

    async def get_json(self, url: str, headers: dict[str, str] | None = None, credentialed: bool = False) -> Any:
        """Fetch `url`, classify its status and decode the JSON body."""
        if credentialed:
            response = await self.transport.fetch_with_credentials(self.source_id, url, headers=headers)
        else:
            response = await self.transport.fetch(url, headers=headers)
        self.check_status(response)
        return self.parse_json(response)


def as_dict(value: Any) -> dict[str, Any]:
    """Treat anything that is not a JSON object as an empty one."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def as_int(value: Any) -> int:
    """Counts from upstream payloads; absent or malformed means zero."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    return 0
