"""Aggregate quick search across code, forum, social, Q&A, link and news sources."""

from .adapters import SourceAdapter, build_adapters
from .auth import AuthProbe
from .config import settings
from .credentials import CredentialStore
from .exceptions import AuthRequiredError, InvalidQueryError, QuickSearchError, RequestTimeoutError, TransportError, UpstreamError
from .models import AggregateResultMap, OutcomeKind, SearchPage, SearchResult, SourceDescriptor, SourceOutcome
from .orchestrator import AggregateSearch, SearchComponents, create_components
from .sources import default_sources, load_sources
from .transport import FetchTransport

__all__ = [
    "AggregateResultMap",
    "AggregateSearch",
    "AuthProbe",
    "AuthRequiredError",
    "CredentialStore",
    "FetchTransport",
    "InvalidQueryError",
    "OutcomeKind",
    "QuickSearchError",
    "RequestTimeoutError",
    "SearchComponents",
    "SearchPage",
    "SearchResult",
    "SourceAdapter",
    "SourceDescriptor",
    "SourceOutcome",
    "TransportError",
    "UpstreamError",
    "build_adapters",
    "create_components",
    "default_sources",
    "load_sources",
    "settings",
]
