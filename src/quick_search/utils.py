"""Text helpers shared by the source adapters, plus query validation."""

from urllib.parse import quote

from .config import settings
from .exceptions import InvalidQueryError

SNIPPET_SEPARATOR = " · "
SNIPPET_MAX_LENGTH = 200

# &amp; goes first so double-escaped text such as "&amp;lt;" comes out as "<"
_HTML_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&#x27;", "'"),
    ("&#x2F;", "/"),
)

# Characters JavaScript's encodeURIComponent leaves alone besides quote()'s defaults
_URI_COMPONENT_SAFE = "!~*'()"


def validate_query(query: object, max_length: int | None = None) -> str:
    """Return the trimmed query or raise InvalidQueryError.

    Rejects non-strings, blank queries and queries longer than `max_length`
    (default from settings) after trimming.
    """
    limit = settings.max_query_length if max_length is None else max_length
    if not isinstance(query, str):
        raise InvalidQueryError("Query must be a string")
    trimmed = query.strip()
    if not trimmed:
        raise InvalidQueryError("Query is empty")
    if len(trimmed) > limit:
        raise InvalidQueryError(f"Query exceeds {limit} characters")
    return trimmed


def encode_query(query: str) -> str:
    """Percent-encode a query for use as a URL query parameter value."""
    return quote(query, safe=_URI_COMPONENT_SAFE)


def decode_html_entities(text: str) -> str:
    """Decode the handful of entities the Stack Exchange API emits."""
    for entity, char in _HTML_ENTITIES:
        text = text.replace(entity, char)
    return text


def excerpt(text: str | None, limit: int = SNIPPET_MAX_LENGTH) -> str:
    """First `limit` characters of `text` with newlines flattened to spaces."""
    if not text:
        return ""
    return text[:limit].replace("\r\n", " ").replace("\n", " ")


def join_snippet(*fragments: str | None) -> str:
    """Join non-empty fragments with the visible separator."""
    return SNIPPET_SEPARATOR.join(f for f in fragments if f)


def web_search_url(query: str, template: str | None = None) -> str:
    """Build the default-mode search engine URL for a validated query."""
    q = validate_query(query)
    return (template or settings.web_search_url).replace("%s", encode_query(q), 1)
