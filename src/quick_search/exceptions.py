"""Custom exceptions for quick-search."""


class QuickSearchError(Exception):
    """Base exception for quick-search errors."""

    pass


class InvalidQueryError(QuickSearchError, ValueError):
    """Raised when a query is empty or too long, before any source runs."""

    pass


class AuthRequiredError(QuickSearchError):
    """Raised when a source needs the user to log in before it can answer."""

    def __init__(self, source_id: str = ""):
        self.source_id = source_id
        super().__init__(f"Login required for {source_id}" if source_id else "Login required")


class SourceError(QuickSearchError):
    """Raised when a source cannot produce results."""

    pass


class UpstreamError(SourceError):
    """Raised when a source answers with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}")


class TransportError(SourceError):
    """Raised when a request fails at the network level."""

    pass


class RequestTimeoutError(TransportError):
    """Raised when a request is aborted after its timeout."""

    def __init__(self, message: str = "Request timeout"):
        super().__init__(message)


class BrowserError(QuickSearchError):
    """Raised when hidden browser operations fail."""

    pass
