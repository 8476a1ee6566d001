"""Structured logging with per-search context using structlog and contextvars."""

import logging
from contextvars import ContextVar

import structlog

# Context variables for the current aggregate call
current_search_id: ContextVar[str | None] = ContextVar("current_search_id", default=None)

_configured = False


def setup_structured_logging(level: str = "INFO") -> None:
    """Configure structlog with JSON output and per-search context.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    global _configured
    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # Inject search context
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
    )

    _configured = True


def bind_search_context(search_id: str, query: str) -> None:
    """Bind search context for all subsequent logs in this async context.

    Args:
        search_id: Unique id of one aggregate call
        query: The query being searched (truncated in logs)
    """
    current_search_id.set(search_id)
    structlog.contextvars.bind_contextvars(search_id=search_id, query=query[:100])


def clear_search_context() -> None:
    """Clear search context after the call completes."""
    current_search_id.set(None)
    structlog.contextvars.clear_contextvars()


def get_search_logger(name: str = "quick_search") -> structlog.stdlib.BoundLogger:
    """Get a structlog logger with search context."""
    return structlog.get_logger(name)


def get_current_search_id() -> str | None:
    """Get the current search ID from context."""
    return current_search_id.get()
