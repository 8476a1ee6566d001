"""Data models for sources, results and per-source outcomes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .utils import encode_query


@dataclass(frozen=True)
class SourceDescriptor:
    """Static description of one external search source."""

    id: str
    name: str
    icon: str
    login_url: str
    web_search_url: str  # contains exactly one %s placeholder
    origin: str  # canonical origin probed for cookies
    search_needs_login: bool = False
    challenge_gated: bool = False  # non-JSON bodies mean an anti-bot challenge
    auth_cookies: tuple[str, ...] = ()

    def search_url(self, query: str) -> str:
        """Fill the source's web search template with the encoded query."""
        return self.web_search_url.replace("%s", encode_query(query), 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "loginUrl": self.login_url,
            "searchNeedsLogin": self.search_needs_login,
            "webSearchUrl": self.web_search_url,
        }


@dataclass(frozen=True)
class SearchResult:
    """A single normalized result."""

    title: str
    url: str
    snippet: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "url": self.url, "snippet": self.snippet}


@dataclass(frozen=True)
class SearchPage:
    """What an adapter returns on success."""

    results: list[SearchResult] = field(default_factory=list)
    total_count: int | None = None


class OutcomeKind(str, Enum):
    """Which variant a SourceOutcome is."""

    OK = "ok"
    AUTH_REQUIRED = "auth_required"
    FAILED = "failed"


class SourceOutcome(BaseModel):
    """Normalized per-source result envelope.

    A tagged variant: ``ok`` carries results, ``auth_required`` carries nothing,
    ``failed`` carries a message. Build it through the classmethods; the
    validator rejects any other combination.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str
    kind: OutcomeKind
    results: list[SearchResult] = Field(default_factory=list)
    total_count: int | None = None
    message: str | None = None

    @model_validator(mode="after")
    def _check_variant(self) -> "SourceOutcome":
        if self.kind is OutcomeKind.OK:
            if self.message is not None:
                raise ValueError("ok outcome cannot carry an error message")
        elif self.kind is OutcomeKind.AUTH_REQUIRED:
            if self.results or self.total_count is not None or self.message is not None:
                raise ValueError("auth_required outcome cannot carry results or a message")
        else:
            if not self.message:
                raise ValueError("failed outcome needs a message")
            if self.results or self.total_count is not None:
                raise ValueError("failed outcome cannot carry results")
        return self

    @classmethod
    def ok(cls, source_id: str, results: list[SearchResult], total_count: int | None = None) -> "SourceOutcome":
        return cls(source_id=source_id, kind=OutcomeKind.OK, results=list(results), total_count=total_count)

    @classmethod
    def auth_required(cls, source_id: str) -> "SourceOutcome":
        return cls(source_id=source_id, kind=OutcomeKind.AUTH_REQUIRED)

    @classmethod
    def failed(cls, source_id: str, message: str) -> "SourceOutcome":
        return cls(source_id=source_id, kind=OutcomeKind.FAILED, message=message or "Unknown error")

    @property
    def needs_login(self) -> bool:
        return self.kind is OutcomeKind.AUTH_REQUIRED

    @property
    def error(self) -> str | None:
        return self.message if self.kind is OutcomeKind.FAILED else None

    @property
    def display_count(self) -> str:
        """Count label: "30+" when the source reports more matches than it returned."""
        count = len(self.results)
        if self.total_count and self.total_count > count:
            return f"{count}+"
        return str(count)

    def to_payload(self) -> dict[str, Any]:
        """Wire shape consumed by the UI layer."""
        return {
            "results": [r.to_dict() for r in self.results],
            "totalCount": self.total_count,
            "error": self.error,
            "needsLogin": self.needs_login,
        }


AggregateResultMap = dict[str, SourceOutcome]
