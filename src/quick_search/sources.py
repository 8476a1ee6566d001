"""Source catalogue loaded from the packaged YAML file."""

import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from .models import SourceDescriptor

logger = logging.getLogger(__name__)

_SOURCES_RESOURCE = "sources.yaml"


def _validate_entry(entry: dict[str, Any]) -> SourceDescriptor:
    for key in ("id", "name", "icon", "login_url", "web_search_url", "origin"):
        value = entry.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Source entry needs a non-empty '{key}': {entry!r}")

    template = entry["web_search_url"]
    if template.count("%s") != 1:
        raise ValueError(f"Source '{entry['id']}' web_search_url must contain exactly one %s placeholder")

    parsed = urlparse(entry["origin"])
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"Source '{entry['id']}' origin must be an http(s) origin, got {entry['origin']!r}")

    return SourceDescriptor(
        id=entry["id"],
        name=entry["name"],
        icon=entry["icon"],
        login_url=entry["login_url"],
        web_search_url=template,
        origin=entry["origin"].rstrip("/"),
        search_needs_login=bool(entry.get("search_needs_login", False)),
        challenge_gated=bool(entry.get("challenge_gated", False)),
        auth_cookies=tuple(entry.get("auth_cookies") or ()),
    )


def parse_sources(text: str) -> tuple[SourceDescriptor, ...]:
    """Parse a YAML list of source entries into descriptors."""
    data = yaml.safe_load(text) or []
    if not isinstance(data, list):
        raise ValueError("Sources file must contain a list of entries")

    sources = tuple(_validate_entry(entry) for entry in data)
    ids = [s.id for s in sources]
    duplicates = {i for i in ids if ids.count(i) > 1}
    if duplicates:
        raise ValueError(f"Duplicate source ids: {sorted(duplicates)}")
    return sources


def load_sources(path: str | Path | None = None) -> tuple[SourceDescriptor, ...]:
    """Load source descriptors from `path`, or the packaged catalogue."""
    if path is not None:
        return parse_sources(Path(path).expanduser().read_text(encoding="utf-8"))
    return default_sources()


@lru_cache(maxsize=1)
def default_sources() -> tuple[SourceDescriptor, ...]:
    """The six built-in sources, loaded once."""
    text = resources.files(__package__).joinpath(_SOURCES_RESOURCE).read_text(encoding="utf-8")
    sources = parse_sources(text)
    logger.debug(f"Loaded {len(sources)} sources")
    return sources


def get_source(sources: tuple[SourceDescriptor, ...], source_id: str) -> SourceDescriptor | None:
    for source in sources:
        if source.id == source_id:
            return source
    return None
