"""Source adapters and the registry mapping source ids to them."""

from collections.abc import Callable, Sequence

from ..auth import AuthProbe
from ..models import SourceDescriptor
from ..transport import FetchTransport
from .base import SourceAdapter
from .github import GitHubAdapter
from .hackernews import HackerNewsAdapter
from .linuxdo import LinuxDoAdapter
from .reddit import RedditAdapter
from .stackoverflow import StackOverflowAdapter
from .x import XAdapter

AdapterFactory = Callable[[SourceDescriptor, FetchTransport, AuthProbe], SourceAdapter]

ADAPTER_FACTORIES: dict[str, AdapterFactory] = {
    "github": lambda source, transport, probe: GitHubAdapter(source, transport),
    "linuxdo": lambda source, transport, probe: LinuxDoAdapter(source, transport),
    "x": lambda source, transport, probe: XAdapter(source, transport, probe),
    "stackoverflow": lambda source, transport, probe: StackOverflowAdapter(source, transport),
    "reddit": lambda source, transport, probe: RedditAdapter(source, transport),
    "hackernews": lambda source, transport, probe: HackerNewsAdapter(source, transport),
}


def build_adapters(
    sources: Sequence[SourceDescriptor],
    transport: FetchTransport,
    probe: AuthProbe,
    factories: dict[str, AdapterFactory] | None = None,
) -> list[SourceAdapter]:
    """Instantiate one adapter per source, in source order.

    Raises:
        ValueError: A source has no registered adapter
    """
    factories = factories if factories is not None else ADAPTER_FACTORIES
    adapters = []
    for source in sources:
        factory = factories.get(source.id)
        if factory is None:
            raise ValueError(f"No adapter registered for source '{source.id}'")
        adapters.append(factory(source, transport, probe))
    return adapters


__all__ = [
    "ADAPTER_FACTORIES",
    "GitHubAdapter",
    "HackerNewsAdapter",
    "LinuxDoAdapter",
    "RedditAdapter",
    "SourceAdapter",
    "StackOverflowAdapter",
    "XAdapter",
    "build_adapters",
]
