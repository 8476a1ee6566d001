"""Hacker News via the Algolia search API."""

from typing import Any

from ..models import SearchPage, SearchResult
from ..utils import encode_query, join_snippet
from .base import SourceAdapter, as_dict, as_int, as_list


def _hit_result(hit: dict[str, Any]) -> SearchResult:
    author = hit.get("author")
    return SearchResult(
        title=hit.get("title") or hit.get("story_title") or "Untitled",
        url=hit.get("url") or f"https://news.ycombinator.com/item?id={hit.get('objectID', '')}",
        snippet=join_snippet(
            f"by {author}",
            f"{as_int(hit.get('points'))} points",
            f"{as_int(hit.get('num_comments'))} comments",
        )
        if author
        else "",
    )


class HackerNewsAdapter(SourceAdapter):
    async def search(self, query: str) -> SearchPage:
        data = as_dict(await self.get_json(f"https://hn.algolia.com/api/v1/search?query={encode_query(query)}&hitsPerPage=30"))
        return SearchPage(
            results=[_hit_result(as_dict(hit)) for hit in as_list(data.get("hits"))],
            total_count=as_int(data.get("nbHits")) or None,
        )
