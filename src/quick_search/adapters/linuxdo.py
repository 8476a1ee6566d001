"""linux.do (Discourse) search, sent inside the linuxdo cookie context.

The site sits behind an anti-bot challenge: 401/403/429 or an HTML body in
place of JSON both mean the user has to log in through the browser first.
"""

from typing import Any

from ..models import SearchPage, SearchResult
from ..utils import encode_query
from .base import SourceAdapter, as_dict, as_list


def _topic_result(topic: dict[str, Any]) -> SearchResult:
    return SearchResult(
        title=topic.get("title") or "",
        url=f"https://linux.do/t/{topic.get('slug') or '-'}/{topic.get('id')}",
        snippet=topic.get("excerpt") or topic.get("blurb") or "",
    )


def backfill_snippets(topics: list[dict[str, Any]], posts: list[dict[str, Any]]) -> list[SearchResult]:
    """Build topic results, filling empty snippets from the first matching post blurb."""
    blurbs: dict[Any, str] = {}
    for post in posts:
        topic_id = post.get("topic_id")
        blurb = post.get("blurb")
        if topic_id is not None and blurb and topic_id not in blurbs:
            blurbs[topic_id] = blurb

    results = []
    for topic in topics:
        result = _topic_result(topic)
        if not result.snippet and topic.get("id") in blurbs:
            result = SearchResult(title=result.title, url=result.url, snippet=blurbs[topic["id"]])
        results.append(result)
    return results


class LinuxDoAdapter(SourceAdapter):
    async def search(self, query: str) -> SearchPage:
        data = as_dict(
            await self.get_json(
                f"https://linux.do/search.json?q={encode_query(query)}",
                headers={"Accept": "application/json"},
                credentialed=True,
            )
        )
        topics = [as_dict(t) for t in as_list(data.get("topics"))]
        posts = [as_dict(p) for p in as_list(data.get("posts"))]
        return SearchPage(results=backfill_snippets(topics, posts), total_count=None)
