"""Reddit JSON search, sent inside the reddit cookie context."""

from typing import Any

from ..models import SearchPage, SearchResult
from ..utils import encode_query, excerpt, join_snippet
from .base import SourceAdapter, as_dict, as_int, as_list

LINK_KIND = "t3"


def _post_result(post: dict[str, Any]) -> SearchResult:
    selftext = post.get("selftext")
    return SearchResult(
        title=post.get("title") or "",
        url=f"https://www.reddit.com{post.get('permalink') or '/'}",
        snippet=excerpt(selftext)
        if selftext
        else join_snippet(
            f"r/{post.get('subreddit') or ''}",
            f"{as_int(post.get('score'))} points",
            f"{as_int(post.get('num_comments'))} comments",
        ),
    )


class RedditAdapter(SourceAdapter):
    async def search(self, query: str) -> SearchPage:
        data = as_dict(
            await self.get_json(
                f"https://www.reddit.com/search.json?q={encode_query(query)}&limit=25&sort=relevance&t=all",
                credentialed=True,
            )
        )
        children = as_list(as_dict(data.get("data")).get("children"))
        results = [_post_result(as_dict(child.get("data"))) for child in map(as_dict, children) if child.get("kind") == LINK_KIND]
        return SearchPage(results=results, total_count=None)
