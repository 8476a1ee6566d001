"""Stack Overflow via the Stack Exchange advanced search API."""

from typing import Any

from ..models import SearchPage, SearchResult
from ..utils import decode_html_entities, encode_query, join_snippet
from .base import SourceAdapter, as_dict, as_int, as_list

MAX_TAGS = 4


def _question_result(item: dict[str, Any]) -> SearchResult:
    tags = [t for t in as_list(item.get("tags")) if isinstance(t, str)][:MAX_TAGS]
    return SearchResult(
        title=decode_html_entities(item.get("title") or ""),
        url=item.get("link") or "",
        snippet=join_snippet(
            f"{as_int(item.get('answer_count'))} answers",
            f"{as_int(item.get('score'))} votes",
            ", ".join(tags),
        ),
    )


class StackOverflowAdapter(SourceAdapter):
    async def search(self, query: str) -> SearchPage:
        data = as_dict(
            await self.get_json(
                "https://api.stackexchange.com/2.3/search/advanced"
                f"?order=desc&sort=relevance&q={encode_query(query)}&site=stackoverflow&pagesize=30"
            )
        )
        return SearchPage(
            results=[_question_result(as_dict(item)) for item in as_list(data.get("items"))],
            total_count=as_int(data.get("total")) or None,
        )
