"""GitHub: repository search plus supplementary issue search."""

import asyncio
import logging
from typing import Any

from ..models import SearchPage, SearchResult
from ..utils import encode_query, excerpt, join_snippet
from .base import SourceAdapter, as_dict, as_int, as_list

logger = logging.getLogger(__name__)

API_HEADERS = {"Accept": "application/vnd.github.v3+json"}
MAX_ISSUES = 10


def _repo_result(item: dict[str, Any]) -> SearchResult:
    stars = as_int(item.get("stargazers_count"))
    return SearchResult(
        title=item.get("full_name") or "",
        url=item.get("html_url") or "",
        snippet=join_snippet(
            f"⭐{stars:,}" if stars else "",
            item.get("language") or "",
            item.get("description") or "",
        ),
    )


def _issue_result(item: dict[str, Any]) -> SearchResult:
    return SearchResult(
        title=item.get("title") or "",
        url=item.get("html_url") or "",
        snippet=excerpt(item.get("body")),
    )


class GitHubAdapter(SourceAdapter):
    """Best-match repositories, followed by up to ten relevant issues.

    The issue search only enriches the list: its failure never fails the
    source, and `total_count` is the repository total alone.
    """

    async def search(self, query: str) -> SearchPage:
        encoded = encode_query(query)
        repo_data, issue_data = await asyncio.gather(
            self.get_json(f"https://api.github.com/search/repositories?q={encoded}&per_page=30", headers=API_HEADERS),
            self.get_json(f"https://api.github.com/search/issues?q={encoded}&per_page=10&sort=relevance", headers=API_HEADERS),
            return_exceptions=True,
        )
        if isinstance(repo_data, BaseException):
            raise repo_data

        repo_data = as_dict(repo_data)
        results = [_repo_result(as_dict(item)) for item in as_list(repo_data.get("items"))]
        total_count = as_int(repo_data.get("total_count"))

        if isinstance(issue_data, Exception):
            logger.debug(f"Issue search failed, keeping repositories only: {issue_data!r}")
        elif isinstance(issue_data, BaseException):
            raise issue_data
        else:
            issues = as_list(as_dict(issue_data).get("items"))[:MAX_ISSUES]
            results.extend(_issue_result(as_dict(item)) for item in issues)

        return SearchPage(results=results, total_count=total_count)
