"""Web search through the Brave Search API."""

import logging

import httpx
from pydantic import Field

from chatbridge.config import settings
from chatbridge.tools.base import ToolParams, ToolResult
from chatbridge.tools.registry import registry

logger = logging.getLogger(__name__)

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
RESULT_COUNT = 5


class WebSearchParams(ToolParams):
    query: str = Field(description="Search query string")


@registry.tool(
    name="web_search",
    description=(
        "Search the web for current information, news, facts, or anything you "
        "don't know or that may have changed recently. Returns titles, URLs, "
        "and descriptions for matching pages."
    ),
    params_model=WebSearchParams,
)
async def web_search(query: str) -> ToolResult:
    api_key = settings.brave_search_api_key
    if not api_key:
        return ToolResult(error="BRAVE_SEARCH_API_KEY is not configured.")

    headers = {
        "Accept": "application/json",
        "Accept-Encoding": "gzip",
        "X-Subscription-Token": api_key,
    }
    params = {"q": query, "count": RESULT_COUNT}

    try:
        async with httpx.AsyncClient(timeout=20) as client:
            resp = await client.get(BRAVE_SEARCH_URL, headers=headers, params=params)

        if resp.status_code != 200:
            return ToolResult(
                error=f"Brave Search API returned {resp.status_code}: {resp.text[:200]}"
            )

        data = resp.json()
        web_results = data.get("web", {}).get("results", [])

        results = [
            {
                "title": r.get("title", ""),
                "url": r.get("url", ""),
                "description": r.get("description", ""),
            }
            for r in web_results
        ]

        return ToolResult(data={"results": results, "count": len(results), "query": query})
    except httpx.HTTPError as exc:
        logger.exception("Brave Search request failed")
        return ToolResult(error=f"Search request failed: {exc}")
