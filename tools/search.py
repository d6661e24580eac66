"""Candidate discovery via the Google Custom Search JSON API.

The pipeline's only source of candidate URLs. Results are restricted to a
recent window (``dateRestrict=d<days>``) and fetched in pages of ten, the
largest page the API serves, up to its hard limit of 100 results.

Error Handling:
    - API error or non-200 status: Raises SearchError (hard)
    - No results: Returns an empty list (soft - the query may be too narrow)
"""

import asyncio
import logging
from typing import Any

import aiohttp

from models.source import CandidateSource
from tools.utils import USER_AGENT, create_ssl_context

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

PAGE_SIZE = 10
MAX_RESULTS = 100


class SearchError(Exception):
    """Raised when the search API fails with a non-recoverable error.

    Examples:
    - Invalid API key
    - Quota exceeded
    - API returned error status
    """
    pass


def _published_hint(item: dict[str, Any]) -> str | None:
    """Read the article publication time from a result's page metadata."""
    metatags = item.get("pagemap", {}).get("metatags") or []
    if not metatags or not isinstance(metatags[0], dict):
        return None
    return metatags[0].get("article:published_time") or None


def _to_candidates(items: list[dict[str, Any]]) -> list[CandidateSource]:
    """Convert API result items to candidates, dropping items without a link."""
    candidates = []
    for item in items:
        link = item.get("link")
        if not link:
            continue
        candidates.append(
            CandidateSource(
                url=link,
                title=item.get("title", ""),
                snippet=item.get("snippet", ""),
                published_hint=_published_hint(item),
            )
        )
    return candidates


async def _fetch_page(
    session: aiohttp.ClientSession,
    params: dict[str, Any],
) -> list[dict[str, Any]]:
    """Fetch one result page.

    Raises:
        SearchError: If API returns error status
    """
    async with session.get(SEARCH_URL, params=params) as resp:
        if resp.status == 403:
            raise SearchError("Google CSE API key invalid or quota exceeded")
        if resp.status != 200:
            raise SearchError(f"Google CSE API error: HTTP {resp.status}")
        data = await resp.json()

    if "error" in data:
        err = data["error"]
        message = err.get("message", "Unknown") if isinstance(err, dict) else str(err)
        raise SearchError(f"Google CSE error: {message}")
    return data.get("items", [])


async def search_sources(
    query: str,
    count: int,
    days_ago: int,
    *,
    api_key: str,
    engine_id: str,
    page_delay: float = 1.0,
    session: aiohttp.ClientSession | None = None,
) -> list[CandidateSource]:
    """Search for recent candidate pages.

    Args:
        query: Search query string
        count: Maximum number of results (capped at 100)
        days_ago: Recency window in days
        api_key: Google API key
        engine_id: Custom Search engine id
        page_delay: Pause between page requests in seconds
        session: Optional shared HTTP session (created and closed here if None)

    Returns:
        Candidate sources in provider order

    Raises:
        SearchError: If the API fails (hard error, don't retry)
    """
    total = min(count, MAX_RESULTS)
    owns_session = session is None
    if owns_session:
        connector = aiohttp.TCPConnector(ssl=create_ssl_context())
        session = aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": USER_AGENT},
            timeout=aiohttp.ClientTimeout(total=30),
        )

    items: list[dict[str, Any]] = []
    try:
        start = 1
        while len(items) < total:
            params = {
                "key": api_key,
                "cx": engine_id,
                "q": query,
                "num": min(PAGE_SIZE, total - len(items)),
                "start": start,
                "dateRestrict": f"d{days_ago}",
            }
            try:
                page = await _fetch_page(session, params)
            except aiohttp.ClientError as e:
                raise SearchError(f"Google CSE request failed: {e}") from e
            except asyncio.TimeoutError as e:
                raise SearchError("Google CSE request timed out") from e

            logger.debug("Search page fetched | start=%d items=%d", start, len(page))
            items.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE
            if len(items) < total and page_delay > 0:
                await asyncio.sleep(page_delay)
    finally:
        if owns_session:
            await session.close()

    candidates = _to_candidates(items[:total])
    logger.info("Search complete | query=%s results=%d", query[:50], len(candidates))
    return candidates
