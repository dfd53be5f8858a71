"""Lightweight Bing search over plain HTTP, no browser required."""

import httpx
from bs4 import BeautifulSoup, Tag
from loguru import logger

from toolscout.search.models import SearchError, SearchResponse, SearchResult

BING_SEARCH_URL = "https://cn.bing.com/search"
BING_ORIGIN = "https://cn.bing.com"
DESKTOP_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def _text(element: Tag | None) -> str:
    if element is None:
        return ""
    return " ".join(element.get_text().split())


def parse_bing_results(page: str, limit: int) -> list[SearchResult]:
    """Parse organic results out of a Bing results page."""
    soup = BeautifulSoup(page, "html.parser")
    results: list[SearchResult] = []
    seen: set[str] = set()
    for block in soup.find_all("li", class_="b_algo"):
        if len(results) >= limit:
            break
        anchor = block.select_one("h2 > a[href]") or block.find("a", href=True)
        if anchor is None:
            continue

        link = anchor["href"]
        if not link.startswith("http"):
            link = f"{BING_ORIGIN}{link}"
        title = _text(anchor)
        if not title or link in seen:
            continue

        snippet = _text(block.select_one(".b_caption p") or block.find("p"))
        seen.add(link)
        results.append(SearchResult(title=title, link=link, snippet=snippet))
    return results


async def search_bing(query: str, limit: int = 5, *, timeout: float = 10.0) -> SearchResponse:
    """Search Bing with a single GET and normalize the results."""
    if limit <= 0:
        return SearchResponse(query=query, results=[])

    logger.info("Bing search for {!r}", query)
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                BING_SEARCH_URL,
                params={"q": query, "count": limit},
                headers={"User-Agent": DESKTOP_USER_AGENT},
                timeout=timeout,
                follow_redirects=True,
            )
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise SearchError("search_failed", f"bing search failed: {e}") from e

    results = parse_bing_results(response.text, limit)
    logger.info("Bing returned {} results", len(results))
    return SearchResponse(query=query, results=results)
