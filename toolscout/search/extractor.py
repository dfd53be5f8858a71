"""Organic result extraction from a rendered search results page."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger

from toolscout.search.models import SearchResult

if TYPE_CHECKING:
    from playwright.async_api import Page

# (container, title, snippet), most specific first.
SELECTOR_SETS: tuple[dict[str, str], ...] = (
    {"container": "#search div[data-hveid]", "title": "h3", "snippet": ".VwiC3b"},
    {"container": "#rso div[data-hveid]", "title": "h3", "snippet": '[data-sncf="1"]'},
    {"container": ".g", "title": "h3", "snippet": 'div[style*="webkit-line-clamp"]'},
    {"container": "div[jscontroller][data-hveid]", "title": "h3", "snippet": 'div[role="text"]'},
)

ALTERNATIVE_SNIPPET_SELECTORS: tuple[str, ...] = (
    ".VwiC3b",
    '[data-sncf="1"]',
    'div[style*="webkit-line-clamp"]',
    'div[role="text"]',
)

# Anchors pointing back at the engine itself are never results.
EXCLUDED_LINK_FRAGMENTS: tuple[str, ...] = (
    "google.com/",
    "accounts.google",
    "support.google",
)

EXTRACT_RESULTS_JS = """
({ maxResults, selectorSets, altSnippetSelectors, excludedFragments }) => {
  const results = [];
  const seenUrls = new Set();
  const text = (el) => ((el && el.textContent) || "").trim();

  for (const selectors of selectorSets) {
    if (results.length >= maxResults) break;
    const containers = document.querySelectorAll(selectors.container);
    for (const container of containers) {
      if (results.length >= maxResults) break;
      const titleElement = container.querySelector(selectors.title);
      if (!titleElement) continue;
      const title = text(titleElement);

      let link = "";
      const linkInTitle = titleElement.querySelector("a");
      if (linkInTitle) {
        link = linkInTitle.href;
      } else {
        let current = titleElement;
        while (current && current.tagName !== "A") {
          current = current.parentElement;
        }
        if (current && current instanceof HTMLAnchorElement) {
          link = current.href;
        } else {
          const containerLink = container.querySelector("a");
          if (containerLink) link = containerLink.href;
        }
      }
      if (!link || !link.startsWith("http") || seenUrls.has(link)) continue;

      let snippet = "";
      const snippetElement = container.querySelector(selectors.snippet);
      if (snippetElement) {
        snippet = text(snippetElement);
      } else {
        for (const altSelector of altSnippetSelectors) {
          const element = container.querySelector(altSelector);
          if (element) {
            snippet = text(element);
            break;
          }
        }
        if (!snippet) {
          const blocks = Array.from(container.querySelectorAll("div")).filter(
            (el) => !el.querySelector(selectors.title) && text(el).length > 20
          );
          if (blocks.length > 0) snippet = text(blocks[0]);
        }
      }

      if (title && link) {
        results.push({ title, link, snippet });
        seenUrls.add(link);
      }
    }
  }

  if (results.length < maxResults) {
    for (const el of Array.from(document.querySelectorAll("a[href^='http']"))) {
      if (results.length >= maxResults) break;
      if (!(el instanceof HTMLAnchorElement)) continue;
      const link = el.href;
      if (!link || seenUrls.has(link)) continue;
      if (excludedFragments.some((fragment) => link.includes(fragment))) continue;
      const title = text(el);
      if (!title) continue;

      let snippet = "";
      let parent = el.parentElement;
      for (let i = 0; i < 3 && parent; i++) {
        const candidate = text(parent);
        if (candidate.length > 20 && candidate !== title) {
          snippet = candidate;
          break;
        }
        parent = parent.parentElement;
      }
      results.push({ title, link, snippet });
      seenUrls.add(link);
    }
  }

  return results.slice(0, maxResults);
}
"""


def normalize_results(raw: Any, limit: int) -> list[SearchResult]:
    """Coerce raw extractor output into unique, well-formed results, at most limit."""
    if limit <= 0 or not isinstance(raw, list):
        return []

    results: list[SearchResult] = []
    seen: set[str] = set()
    for item in raw:
        if len(results) >= limit:
            break
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        link = str(item.get("link") or "").strip()
        if not title or not link.startswith("http") or link in seen:
            continue
        seen.add(link)
        results.append(
            SearchResult(
                title=title,
                link=link,
                snippet=str(item.get("snippet") or "").strip(),
            )
        )
    return results


async def extract_results(page: "Page", limit: int) -> list[SearchResult]:
    """Run the in-page extractor and normalize what it returns."""
    if limit <= 0:
        return []

    raw = await page.evaluate(
        EXTRACT_RESULTS_JS,
        {
            "maxResults": limit,
            "selectorSets": list(SELECTOR_SETS),
            "altSnippetSelectors": list(ALTERNATIVE_SNIPPET_SELECTORS),
            "excludedFragments": list(EXCLUDED_LINK_FRAGMENTS),
        },
    )
    results = normalize_results(raw, limit)
    logger.info("Extracted {} search results", len(results))
    return results
