"""Browser-driven search automation."""

from toolscout.search.bing import search_bing
from toolscout.search.engine import GoogleSearcher, get_search_page_html, perform_search
from toolscout.search.models import (
    FingerprintConfig,
    HtmlCaptureResult,
    SearchError,
    SearchFailure,
    SearchResponse,
    SearchResult,
    SessionState,
)
from toolscout.search.state import FileSessionStore, MemorySessionStore, SessionStore

__all__ = [
    "GoogleSearcher",
    "perform_search",
    "get_search_page_html",
    "search_bing",
    "FingerprintConfig",
    "SessionState",
    "SearchResult",
    "SearchResponse",
    "SearchFailure",
    "HtmlCaptureResult",
    "SearchError",
    "SessionStore",
    "FileSessionStore",
    "MemorySessionStore",
]
