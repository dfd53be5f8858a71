import httpx
import pytest

from toolscout.search.bing import parse_bing_results, search_bing
from toolscout.search.models import SearchError

BING_PAGE = """
<ol id="b_results">
<li class="b_algo"><h2><a href="https://jobtool.example/" h="ID=1">Job<strong>Tool</strong> &amp; Co</a></h2>
<div class="b_caption"><p>AI powered job search assistant.</p></div></li>
<li class="b_algo"><h2><a href="/ck/a?u=abc">Relative Result</a></h2></li>
<li class="b_algo"><h2><a href="https://jobtool.example/">Duplicate</a></h2></li>
<li class="b_algo"><h2><a href="https://third.example/"></a></h2></li>
<li class="b_algo"><h2><a href="https://fourth.example/">Fourth</a></h2><p>More text</p></li>
</ol>
"""


class FakeResponse:
    def __init__(self, text: str, error: Exception | None = None):
        self.text = text
        self._error = error

    def raise_for_status(self) -> None:
        if self._error:
            raise self._error


def test_parse_bing_results() -> None:
    results = parse_bing_results(BING_PAGE, 10)

    assert [(r.title, r.link) for r in results] == [
        ("JobTool & Co", "https://jobtool.example/"),
        ("Relative Result", "https://cn.bing.com/ck/a?u=abc"),
        ("Fourth", "https://fourth.example/"),
    ]
    assert results[0].snippet == "AI powered job search assistant."
    assert results[1].snippet == ""


def test_parse_bing_results_keeps_snippet_after_nested_deep_links() -> None:
    page = """
    <li class="b_algo"><h2><a href="https://a.example/">Tool A</a></h2>
    <ul class="b_vList"><li><a href="https://a.example/pricing">Pricing</a></li>
    <li><a href="https://a.example/docs">Docs</a></li></ul>
    <div class="b_caption"><p>AI job search assistant for engineers</p></div></li>
    """

    results = parse_bing_results(page, 5)

    assert len(results) == 1
    assert results[0].title == "Tool A"
    assert results[0].link == "https://a.example/"
    assert results[0].snippet == "AI job search assistant for engineers"


def test_parse_bing_results_limit() -> None:
    assert len(parse_bing_results(BING_PAGE, 1)) == 1


@pytest.mark.asyncio
async def test_search_bing_success(monkeypatch) -> None:
    calls: dict = {}

    class StubClient:
        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def get(self, url, params=None, headers=None, timeout=None, follow_redirects=None):
            calls["url"] = url
            calls["params"] = params
            calls["headers"] = headers
            return FakeResponse(BING_PAGE)

    monkeypatch.setattr("toolscout.search.bing.httpx.AsyncClient", StubClient)

    response = await search_bing("ai job search", 2)

    assert response.query == "ai job search"
    assert len(response.results) == 2
    assert calls["url"] == "https://cn.bing.com/search"
    assert calls["params"] == {"q": "ai job search", "count": 2}
    assert "Mozilla/5.0" in calls["headers"]["User-Agent"]


@pytest.mark.asyncio
async def test_search_bing_http_error(monkeypatch) -> None:
    class StubClient:
        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def get(self, url, **kwargs):
            request = httpx.Request("GET", url)
            response = httpx.Response(503, request=request)
            return FakeResponse(
                "",
                httpx.HTTPStatusError("service unavailable", request=request, response=response),
            )

    monkeypatch.setattr("toolscout.search.bing.httpx.AsyncClient", StubClient)

    with pytest.raises(SearchError) as exc_info:
        await search_bing("q", 3)

    assert exc_info.value.kind == "search_failed"
    assert "service unavailable" in str(exc_info.value)


@pytest.mark.asyncio
async def test_search_bing_zero_limit_skips_request(monkeypatch) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr("toolscout.search.bing.httpx.AsyncClient", fail)

    response = await search_bing("q", 0)
    assert response.results == []
