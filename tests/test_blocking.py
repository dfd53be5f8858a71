import pytest

from toolscout.config.schema import DEFAULT_BLOCK_PATTERNS
from toolscout.search.blocking import block_reason, is_blocked_page, is_blocked_url


@pytest.mark.parametrize("pattern", DEFAULT_BLOCK_PATTERNS)
def test_each_pattern_triggers_block(pattern) -> None:
    url = f"https://www.example.com/path?{pattern}"
    assert is_blocked_url(url) is True


def test_sorry_page_is_blocked() -> None:
    url = "https://www.google.com/sorry/index?continue=https://www.google.com/search%3Fq%3Dx"
    assert block_reason(url) == "google.com/sorry/index"


@pytest.mark.parametrize(
    "url",
    [
        "https://www.google.com/search?q=python",
        "https://www.google.co.uk/",
        "https://github.com/org/repo",
        "",
        None,
    ],
)
def test_clean_urls_are_not_blocked(url) -> None:
    assert is_blocked_url(url) is False


def test_matching_is_case_sensitive() -> None:
    assert is_blocked_url("https://example.com/CAPTCHA") is False


def test_response_url_is_checked_too() -> None:
    assert is_blocked_page("https://www.google.com/", "https://www.google.com/sorry/index") is True
    assert is_blocked_page("https://www.google.com/", None) is False


def test_custom_patterns() -> None:
    assert is_blocked_url("https://bing.com/challenge", ["challenge"]) is True
    assert is_blocked_url("https://www.google.com/sorry", ["challenge"]) is False
