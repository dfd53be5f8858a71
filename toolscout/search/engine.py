"""Google search automation with headless-first CAPTCHA escalation.

A search runs headless first. When a block page (``/sorry``, reCAPTCHA, ...)
shows up at any checkpoint the attempt is torn down and the whole procedure
restarts in a visible browser, where a person can clear the challenge. Once
headed, block pages are handled by waiting for the URL to leave the block
page. Session state is persisted on every exit path.
"""

from __future__ import annotations

import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from toolscout.config.schema import SearchConfig
from toolscout.search.blocking import block_reason, is_blocked_page, is_blocked_url
from toolscout.search.capture import default_output_path, sanitize_html, save_capture
from toolscout.search.extractor import extract_results
from toolscout.search.fingerprint import (
    SEARCH_DEVICE_NAME,
    get_host_machine_config,
    host_device_name,
)
from toolscout.search.launcher import StealthLauncher, build_context_options, open_stealth_page
from toolscout.search.models import (
    FingerprintConfig,
    HtmlCaptureResult,
    SearchError,
    SearchFailure,
    SearchResponse,
    SearchResult,
    SessionState,
)
from toolscout.search.state import FileSessionStore, SessionStore

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page

T = TypeVar("T")

SEARCH_INPUT_SELECTORS: tuple[str, ...] = (
    "textarea[name='q']",
    "input[name='q']",
    "textarea[title='Search']",
    "input[title='Search']",
    "textarea[aria-label='Search']",
    "input[aria-label='Search']",
    "textarea",
)

RESULT_CONTAINER_SELECTORS: tuple[str, ...] = (
    "#search",
    "#rso",
    ".g",
    "[data-sokoban-container]",
    "div[role='main']",
)

FAILED_RESULT_TITLE = "Search failed"


class _BlockedWhileHeadless(Exception):
    """A headless attempt reached a block page and must restart headed."""


@dataclass
class BrowserSession:
    """Browser, context and page used by one attempt."""

    browser: "Browser"
    owns_browser: bool
    headless: bool
    context: "BrowserContext | None" = None
    page: "Page | None" = None


class GoogleSearcher:
    """Runs one query against Google through a stealth Chromium session."""

    def __init__(
        self,
        config: SearchConfig | None = None,
        *,
        store: SessionStore | None = None,
        launcher: StealthLauncher | None = None,
        browser: "Browser | None" = None,
        rng: random.Random | None = None,
    ):
        self.config = config or SearchConfig()
        self.store: SessionStore = store or FileSessionStore(self.config.state_file)
        self._owns_launcher = launcher is None
        self.launcher = launcher or StealthLauncher(auto_install=self.config.auto_install_browsers)
        self._external_browser = browser
        self._rng = rng or random.Random()

    async def search(self, query: str) -> SearchResponse:
        """Search and extract results. Raises SearchError on failure."""

        async def finish(page: "Page") -> list[SearchResult]:
            await page.wait_for_timeout(self._delay(200, 500))
            return await extract_results(page, self.config.limit)

        results = await self._run(query, finish)
        return SearchResponse(query=query, results=results)

    async def capture_html(
        self,
        query: str,
        *,
        save_to_file: bool = False,
        output_path: str | Path | None = None,
    ) -> HtmlCaptureResult:
        """Search and capture the sanitized results page. Raises SearchError on failure."""

        async def finish(page: "Page") -> HtmlCaptureResult:
            final_url = page.url
            logger.info("Results page loaded at {}, capturing HTML", final_url)
            await page.wait_for_timeout(1000)
            await page.wait_for_load_state("networkidle", timeout=self.config.timeout_ms)

            full_html = await page.content()
            if not full_html or "<body" not in full_html.lower():
                raise SearchError("body_not_found", "page has no HTML body")

            html = sanitize_html(full_html)
            logger.info(
                "Captured HTML: {} chars, {} after cleaning",
                len(full_html),
                len(html),
            )

            saved_path: str | None = None
            screenshot_path: str | None = None
            if save_to_file:
                target = (
                    Path(output_path)
                    if output_path
                    else default_output_path(query, self.config.html_output_dir)
                )
                html_file, png_file = await save_capture(page, html, target)
                saved_path, screenshot_path = str(html_file), str(png_file)

            return HtmlCaptureResult(
                query=query,
                html=html,
                url=final_url,
                original_html_length=len(full_html),
                saved_path=saved_path,
                screenshot_path=screenshot_path,
            )

        return await self._run(query, finish)

    async def _run(self, query: str, finish: Callable[["Page"], Awaitable[T]]) -> T:
        logger.info(
            "Starting search for {!r} (limit={}, timeout={}ms)",
            query,
            self.config.limit,
            self.config.timeout_ms,
        )
        try:
            state, fingerprint = self._resolve_state()
            return await self._run_attempts(query, state, fingerprint, finish)
        except SearchError:
            raise
        except Exception as e:
            raise SearchError("search_failed", str(e) or type(e).__name__) from e
        finally:
            if self._owns_launcher:
                await self._stop_launcher()

    async def _run_attempts(
        self,
        query: str,
        state: SessionState,
        fingerprint: FingerprintConfig,
        finish: Callable[["Page"], Awaitable[T]],
    ) -> T:
        headless = True
        browser = self._external_browser
        owns_browser = browser is None
        if browser is not None:
            logger.info("Using caller-supplied browser")

        while True:
            if browser is None:
                browser = await self._launch(headless=headless)
                owns_browser = True

            session = BrowserSession(browser=browser, owns_browser=owns_browser, headless=headless)
            try:
                return await self._attempt(session, state, fingerprint, query, finish)
            except _BlockedWhileHeadless:
                browser = await self.escalate_to_headed(session)
                owns_browser = True
                headless = False

    async def escalate_to_headed(self, session: BrowserSession) -> "Browser":
        """Drop the headless browser and launch a visible one.

        A caller-supplied browser is left open; only the reference is discarded.
        """
        if session.owns_browser:
            await self._close_browser(session.browser)
        else:
            logger.info("Leaving caller-supplied browser open, launching a separate headed browser")
        return await self._launch(headless=False)

    async def _attempt(
        self,
        session: BrowserSession,
        state: SessionState,
        fingerprint: FingerprintConfig,
        query: str,
        finish: Callable[["Page"], Awaitable[T]],
    ) -> T:
        escalating = False
        try:
            context_options = await self._context_options(fingerprint)
            session.context, session.page = await open_stealth_page(session.browser, context_options)
            page = session.page

            await self._open_home(page, state, session.headless)
            await self._submit_query(page, query, session.headless)
            await self._wait_for_results(page, session.headless)
            return await finish(page)
        except _BlockedWhileHeadless:
            escalating = True
            raise
        except Exception as e:
            logger.error("Search attempt failed: {}", e)
            raise
        finally:
            await self._persist(session, state)
            await self._release(session, keep_browser=escalating)

    def _resolve_state(self) -> tuple[SessionState, FingerprintConfig]:
        state = self.store.load()

        fingerprint = state.fingerprint
        if fingerprint is None:
            fingerprint = state.fingerprint = get_host_machine_config(self.config.locale)
            logger.info(
                "Generated fingerprint: locale={}, timezone={}, colorScheme={}, device={} (host profile {})",
                fingerprint.locale,
                fingerprint.timezone_id,
                fingerprint.color_scheme,
                fingerprint.device_name,
                host_device_name(),
            )
        else:
            logger.info("Using saved fingerprint")

        if state.search_domain:
            logger.info("Using saved search domain {}", state.search_domain)
        else:
            state.search_domain = self._rng.choice(self.config.search_domains)
            logger.info("Picked search domain {}", state.search_domain)

        return state, fingerprint

    async def _context_options(self, fingerprint: FingerprintConfig) -> dict[str, Any]:
        device = await self.launcher.device(fingerprint.device_name)
        if device is None:
            fallback = self._rng.choice(self.config.device_names or [SEARCH_DEVICE_NAME])
            logger.warning(
                "Unknown device profile {!r}, using {}",
                fingerprint.device_name,
                fallback,
            )
            device = await self.launcher.device(fallback) or {}

        storage_state = self.store.storage_state()
        if storage_state:
            logger.info("Loading saved browser state")
        return build_context_options(device, fingerprint, storage_state)

    async def _launch(self, *, headless: bool) -> "Browser":
        try:
            return await self.launcher.launch(headless=headless, timeout_ms=self.config.timeout_ms)
        except Exception as e:
            logger.error("Browser launch failed: {}", e)
            raise SearchError("launch_failed", f"browser launch failed: {e}") from e

    async def _open_home(self, page: "Page", state: SessionState, headless: bool) -> None:
        domain = state.search_domain
        logger.info("Opening {}", domain)
        try:
            response = await page.goto(
                domain,
                timeout=self.config.timeout_ms,
                wait_until="networkidle",
            )
        except PlaywrightError as e:
            raise SearchError("navigation_failed", f"could not open {domain}: {e}") from e

        await self._checkpoint(
            page,
            headless,
            stage="on the home page",
            response_url=response.url if response else None,
        )

    async def _submit_query(self, page: "Page", query: str, headless: bool) -> None:
        search_input = None
        for selector in SEARCH_INPUT_SELECTORS:
            search_input = await page.query_selector(selector)
            if search_input:
                logger.info("Found search input {}", selector)
                break

        if not search_input:
            raise SearchError("input_not_found", "search input not found")

        logger.info("Typing query {!r}", query)
        await search_input.click()
        await page.keyboard.type(query, delay=self._delay(10, 30))
        await page.wait_for_timeout(self._delay(100, 300))
        await page.keyboard.press("Enter")

        logger.info("Waiting for the results page to load")
        await self._wait_for_network_idle(page)
        if await self._checkpoint(page, headless, stage="after submitting the query"):
            await self._wait_for_network_idle(page)

    async def _wait_for_results(self, page: "Page", headless: bool) -> None:
        logger.info("Waiting for results at {}", page.url)
        if await self._wait_for_result_container(page):
            return

        if not is_blocked_url(page.url, self.config.block_patterns):
            raise SearchError("results_not_found", "no results element found")

        await self._checkpoint(page, headless, stage="while waiting for results")
        if not await self._wait_for_result_container(page):
            raise SearchError("results_not_found", "no results element found")

    async def _wait_for_result_container(self, page: "Page") -> bool:
        for selector in RESULT_CONTAINER_SELECTORS:
            try:
                await page.wait_for_selector(selector, timeout=self.config.timeout_ms / 2)
            except PlaywrightTimeoutError:
                continue
            logger.info("Found results container {}", selector)
            return True
        return False

    async def _wait_for_network_idle(self, page: "Page") -> None:
        try:
            await page.wait_for_load_state("networkidle", timeout=self.config.timeout_ms)
        except PlaywrightError as e:
            raise SearchError("navigation_failed", f"page did not finish loading: {e}") from e

    async def _checkpoint(
        self,
        page: "Page",
        headless: bool,
        *,
        stage: str,
        response_url: str | None = None,
    ) -> bool:
        """Handle a block page. Returns True if a manual verification was awaited."""
        patterns = self.config.block_patterns
        if not is_blocked_page(page.url, response_url, patterns):
            return False

        reason = block_reason(page.url, patterns) or block_reason(response_url, patterns)
        if headless:
            logger.warning("Block page ({}) detected {}, restarting in headed mode", reason, stage)
            raise _BlockedWhileHeadless(stage)

        logger.warning("Block page ({}) detected {}, complete the verification in the browser", reason, stage)
        await page.wait_for_url(
            lambda url: not is_blocked_url(url, patterns),
            timeout=self.config.timeout_ms * 2,
        )
        logger.info("Verification completed, continuing")
        return True

    async def _persist(self, session: BrowserSession, state: SessionState) -> None:
        if self.config.no_save_state:
            logger.info("State saving disabled, not persisting browser state")
            return
        if session.context is None:
            return
        await self.store.save(session.context, state)

    async def _release(self, session: BrowserSession, *, keep_browser: bool) -> None:
        if session.context is not None:
            try:
                await session.context.close()
            except Exception as e:
                logger.warning("Failed to close browser context: {}", e)
        session.context = None
        session.page = None

        if keep_browser:
            return
        if session.owns_browser:
            await self._close_browser(session.browser)
        else:
            logger.info("Keeping caller-supplied browser open")

    async def _close_browser(self, browser: "Browser") -> None:
        logger.info("Closing browser")
        try:
            await browser.close()
        except Exception as e:
            logger.warning("Failed to close browser: {}", e)

    async def _stop_launcher(self) -> None:
        try:
            await self.launcher.stop()
        except Exception as e:
            logger.warning("Failed to stop Playwright: {}", e)

    def _delay(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)


def failed_response(query: str, error: SearchError) -> SearchResponse:
    """Degraded response carrying the failure as its only result."""
    return SearchResponse(
        query=query,
        results=[
            SearchResult(
                title=FAILED_RESULT_TITLE,
                link="",
                snippet=f"Search could not be completed: {error.message}",
            )
        ],
        failure=SearchFailure(kind=error.kind, message=error.message),
    )


async def perform_search(
    query: str,
    options: SearchConfig | None = None,
    browser: "Browser | None" = None,
    *,
    store: SessionStore | None = None,
    launcher: StealthLauncher | None = None,
) -> SearchResponse:
    """Search Google and return results. Never raises.

    On failure the response holds a single "Search failed" result and its
    ``failure`` field is set; check ``response.ok`` rather than the result list.
    """
    searcher = GoogleSearcher(options, store=store, launcher=launcher, browser=browser)
    try:
        return await searcher.search(query)
    except SearchError as e:
        logger.error("Search for {!r} failed: {}", query, e.message)
        return failed_response(query, e)


async def get_search_page_html(
    query: str,
    options: SearchConfig | None = None,
    *,
    save_to_file: bool = False,
    output_path: str | Path | None = None,
    browser: "Browser | None" = None,
    store: SessionStore | None = None,
    launcher: StealthLauncher | None = None,
) -> HtmlCaptureResult:
    """Search Google and return the sanitized results page. Raises SearchError."""
    searcher = GoogleSearcher(options, store=store, launcher=launcher, browser=browser)
    return await searcher.capture_html(query, save_to_file=save_to_file, output_path=output_path)
