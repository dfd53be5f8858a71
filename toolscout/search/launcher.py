"""Chromium launcher that hides the usual automation signals."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, Any

from loguru import logger

from toolscout.search.models import FingerprintConfig

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

STEALTH_ARGS: tuple[str, ...] = (
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-site-isolation-trials",
    "--disable-web-security",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--hide-scrollbars",
    "--mute-audio",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-component-extensions-with-background-pages",
    "--disable-extensions",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
    "--disable-renderer-backgrounding",
    "--enable-features=NetworkService,NetworkServiceInProcess",
    "--force-color-profile=srgb",
    "--metrics-recording-only",
)

IGNORED_DEFAULT_ARGS: tuple[str, ...] = ("--enable-automation",)

CONTEXT_INIT_SCRIPT = """
() => {
  Object.defineProperty(navigator, "webdriver", { get: () => false });
  Object.defineProperty(navigator, "plugins", { get: () => [1, 2, 3, 4, 5] });
  Object.defineProperty(navigator, "languages", { get: () => ["en-US", "en", "zh-CN"] });

  window.chrome = {
    runtime: {},
    loadTimes: function () {},
    csi: function () {},
    app: {},
  };

  if (typeof WebGLRenderingContext !== "undefined") {
    const getParameter = WebGLRenderingContext.prototype.getParameter;
    WebGLRenderingContext.prototype.getParameter = function (parameter) {
      if (parameter === 37445) {
        return "Intel Inc.";
      }
      if (parameter === 37446) {
        return "Intel Iris OpenGL Engine";
      }
      return getParameter.call(this, parameter);
    };
  }
}
"""

PAGE_INIT_SCRIPT = """
() => {
  Object.defineProperty(window.screen, "width", { get: () => 1920 });
  Object.defineProperty(window.screen, "height", { get: () => 1080 });
  Object.defineProperty(window.screen, "colorDepth", { get: () => 24 });
  Object.defineProperty(window.screen, "pixelDepth", { get: () => 24 });
}
"""

_MISSING_BROWSER_PATTERNS = (
    "executable doesn't exist",
    "please run the following command",
    "browser has not been found",
)
_INSTALL_LOCK = asyncio.Lock()
_INSTALL_TIMEOUT_S = 10 * 60


def is_missing_browser_error(exc: Exception) -> bool:
    """Detect launch failures caused by a missing Chromium binary."""
    text = str(exc).lower()
    return any(p in text for p in _MISSING_BROWSER_PATTERNS)


async def install_chromium(*, timeout_s: int = _INSTALL_TIMEOUT_S) -> tuple[bool, str]:
    """Run `python -m playwright install chromium` once at a time."""
    async with _INSTALL_LOCK:
        logger.info("Chromium not found, running playwright install chromium")
        process = await asyncio.create_subprocess_exec(
            sys.executable,
            "-m",
            "playwright",
            "install",
            "chromium",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        try:
            output, _ = await asyncio.wait_for(process.communicate(), timeout=timeout_s)
        except asyncio.TimeoutError:
            process.kill()
            return False, f"playwright install timed out after {timeout_s}s"

        text = output.decode("utf-8", errors="replace").strip()
        if len(text) > 4000:
            text = text[-4000:]
        if process.returncode == 0:
            return True, text or "chromium installed"
        return False, text or f"playwright install exited with code {process.returncode}"


def build_context_options(
    device: dict[str, Any],
    fingerprint: FingerprintConfig,
    storage_state: str | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Merge a device descriptor, the fingerprint and the fixed desktop overrides."""
    options = {k: v for k, v in device.items() if k != "default_browser_type"}
    options.update(
        {
            "locale": fingerprint.locale,
            "timezone_id": fingerprint.timezone_id,
            "color_scheme": fingerprint.color_scheme,
            "reduced_motion": fingerprint.reduced_motion,
            "forced_colors": fingerprint.forced_colors,
            "permissions": ["geolocation", "notifications"],
            "accept_downloads": True,
            "is_mobile": False,
            "has_touch": False,
            "java_script_enabled": True,
        }
    )
    if storage_state:
        options["storage_state"] = storage_state
    return options


async def open_stealth_page(
    browser: "Browser",
    context_options: dict[str, Any],
) -> tuple["BrowserContext", "Page"]:
    """Create a context and page with the stealth overrides installed."""
    context = await browser.new_context(**context_options)
    try:
        await context.add_init_script(script=_as_iife(CONTEXT_INIT_SCRIPT))
        page = await context.new_page()
        await page.add_init_script(script=_as_iife(PAGE_INIT_SCRIPT))
    except Exception:
        await context.close()
        raise
    return context, page


def _as_iife(source: str) -> str:
    return f"({source.strip()})();"


class StealthLauncher:
    """Owns the Playwright driver and launches Chromium with stealth flags."""

    def __init__(self, *, auto_install: bool = True):
        self.auto_install = auto_install
        self._manager: Any = None
        self._playwright: "Playwright | None" = None

    async def start(self) -> "Playwright":
        if self._playwright is None:
            from playwright.async_api import async_playwright

            self._manager = async_playwright()
            self._playwright = await self._manager.start()
        return self._playwright

    async def stop(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
        self._playwright = None
        self._manager = None

    async def device(self, name: str) -> dict[str, Any] | None:
        playwright = await self.start()
        descriptor = playwright.devices.get(name)
        return dict(descriptor) if descriptor else None

    async def launch(self, *, headless: bool, timeout_ms: int) -> "Browser":
        """Launch Chromium; the launch timeout is double the search timeout."""
        logger.info("Launching browser in {} mode", "headless" if headless else "headed")
        try:
            browser = await self._launch_once(headless=headless, timeout_ms=timeout_ms)
        except Exception as first_error:
            if not self.auto_install or not is_missing_browser_error(first_error):
                raise
            ok, details = await install_chromium()
            if not ok:
                raise RuntimeError(f"{first_error}\nbrowser install failed: {details}") from first_error
            browser = await self._launch_once(headless=headless, timeout_ms=timeout_ms)
        logger.info("Browser launched")
        return browser

    async def _launch_once(self, *, headless: bool, timeout_ms: int) -> "Browser":
        playwright = await self.start()
        return await playwright.chromium.launch(
            headless=headless,
            timeout=timeout_ms * 2,
            args=list(STEALTH_ARGS),
            ignore_default_args=list(IGNORED_DEFAULT_ARGS),
        )
