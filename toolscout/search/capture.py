"""Sanitized HTML and screenshot capture of a results page."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from playwright.async_api import Page

_STYLE_BLOCK_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_STYLESHEET_LINK_RE = re.compile(r"""<link\s+[^>]*rel=["']stylesheet["'][^>]*>""", re.IGNORECASE)
_SCRIPT_BLOCK_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)


def sanitize_html(html: str) -> str:
    """Strip <style> blocks, stylesheet links and <script> blocks.

    Pattern based, not a parser: output is not guaranteed to be well formed and
    this must not be relied on to neutralize hostile markup.
    """
    cleaned = _STYLE_BLOCK_RE.sub("", html)
    cleaned = _STYLESHEET_LINK_RE.sub("", cleaned)
    return _SCRIPT_BLOCK_RE.sub("", cleaned)


def sanitize_query_for_filename(query: str, max_chars: int = 50) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", query)[:max_chars]


def default_output_path(
    query: str,
    output_dir: str | Path,
    *,
    now: datetime | None = None,
) -> Path:
    """<output_dir>/<sanitized-query>-<timestamp>.html"""
    moment = now or datetime.now(timezone.utc)
    iso = moment.isoformat(timespec="milliseconds")
    if iso.endswith("+00:00"):
        iso = iso[: -len("+00:00")] + "Z"
    timestamp = iso.replace(":", "-").replace(".", "-")
    return Path(output_dir) / f"{sanitize_query_for_filename(query)}-{timestamp}.html"


def screenshot_path_for(html_path: Path) -> Path:
    if html_path.suffix == ".html":
        return html_path.with_suffix(".png")
    return html_path.with_name(f"{html_path.name}.png")


async def save_capture(page: "Page", html: str, output_path: Path) -> tuple[Path, Path]:
    """Write the cleaned HTML and a full-page screenshot next to it."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")
    logger.info("Cleaned HTML saved to {}", output_path)

    screenshot_path = screenshot_path_for(output_path)
    await page.screenshot(path=str(screenshot_path), full_page=True)
    logger.info("Screenshot saved to {}", screenshot_path)
    return output_path, screenshot_path
