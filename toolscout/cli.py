"""Command line entry point for Google/Bing searches."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from toolscout import __version__
from toolscout.config.loader import load_config
from toolscout.config.schema import SearchConfig
from toolscout.search.bing import search_bing
from toolscout.search.engine import get_search_page_html, perform_search
from toolscout.utils.log import setup_logging

CLI_DEFAULT_TIMEOUT_MS = 30000


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolscout-search",
        description="Playwright based Google search CLI",
    )
    parser.add_argument("query", help="search keywords")
    parser.add_argument("-l", "--limit", type=int, default=None, help="maximum number of results (default 10)")
    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=None,
        help=f"timeout in milliseconds (default {CLI_DEFAULT_TIMEOUT_MS})",
    )
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="deprecated: searches always start headless and switch to a visible browser on CAPTCHA",
    )
    parser.add_argument("--state-file", default=None, help="browser state file (default ./browser-state.json)")
    parser.add_argument("--no-save-state", action="store_true", help="do not save browser state")
    parser.add_argument("--locale", default=None, help="result language, e.g. zh-CN or en-US")
    parser.add_argument("--get-html", action="store_true", help="capture the results page HTML instead of parsing results")
    parser.add_argument("--save-html", action="store_true", help="save the captured HTML and a screenshot to files")
    parser.add_argument("--html-output", default=None, help="HTML output file path")
    parser.add_argument(
        "--engine",
        choices=("google", "bing"),
        default="google",
        help="google drives a browser; bing uses a single HTTP request",
    )
    parser.add_argument("--config", default=None, help="config file (default ~/.toolscout/config.json)")
    parser.add_argument("--log-level", default=None, help="console log level (default INFO or $LOG_LEVEL)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_search_config(args: argparse.Namespace) -> SearchConfig:
    """Config file values, then CLI flags on top."""
    config = load_config(Path(args.config) if args.config else None)
    overrides: dict[str, Any] = {
        "timeout_ms": args.timeout if args.timeout is not None else CLI_DEFAULT_TIMEOUT_MS,
    }
    if args.limit is not None:
        overrides["limit"] = args.limit
    if args.state_file:
        overrides["state_file"] = args.state_file
    if args.no_save_state:
        overrides["no_save_state"] = True
    if args.locale:
        overrides["locale"] = args.locale
    return SearchConfig.model_validate({**config.search.model_dump(), **overrides})


async def run(args: argparse.Namespace) -> dict[str, Any]:
    search_config = resolve_search_config(args)

    if args.engine == "bing":
        response = await search_bing(args.query, search_config.limit)
        return response.to_dict()

    if args.get_html:
        captured = await get_search_page_html(
            args.query,
            search_config,
            save_to_file=args.save_html,
            output_path=args.html_output,
        )
        if captured.saved_path:
            logger.info("HTML saved to {}", captured.saved_path)
        return captured.preview()

    response = await perform_search(args.query, search_config)
    return response.to_dict()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.no_headless:
        logger.warning("--no-headless is ignored: searches start headless and open a window only on CAPTCHA")

    try:
        output = asyncio.run(run(args))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
