"""Persistence of browser storage state and fingerprint between runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

from toolscout.search.models import SessionState

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext


def fingerprint_path_for(state_path: Path) -> Path:
    """browser-state.json -> browser-state-fingerprint.json"""
    if state_path.suffix == ".json":
        return state_path.with_name(f"{state_path.stem}-fingerprint.json")
    return state_path.with_name(f"{state_path.name}-fingerprint.json")


class SessionStore(Protocol):
    """Where a search session keeps its cookies, fingerprint and domain."""

    def load(self) -> SessionState: ...

    def storage_state(self) -> str | dict[str, Any] | None: ...

    async def save(self, context: "BrowserContext", state: SessionState) -> None: ...


class FileSessionStore:
    """Store state in a Playwright storage-state file plus a JSON fingerprint companion.

    Writes are whole-file overwrites with no locking; concurrent sessions sharing a
    path race and the last writer wins.
    """

    def __init__(self, state_path: str | Path):
        self.state_path = Path(state_path)
        self.fingerprint_path = fingerprint_path_for(self.state_path)

    def load(self) -> SessionState:
        if not self.state_path.exists():
            logger.info("No browser state at {}, starting a new session", self.state_path)
            return SessionState()

        logger.info("Reusing browser state from {}", self.state_path)
        if not self.fingerprint_path.exists():
            return SessionState()

        try:
            data = json.loads(self.fingerprint_path.read_text(encoding="utf-8"))
            state = SessionState.from_dict(data)
        except (OSError, ValueError) as e:
            logger.warning(
                "Could not load fingerprint from {}, a new one will be generated: {}",
                self.fingerprint_path,
                e,
            )
            return SessionState()

        logger.info("Loaded saved fingerprint from {}", self.fingerprint_path)
        return state

    def storage_state(self) -> str | None:
        if self.state_path.exists():
            return str(self.state_path)
        return None

    async def save(self, context: "BrowserContext", state: SessionState) -> None:
        """Best effort: failures are logged and never raised."""
        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            await context.storage_state(path=str(self.state_path))
            logger.info("Browser state saved to {}", self.state_path)
        except Exception as e:
            logger.error("Failed to save browser state to {}: {}", self.state_path, e)
            return

        try:
            self.fingerprint_path.write_text(
                json.dumps(state.to_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            logger.info("Fingerprint saved to {}", self.fingerprint_path)
        except OSError as e:
            logger.error("Failed to save fingerprint to {}: {}", self.fingerprint_path, e)


class MemorySessionStore:
    """In-process store, mostly for tests and embedding."""

    def __init__(self, state: SessionState | None = None):
        self.state = state
        self.cookies: dict[str, Any] | None = None
        self.saves = 0

    def load(self) -> SessionState:
        if self.state is None:
            return SessionState()
        return SessionState(
            fingerprint=self.state.fingerprint,
            search_domain=self.state.search_domain,
        )

    def storage_state(self) -> dict[str, Any] | None:
        return self.cookies

    async def save(self, context: "BrowserContext", state: SessionState) -> None:
        try:
            self.cookies = await context.storage_state()
        except Exception as e:
            logger.error("Failed to capture browser state: {}", e)
            return
        self.state = SessionState(fingerprint=state.fingerprint, search_domain=state.search_domain)
        self.saves += 1
