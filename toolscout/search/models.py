"""Shared search models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

ColorScheme = Literal["dark", "light"]
ReducedMotion = Literal["reduce", "no-preference"]
ForcedColors = Literal["active", "none"]

SearchErrorKind = Literal[
    "launch_failed",
    "navigation_failed",
    "input_not_found",
    "results_not_found",
    "body_not_found",
    "search_failed",
]


class SearchError(Exception):
    """Raised when a search or page capture cannot be completed."""

    def __init__(self, kind: SearchErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(slots=True, frozen=True)
class FingerprintConfig:
    """Browser identity presented to the search engine."""

    device_name: str
    locale: str
    timezone_id: str
    color_scheme: ColorScheme
    reduced_motion: ReducedMotion = "no-preference"
    forced_colors: ForcedColors = "none"

    def to_dict(self) -> dict[str, Any]:
        return {
            "deviceName": self.device_name,
            "locale": self.locale,
            "timezoneId": self.timezone_id,
            "colorScheme": self.color_scheme,
            "reducedMotion": self.reduced_motion,
            "forcedColors": self.forced_colors,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FingerprintConfig":
        if not isinstance(data, dict):
            raise ValueError("fingerprint must be an object")

        required = ("deviceName", "locale", "timezoneId", "colorScheme")
        missing = [key for key in required if not data.get(key)]
        if missing:
            raise ValueError(f"fingerprint is missing {', '.join(missing)}")

        color_scheme = str(data["colorScheme"])
        if color_scheme not in ("dark", "light"):
            raise ValueError("colorScheme must be 'dark' or 'light'")

        reduced_motion = str(data.get("reducedMotion") or "no-preference")
        if reduced_motion not in ("reduce", "no-preference"):
            raise ValueError("reducedMotion must be 'reduce' or 'no-preference'")

        forced_colors = str(data.get("forcedColors") or "none")
        if forced_colors not in ("active", "none"):
            raise ValueError("forcedColors must be 'active' or 'none'")

        return cls(
            device_name=str(data["deviceName"]),
            locale=str(data["locale"]),
            timezone_id=str(data["timezoneId"]),
            color_scheme=color_scheme,  # type: ignore[arg-type]
            reduced_motion=reduced_motion,  # type: ignore[arg-type]
            forced_colors=forced_colors,  # type: ignore[arg-type]
        )


@dataclass(slots=True)
class SessionState:
    """Fingerprint and search domain reused across runs of one state file."""

    fingerprint: FingerprintConfig | None = None
    search_domain: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.fingerprint is not None:
            data["fingerprint"] = self.fingerprint.to_dict()
        if self.search_domain:
            data["googleDomain"] = self.search_domain
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionState":
        if not isinstance(data, dict):
            raise ValueError("session state must be an object")

        raw_fingerprint = data.get("fingerprint")
        fingerprint = (
            FingerprintConfig.from_dict(raw_fingerprint) if raw_fingerprint is not None else None
        )
        domain = data.get("googleDomain")
        return cls(
            fingerprint=fingerprint,
            search_domain=str(domain) if domain else None,
        )


@dataclass(slots=True)
class SearchResult:
    """Single organic search result."""

    title: str
    link: str
    snippet: str = ""


@dataclass(slots=True)
class SearchFailure:
    """Failure tag attached to a degraded search response."""

    kind: SearchErrorKind
    message: str


@dataclass(slots=True)
class SearchResponse:
    """Results for one query, in extraction order."""

    query: str
    results: list[SearchResult] = field(default_factory=list)
    failure: SearchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "query": self.query,
            "results": [asdict(item) for item in self.results],
        }
        if self.failure is not None:
            data["error"] = asdict(self.failure)
        return data


@dataclass(slots=True)
class HtmlCaptureResult:
    """Sanitized search result page HTML and optional saved artifacts."""

    query: str
    html: str
    url: str
    original_html_length: int
    saved_path: str | None = None
    screenshot_path: str | None = None

    @property
    def cleaned_html_length(self) -> int:
        return len(self.html)

    def preview(self, max_chars: int = 500) -> dict[str, Any]:
        """Console-safe summary; the full HTML is never included."""
        html_preview = self.html[:max_chars]
        if len(self.html) > max_chars:
            html_preview += "..."
        return {
            "query": self.query,
            "url": self.url,
            "originalHtmlLength": self.original_html_length,
            "cleanedHtmlLength": self.cleaned_html_length,
            "savedPath": self.saved_path,
            "screenshotPath": self.screenshot_path,
            "htmlPreview": html_preview,
        }
