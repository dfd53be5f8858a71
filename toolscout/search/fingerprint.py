"""Host-derived browser fingerprint generation."""

from __future__ import annotations

import os
import platform
from datetime import datetime

from toolscout.search.models import FingerprintConfig

DEFAULT_LOCALE = "zh-CN"
DEFAULT_TIMEZONE = "Asia/Shanghai"
SEARCH_DEVICE_NAME = "Desktop Chrome"

# Whole-hour UTC offset -> IANA zone.
_TIMEZONE_BY_UTC_HOURS: dict[int, str] = {
    8: "Asia/Shanghai",
    9: "Asia/Tokyo",
    7: "Asia/Bangkok",
    0: "Europe/London",
    -1: "Europe/Berlin",
    -5: "America/New_York",
}

_DEVICE_BY_OS: dict[str, str] = {
    "Darwin": "Desktop Safari",
    "Windows": "Desktop Edge",
    "Linux": "Desktop Firefox",
}


def timezone_for_offset(offset_minutes: int) -> str:
    """Map a UTC offset in minutes east of UTC to one of the known zones."""
    hours = offset_minutes // 60
    return _TIMEZONE_BY_UTC_HOURS.get(hours, DEFAULT_TIMEZONE)


def color_scheme_for_hour(hour: int) -> str:
    return "dark" if hour >= 19 or hour < 7 else "light"


def host_device_name(system: str | None = None) -> str:
    """Device profile matching the host OS family.

    Informational only: searches always run with the Chrome desktop profile,
    which is what the stealth overrides are written for.
    """
    return _DEVICE_BY_OS.get(system or platform.system(), SEARCH_DEVICE_NAME)


def host_locale(locale_hint: str | None = None) -> str:
    """Resolve the locale from a hint, the LANG environment variable, or the fallback."""
    if locale_hint:
        return locale_hint

    raw = os.environ.get("LANG", "").strip()
    # en_US.UTF-8 -> en-US
    code = raw.split(".", 1)[0].split("@", 1)[0]
    if not code or code in {"C", "POSIX"}:
        return DEFAULT_LOCALE
    return code.replace("_", "-")


def get_host_machine_config(
    locale_hint: str | None = None,
    *,
    now: datetime | None = None,
) -> FingerprintConfig:
    """Build a plausible fingerprint from the host's locale, clock and time of day."""
    if now is not None and now.tzinfo is not None:
        local_now = now
    else:
        local_now = (now or datetime.now()).astimezone()
    offset = local_now.utcoffset()
    offset_minutes = int(offset.total_seconds() // 60) if offset is not None else 0

    return FingerprintConfig(
        device_name=SEARCH_DEVICE_NAME,
        locale=host_locale(locale_hint),
        timezone_id=timezone_for_offset(offset_minutes),
        color_scheme=color_scheme_for_hour(local_now.hour),  # type: ignore[arg-type]
        reduced_motion="no-preference",
        forced_colors="none",
    )
