from datetime import datetime, timedelta, timezone

import pytest

from toolscout.search.fingerprint import (
    color_scheme_for_hour,
    get_host_machine_config,
    host_device_name,
    host_locale,
    timezone_for_offset,
)


@pytest.mark.parametrize(
    ("offset_minutes", "expected"),
    [
        (480, "Asia/Shanghai"),
        (540, "Asia/Tokyo"),
        (420, "Asia/Bangkok"),
        (0, "Europe/London"),
        (-60, "Europe/Berlin"),
        (-300, "America/New_York"),
        (330, "Asia/Shanghai"),
        (-480, "Asia/Shanghai"),
    ],
)
def test_timezone_buckets(offset_minutes, expected) -> None:
    assert timezone_for_offset(offset_minutes) == expected


def test_color_scheme_follows_time_of_day() -> None:
    assert color_scheme_for_hour(19) == "dark"
    assert color_scheme_for_hour(23) == "dark"
    assert color_scheme_for_hour(0) == "dark"
    assert color_scheme_for_hour(6) == "dark"
    assert color_scheme_for_hour(7) == "light"
    assert color_scheme_for_hour(18) == "light"


def test_locale_prefers_hint_then_lang(monkeypatch) -> None:
    monkeypatch.setenv("LANG", "en_US.UTF-8")
    assert host_locale("ja-JP") == "ja-JP"
    assert host_locale() == "en-US"

    monkeypatch.setenv("LANG", "C")
    assert host_locale() == "zh-CN"

    monkeypatch.delenv("LANG")
    assert host_locale() == "zh-CN"


def test_host_device_name_by_os() -> None:
    assert host_device_name("Darwin") == "Desktop Safari"
    assert host_device_name("Windows") == "Desktop Edge"
    assert host_device_name("Linux") == "Desktop Firefox"
    assert host_device_name("Plan9") == "Desktop Chrome"


def test_host_config_always_uses_chrome_profile() -> None:
    tokyo_night = datetime(2026, 1, 5, 22, 0, tzinfo=timezone(timedelta(hours=9)))

    config = get_host_machine_config("ko-KR", now=tokyo_night)

    assert config.device_name == "Desktop Chrome"
    assert config.locale == "ko-KR"
    assert config.timezone_id == "Asia/Tokyo"
    assert config.color_scheme == "dark"
    assert config.reduced_motion == "no-preference"
    assert config.forced_colors == "none"
