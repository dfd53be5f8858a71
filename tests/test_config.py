import json

from toolscout.config.loader import (
    _migrate_config,
    load_config,
    save_config,
)
from toolscout.config.schema import Config


def test_search_config_defaults() -> None:
    search = Config().search

    assert search.limit == 10
    assert search.timeout_ms == 60000
    assert search.state_file == "./browser-state.json"
    assert search.no_save_state is False
    assert search.locale == "zh-CN"
    assert search.search_domains[0] == "https://www.google.com"
    assert "Desktop Chrome" in search.device_names
    assert "recaptcha" in search.block_patterns


def test_config_roundtrip_with_camel_case(tmp_path) -> None:
    path = tmp_path / "config.json"
    config = Config()
    config.search.limit = 3
    config.search.search_domains = ["https://www.google.de"]

    save_config(config, path)
    raw = json.loads(path.read_text(encoding="utf-8"))
    reloaded = load_config(path)

    assert raw["search"]["searchDomains"] == ["https://www.google.de"]
    assert reloaded.search.limit == 3
    assert reloaded.search.search_domains == ["https://www.google.de"]


def test_config_migrates_legacy_keys() -> None:
    data = {
        "stateFile": "/tmp/state.json",
        "search": {"googleDomains": ["https://www.google.fr"]},
    }

    migrated = _migrate_config(data)

    assert "stateFile" not in migrated
    assert migrated["search"]["stateFile"] == "/tmp/state.json"
    assert migrated["search"]["searchDomains"] == ["https://www.google.fr"]
    assert Config.model_validate(migrated).search.state_file == "/tmp/state.json"


def test_invalid_config_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")

    assert load_config(path).search.limit == 10

    path.write_text(json.dumps({"search": {"limit": -1}}), encoding="utf-8")
    assert load_config(path).search.limit == 10


def test_missing_config_uses_defaults(tmp_path) -> None:
    assert load_config(tmp_path / "absent.json") == Config()
