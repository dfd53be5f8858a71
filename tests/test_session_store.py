import json
from pathlib import Path

import pytest

from toolscout.search.models import FingerprintConfig, SessionState
from toolscout.search.state import FileSessionStore, MemorySessionStore, fingerprint_path_for

FINGERPRINT = FingerprintConfig(
    device_name="Desktop Chrome",
    locale="zh-CN",
    timezone_id="Asia/Shanghai",
    color_scheme="light",
)


class StubContext:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.paths: list[str] = []

    async def storage_state(self, path=None):
        if self.error:
            raise self.error
        data = {"cookies": [], "origins": []}
        if path:
            self.paths.append(path)
            Path(path).write_text(json.dumps(data), encoding="utf-8")
        return data


def test_fingerprint_path_swaps_suffix(tmp_path) -> None:
    assert fingerprint_path_for(tmp_path / "browser-state.json") == tmp_path / "browser-state-fingerprint.json"
    assert fingerprint_path_for(tmp_path / "state") == tmp_path / "state-fingerprint.json"


def test_load_without_state_file_is_empty(tmp_path) -> None:
    store = FileSessionStore(tmp_path / "browser-state.json")

    state = store.load()

    assert state.fingerprint is None
    assert state.search_domain is None
    assert store.storage_state() is None


def test_corrupt_fingerprint_file_is_ignored(tmp_path) -> None:
    store = FileSessionStore(tmp_path / "browser-state.json")
    store.state_path.write_text("{}", encoding="utf-8")
    store.fingerprint_path.write_text("{not json", encoding="utf-8")

    state = store.load()

    assert state.fingerprint is None
    assert store.storage_state() == str(store.state_path)


def test_invalid_fingerprint_fields_are_ignored(tmp_path) -> None:
    store = FileSessionStore(tmp_path / "browser-state.json")
    store.state_path.write_text("{}", encoding="utf-8")
    store.fingerprint_path.write_text(
        json.dumps({"fingerprint": {"deviceName": "Desktop Chrome", "locale": "zh-CN"}}),
        encoding="utf-8",
    )

    assert store.load().fingerprint is None


@pytest.mark.asyncio
async def test_save_then_load_keeps_fingerprint_and_domain(tmp_path) -> None:
    store = FileSessionStore(tmp_path / "nested" / "dir" / "browser-state.json")
    state = SessionState(fingerprint=FINGERPRINT, search_domain="https://www.google.ca")

    await store.save(StubContext(), state)

    assert store.state_path.exists()
    payload = json.loads(store.fingerprint_path.read_text(encoding="utf-8"))
    assert payload["googleDomain"] == "https://www.google.ca"
    assert payload["fingerprint"]["timezoneId"] == "Asia/Shanghai"

    loaded = FileSessionStore(store.state_path).load()
    assert loaded.fingerprint == FINGERPRINT
    assert loaded.search_domain == "https://www.google.ca"


@pytest.mark.asyncio
async def test_save_failure_is_swallowed(tmp_path) -> None:
    store = FileSessionStore(tmp_path / "browser-state.json")

    await store.save(StubContext(error=RuntimeError("context closed")), SessionState(fingerprint=FINGERPRINT))

    assert not store.state_path.exists()
    assert not store.fingerprint_path.exists()


@pytest.mark.asyncio
async def test_memory_store_roundtrip() -> None:
    store = MemorySessionStore()
    assert store.load().fingerprint is None

    await store.save(StubContext(), SessionState(fingerprint=FINGERPRINT, search_domain="https://www.google.com"))

    assert store.saves == 1
    assert store.storage_state() == {"cookies": [], "origins": []}
    assert store.load().fingerprint == FINGERPRINT
