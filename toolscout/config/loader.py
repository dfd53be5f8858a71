"""Configuration loading utilities."""

import json
from pathlib import Path

from loguru import logger

from toolscout.config.schema import Config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".toolscout" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            data = _migrate_config(data)
            return Config.model_validate(data)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("Failed to load config from {}: {}", path, e)
            logger.warning("Using default configuration.")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(by_alias=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _migrate_config(data: dict) -> dict:
    """Migrate old config formats to current."""
    if not isinstance(data, dict):
        raise ValueError("config root must be an object")

    search_cfg = data.setdefault("search", {})

    # Move top-level stateFile -> search.stateFile
    legacy_state_file = data.pop("stateFile", None)
    if legacy_state_file and "stateFile" not in search_cfg:
        search_cfg["stateFile"] = legacy_state_file

    # Move search.googleDomains -> search.searchDomains
    legacy_domains = search_cfg.pop("googleDomains", None)
    if legacy_domains and "searchDomains" not in search_cfg:
        search_cfg["searchDomains"] = legacy_domains

    return data
