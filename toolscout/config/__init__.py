"""Configuration module for toolscout."""

from toolscout.config.loader import get_config_path, load_config
from toolscout.config.schema import Config, SearchConfig

__all__ = ["Config", "SearchConfig", "load_config", "get_config_path"]
