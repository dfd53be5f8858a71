"""Configuration schema using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Base(BaseModel):
    """Base model that accepts both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


DEFAULT_SEARCH_DOMAINS = [
    "https://www.google.com",
    "https://www.google.co.uk",
    "https://www.google.ca",
    "https://www.google.com.au",
]

DEFAULT_DEVICE_NAMES = [
    "Desktop Chrome",
    "Desktop Edge",
    "Desktop Firefox",
    "Desktop Safari",
]

DEFAULT_BLOCK_PATTERNS = [
    "google.com/sorry/index",
    "google.com/sorry",
    "/sorry",
    "recaptcha",
    "captcha",
    "unusual traffic",
]


class SearchConfig(Base):
    """Options for one search session."""

    limit: int = Field(default=10, ge=0)
    timeout_ms: int = Field(default=60000, ge=1000)
    state_file: str = "./browser-state.json"
    no_save_state: bool = False
    locale: str = "zh-CN"
    html_output_dir: str = "./google-search-html"
    auto_install_browsers: bool = True
    search_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_DOMAINS), min_length=1
    )
    device_names: list[str] = Field(default_factory=lambda: list(DEFAULT_DEVICE_NAMES))
    block_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCK_PATTERNS))


class Config(Base):
    """Root configuration for toolscout."""

    search: SearchConfig = Field(default_factory=SearchConfig)
