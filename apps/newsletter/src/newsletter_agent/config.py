"""Runtime configuration for the newsletter pipeline.

Values come from the environment (a ``.env`` file is loaded first when
present). Everything the pipeline needs is carried on ``NewsletterConfig``
and passed in explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_MODEL = "claude-sonnet-4-20250514"
TEST_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_FEED_URL = "https://rss.app/feeds/v1.1/cRDeGfxwf6t2nR8S.json"
DEFAULT_DATA_DIR = Path.home() / ".newsletter"
DEFAULT_DAYS_BACK = 7
DEFAULT_HISTORY_LIMIT = 20
NEWSLETTER_NAME = "Renewal Weekly"


@dataclass(frozen=True)
class SectionSettings:
    """Per-section generation limits.

    Attributes:
        max_tokens: Response size ceiling for the section
        web_search: Whether to request web-retrieval augmentation
    """
    max_tokens: int
    web_search: bool = True


SECTION_SETTINGS: dict[str, SectionSettings] = {
    "opening_hook": SectionSettings(400),
    "lead_story": SectionSettings(1500),
    "summary_digest": SectionSettings(400, web_search=False),
    "research_roundup": SectionSettings(800),
    "secondary_stories": SectionSettings(1500),
    "deep_dive": SectionSettings(1000),
    "statistic": SectionSettings(800),
    "quick_hits": SectionSettings(1000),
    "advisory_items": SectionSettings(600),
    "recommendations": SectionSettings(600),
    "word_of_the_day": SectionSettings(200, web_search=False),
}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class NewsletterConfig:
    """Explicit settings for one pipeline instance."""
    anthropic_api_key: str | None = None
    openai_api_key: str | None = None
    model: str = DEFAULT_MODEL
    test_mode: bool = False
    feed_url: str = DEFAULT_FEED_URL
    data_dir: Path = DEFAULT_DATA_DIR
    days_back: int = DEFAULT_DAYS_BACK
    history_limit: int = DEFAULT_HISTORY_LIMIT
    llm_log_dir: Path | None = None
    sections: dict[str, SectionSettings] = field(default_factory=lambda: dict(SECTION_SETTINGS))

    @property
    def active_model(self) -> str:
        """The model to call; test mode swaps in the cheaper model."""
        return TEST_MODEL if self.test_mode else self.model

    @property
    def provider(self) -> str:
        model = self.active_model
        if model.startswith("gpt"):
            return "openai"
        if model.startswith("claude"):
            return "anthropic"
        raise ValueError(f"Unsupported model: {model}")

    @property
    def credential(self) -> str | None:
        """API key for the active provider, or None when it is not set."""
        key = self.openai_api_key if self.provider == "openai" else self.anthropic_api_key
        return key or None

    @property
    def credential_env_var(self) -> str:
        return "OPENAI_API_KEY" if self.provider == "openai" else "ANTHROPIC_API_KEY"

    def settings_for(self, section_key: str) -> SectionSettings:
        return self.sections.get(section_key, SectionSettings(1000))

    def with_overrides(self, **changes) -> NewsletterConfig:
        """Return a copy with some fields replaced; ``None`` values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_config(env_file: Path | None = None) -> NewsletterConfig:
    """Build a config from environment variables.

    Args:
        env_file: Optional path to a ``.env`` file; by default ``.env`` is
            searched for from the working directory upwards.

    Returns:
        The loaded configuration.
    """
    load_dotenv(env_file)
    log_dir = os.getenv("NEWSLETTER_LLM_LOG_DIR")
    return NewsletterConfig(
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        model=os.getenv("NEWSLETTER_MODEL", DEFAULT_MODEL),
        test_mode=_env_bool("NEWSLETTER_TEST_MODE"),
        feed_url=os.getenv("NEWSLETTER_FEED_URL", DEFAULT_FEED_URL),
        data_dir=Path(os.getenv("NEWSLETTER_DATA_DIR", str(DEFAULT_DATA_DIR))).expanduser(),
        days_back=int(os.getenv("NEWSLETTER_DAYS_BACK", str(DEFAULT_DAYS_BACK))),
        history_limit=int(os.getenv("NEWSLETTER_HISTORY_LIMIT", str(DEFAULT_HISTORY_LIMIT))),
        llm_log_dir=Path(log_dir) if log_dir else None,
    )
