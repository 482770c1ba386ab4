"""Tests for configuration loading."""

from pathlib import Path

import pytest

from newsletter_agent.config import DEFAULT_MODEL, TEST_MODEL, NewsletterConfig, load_config

ENV_VARS = [
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "NEWSLETTER_MODEL",
    "NEWSLETTER_TEST_MODE",
    "NEWSLETTER_DATA_DIR",
    "NEWSLETTER_DAYS_BACK",
    "NEWSLETTER_HISTORY_LIMIT",
    "NEWSLETTER_LLM_LOG_DIR",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        # setenv first so teardown also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestLoadConfig:
    def test_defaults(self, clean_env, tmp_path):
        config = load_config(tmp_path / "missing.env")

        assert config.anthropic_api_key is None
        assert config.model == DEFAULT_MODEL
        assert config.history_limit == 20
        assert config.llm_log_dir is None

    def test_from_environment(self, clean_env, tmp_path):
        clean_env.setenv("ANTHROPIC_API_KEY", "sk-test")
        clean_env.setenv("NEWSLETTER_TEST_MODE", "true")
        clean_env.setenv("NEWSLETTER_DATA_DIR", str(tmp_path / "state"))
        clean_env.setenv("NEWSLETTER_DAYS_BACK", "3")

        config = load_config(tmp_path / "missing.env")

        assert config.credential == "sk-test"
        assert config.active_model == TEST_MODEL
        assert config.data_dir == tmp_path / "state"
        assert config.days_back == 3

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("ANTHROPIC_API_KEY=from-file\nNEWSLETTER_LLM_LOG_DIR=/tmp/llm\n")

        config = load_config(env_file)

        assert config.anthropic_api_key == "from-file"
        assert config.llm_log_dir == Path("/tmp/llm")


class TestNewsletterConfig:
    """Tests for derived settings."""

    def test_provider_by_model_prefix(self):
        assert NewsletterConfig(model="claude-x").provider == "anthropic"
        assert NewsletterConfig(model="gpt-x").provider == "openai"

    def test_unsupported_model(self):
        with pytest.raises(ValueError):
            NewsletterConfig(model="llama-3").provider

    def test_empty_key_is_missing(self):
        assert NewsletterConfig(anthropic_api_key="").credential is None

    def test_credential_follows_provider(self):
        config = NewsletterConfig(anthropic_api_key="a", openai_api_key="o", model="gpt-x")

        assert config.credential == "o"
        assert config.credential_env_var == "OPENAI_API_KEY"

    def test_settings_for(self):
        config = NewsletterConfig()

        assert config.settings_for("summary_digest").web_search is False
        assert config.settings_for("lead_story").max_tokens == 1500

    def test_with_overrides_ignores_none(self):
        config = NewsletterConfig().with_overrides(model=None, days_back=2)

        assert config.model == DEFAULT_MODEL
        assert config.days_back == 2
