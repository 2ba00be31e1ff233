"""Tests for configuration loading."""

import logging

import pytest

from neuralpalette.config import Config, ProviderSettings, load_config
from neuralpalette.errors import ConfigError


class TestConfigDefaults:
    """Tests for default values."""

    def test_defaults(self):
        """A fresh Config carries the documented defaults."""
        config = Config()
        assert config.default_provider == "openai"
        assert config.cache.enabled is True
        assert config.cache.ttl == 3600
        assert config.cache.max_size == 1000
        assert config.rate_limit.requests_per_minute == 60
        assert config.rate_limit.tokens_per_minute == 90000
        assert config.rate_limit.requests_per_day == 10000
        assert config.rate_limit.tokens_per_day == 1000000
        assert config.openai.timeout == 60.0
        assert config.openai.max_retries == 3
        assert config.models.fan_interaction.primary == "claude-3-5-sonnet-20241022"
        assert config.models.sentiment_analysis.max_tokens == 100

    def test_provider_lookup(self):
        """provider() returns settings by name or for the default."""
        config = Config(anthropic=ProviderSettings(api_key="k"))
        assert config.provider("anthropic").api_key == "k"
        assert config.provider() is config.openai
        with pytest.raises(ConfigError):
            config.provider("mistral")


class TestConfigFromDict:
    """Tests for building config from mappings."""

    def test_nested_merge_keeps_defaults(self):
        """Partial nested sections merge into defaults."""
        config = Config.from_dict(
            {
                "openai": {"api_key": "sk-x"},
                "models": {"text_generation": {"primary": "gpt-4o"}},
                "cache": {"ttl": 60},
            }
        )
        assert config.openai.api_key == "sk-x"
        assert config.openai.timeout == 60.0
        assert config.models.text_generation.primary == "gpt-4o"
        assert config.models.text_generation.fallback == "gpt-3.5-turbo"
        assert config.models.fan_interaction.primary == "claude-3-5-sonnet-20241022"
        assert config.cache.ttl == 60
        assert config.cache.max_size == 1000

    def test_unknown_keys_ignored(self):
        """Keys that are not config fields are dropped."""
        config = Config.from_dict({"nonsense": 1, "cache": {"enabled": False, "extra": 2}})
        assert config.cache.enabled is False

    def test_to_dict_round_trip(self):
        """to_dict output rebuilds an equal Config."""
        config = Config.from_dict({"default_provider": "anthropic", "debug": True})
        assert Config.from_dict(config.to_dict()) == config


class TestConfigFromFile:
    """Tests for YAML files."""

    def test_from_file(self, tmp_path):
        """YAML files are parsed into Config."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "default_provider: anthropic\n"
            "anthropic:\n"
            "  api_key: sk-ant-file\n"
            "rate_limit:\n"
            "  requests_per_minute: 5\n"
        )
        config = Config.from_file(path)
        assert config.default_provider == "anthropic"
        assert config.anthropic.api_key == "sk-ant-file"
        assert config.rate_limit.requests_per_minute == 5

    def test_empty_file(self, tmp_path):
        """An empty file gives defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert Config.from_file(path) == Config()

    def test_invalid_yaml(self, tmp_path):
        """Invalid YAML raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("cache: [unclosed\n")
        with pytest.raises(ConfigError):
            Config.from_file(path)

    def test_non_mapping(self, tmp_path):
        """A top-level list is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            Config.from_file(path)


class TestConfigFromEnv:
    """Tests for environment overrides."""

    def test_env_overrides(self):
        """Environment variables override every documented setting."""
        env = {
            "OPENAI_API_KEY": "sk-env",
            "OPENAI_ORG_ID": "org-9",
            "OPENAI_BASE_URL": "http://proxy/v1",
            "ANTHROPIC_API_KEY": "sk-ant-env",
            "ANTHROPIC_BASE_URL": "http://proxy-a/v1",
            "AI_TEXT_MODEL": "gpt-4o",
            "AI_CREATIVE_MODEL": "gpt-4o-creative",
            "AI_FAN_MODEL": "claude-3-opus",
            "AI_SENTIMENT_MODEL": "gpt-4o-mini",
            "AI_RPM": "10",
            "AI_RPD": "100",
            "AI_TPM": "1000",
            "AI_TPD": "5000",
            "AI_CACHE_ENABLED": "false",
            "AI_CACHE_TTL": "1.5",
            "AI_CACHE_MAX_SIZE": "50",
            "AI_DEFAULT_PROVIDER": "anthropic",
        }
        config = Config.from_env(env)
        assert config.openai.api_key == "sk-env"
        assert config.openai.organization == "org-9"
        assert config.openai.base_url == "http://proxy/v1"
        assert config.anthropic.api_key == "sk-ant-env"
        assert config.anthropic.base_url == "http://proxy-a/v1"
        assert config.models.text_generation.primary == "gpt-4o"
        assert config.models.creative_generation.primary == "gpt-4o-creative"
        assert config.models.fan_interaction.primary == "claude-3-opus"
        assert config.models.sentiment_analysis.primary == "gpt-4o-mini"
        assert config.rate_limit.requests_per_minute == 10
        assert config.rate_limit.requests_per_day == 100
        assert config.rate_limit.tokens_per_minute == 1000
        assert config.rate_limit.tokens_per_day == 5000
        assert config.cache.enabled is False
        assert config.cache.ttl == 1.5
        assert config.cache.max_size == 50
        assert config.default_provider == "anthropic"

    def test_cache_disabled_only_by_false(self):
        """Anything but "false" keeps the cache on."""
        assert Config.from_env({"AI_CACHE_ENABLED": "0"}).cache.enabled is True
        assert Config.from_env({"AI_CACHE_ENABLED": "FALSE"}).cache.enabled is False

    def test_empty_env_keeps_base(self):
        """No variables means the base config is returned unchanged."""
        base = Config.from_dict({"openai": {"api_key": "sk-base"}, "cache": {"ttl": 12.5}})
        config = Config.from_env({}, base=base)
        assert config == base
        assert config is not base

    def test_invalid_integer(self):
        """Non-numeric limits raise ConfigError."""
        with pytest.raises(ConfigError):
            Config.from_env({"AI_RPM": "lots"})

    def test_invalid_ttl(self):
        """A non-numeric TTL raises ConfigError."""
        with pytest.raises(ConfigError):
            Config.from_env({"AI_CACHE_TTL": "forever"})


class TestLoadConfig:
    """Tests for load_config discovery."""

    def test_explicit_path_then_env(self, tmp_path):
        """Env overrides win over the file."""
        path = tmp_path / "np.yaml"
        path.write_text("openai:\n  api_key: sk-file\ncache:\n  max_size: 10\n")
        config = load_config(path, env={"OPENAI_API_KEY": "sk-env"})
        assert config.openai.api_key == "sk-env"
        assert config.cache.max_size == 10

    def test_search_paths(self, tmp_path):
        """The first existing search path is used."""
        missing = tmp_path / "missing.yaml"
        found = tmp_path / "found.yaml"
        found.write_text("default_provider: anthropic\n")
        config = load_config(search_paths=[missing, found], env={})
        assert config.default_provider == "anthropic"

    def test_broken_file_is_skipped(self, tmp_path, caplog):
        """A broken file logs a warning and discovery continues."""
        broken = tmp_path / "broken.yaml"
        broken.write_text("- not a mapping\n")
        good = tmp_path / "good.yaml"
        good.write_text("debug: true\n")
        with caplog.at_level(logging.WARNING, logger="neuralpalette.config"):
            config = load_config(search_paths=[broken, good], env={})
        assert config.debug is True
        assert "Failed to load config" in caplog.text

    def test_defaults_without_files(self, tmp_path):
        """No files gives defaults."""
        assert load_config(search_paths=[tmp_path / "none.yaml"], env={}) == Config()


class TestValidate:
    """Tests for Config.validate."""

    def test_missing_keys(self):
        """A config without keys reports problems."""
        problems = Config().validate()
        assert "At least one AI provider API key must be configured" in problems

    def test_valid_config(self):
        """A configured default provider validates cleanly."""
        config = Config(openai=ProviderSettings(api_key="sk-x"))
        assert config.validate() == []

    def test_default_provider_needs_key(self):
        """The default provider must have a key."""
        config = Config(default_provider="anthropic", openai=ProviderSettings(api_key="sk-x"))
        assert any("Anthropic API key" in p for p in config.validate())

    def test_bad_limits(self):
        """Non-positive limits are reported."""
        config = Config.from_dict(
            {"openai": {"api_key": "k"}, "cache": {"max_size": 0}, "rate_limit": {"requests_per_minute": 0}}
        )
        problems = config.validate()
        assert "Cache max_size must be positive" in problems
        assert "Rate limit requests_per_minute must be positive" in problems
