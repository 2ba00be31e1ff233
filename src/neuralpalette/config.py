"""
Configuration for the Neural Palette AI layer.

Provides YAML-based configuration with file discovery, environment
variable overrides and sensible defaults. Configuration is read once at
process start and handed to the runtime.
"""

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from neuralpalette.errors import ConfigError
from neuralpalette.utils.logging_config import get_logger

logger = get_logger("config")

PROVIDERS = ("openai", "anthropic")

DEFAULT_CONFIG_PATHS = [
    Path(".neuralpalette.yaml"),
    Path(".neuralpalette.yml"),
    Path.home() / ".neuralpalette" / "config.yaml",
    Path.home() / ".neuralpalette" / "config.yml",
]


@dataclass
class ProviderSettings:
    """Credentials and transport settings for one provider."""

    api_key: str = ""
    base_url: Optional[str] = None
    organization: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = 3

    @property
    def available(self) -> bool:
        return bool(self.api_key)


@dataclass
class ModelSettings:
    """Model choice for one kind of task."""

    primary: str
    fallback: Optional[str] = None
    max_tokens: int = 2000


@dataclass
class ModelsConfig:
    text_generation: ModelSettings = field(
        default_factory=lambda: ModelSettings("gpt-4-turbo-preview", "gpt-3.5-turbo", 2000)
    )
    creative_generation: ModelSettings = field(
        default_factory=lambda: ModelSettings("gpt-4-turbo-preview", "gpt-3.5-turbo", 4000)
    )
    fan_interaction: ModelSettings = field(
        default_factory=lambda: ModelSettings(
            "claude-3-5-sonnet-20241022", "claude-3-haiku-20240307", 1500
        )
    )
    sentiment_analysis: ModelSettings = field(
        default_factory=lambda: ModelSettings("gpt-3.5-turbo", None, 100)
    )


@dataclass
class RateLimitSettings:
    requests_per_minute: int = 60
    tokens_per_minute: int = 90000
    requests_per_day: int = 10000
    tokens_per_day: int = 1000000


@dataclass
class CacheSettings:
    enabled: bool = True
    ttl: float = 3600.0
    max_size: int = 1000
    sweep_interval: float = 300.0


@dataclass
class Config:
    """
    Configuration for the AI layer.

    Example:
        >>> config = load_config()
        >>> runtime = AIRuntime.from_config(config)
    """

    default_provider: str = "openai"
    openai: ProviderSettings = field(default_factory=ProviderSettings)
    anthropic: ProviderSettings = field(default_factory=ProviderSettings)
    models: ModelsConfig = field(default_factory=ModelsConfig)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)

    # Logging
    debug: bool = False
    logger: str = "rich"

    def provider(self, name: Optional[str] = None) -> ProviderSettings:
        """Settings for a provider, or for the default provider."""
        selected = name or self.default_provider
        if selected not in PROVIDERS:
            raise ConfigError(f"Unknown provider '{selected}'. Available: {list(PROVIDERS)}")
        return getattr(self, selected)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create a Config from a (possibly nested) dictionary. Unknown keys are ignored."""
        return _build(cls, data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Config":
        """Load a Config from a YAML file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {path}")
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        base: Optional["Config"] = None,
    ) -> "Config":
        """
        Apply environment variable overrides.

        Args:
            env: The environment to read (default: os.environ).
            base: Config to start from (default: a fresh Config).

        Returns:
            A new Config; ``base`` is left untouched.
        """
        env = os.environ if env is None else env
        config = cls.from_dict(base.to_dict()) if base is not None else cls()

        def _int(name: str, current: int) -> int:
            raw = env.get(name)
            if raw in (None, ""):
                return current
            try:
                return int(raw)
            except ValueError as e:
                raise ConfigError(f"{name} must be an integer, got {raw!r}") from e

        if "OPENAI_API_KEY" in env:
            config.openai.api_key = env["OPENAI_API_KEY"]
        config.openai.organization = env.get("OPENAI_ORG_ID") or config.openai.organization
        config.openai.base_url = env.get("OPENAI_BASE_URL") or config.openai.base_url
        if "ANTHROPIC_API_KEY" in env:
            config.anthropic.api_key = env["ANTHROPIC_API_KEY"]
        config.anthropic.base_url = env.get("ANTHROPIC_BASE_URL") or config.anthropic.base_url

        models = config.models
        models.text_generation.primary = env.get("AI_TEXT_MODEL") or models.text_generation.primary
        models.creative_generation.primary = (
            env.get("AI_CREATIVE_MODEL") or models.creative_generation.primary
        )
        models.fan_interaction.primary = env.get("AI_FAN_MODEL") or models.fan_interaction.primary
        models.sentiment_analysis.primary = (
            env.get("AI_SENTIMENT_MODEL") or models.sentiment_analysis.primary
        )

        limits = config.rate_limit
        limits.requests_per_minute = _int("AI_RPM", limits.requests_per_minute)
        limits.requests_per_day = _int("AI_RPD", limits.requests_per_day)
        limits.tokens_per_minute = _int("AI_TPM", limits.tokens_per_minute)
        limits.tokens_per_day = _int("AI_TPD", limits.tokens_per_day)

        if "AI_CACHE_ENABLED" in env:
            config.cache.enabled = env["AI_CACHE_ENABLED"].strip().lower() != "false"
        if env.get("AI_CACHE_TTL"):
            try:
                config.cache.ttl = float(env["AI_CACHE_TTL"])
            except ValueError as e:
                raise ConfigError(
                    f"AI_CACHE_TTL must be a number, got {env['AI_CACHE_TTL']!r}"
                ) from e
        config.cache.max_size = _int("AI_CACHE_MAX_SIZE", config.cache.max_size)

        config.default_provider = env.get("AI_DEFAULT_PROVIDER") or config.default_provider
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Export config as a dictionary."""
        return asdict(self)

    def validate(self) -> List[str]:
        """
        Check the configuration for problems.

        Returns:
            A list of error messages; empty when the config is usable.
        """
        errors: List[str] = []

        if self.default_provider not in PROVIDERS:
            errors.append(f"Unknown default provider '{self.default_provider}'")
        if not self.openai.api_key and not self.anthropic.api_key:
            errors.append("At least one AI provider API key must be configured")
        if self.default_provider == "openai" and not self.openai.api_key:
            errors.append("OpenAI API key is required when set as default provider")
        if self.default_provider == "anthropic" and not self.anthropic.api_key:
            errors.append("Anthropic API key is required when set as default provider")

        if self.rate_limit.requests_per_minute <= 0:
            errors.append("Rate limit requests_per_minute must be positive")
        if self.rate_limit.tokens_per_minute <= 0:
            errors.append("Rate limit tokens_per_minute must be positive")

        if self.cache.max_size <= 0:
            errors.append("Cache max_size must be positive")
        if self.cache.ttl < 0:
            errors.append("Cache ttl cannot be negative")

        return errors


def _build(cls: Any, data: Mapping[str, Any]) -> Any:
    """Instantiate a (nested) config dataclass from a mapping."""
    defaults = cls() if cls is not ModelSettings else None
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        current = getattr(defaults, f.name, None) if defaults is not None else None
        if isinstance(value, Mapping) and hasattr(current, "__dataclass_fields__"):
            merged = asdict(current)
            merged.update(value)
            value = _build(type(current), merged)
        kwargs[f.name] = value
    return cls(**kwargs)


def load_config(
    path: Optional[Union[str, Path]] = None,
    search_paths: Optional[List[Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load configuration with file discovery and environment overrides.

    An explicit ``path`` must exist. Otherwise the first readable file in
    ``search_paths`` is used, falling back to defaults. Environment
    variables are applied last.
    """
    if path:
        return Config.from_env(env, base=Config.from_file(path))

    if search_paths is None:
        search_paths = DEFAULT_CONFIG_PATHS

    for config_path in search_paths:
        if config_path.exists():
            try:
                return Config.from_env(env, base=Config.from_file(config_path))
            except (OSError, ConfigError) as e:
                logger.warning("Failed to load config from %s: %s", config_path, e)
                continue

    return Config.from_env(env)
