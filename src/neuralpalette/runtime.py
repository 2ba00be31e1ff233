"""
Wiring for the AI layer.

Builds one cache, sweeper, rate budget, provider set, manager and
personalization service from a Config and owns their lifecycle.
"""

from typing import Optional

from neuralpalette.callbacks import Callbacks
from neuralpalette.config import Config, load_config
from neuralpalette.core.cache import AIResponseCache, ResponseCache
from neuralpalette.core.rate_limit import RateBudget
from neuralpalette.core.sweeper import CacheSweeper
from neuralpalette.manager import ProviderManager
from neuralpalette.metrics import Metrics
from neuralpalette.personalization.service import PersonalizedAI
from neuralpalette.utils.logger import print_cache_stats
from neuralpalette.utils.logging_config import get_logger

logger = get_logger("runtime")


class AIRuntime:
    """
    The assembled AI layer.

    Example:
        >>> async with AIRuntime.from_config(load_config()) as runtime:
        ...     reply = await runtime.ai.generate_fan_response(artist, "Hi!")
    """

    def __init__(
        self,
        config: Config,
        cache: AIResponseCache,
        sweeper: CacheSweeper,
        manager: ProviderManager,
        ai: PersonalizedAI,
    ) -> None:
        self.config = config
        self.cache = cache
        self.sweeper = sweeper
        self.manager = manager
        self.ai = ai

    @classmethod
    def from_config(
        cls,
        config: Optional[Config] = None,
        callbacks: Optional[Callbacks] = None,
    ) -> "AIRuntime":
        """
        Build every component from configuration.

        Args:
            config: Configuration (default: ``load_config()``).
            callbacks: Lifecycle hooks shared by manager and service.
        """
        config = config or load_config()
        for problem in config.validate():
            logger.warning("Config: %s", problem)

        settings = config.cache
        cache = AIResponseCache(
            ResponseCache(max_size=settings.max_size, ttl=settings.ttl, enabled=settings.enabled)
        )
        sweeper = CacheSweeper(cache, interval=settings.sweep_interval)
        metrics = Metrics()
        manager = ProviderManager(
            config,
            budget=RateBudget(config.rate_limit),
            metrics=metrics,
            callbacks=callbacks,
        )
        ai = PersonalizedAI(manager, cache=cache, debug=config.debug)
        return cls(config, cache, sweeper, manager, ai)

    @property
    def metrics(self) -> Metrics:
        return self.manager.metrics

    async def __aenter__(self) -> "AIRuntime":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def start(self) -> None:
        if self.config.cache.enabled:
            self.sweeper.start()
        logger.info("AI runtime ready (providers: %s)", self.manager.available_providers)

    async def aclose(self) -> None:
        self.sweeper.stop()
        await self.manager.aclose()
        if self.config.debug:
            print_cache_stats(self.cache.stats())
