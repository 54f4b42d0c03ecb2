# src/pennant/services/feature_service.py
"""
Application-facing service around FeatureManager.

Adds what an application wants on top of the bare registry:
- bulk definitions (FeatureDefinition) loaded at startup
- a default context provider used when a call passes no context
- debug logging and Prometheus counters per evaluation
"""
from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from pennant.core.logging import get_logger
from pennant.core.ctx import set_ctx
from pennant.core.metrics import FEATURE_EVALUATIONS, FEATURE_EVALUATION_LATENCY
from pennant.kernel.errors import StoreNotConfiguredError
from pennant.kernel.feature import Evaluator, FeatureManager, FlagResult
from pennant.kernel.storage import FeatureStorageProvider

log = get_logger(__name__)

ContextProvider = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass
class FeatureDefinition:
    name: str
    description: str = ""
    check: Optional[Evaluator[Any]] = None
    default_value: bool = True
    store: bool = False


@dataclass
class ServiceConfig:
    store: Optional[FeatureStorageProvider] = None
    auto_init: bool = True
    default_context_provider: Optional[ContextProvider] = None
    debug: bool = False
    features: List[FeatureDefinition] = field(default_factory=list)


class FeatureService:
    def __init__(self, config: Optional[ServiceConfig] = None):
        self._config = config or ServiceConfig()
        self._manager = FeatureManager(store=self._config.store)

    @classmethod
    async def create_with_database(cls, config: ServiceConfig) -> "FeatureService":
        if config.store is None:
            raise StoreNotConfiguredError("Storage provider is required for database initialization")
        service = cls(config)
        service._manager = await FeatureManager.init_with_database(config.store)
        await service._load_definitions()
        return service

    @property
    def manager(self) -> FeatureManager:
        return self._manager

    @property
    def config(self) -> ServiceConfig:
        return self._config

    async def initialize(self) -> None:
        """Initialize the store (when configured to) and load declared features."""
        if self._config.store is not None and self._config.auto_init:
            try:
                await self._manager.init_store()
                log.info("feature service initialized with storage provider %s", type(self._config.store).__name__)
            except Exception as e:
                log.error("failed to initialize storage provider: %r", e)
                raise
        await self._load_definitions()

    async def _load_definitions(self) -> None:
        for definition in self._config.features:
            await self.define_from_definition(definition)

    # ------------------------- definitions -------------------------

    def define(self, name: str, check: Optional[Evaluator[Any]] = None) -> None:
        self._manager.define(name, check)
        self._debug("defined feature flag: %s", name)

    async def define_from_definition(self, definition: FeatureDefinition) -> None:
        """
        Stored definitions are written to the store (when one is attached);
        everything else is defined in code with its check.
        """
        if definition.store and self._config.store is not None:
            await self.define_and_store(definition.name, definition.default_value)
        else:
            self.define(definition.name, definition.check)

    async def define_and_store(self, name: str, default_value: bool = True) -> None:
        await self._manager.define_and_store(name, default_value)
        self._debug("defined and stored feature flag: %s = %s", name, default_value)

    def get_defined_flags(self) -> List[str]:
        return self._manager.get_defined_flags()

    # ------------------------- evaluation -------------------------

    async def _resolve_context(self, context: Any) -> Any:
        if context is None and self._config.default_context_provider is not None:
            context = self._config.default_context_provider()
            if inspect.isawaitable(context):
                context = await context
        return context

    async def active(self, name: str, context: Any = None) -> bool:
        set_ctx(flag=name)
        start = time.perf_counter()
        try:
            result = await self._manager.active(name, await self._resolve_context(context))
        except Exception as e:
            FEATURE_EVALUATIONS.labels(name, "error").inc()
            self._debug("error checking feature flag %s: %r", name, e)
            raise
        finally:
            FEATURE_EVALUATION_LATENCY.labels(name).observe(time.perf_counter() - start)

        FEATURE_EVALUATIONS.labels(name, "active" if result else "inactive").inc()
        self._debug("feature flag %s is %s", name, "active" if result else "inactive")
        return result

    async def active_many(self, names: Iterable[str], context: Any = None) -> Dict[str, bool]:
        """Concurrent evaluation; a failing flag reads as False."""
        detailed = await self.active_many_detailed(names, context)
        return {name: res.active for name, res in detailed.items()}

    async def active_many_detailed(self, names: Iterable[str], context: Any = None) -> Dict[str, FlagResult]:
        """Each flag goes through `active` (context provider, metrics, logs); failures are kept."""
        async def _one(name: str) -> FlagResult:
            try:
                return FlagResult(name=name, active=await self.active(name, context))
            except Exception as e:
                log.warning("feature check failed flag=%s err=%r", name, e)
                return FlagResult(name=name, active=False, error=e)

        results = await asyncio.gather(*(_one(n) for n in list(names)))
        return {res.name: res for res in results}

    def _debug(self, msg: str, *args: Any) -> None:
        if self._config.debug:
            log.info(msg, *args)
        else:
            log.debug(msg, *args)


def create_feature_service(config: Optional[ServiceConfig] = None) -> FeatureService:
    return FeatureService(config)


async def create_feature_service_with_database(config: ServiceConfig) -> FeatureService:
    return await FeatureService.create_with_database(config)
