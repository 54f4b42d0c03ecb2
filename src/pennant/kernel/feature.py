# src/pennant/kernel/feature.py
"""
Feature registry and resolution engine.

Resolution order for `active(name, context)`:
  1) name defined in code  -> evaluator(context), or True when defined without one
  2) name only in the store -> stored bool, returned as is
  3) neither                -> FeatureNotFoundError

Public:
- FeatureManager
- feature_manager(store=None) -> FeatureManager
- async feature_manager_with_database(store) -> FeatureManager
"""
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar, Union

from pennant.core.logging import get_logger
from pennant.kernel.errors import FeatureNotFoundError, StoreNotConfiguredError
from pennant.kernel.storage import FeatureStorageProvider, InitializableStore

log = get_logger(__name__)

C = TypeVar("C")

Evaluator = Callable[[C], Union[bool, Awaitable[bool]]]


@dataclass
class FlagResult:
    """Outcome of one flag in a strict batch evaluation."""
    name: str
    active: bool
    error: Optional[BaseException] = None

    @property
    def found(self) -> bool:
        return not isinstance(self.error, FeatureNotFoundError)


class FeatureManager:
    def __init__(self, store: Optional[FeatureStorageProvider] = None):
        self._store = store
        self._definitions: Dict[str, Optional[Evaluator[Any]]] = {}

    @classmethod
    async def init_with_database(cls, store: FeatureStorageProvider) -> "FeatureManager":
        """Build a manager and run the store's setup hook before returning it."""
        manager = cls(store=store)
        await manager.init_store()
        return manager

    @property
    def store(self) -> Optional[FeatureStorageProvider]:
        return self._store

    async def init_store(self) -> None:
        """
        Run the attached store's setup (table creation, connection check...).
        No-op without a store or when the store has nothing to initialize.
        """
        if self._store is None:
            return
        if isinstance(self._store, InitializableStore):
            await self._store.initialize()
            log.debug("store initialized: %s", type(self._store).__name__)

    # ------------------------- definitions -------------------------

    def define(self, flag_name: str, check: Optional[Evaluator[Any]] = None) -> None:
        """
        Define (or redefine) a flag. `check` receives the evaluation context and
        returns a bool or an awaitable bool; omit it for an always-on flag.
        """
        self._definitions[flag_name] = check

    async def define_and_store(self, flag_name: str, default_value: bool = True) -> None:
        """
        Persist a flag in the store. The flag is NOT added to the code
        definitions, so every `active()` call reads the live stored value.
        """
        if self._store is None:
            raise StoreNotConfiguredError()
        await self._store.set(flag_name, default_value)

    def is_defined(self, flag_name: str) -> bool:
        return flag_name in self._definitions

    def get_defined_flags(self) -> List[str]:
        """Code-defined flag names in definition order (store-only flags excluded)."""
        return list(self._definitions)

    # ------------------------- resolution -------------------------

    async def active(self, flag_name: str, context: Any = None) -> bool:
        if flag_name not in self._definitions:
            if self._store is not None:
                stored = await self._store.get(flag_name)
                if stored is not None:
                    return stored
            raise FeatureNotFoundError(flag_name)

        check = self._definitions[flag_name]
        if check is None:
            return True

        result = check(context)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def active_many(self, flag_names: Iterable[str], context: Any = None) -> Dict[str, bool]:
        """
        Evaluate several flags concurrently. Any per-flag failure (unknown flag,
        evaluator or store error) reads as False; this never raises for them.
        """
        detailed = await self.active_many_detailed(flag_names, context)
        return {name: res.active for name, res in detailed.items()}

    async def active_many_detailed(self, flag_names: Iterable[str], context: Any = None) -> Dict[str, FlagResult]:
        """Like `active_many`, but keeps the failure of each flag for inspection."""
        names = list(flag_names)

        async def _one(name: str) -> FlagResult:
            try:
                return FlagResult(name=name, active=await self.active(name, context))
            except Exception as e:
                log.warning("feature check failed flag=%s err=%r", name, e)
                return FlagResult(name=name, active=False, error=e)

        results = await asyncio.gather(*(_one(n) for n in names))
        return {res.name: res for res in results}


def feature_manager(store: Optional[FeatureStorageProvider] = None) -> FeatureManager:
    return FeatureManager(store=store)


async def feature_manager_with_database(store: FeatureStorageProvider) -> FeatureManager:
    return await FeatureManager.init_with_database(store)
