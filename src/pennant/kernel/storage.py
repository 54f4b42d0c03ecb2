# src/pennant/kernel/storage.py
"""
Storage provider contract.

The registry only ever talks to a store through `FeatureStorageProvider`.
Setup and capability probing are separate protocols so a store opts in by
implementing them:

- InitializableStore      -> async initialize()        (schema / connection setup)
- PersistentStore         -> is_persistent_store()     (diagnostic only)
- DatabaseStorageProvider -> create_table_if_not_exists()
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class FeatureStorageProvider(Protocol):
    async def set(self, flag: str, value: bool) -> None: ...
    async def get(self, flag: str) -> Optional[bool]: ...
    async def delete(self, flag: str) -> None: ...


@runtime_checkable
class InitializableStore(Protocol):
    async def initialize(self) -> None: ...


@runtime_checkable
class PersistentStore(Protocol):
    def is_persistent_store(self) -> bool: ...


@runtime_checkable
class DatabaseStorageProvider(FeatureStorageProvider, InitializableStore, PersistentStore, Protocol):
    async def create_table_if_not_exists(self) -> None: ...


def is_persistent(store: Any) -> bool:
    """Capability probe; stores that don't declare persistence are treated as volatile."""
    if isinstance(store, PersistentStore):
        return bool(store.is_persistent_store())
    return False


_TRUE_STRINGS = ("1", "true", "True", "TRUE", "yes", "on")
_FALSE_STRINGS = ("0", "false", "False", "FALSE", "no", "off")


def coerce_stored_value(raw: Any) -> Optional[bool]:
    """
    Normalize a backend's encoding of a flag value into bool, or None if absent.

    Accepts bool, integers / Decimals (1/0, as returned by some SQL dialects and
    DynamoDB number attributes) and the usual string spellings. Anything else
    raises ValueError: a corrupt row should surface, not read as "off".
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, Decimal)):
        return raw == 1
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        s = raw.strip()
        if s in _TRUE_STRINGS:
            return True
        if s in _FALSE_STRINGS:
            return False
    raise ValueError(f"unrecognized stored flag value: {raw!r}")
