from __future__ import annotations

from typing import Dict, Optional


class InMemoryDriver:
    """Process-local store; state is lost when the process exits."""

    def __init__(self) -> None:
        self._storage: Dict[str, bool] = {}

    async def set(self, flag: str, value: bool) -> None:
        self._storage[flag] = value

    async def get(self, flag: str) -> Optional[bool]:
        return self._storage.get(flag)

    async def delete(self, flag: str) -> None:
        self._storage.pop(flag, None)

    def is_persistent_store(self) -> bool:
        return False


def create_in_memory_driver() -> InMemoryDriver:
    return InMemoryDriver()
