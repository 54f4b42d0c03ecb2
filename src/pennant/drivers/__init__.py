"""
Storage drivers.

- memory   -> InMemoryDriver          (process-local, tests / dev)
- sql      -> SqlDatabaseDriver       (SQLAlchemy async engine)
- dynamodb -> DynamoDBDatabaseDriver  (aioboto3)
- redis    -> RedisDriver             (redis-py asyncio)

`build_store(settings)` picks one from configuration (PENNANT_STORE_DRIVER).
Backend modules are imported lazily so a missing optional client library only
matters for the driver that needs it.
"""
from __future__ import annotations

from typing import Optional

from pennant.core.config import Settings, settings as default_settings
from pennant.drivers.memory import InMemoryDriver, create_in_memory_driver
from pennant.kernel.storage import FeatureStorageProvider

STORE_DRIVERS = ("none", "memory", "sql", "dynamodb", "redis")


def build_store(cfg: Optional[Settings] = None) -> Optional[FeatureStorageProvider]:
    cfg = cfg or default_settings
    driver = (cfg.STORE_DRIVER or "none").strip().lower()

    if driver == "none":
        return None
    if driver == "memory":
        return create_in_memory_driver()
    if driver == "sql":
        from pennant.drivers.sql import create_sql_driver
        if not cfg.DATABASE_URL:
            raise ValueError("PENNANT_DATABASE_URL is required for the sql store")
        return create_sql_driver(
            cfg.DATABASE_URL,
            table_name=cfg.TABLE_NAME,
            feature_name_column=cfg.FEATURE_NAME_COLUMN,
            value_column=cfg.VALUE_COLUMN,
        )
    if driver == "dynamodb":
        from pennant.drivers.dynamodb import create_dynamodb_driver
        return create_dynamodb_driver(
            table_name=cfg.DYNAMODB_TABLE,
            feature_name_attribute=cfg.FEATURE_NAME_COLUMN,
            value_attribute=cfg.VALUE_COLUMN,
            endpoint_url=cfg.DYNAMODB_ENDPOINT,
            region_name=cfg.AWS_REGION,
        )
    if driver == "redis":
        from pennant.drivers.redis import create_redis_driver
        return create_redis_driver(cfg.REDIS_URL, prefix=cfg.REDIS_PREFIX)

    raise ValueError(f"unknown store driver: {driver!r} (expected one of {', '.join(STORE_DRIVERS)})")


__all__ = [
    "InMemoryDriver",
    "STORE_DRIVERS",
    "build_store",
    "create_in_memory_driver",
]
