import asyncio
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from pennant.drivers.sql import SqlDatabaseDriver, create_sql_driver
from pennant.kernel.errors import FeatureNotFoundError
from pennant.kernel.feature import FeatureManager
from pennant.kernel.storage import DatabaseStorageProvider, is_persistent


def run(coro):
    return asyncio.run(coro)


def _url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'flags.db'}"


def test_round_trip_and_upsert(tmp_path: Path):
    driver = create_sql_driver(_url(tmp_path))

    async def go():
        await driver.initialize()
        assert await driver.get("beta") is None
        await driver.set("beta", True)
        assert await driver.get("beta") is True
        await driver.set("beta", False)  # second write updates in place
        assert await driver.get("beta") is False
        await driver.delete("beta")
        assert await driver.get("beta") is None
        await driver.close()

    run(go())


def test_initialize_is_idempotent(tmp_path: Path):
    driver = create_sql_driver(_url(tmp_path))

    async def go():
        await driver.initialize()
        await driver.set("kept", True)
        await driver.create_table_if_not_exists()
        return await driver.get("kept")

    assert run(go()) is True


def test_custom_table_and_columns(tmp_path: Path):
    driver = create_sql_driver(
        _url(tmp_path), table_name="toggles", feature_name_column="name", value_column="enabled"
    )

    async def go():
        await driver.initialize()
        await driver.set("x", True)
        async with driver._engine.connect() as conn:
            rows = (await conn.execute(text("SELECT name, enabled FROM toggles"))).all()
        return rows

    rows = run(go())
    assert [(r[0], bool(r[1])) for r in rows] == [("x", True)]


def test_legacy_integer_column_reads_as_bool(tmp_path: Path):
    engine = create_async_engine(_url(tmp_path), poolclass=NullPool)
    driver = SqlDatabaseDriver(engine)

    async def go():
        async with engine.begin() as conn:
            await conn.execute(text("CREATE TABLE feature_flags (feature_name VARCHAR(255) PRIMARY KEY, value INTEGER NOT NULL)"))
            await conn.execute(text("INSERT INTO feature_flags VALUES ('on', 1), ('off', 0)"))
        return await driver.get("on"), await driver.get("off")

    assert run(go()) == (True, False)


def test_registry_on_sql_store(tmp_path: Path):
    driver = create_sql_driver(_url(tmp_path))

    async def go():
        fm = await FeatureManager.init_with_database(driver)
        await fm.define_and_store("stored", False)
        fm.define("coded", lambda ctx: True)
        out = await fm.active_many(["stored", "coded", "nope"])
        with pytest.raises(FeatureNotFoundError):
            await fm.active("nope")
        return out

    assert run(go()) == {"stored": False, "coded": True, "nope": False}


def test_capabilities(tmp_path: Path):
    driver = create_sql_driver(_url(tmp_path))
    assert isinstance(driver, DatabaseStorageProvider)
    assert is_persistent(driver) is True


def test_factory_requires_url_or_engine():
    with pytest.raises(ValueError):
        create_sql_driver()


def test_shared_engine_is_not_disposed(tmp_path: Path):
    engine = create_async_engine(_url(tmp_path), poolclass=NullPool)
    driver = create_sql_driver(engine=engine)

    async def go():
        await driver.initialize()
        await driver.close()
        # engine still usable by its owner
        async with engine.connect() as conn:
            return (await conn.execute(text("SELECT 1"))).scalar()

    assert run(go()) == 1
