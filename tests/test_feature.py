import asyncio

import pytest

from pennant.kernel.errors import FeatureNotFoundError, StoreNotConfiguredError
from pennant.kernel.feature import FeatureManager, feature_manager


def run(coro):
    return asyncio.run(coro)


def test_define_stores_the_check():
    fm = FeatureManager()
    fm.define("my-feature-flag", lambda ctx: True)
    assert fm.is_defined("my-feature-flag")
    assert fm.get_defined_flags() == ["my-feature-flag"]


def test_flag_without_check_is_always_active():
    fm = FeatureManager()
    fm.define("my-feature-flag")
    assert run(fm.active("my-feature-flag")) is True
    assert run(fm.active("my-feature-flag", {"user": {"is_admin": False}})) is True


def test_check_receives_context():
    fm = FeatureManager()
    fm.define("admin-only", lambda ctx: ctx["user"]["is_admin"])
    assert run(fm.active("admin-only", {"user": {"is_admin": True}})) is True
    assert run(fm.active("admin-only", {"user": {"is_admin": False}})) is False


def test_check_gets_none_when_context_omitted():
    seen = []
    fm = FeatureManager()
    fm.define("probe", lambda ctx: seen.append(ctx) or True)
    run(fm.active("probe"))
    assert seen == [None]


def test_async_check_is_awaited():
    async def check(ctx):
        await asyncio.sleep(0)
        return ctx["plan"] == "pro"

    fm = FeatureManager()
    fm.define("pro", check)
    assert run(fm.active("pro", {"plan": "pro"})) is True
    assert run(fm.active("pro", {"plan": "free"})) is False


def test_percentage_rollout_scenario():
    fm = FeatureManager()
    fm.define("beta", lambda ctx: ctx["user_id"] % 100 < 25)
    assert run(fm.active("beta", {"user_id": 10})) is True
    assert run(fm.active("beta", {"user_id": 90})) is False


def test_truthy_results_are_normalized_to_bool():
    fm = FeatureManager()
    fm.define("count", lambda ctx: ctx["n"])
    assert run(fm.active("count", {"n": 3})) is True
    assert run(fm.active("count", {"n": 0})) is False


def test_unknown_flag_raises_not_found():
    fm = FeatureManager()
    with pytest.raises(FeatureNotFoundError) as e:
        run(fm.active("my-feature-flag"))
    assert str(e.value) == "Feature flag 'my-feature-flag' is not defined"
    assert e.value.flag == "my-feature-flag"
    assert e.value.code == "E_FEATURE_NOT_FOUND"


def test_evaluator_errors_propagate_unchanged():
    def crash(ctx):
        raise RuntimeError("boom")

    fm = FeatureManager()
    fm.define("crash", crash)
    with pytest.raises(RuntimeError, match="boom"):
        run(fm.active("crash"))


def test_redefine_replaces_check():
    fm = FeatureManager()
    fm.define("toggle", lambda ctx: True)
    fm.define("toggle", lambda ctx: True)
    assert run(fm.active("toggle")) is True
    fm.define("toggle", lambda ctx: False)
    assert run(fm.active("toggle")) is False
    assert fm.get_defined_flags() == ["toggle"]


def test_defined_flags_keep_definition_order():
    fm = FeatureManager()
    for name in ("c", "a", "b"):
        fm.define(name)
    fm.define("a", lambda ctx: False)
    assert fm.get_defined_flags() == ["c", "a", "b"]


def test_empty_name_is_accepted():
    fm = FeatureManager()
    fm.define("")
    assert run(fm.active("")) is True


def test_define_and_store_without_store_is_a_configuration_error():
    fm = FeatureManager()
    with pytest.raises(StoreNotConfiguredError):
        run(fm.define_and_store("x", True))


def test_init_store_without_store_is_a_noop():
    run(FeatureManager().init_store())


def test_active_many_maps_failures_to_false():
    def crash(ctx):
        raise RuntimeError("boom")

    fm = FeatureManager()
    fm.define("on")
    fm.define("off", lambda ctx: False)
    fm.define("crash", crash)

    out = run(fm.active_many(["on", "off", "crash", "missing"]))
    assert out == {"on": True, "off": False, "crash": False, "missing": False}


def test_active_many_crash_scenario():
    def crash(ctx):
        raise RuntimeError("boom")

    fm = FeatureManager()
    fm.define("crash", crash)
    assert run(fm.active_many(["crash"])) == {"crash": False}


def test_active_many_runs_checks_concurrently():
    started = []

    async def slow(ctx):
        started.append(ctx["who"])
        await asyncio.sleep(0.2)
        return True

    fm = FeatureManager()
    fm.define("a", slow)
    fm.define("b", slow)

    async def go():
        loop = asyncio.get_running_loop()
        t0 = loop.time()
        out = await fm.active_many(["a", "b"], {"who": "x"})
        return out, loop.time() - t0

    out, elapsed = run(go())
    assert out == {"a": True, "b": True}
    assert elapsed < 0.35


def test_active_many_passes_context_to_every_check():
    fm = FeatureManager()
    fm.define("beta", lambda ctx: ctx["user_id"] % 100 < 25)
    fm.define("gamma", lambda ctx: ctx["user_id"] > 5)
    assert run(fm.active_many(["beta", "gamma"], {"user_id": 10})) == {"beta": True, "gamma": True}


def test_active_many_detailed_keeps_the_failure():
    def crash(ctx):
        raise ValueError("bad context")

    fm = FeatureManager()
    fm.define("crash", crash)
    fm.define("on")

    out = run(fm.active_many_detailed(["crash", "missing", "on"]))
    assert out["on"].active is True and out["on"].error is None
    assert out["crash"].active is False
    assert isinstance(out["crash"].error, ValueError)
    assert out["crash"].found is True
    assert isinstance(out["missing"].error, FeatureNotFoundError)
    assert out["missing"].found is False


def test_factory_returns_manager():
    fm = feature_manager()
    fm.define("my-feature-flag", lambda ctx: True)
    assert isinstance(fm, FeatureManager)
    assert fm.store is None
