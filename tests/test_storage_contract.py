from decimal import Decimal

import pytest

from pennant.drivers.memory import InMemoryDriver
from pennant.kernel.errors import FeatureNotFoundError, StoreNotConfiguredError
from pennant.kernel.naming import generate_feature_name
from pennant.kernel.storage import (
    FeatureStorageProvider,
    InitializableStore,
    PersistentStore,
    coerce_stored_value,
    is_persistent,
)


class BareStore:
    async def set(self, flag, value): ...
    async def get(self, flag): ...
    async def delete(self, flag): ...


def test_capability_protocols():
    assert isinstance(BareStore(), FeatureStorageProvider)
    assert not isinstance(BareStore(), InitializableStore)
    assert not isinstance(BareStore(), PersistentStore)
    assert isinstance(InMemoryDriver(), PersistentStore)


def test_is_persistent_probe():
    assert is_persistent(BareStore()) is False
    assert is_persistent(InMemoryDriver()) is False
    assert is_persistent(None) is False


@pytest.mark.parametrize("raw,expected", [
    (None, None),
    (True, True),
    (False, False),
    (1, True),
    (0, False),
    (Decimal("1"), True),
    (Decimal("0"), False),
    ("1", True),
    ("0", False),
    ("true", True),
    ("false", False),
    (b"1", True),
])
def test_coerce_stored_value(raw, expected):
    assert coerce_stored_value(raw) is expected


def test_coerce_rejects_garbage():
    with pytest.raises(ValueError):
        coerce_stored_value("maybe")


def test_error_problem_details():
    err = FeatureNotFoundError("beta")
    data = err.to_dict()
    assert data["status"] == 404
    assert data["flag"] == "beta"
    assert data["code"] == "E_FEATURE_NOT_FOUND"
    assert data["detail"] == "Feature flag 'beta' is not defined"

    cfg = StoreNotConfiguredError()
    assert str(cfg) == "No storage provider attached"
    assert "flag" not in cfg.to_dict()


def test_generate_feature_name():
    assert generate_feature_name("context", "flag") == "context:flag"
    assert generate_feature_name("context", "flag", "subFlag") == "context:flag.subFlag"


def test_generate_feature_name_requires_parts():
    with pytest.raises(ValueError, match="Context is required"):
        generate_feature_name("", "flag")
    with pytest.raises(ValueError, match="Flag is required"):
        generate_feature_name("context", "")
