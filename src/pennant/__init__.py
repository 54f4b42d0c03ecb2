"""
pennant: feature flags for asyncio applications.

    from pennant import FeatureManager, create_in_memory_driver

    features = FeatureManager(store=create_in_memory_driver())
    features.define("beta", lambda ctx: ctx["user_id"] % 100 < 25)
    await features.active("beta", {"user_id": 10})   # True
"""
from pennant.drivers import InMemoryDriver, build_store, create_in_memory_driver
from pennant.kernel.errors import (
    FeatureError,
    FeatureNotFoundError,
    StoreInitializationError,
    StoreNotConfiguredError,
)
from pennant.kernel.feature import (
    FeatureManager,
    FlagResult,
    feature_manager,
    feature_manager_with_database,
)
from pennant.kernel.naming import generate_feature_name
from pennant.kernel.storage import (
    DatabaseStorageProvider,
    FeatureStorageProvider,
    InitializableStore,
    PersistentStore,
    is_persistent,
)
from pennant.services.feature_service import (
    FeatureDefinition,
    FeatureService,
    ServiceConfig,
    create_feature_service,
    create_feature_service_with_database,
)

__version__ = "0.7.0"

__all__ = [
    "DatabaseStorageProvider",
    "FeatureDefinition",
    "FeatureError",
    "FeatureManager",
    "FeatureNotFoundError",
    "FeatureService",
    "FeatureStorageProvider",
    "FlagResult",
    "InMemoryDriver",
    "InitializableStore",
    "PersistentStore",
    "ServiceConfig",
    "StoreInitializationError",
    "StoreNotConfiguredError",
    "build_store",
    "create_feature_service",
    "create_feature_service_with_database",
    "create_in_memory_driver",
    "feature_manager",
    "feature_manager_with_database",
    "generate_feature_name",
    "is_persistent",
]
