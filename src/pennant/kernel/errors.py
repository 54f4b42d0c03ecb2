from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass(eq=False)
class FeatureError(Exception):
    type: str = "about:blank"
    title: str = "Feature flag operation failed"
    detail: str = ""
    status: int = 400
    flag: Optional[str] = None
    code: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "title": self.title,
            "detail": self.detail,
            "status": self.status,
        }
        if self.flag is not None:
            data["flag"] = self.flag
        if self.code is not None:
            data["code"] = self.code
        if self.meta is not None:
            data["meta"] = self.meta
        return data

    def __str__(self) -> str:
        return self.detail or self.title


class FeatureNotFoundError(FeatureError):
    """A flag has neither a registered evaluator nor a stored value."""

    def __init__(self, flag: str):
        super().__init__(
            title="Feature not found",
            detail=f"Feature flag '{flag}' is not defined",
            status=404,
            flag=flag,
            code="E_FEATURE_NOT_FOUND",
        )


class StoreNotConfiguredError(FeatureError):
    """A store-dependent operation was called without a storage provider."""

    def __init__(self, detail: str = "No storage provider attached"):
        super().__init__(
            title="Storage provider not configured",
            detail=detail,
            status=500,
            code="E_STORE_NOT_CONFIGURED",
        )


class StoreInitializationError(FeatureError):
    def __init__(self, detail: str, meta: Optional[Dict[str, Any]] = None):
        super().__init__(
            title="Storage provider initialization failed",
            detail=detail,
            status=503,
            code="E_STORE_INIT",
            meta=meta,
        )
