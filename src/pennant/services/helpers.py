# src/pennant/services/helpers.py
"""
Helpers built on top of FeatureService.

- ABTesting                 -> deterministic group splits / percentage rollouts
- environment flags         -> evaluators gated on an explicit environment name
- conditional execution     -> if_feature_active / if_feature_else
- get_user_features         -> flag map for one user
- template_globals          -> never-raising helpers for templates
"""
from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from pennant.core.logging import get_logger
from pennant.services.feature_service import FeatureService

log = get_logger(__name__)

Identifier = Union[int, str]


def _numeric_id(identifier: Identifier) -> int:
    # string ids use their length
    return len(identifier) if isinstance(identifier, str) else int(identifier)


class ABTesting:
    @staticmethod
    def split_by_user_id(user_id: Identifier, group_count: int = 2) -> int:
        return _numeric_id(user_id) % group_count

    @staticmethod
    def split_by_ip(ip: str, group_count: int = 2) -> int:
        total = sum(int(part) for part in ip.split(".") if part.isdigit())
        return total % group_count

    @staticmethod
    def percentage_rollout(identifier: Identifier, percentage: int) -> bool:
        return _numeric_id(identifier) % 100 < percentage

    @staticmethod
    def create_ab_test(
        test_name: str,
        percentage: int = 50,
        identifier: Optional[Callable[[Any], Identifier]] = None,
    ) -> Callable[[Any], Awaitable[bool]]:
        """
        Build an evaluator enabling `percentage`% of identifiers.
        The default identifier is the context's user id, then its ip, then 0.
        """
        ident = identifier or _default_identifier

        async def check(context: Any) -> bool:
            return ABTesting.percentage_rollout(ident(context), percentage)

        check.__name__ = f"ab_test_{test_name}"
        return check


def _default_identifier(context: Any) -> Identifier:
    if not isinstance(context, dict):
        return 0
    user = context.get("user")
    user_id = user.get("id") if isinstance(user, dict) else getattr(user, "id", None)
    return user_id or context.get("ip") or 0


# ---------------------------- environment flags ------------------------------
# The environment name is passed in; read it once at the edge (settings.ENV).

def is_development(env: str) -> bool:
    return env == "development"


def is_production(env: str) -> bool:
    return env == "production"


def is_testing(env: str) -> bool:
    return env == "test"


def environment_flag(environments: Iterable[str], env: str) -> Callable[[Any], bool]:
    """Evaluator that is on when `env` is one of `environments`."""
    enabled = env in set(environments)
    return lambda _context=None: enabled


def development_only(env: str) -> Callable[[Any], bool]:
    return environment_flag(["development"], env)


def production_only(env: str) -> Callable[[Any], bool]:
    return environment_flag(["production"], env)


# --------------------------- conditional execution ---------------------------

async def _call(fn: Callable[[], Any]) -> Any:
    out = fn()
    if inspect.isawaitable(out):
        out = await out
    return out


async def if_feature_active(
    service: FeatureService,
    name: str,
    callback: Callable[[], Any],
    context: Any = None,
) -> Any:
    """Run `callback` only when the flag is on; returns None otherwise."""
    if await service.active(name, context):
        return await _call(callback)
    return None


async def if_feature_else(
    service: FeatureService,
    name: str,
    on_active: Callable[[], Any],
    on_inactive: Callable[[], Any],
    context: Any = None,
) -> Any:
    return await _call(on_active if await service.active(name, context) else on_inactive)


async def get_user_features(
    service: FeatureService,
    user: Any,
    names: Optional[List[str]] = None,
) -> Dict[str, bool]:
    """Evaluate `names` (default: every defined flag) with {"user": user} as context."""
    flags = names if names is not None else service.get_defined_flags()
    return await service.active_many(flags, {"user": user})


# ------------------------------ template globals -----------------------------

def template_globals(service: FeatureService) -> Dict[str, Callable[..., Awaitable[Any]]]:
    """
    Async helpers to expose to templates (e.g. Jinja2 env.globals.update(...)).
    They never raise: failures render as "off".
    """
    async def is_feature_active(name: str, context: Any = None) -> bool:
        try:
            return await service.active(name, context)
        except Exception as e:
            log.debug("template check failed flag=%s err=%r", name, e)
            return False

    async def get_features(names: List[str], context: Any = None) -> Dict[str, bool]:
        try:
            return await service.active_many(names, context)
        except Exception as e:
            log.debug("template batch check failed err=%r", e)
            return {n: False for n in names}

    return {"is_feature_active": is_feature_active, "get_features": get_features}
