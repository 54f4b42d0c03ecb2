"""
Administer stored flags in the store configured by PENNANT_* settings.

Examples:
  pennant init
  pennant set beta true
  pennant --json get beta
  pennant delete beta
  pennant --driver sql --database-url sqlite+aiosqlite:///flags.db get beta
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from pennant.core.config import Settings, settings
from pennant.core.logging import configure_logging
from pennant.drivers import STORE_DRIVERS, build_store
from pennant.kernel.errors import FeatureError, StoreNotConfiguredError
from pennant.kernel.feature import FeatureManager
from pennant.kernel.storage import is_persistent

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _parse_bool(raw: str) -> bool:
    s = raw.strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {raw!r}")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="pennant", description="Manage stored feature flags.")
    p.add_argument("--driver", choices=STORE_DRIVERS, default=None, help="Override PENNANT_STORE_DRIVER.")
    p.add_argument("--database-url", default=None, help="Override PENNANT_DATABASE_URL (sql driver).")
    p.add_argument("--json", action="store_true", help="Output as JSON.")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Create the backing table / check the connection.")

    g = sub.add_parser("get", help="Read a stored flag.")
    g.add_argument("name")

    s = sub.add_parser("set", help="Store a flag value.")
    s.add_argument("name")
    s.add_argument("value", type=_parse_bool, nargs="?", default=True)

    d = sub.add_parser("delete", help="Remove a stored flag.")
    d.add_argument("name")
    return p.parse_args(argv)


def _settings_for(args: argparse.Namespace) -> Settings:
    overrides: Dict[str, Any] = {}
    if args.driver:
        overrides["STORE_DRIVER"] = args.driver
    if args.database_url:
        overrides["DATABASE_URL"] = args.database_url
    return settings.model_copy(update=overrides) if overrides else settings


async def _run(args: argparse.Namespace) -> Dict[str, Any]:
    store = build_store(_settings_for(args))
    if store is None:
        raise StoreNotConfiguredError("No storage provider configured (set PENNANT_STORE_DRIVER or --driver)")
    manager = FeatureManager(store=store)
    try:
        if args.command == "init":
            await manager.init_store()
            return {"ok": True, "store": type(store).__name__, "persistent": is_persistent(store)}
        if args.command == "set":
            await manager.define_and_store(args.name, args.value)
            return {"name": args.name, "value": args.value}
        if args.command == "get":
            return {"name": args.name, "value": await store.get(args.name)}
        await store.delete(args.name)
        return {"name": args.name, "deleted": True}
    finally:
        close = getattr(store, "close", None)
        if close is not None:
            await close()


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging()
    try:
        out = asyncio.run(_run(args))
    except (FeatureError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(out, ensure_ascii=False))
        return 0

    if args.command == "init":
        print(f"store: {out['store']} (persistent={out['persistent']})")
    elif args.command == "get":
        value = out["value"]
        print(f"{args.name}: {'(absent)' if value is None else str(value).lower()}")
        return 0 if value is not None else 1
    elif args.command == "set":
        print(f"{args.name}: {str(out['value']).lower()}")
    else:
        print(f"{args.name}: deleted")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
