# src/pennant/core/logging.py
from __future__ import annotations

import datetime as dt
import logging
import sys
from typing import Tuple

from pennant.core.config import settings
from pennant.core.ctx import get_ctx

# Context fields we want present on every record
CTX_FIELDS: Tuple[str, ...] = (
    "flag",
    "request_id",
)

# Keep a handle to the original factory
_old_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs):
    """
    Global LogRecord factory that attaches context fields to *every* record,
    so formatters like '%(flag)s' won't explode for third-party logs.
    """
    rec: logging.LogRecord = _old_factory(*args, **kwargs)
    ctx = get_ctx()

    for f in CTX_FIELDS:
        if not hasattr(rec, f):
            rec.__dict__[f] = ctx.get(f)

    return rec


logging.setLogRecordFactory(_record_factory)


class _SafeFormatter(logging.Formatter):
    """ISO8601 UTC timestamps and resilience to missing context fields."""
    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "asctime"):
            record.asctime = dt.datetime.now(dt.timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds") + "Z"
        for f in CTX_FIELDS:
            if not hasattr(record, f):
                record.__dict__[f] = None
        return super().format(record)


DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s flag=%(flag)s request=%(request_id)s msg=%(message)s"


def _build_handler() -> logging.Handler:
    h = logging.StreamHandler(sys.stdout)
    fmt = settings.LOG_FORMAT or DEFAULT_FORMAT
    h.setFormatter(_SafeFormatter(fmt))
    return h


def configure_logging(level: str | None = None) -> None:
    """
    Attach the pennant handler to the library's logger namespace. Meant for
    entry points (the CLI); a host application configures logging itself.
    When the root already has handlers, records simply propagate there.
    """
    logger = logging.getLogger("pennant")
    own = [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]
    if not own and not logging.getLogger().handlers:
        logger.addHandler(_build_handler())
    logger.setLevel(level or settings.LOG_LEVEL)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# Library default: silent unless the host (or configure_logging) adds handlers
logging.getLogger("pennant").addHandler(logging.NullHandler())
