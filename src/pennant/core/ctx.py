# src/pennant/core/ctx.py
from __future__ import annotations
import contextvars
from typing import Optional, Mapping

_flag       = contextvars.ContextVar("flag",       default=None)
_request_id = contextvars.ContextVar("request_id", default=None)

def set_ctx(*, flag: Optional[str]=None, request_id: Optional[str]=None) -> None:
    if flag is not None:       _flag.set(flag)
    if request_id is not None: _request_id.set(request_id)

def get_ctx() -> Mapping[str, Optional[str]]:
    return {
        "flag":       _flag.get(),
        "request_id": _request_id.get(),
    }
