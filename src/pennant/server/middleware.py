# src/pennant/server/middleware.py
from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from pennant.core.logging import get_logger
from pennant.kernel.errors import FeatureError
from pennant.server.integration import active_for_request, get_feature_service, resolve_extra_context

log = get_logger(__name__)

GATE_ACTIONS = ("next", "abort", "redirect", "custom")

CustomHandler = Callable[[Request], Union[Response, Awaitable[Response]]]


@dataclass
class GateOptions:
    flag: str
    on_disabled: str = "abort"
    redirect_to: Optional[str] = None
    custom_handler: Optional[CustomHandler] = None
    context_provider: Optional[Callable[[Request], Any]] = None

    def __post_init__(self) -> None:
        if self.on_disabled not in GATE_ACTIONS:
            raise ValueError(f"Unknown on_disabled action: {self.on_disabled}")
        if self.on_disabled == "redirect" and not self.redirect_to:
            raise ValueError('redirect_to option is required when on_disabled is "redirect"')
        if self.on_disabled == "custom" and self.custom_handler is None:
            raise ValueError('custom_handler option is required when on_disabled is "custom"')


class FeatureGateMiddleware(BaseHTTPMiddleware):
    """
    Gate whole path prefixes behind flags:

        app.add_middleware(FeatureGateMiddleware, gates={
            "/beta": GateOptions(flag="beta"),
            "/new-ui": GateOptions(flag="new-ui", on_disabled="redirect", redirect_to="/"),
        })

    The longest matching prefix wins. The feature service must be installed
    on app.state (see pennant.server.integration.install).
    """

    def __init__(self, app, gates: Dict[str, GateOptions]):
        super().__init__(app)
        # longest prefix first
        self._gates = sorted(gates.items(), key=lambda kv: len(kv[0]), reverse=True)

    def _match(self, path: str) -> Optional[GateOptions]:
        for prefix, opts in self._gates:
            if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
                return opts
        return None

    async def dispatch(self, request, call_next):
        opts = self._match(request.url.path)
        if opts is None:
            return await call_next(request)

        service = get_feature_service(request)
        extra = await resolve_extra_context(opts.context_provider, request)
        try:
            is_active = await active_for_request(service, opts.flag, request, extra)
        except FeatureError as e:
            # raised outside the app exception handlers; render the same problem details
            return JSONResponse(e.to_dict(), status_code=e.status)
        if is_active:
            return await call_next(request)

        log.debug("gate closed flag=%s path=%s action=%s", opts.flag, request.url.path, opts.on_disabled)
        if opts.on_disabled == "next":
            return await call_next(request)
        if opts.on_disabled == "redirect":
            return RedirectResponse(opts.redirect_to, status_code=307)
        if opts.on_disabled == "custom":
            resp = opts.custom_handler(request)
            if inspect.isawaitable(resp):
                resp = await resp
            return resp
        return JSONResponse({"detail": "Feature not available"}, status_code=404)
