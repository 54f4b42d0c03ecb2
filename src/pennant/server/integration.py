# src/pennant/server/integration.py
"""
FastAPI glue.

    service = FeatureService(ServiceConfig(store=build_store()))
    app = FastAPI(lifespan=feature_lifespan(service))

    @app.get("/beta", dependencies=[Depends(require_feature("beta"))])
    async def beta(): ...

Public:
- create_feature_context(request, additional=None) -> dict
- get_feature_service(request) -> FeatureService
- install(app, service)
- feature_lifespan(service)
- async active_for_request(service, name, request, additional=None) -> bool
- require_feature(flag, on_disabled="abort", redirect_to=None, context_provider=None, custom_handler=None)
"""
from __future__ import annotations

import inspect
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from pennant.core.ctx import set_ctx
from pennant.kernel.errors import FeatureError
from pennant.services.feature_service import FeatureService


STATE_KEY = "features"
DEPENDENCY_ACTIONS = ("abort", "redirect", "next", "custom")

RequestContextProvider = Callable[[Request], Any]
CustomHandler = Callable[[Request], Union[Response, Awaitable[Response]]]


class FeatureGateResponse(Exception):
    """Carries the response of a `custom` gate out of a dependency."""
    def __init__(self, response: Response):
        super().__init__("feature gate closed")
        self.response = response


def create_feature_context(request: Request, additional: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Evaluation context for a request: request, user, ip, user_agent (+ extras)."""
    return {
        "request": request,
        "user": getattr(request.state, "user", None),
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        **(additional or {}),
    }


def get_feature_service(request: Request) -> FeatureService:
    service = getattr(request.app.state, STATE_KEY, None)
    if service is None:
        raise RuntimeError("feature service not installed on this app (call pennant.server.integration.install)")
    return service


async def _feature_error_handler(request: Request, exc: FeatureError) -> JSONResponse:
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


async def _gate_response_handler(request: Request, exc: FeatureGateResponse) -> Response:
    return exc.response


def install(app: FastAPI, service: FeatureService) -> None:
    """Attach the service to app.state; render FeatureError as problem details and custom gate responses as is."""
    setattr(app.state, STATE_KEY, service)
    app.add_exception_handler(FeatureError, _feature_error_handler)
    app.add_exception_handler(FeatureGateResponse, _gate_response_handler)


def feature_lifespan(service: FeatureService):
    """Lifespan that installs the service and initializes its store on startup."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        install(app, service)
        await service.initialize()
        yield

    return lifespan


async def active_for_request(
    service: FeatureService,
    name: str,
    request: Request,
    additional: Optional[Dict[str, Any]] = None,
) -> bool:
    request_id = request.headers.get("x-request-id")
    if request_id:
        set_ctx(request_id=request_id)
    return await service.active(name, create_feature_context(request, additional))


async def resolve_extra_context(provider: Optional[RequestContextProvider], request: Request) -> Optional[Dict[str, Any]]:
    if provider is None:
        return None
    extra = provider(request)
    if inspect.isawaitable(extra):
        extra = await extra
    return extra


def require_feature(
    flag: str,
    on_disabled: str = "abort",
    redirect_to: Optional[str] = None,
    context_provider: Optional[RequestContextProvider] = None,
    custom_handler: Optional[CustomHandler] = None,
):
    """
    Route dependency guarding a handler behind a flag.

    on_disabled:
      - "abort"    -> 404 "Feature not available"
      - "redirect" -> 307 to `redirect_to`
      - "next"     -> let the request through; the dependency yields False
      - "custom"   -> respond with `custom_handler(request)`
    """
    if on_disabled not in DEPENDENCY_ACTIONS:
        raise ValueError(f"Unknown on_disabled action: {on_disabled}")
    if on_disabled == "redirect" and not redirect_to:
        raise ValueError('redirect_to option is required when on_disabled is "redirect"')
    if on_disabled == "custom" and custom_handler is None:
        raise ValueError('custom_handler option is required when on_disabled is "custom"')

    async def dependency(request: Request) -> bool:
        service = get_feature_service(request)
        extra = await resolve_extra_context(context_provider, request)
        is_active = await active_for_request(service, flag, request, extra)
        if is_active or on_disabled == "next":
            return is_active
        if on_disabled == "redirect":
            raise HTTPException(status_code=307, headers={"Location": redirect_to})
        if on_disabled == "custom":
            resp = custom_handler(request)
            if inspect.isawaitable(resp):
                resp = await resp
            raise FeatureGateResponse(resp)
        raise HTTPException(status_code=404, detail="Feature not available")

    return dependency
