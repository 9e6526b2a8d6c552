"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from registrar.adapters.identity import IdentityProvider
from registrar.core.config import get_settings
from registrar.errors import ApiError
from registrar.repositories.base import RecordStore
from registrar.routes import access_router, approvals_router, auth_router, profiles_router
from registrar.routes.dependencies import build_identity_provider, build_record_store
from registrar.schemas.error import ErrorResponse
from registrar.services.session import SessionResolver

_CREDENTIAL_VALIDATION_PATHS: set[tuple[str, str]] = {
    ("POST", "/api/v1/auth/register"),
    ("POST", "/api/v1/auth/login"),
}


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    resolver: SessionResolver = app.state.session_resolver
    await resolver.start()
    await resolver.settle()
    try:
        yield
    finally:
        await resolver.stop()


def create_app(
    *,
    identity_provider: IdentityProvider | None = None,
    store: RecordStore | None = None,
) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Registrar Console API", version="1.0.0", lifespan=_lifespan)
    app.state.identity_provider = identity_provider or build_identity_provider(settings)
    app.state.store = store or build_record_store(settings)
    app.state.session_resolver = SessionResolver(app.state.identity_provider, app.state.store)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Credential forms surface inline errors; keep the field list but never echo the input.
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        if (request.method.upper(), route_path) in _CREDENTIAL_VALIDATION_PATHS:
            fields = sorted({".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()})
            payload = ErrorResponse(
                code="VALIDATION_ERROR",
                message="Invalid credential form",
                details={"fields": fields},
            )
            return JSONResponse(status_code=422, content=payload.model_dump(exclude_none=True))

        return await request_validation_exception_handler(request, exc)

    api_prefix = "/api/v1"
    app.include_router(auth_router, prefix=api_prefix)
    app.include_router(profiles_router, prefix=api_prefix)
    app.include_router(approvals_router, prefix=api_prefix)
    app.include_router(access_router, prefix=api_prefix)

    return app


app = create_app()
