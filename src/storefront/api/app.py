"""Reference storefront API application.

Serves the endpoints the checkout core consumes, backed by an in-memory
store. Intended for local development and for integration tests of the
httpx client adapter.

Usage:
    uvicorn storefront.api.app:app --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError

from storefront.api.backend import StorefrontBackend
from storefront.api.routes import auth_router, checkout_router, order_router, promo_router, user_router
from storefront.errors import AuthenticationError

API_PREFIX = "/api"


async def _authentication_error(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"detail": {"error": exc.message, "remaining_attempts": exc.remaining_attempts}},
    )


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": exc.messages})


def create_app(backend: StorefrontBackend | None = None) -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        description="Reference server for the storefront checkout core",
    )
    app.state.backend = backend or StorefrontBackend.with_demo_data()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AuthenticationError, _authentication_error)
    app.add_exception_handler(ValidationError, _validation_error)

    for router in (auth_router, promo_router, checkout_router, order_router, user_router):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok"})

    return app


app = create_app()
