"""
FastAPI + Uvicorn ASGI application.

Serves the gateway configuration API. Reads are answered from the in-memory
Cache; writes go through the handlers (store first, then cache).

Architecture:
  - FastAPI: routes, request body validation
  - Uvicorn: production ASGI server (handles signals, graceful shutdown)
  - Lifespan: loads settings, creates the store, populates the cache before
    the first request is accepted; a failed population aborts startup
  - Middleware: every path except the health check requires one of the
    configured API keys in the Authorization header

Entry point for production: uvicorn pocket_http_db.asgi:app --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Annotated, TypeVar

import structlog
from fastapi import Body, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from railway.http_support import build_fastapi_response
from railway.result import Result

from pocket_http_db import __version__, handlers
from pocket_http_db.cache import Cache
from pocket_http_db.config import AppSettings
from pocket_http_db.domain.models import (
    Application,
    Blockchain,
    LoadBalancer,
    Redirect,
    UpdateApplication,
    UpdateFirstDateSurpassed,
    UpdateLoadBalancer,
)
from pocket_http_db.domain.ports import StoreWriter
from pocket_http_db.main import configure_structlog, create_store

log = structlog.get_logger()

T = TypeVar("T")

HEALTH_MESSAGE = "Pocket HTTP DB is up and running!"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup: build the store and populate the cache, unless a cache was
    injected through create_app(). Shutdown: log only; the store holds no
    long-lived connections.
    """
    if app.state.cache is None:
        try:
            settings = AppSettings()
        except Exception as e:
            log.error("asgi.startup_error", error=f"Configuration error: {e}")
            raise

        configure_structlog(settings.log_level)
        log.info("asgi.startup_config", version=__version__, log_level=settings.log_level)

        store = create_store(settings)
        cache = Cache(store)
        result = await asyncio.to_thread(cache.populate)
        if result.is_failure():
            failure = result.error()
            log.error(
                "asgi.cache_population_failed",
                error_code=failure.code.value,
                error=failure.message,
            )
            raise RuntimeError(f"Cache population failed: {failure.message}")

        log.info("asgi.cache_populated", items=result.value())
        app.state.cache = cache
        app.state.writer = store
        app.state.api_keys = settings.api_key_set()

    log.info("asgi.startup_complete")
    yield
    log.info("asgi.shutdown", reason="SIGTERM or server stop")


# ─────────────────────── Dependencies ───────────────────────


def get_cache(request: Request) -> Cache:
    return request.app.state.cache


def get_writer(request: Request) -> StoreWriter:
    return request.app.state.writer


CacheDep = Annotated[Cache, Depends(get_cache)]
WriterDep = Annotated[StoreWriter, Depends(get_writer)]


def _listing(items: list[T]) -> JSONResponse:
    return build_fastapi_response(Result.success(items))


# ─────────────────────── Application factory ───────────────────────


def create_app(
    cache: Cache | None = None,
    writer: StoreWriter | None = None,
    api_keys: frozenset[str] = frozenset(),
) -> FastAPI:
    """
    Build the FastAPI application.

    Passing a populated `cache` and a `writer` skips the lifespan wiring,
    which is how tests drive the routes without a database.
    """
    app = FastAPI(
        title="pocket-http-db",
        description="Gateway configuration API backed by an in-memory read cache",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.cache = cache
    app.state.writer = writer
    app.state.api_keys = api_keys

    @app.middleware("http")
    async def authorize(
        request: Request, call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path == "/":
            return await call_next(request)
        if request.headers.get("Authorization", "") not in request.app.state.api_keys:
            log.warning("asgi.unauthorized", path=request.url.path)
            return PlainTextResponse("Unauthorized", status_code=401)
        return await call_next(request)

    @app.get("/")
    def health_check() -> PlainTextResponse:
        return PlainTextResponse(HEALTH_MESSAGE)

    # ──── Blockchains ────

    @app.get("/blockchain")
    def list_blockchains(cache: CacheDep) -> JSONResponse:
        return _listing(cache.list_blockchains())

    @app.post("/blockchain")
    def create_blockchain(
        blockchain: Blockchain, cache: CacheDep, writer: WriterDep,
    ) -> JSONResponse:
        return build_fastapi_response(handlers.create_blockchain(writer, cache, blockchain))

    @app.get("/blockchain/{blockchain_id}")
    def get_blockchain(blockchain_id: str, cache: CacheDep) -> JSONResponse:
        return build_fastapi_response(handlers.get_blockchain(cache, blockchain_id))

    @app.post("/blockchain/{blockchain_id}/activate")
    def activate_blockchain(
        blockchain_id: str,
        active: Annotated[bool, Body()],
        cache: CacheDep,
        writer: WriterDep,
    ) -> JSONResponse:
        return build_fastapi_response(
            handlers.activate_blockchain(writer, cache, blockchain_id, active)
            .map(lambda chain: chain.active)
        )

    # ──── Applications ────
    # Fixed paths are registered before /application/{application_id}.

    @app.get("/application")
    def list_applications(cache: CacheDep) -> JSONResponse:
        return _listing(cache.list_applications())

    @app.post("/application")
    def create_application(
        application: Application, cache: CacheDep, writer: WriterDep,
    ) -> JSONResponse:
        return build_fastapi_response(handlers.create_application(writer, cache, application))

    @app.get("/application/limits")
    def list_application_limits(cache: CacheDep) -> JSONResponse:
        return _listing(cache.list_application_limits())

    @app.post("/application/first_date_surpassed")
    def update_first_date_surpassed(
        update: UpdateFirstDateSurpassed, cache: CacheDep, writer: WriterDep,
    ) -> JSONResponse:
        return build_fastapi_response(handlers.update_first_date_surpassed(writer, cache, update))

    @app.get("/application/{application_id}")
    def get_application(application_id: str, cache: CacheDep) -> JSONResponse:
        return build_fastapi_response(handlers.get_application(cache, application_id))

    @app.put("/application/{application_id}")
    def update_application(
        application_id: str, update: UpdateApplication, cache: CacheDep, writer: WriterDep,
    ) -> JSONResponse:
        return build_fastapi_response(
            handlers.update_application(writer, cache, application_id, update)
        )

    # ──── Load balancers ────

    @app.get("/load_balancer")
    def list_load_balancers(cache: CacheDep) -> JSONResponse:
        return _listing(cache.list_load_balancers())

    @app.post("/load_balancer")
    def create_load_balancer(
        load_balancer: LoadBalancer, cache: CacheDep, writer: WriterDep,
    ) -> JSONResponse:
        return build_fastapi_response(handlers.create_load_balancer(writer, cache, load_balancer))

    @app.get("/load_balancer/{lb_id}")
    def get_load_balancer(lb_id: str, cache: CacheDep) -> JSONResponse:
        return build_fastapi_response(handlers.get_load_balancer(cache, lb_id))

    @app.put("/load_balancer/{lb_id}")
    def update_load_balancer(
        lb_id: str, update: UpdateLoadBalancer, cache: CacheDep, writer: WriterDep,
    ) -> JSONResponse:
        return build_fastapi_response(handlers.update_load_balancer(writer, cache, lb_id, update))

    # ──── Users ────

    @app.get("/user/{user_id}/application")
    def list_user_applications(user_id: str, cache: CacheDep) -> JSONResponse:
        return build_fastapi_response(handlers.list_applications_by_user(cache, user_id))

    @app.get("/user/{user_id}/load_balancer")
    def list_user_load_balancers(user_id: str, cache: CacheDep) -> JSONResponse:
        return build_fastapi_response(handlers.list_load_balancers_by_user(cache, user_id))

    # ──── Pay plans and redirects ────

    @app.get("/pay_plan")
    def list_pay_plans(cache: CacheDep) -> JSONResponse:
        return _listing(cache.list_pay_plans())

    @app.get("/pay_plan/{plan_type}")
    def get_pay_plan(plan_type: str, cache: CacheDep) -> JSONResponse:
        return build_fastapi_response(handlers.get_pay_plan(cache, plan_type))

    @app.post("/redirect")
    def create_redirect(redirect: Redirect, cache: CacheDep, writer: WriterDep) -> JSONResponse:
        return build_fastapi_response(handlers.create_redirect(writer, cache, redirect))

    return app


app = create_app()
