from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from .api.v1.endpoints import auth, posts, users
from .core import runtime
from .core.config import get_cors_origins, get_redis_socket_timeout, get_redis_url, use_fake_redis
from .core.errors import FeedError
from .core.logger import setup_logging

log = logging.getLogger(__name__)


def create_redis_client() -> Any:
    if use_fake_redis():
        from .core.memory_redis import AsyncMemoryRedis

        log.info("using in-process memory redis")
        return AsyncMemoryRedis()
    import redis.asyncio as redis

    timeout = get_redis_socket_timeout()
    return redis.from_url(
        get_redis_url(),
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[override]
    client = create_redis_client()
    # Opportunistic ping; the app still boots and /healthz reports the outage
    try:
        await client.ping()
    except RedisError as e:
        log.warning("redis ping failed at startup: %s", e)
    runtime.redis_client = client
    yield
    runtime.redis_client = None
    try:
        await client.aclose()
    except RedisError as e:
        log.warning("error closing redis: %s", e)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="Flexxion Feed", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FeedError)
    async def handle_feed_error(request: Request, exc: FeedError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

    @app.exception_handler(RedisError)
    async def handle_storage_error(request: Request, exc: RedisError) -> JSONResponse:
        log.error("storage failure on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable, retry later"})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        log.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Server error"})

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        status: dict[str, Any] = {"ok": True}
        client = runtime.redis_client
        if client is None:
            status["redis"] = {"connected": False, "message": "redis not initialized"}
            return status
        try:
            pong = await client.ping()
            status["redis"] = {"connected": bool(pong)}
        except RedisError as e:  # pragma: no cover - diagnostic only
            status["redis"] = {"connected": False, "error": str(e)}
        return status

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])  # e.g., /api/auth/login
    app.include_router(users.router, prefix="/api/users", tags=["users"])  # e.g., /api/users/{id}
    app.include_router(posts.router, prefix="/api/posts", tags=["posts"])  # e.g., /api/posts/{id}/like
    return app


app = create_app()
