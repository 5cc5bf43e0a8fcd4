# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from redis.asyncio import Redis

from catan.auth.passwords import PasswordHasher
from catan.auth.session import SessionManager
from catan.errors import CatanError, InvalidArgument, NotFound, Unexpected
from catan.infra.accounts_repo import AccountsRepo
from catan.infra.db import create_engine, create_redis, init_schema
from catan.infra.session_store import RedisSessionStore
from catan.permissions import (
    CurrentSession,
    Services,
    clear_session_cookie,
    current_session_optional,
    get_services,
    require_session,
    session_token,
    set_session_cookie,
)
from catan.realtime import ConnectionRegistry
from catan.services.account_service import AccountService
from catan.services.auth_flow import AuthFlow
from catan.services.mailer import Mailer, send_welcome
from catan.settings import Settings

logger = logging.getLogger(__name__)

RedisFactory = Callable[[Settings], Redis]


async def _json_body(request: Request) -> Optional[dict]:
    raw = await request.body()
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise InvalidArgument("Request body must be JSON") from e
    return data if isinstance(data, dict) else None


# ------------------ Auth ------------------

auth_router = APIRouter(prefix="/auth")


@auth_router.post("/login")
async def login(request: Request, services: Services = Depends(get_services)):
    result = await services.auth.login(await _json_body(request))
    resp = JSONResponse(result.body())
    set_session_cookie(resp, services, result.token)
    return resp


@auth_router.post("/signup")
async def signup(
    request: Request,
    background: BackgroundTasks,
    services: Services = Depends(get_services),
):
    result = await services.auth.signup(await _json_body(request))
    if services.mailer is not None:
        background.add_task(
            send_welcome, services.mailer, result.user["id"], result.user["username"], result.user["email"]
        )
    resp = JSONResponse(result.body(), status_code=201, background=background)
    set_session_cookie(resp, services, result.token)
    return resp


@auth_router.get("/logout")
async def logout(request: Request, services: Services = Depends(get_services)):
    body = await services.auth.logout(session_token(request))
    resp = JSONResponse(body)
    clear_session_cookie(resp, services)
    return resp


@auth_router.get("/session")
async def whoami(request: Request, services: Services = Depends(get_services)):
    user = await services.auth.whoami(session_token(request))
    return {"user": user.as_dict()}


# ------------------ Users ------------------

users_router = APIRouter(prefix="/users")


@users_router.get("/me")
async def read_me(
    current: CurrentSession = Depends(require_session),
    services: Services = Depends(get_services),
):
    account = await services.accounts.get_account(current.user.id)
    if account is None:
        raise NotFound("User not found")
    return {"user": account.as_dict()}


@users_router.patch("/me")
async def update_me(
    request: Request,
    current: CurrentSession = Depends(require_session),
    services: Services = Depends(get_services),
):
    account = await services.accounts.update_account(current.user.id, await _json_body(request))
    await services.sessions.save_session(current.token, account.snapshot())
    return {"message": "User updated successfully", "user": account.as_dict()}


@users_router.delete("/me")
async def delete_me(
    current: CurrentSession = Depends(require_session),
    services: Services = Depends(get_services),
):
    await services.accounts.delete_account(current.user.id)
    await services.sessions.destroy_session(current.token)
    resp = JSONResponse({"message": "User deleted successfully"})
    clear_session_cookie(resp, services)
    return resp


@users_router.get("/{user_id}")
async def read_user(
    user_id: int,
    current: CurrentSession = Depends(require_session),
    services: Services = Depends(get_services),
):
    account = await services.accounts.get_account(user_id)
    if account is None:
        raise NotFound("User not found")
    return {"user": account.as_dict()}


# ------------------ Realtime ------------------

realtime_router = APIRouter()


@realtime_router.websocket("/ws")
async def realtime(websocket: WebSocket):
    current = await current_session_optional(websocket)
    await get_services(websocket).realtime.serve(websocket, current.user if current else None)


# ------------------ App ------------------


async def _catan_error(request: Request, exc: CatanError) -> JSONResponse:
    if isinstance(exc, Unexpected):
        logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(exc.as_dict(), status_code=exc.status_code)


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Path/query parameters that fail to parse; bodies are validated by the services.
    fields = ", ".join(str(err.get("loc", ("",))[-1]) for err in exc.errors())
    return JSONResponse(InvalidArgument(f"Invalid value for: {fields}").as_dict(), status_code=400)


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(Unexpected().as_dict(), status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    *,
    redis_factory: Optional[RedisFactory] = None,
    hasher: Optional[PasswordHasher] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """Build the application. Store clients are opened and closed by the lifespan."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_engine(settings)
        redis = (redis_factory or create_redis)(settings)
        try:
            await redis.ping()
            logger.info("Connected to Redis")
            await init_schema(engine)

            sessions = SessionManager(
                RedisSessionStore(redis, prefix=settings.session_prefix, idle_seconds=settings.session_idle_seconds),
                settings.session_secret,
            )
            accounts = AccountService(AccountsRepo(engine), hasher or PasswordHasher())
            app.state.services = Services(
                settings=settings,
                accounts=accounts,
                sessions=sessions,
                auth=AuthFlow(accounts, sessions),
                realtime=ConnectionRegistry(),
                mailer=mailer or (Mailer.from_settings(settings) if settings.mail_enabled else None),
            )
            yield
        finally:
            await redis.aclose()
            await engine.dispose()
            logger.info("Store connections closed")

    app = FastAPI(title="Catan", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CatanError, _catan_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)

    @app.get("/", response_class=PlainTextResponse)
    def root() -> Any:
        return "Server is running!"

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(realtime_router)
    return app
