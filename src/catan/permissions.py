# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Response
from starlette.requests import HTTPConnection

from catan.auth.session import SessionData, SessionManager
from catan.errors import Unauthorized
from catan.realtime import ConnectionRegistry
from catan.services.account_service import AccountService
from catan.services.auth_flow import AuthFlow
from catan.services.mailer import Mailer
from catan.settings import Settings


@dataclass
class Services:
    """Everything a handler may use; built once in the app lifespan."""

    settings: Settings
    accounts: AccountService
    sessions: SessionManager
    auth: AuthFlow
    realtime: ConnectionRegistry
    mailer: Optional[Mailer] = None


@dataclass(frozen=True)
class CurrentSession:
    token: str
    user: SessionData


def get_services(conn: HTTPConnection) -> Services:
    return conn.app.state.services


def session_token(conn: HTTPConnection) -> Optional[str]:
    """The raw session token carried by the request cookie, if its signature holds."""
    services = get_services(conn)
    return services.sessions.unsign(conn.cookies.get(services.settings.cookie_name))


async def current_session_optional(conn: HTTPConnection) -> Optional[CurrentSession]:
    token = session_token(conn)
    if not token:
        return None
    user = await get_services(conn).sessions.resolve_session(token)
    if user is None:
        return None
    return CurrentSession(token=token, user=user)


async def require_session(
    current: Optional[CurrentSession] = Depends(current_session_optional),
) -> CurrentSession:
    if current is None:
        raise Unauthorized("User not logged in")
    return current


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure, "path": "/"}


def set_session_cookie(response: Response, services: Services, token: str) -> None:
    response.set_cookie(
        services.settings.cookie_name,
        services.sessions.sign(token),
        **cookie_settings(services.settings),
    )


def clear_session_cookie(response: Response, services: Services) -> None:
    response.delete_cookie(services.settings.cookie_name, path="/")
