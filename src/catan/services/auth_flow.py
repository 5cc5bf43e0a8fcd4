# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Login / signup / logout / whoami over a single request.

Handlers take the session token (or ``None``) and return plain results; they
never touch request state. Domain errors propagate as ``CatanError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from catan.auth.session import SessionData, SessionManager
from catan.errors import Conflict, DuplicateAccount, InvalidArgument, Unauthorized
from catan.services.account_service import AccountService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: Dict[str, Any]
    message: str

    def body(self) -> Dict[str, Any]:
        return {"message": self.message, "user": self.user}


def _require(body: Optional[Mapping[str, Any]], *names: str, message: str) -> Dict[str, str]:
    if not isinstance(body, Mapping):
        raise InvalidArgument("Request body is required")
    out: Dict[str, str] = {}
    for name in names:
        value = body.get(name)
        if not value or not isinstance(value, str):
            raise InvalidArgument(message)
        out[name] = value
    return out


class AuthFlow:
    def __init__(self, accounts: AccountService, sessions: SessionManager) -> None:
        self._accounts = accounts
        self._sessions = sessions

    async def login(self, body: Optional[Mapping[str, Any]]) -> AuthResult:
        data = _require(
            body, "usernameOrEmail", "password", message="Username/Email and password are required"
        )
        account = await self._accounts.verify_credentials(data["usernameOrEmail"], data["password"])
        if not account:
            logger.info("Failed login attempt")
            raise Unauthorized("Invalid credentials")

        snapshot = account.snapshot()
        token = await self._sessions.create_session(snapshot)
        logger.info("Account %s logged in", account.id)
        return AuthResult(token=token, user=snapshot, message="Login successful")

    async def signup(self, body: Optional[Mapping[str, Any]]) -> AuthResult:
        data = _require(
            body, "username", "email", "password", message="Username, email, and password are required"
        )
        try:
            account = await self._accounts.create_account(data["username"], data["email"], data["password"])
        except Conflict as e:
            raise DuplicateAccount() from e

        # Signup implies login.
        snapshot = account.snapshot()
        token = await self._sessions.create_session(snapshot)
        return AuthResult(token=token, user=snapshot, message="User created successfully")

    async def logout(self, token: Optional[str]) -> Dict[str, str]:
        await self._sessions.destroy_session(token)
        return {"message": "Logout successful"}

    async def whoami(self, token: Optional[str]) -> SessionData:
        session = await self._sessions.resolve_session(token)
        if session is None:
            raise Unauthorized("User not logged in")
        return session
