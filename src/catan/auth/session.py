# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from itsdangerous import BadData, URLSafeSerializer

from catan.infra.session_store import RedisSessionStore

DEFAULT_SALT = "catan.session.v1"


@dataclass(frozen=True)
class SessionData:
    id: int
    username: str
    email: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Optional["SessionData"]:
        user = (data or {}).get("user") or {}
        try:
            return cls(id=int(user["id"]), username=str(user["username"]), email=str(user["email"]))
        except (KeyError, TypeError, ValueError):
            return None

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username, "email": self.email}


class SessionManager:
    """Maps opaque session tokens to identity snapshots held in the store.

    Tokens travel to the client signed with the session secret; the store
    alone owns the session and its expiry.
    """

    def __init__(self, store: RedisSessionStore, secret: str, *, salt: str = DEFAULT_SALT) -> None:
        if not secret:
            raise RuntimeError("Session secret is required")
        self._store = store
        self._serializer = URLSafeSerializer(secret_key=secret, salt=salt)

    @property
    def idle_seconds(self) -> int:
        return self._store.idle_seconds

    def sign(self, token: str) -> str:
        return self._serializer.dumps(token)

    def unsign(self, cookie_value: Optional[str]) -> Optional[str]:
        if not cookie_value:
            return None
        try:
            token = self._serializer.loads(cookie_value)
        except BadData:
            return None
        return token if isinstance(token, str) and token else None

    async def create_session(self, identity: Mapping[str, Any]) -> str:
        return await self._store.create({"user": dict(identity)})

    async def resolve_session(self, token: Optional[str]) -> Optional[SessionData]:
        if not token:
            return None
        data = await self._store.get(token)
        if data is None:
            return None
        return SessionData.from_mapping(data)

    async def save_session(self, token: str, identity: Mapping[str, Any]) -> bool:
        return await self._store.save(token, {"user": dict(identity)})

    async def destroy_session(self, token: Optional[str]) -> None:
        if not token:
            return
        await self._store.destroy(token)
