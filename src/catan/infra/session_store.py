# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Session Store: JSON session payloads in Redis with a sliding idle TTL."""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import anyio
from redis.asyncio import Redis
from redis.exceptions import RedisError

from catan.errors import Unexpected

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "sess:"
DEFAULT_IDLE_SECONDS = 86400


def _generate_token() -> str:
    return secrets.token_urlsafe(32)


class RedisSessionStore:
    def __init__(
        self,
        client: Redis,
        *,
        prefix: str = DEFAULT_PREFIX,
        idle_seconds: int = DEFAULT_IDLE_SECONDS,
    ) -> None:
        if idle_seconds <= 0:
            raise ValueError("idle_seconds must be positive")
        self._redis = client
        self._prefix = prefix
        self._idle = idle_seconds

    @property
    def idle_seconds(self) -> int:
        return self._idle

    def _key(self, token: str) -> str:
        return f"{self._prefix}{token}"

    def _serialize(self, data: Dict[str, Any]) -> str:
        expires = datetime.now(timezone.utc) + timedelta(seconds=self._idle)
        return json.dumps({"data": data, "expires": expires.isoformat()})

    async def create(self, data: Dict[str, Any]) -> str:
        """Store ``data`` under a fresh token and return the token."""
        try:
            with anyio.CancelScope(shield=True):
                while True:
                    token = _generate_token()
                    if await self._redis.set(self._key(token), self._serialize(data), ex=self._idle, nx=True):
                        return token
        except RedisError as e:
            raise Unexpected() from e

    async def get(self, token: str) -> Optional[Dict[str, Any]]:
        """Read a session and push its idle expiry forward."""
        if not token:
            return None
        key = self._key(token)
        try:
            raw = await self._redis.get(key)
            if raw is None:
                return None
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            data = json.loads(raw).get("data")
            if not isinstance(data, dict):
                return None
            # xx: never resurrect a session destroyed since the read.
            await self._redis.set(key, self._serialize(data), ex=self._idle, xx=True)
        except RedisError as e:
            raise Unexpected() from e
        except (ValueError, AttributeError):
            logger.warning("Discarding unreadable session payload")
            return None
        return data

    async def save(self, token: str, data: Dict[str, Any]) -> bool:
        """Replace the payload of an existing session. False if it is gone."""
        if not token:
            return False
        try:
            with anyio.CancelScope(shield=True):
                return bool(await self._redis.set(self._key(token), self._serialize(data), ex=self._idle, xx=True))
        except RedisError as e:
            raise Unexpected() from e

    async def destroy(self, token: str) -> None:
        if not token:
            return
        try:
            with anyio.CancelScope(shield=True):
                await self._redis.delete(self._key(token))
        except RedisError as e:
            raise Unexpected() from e
