# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Realtime channel: tracks WebSocket connections and their session identity.

No game protocol exists yet; inbound messages are read and dropped.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect

from catan.auth.session import SessionData

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    id: str
    websocket: WebSocket
    identity: Optional[SessionData] = None


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def for_account(self, account_id: int) -> List[Connection]:
        return [c for c in self._connections.values() if c.identity and c.identity.id == account_id]

    async def connect(self, websocket: WebSocket, identity: Optional[SessionData] = None) -> Connection:
        conn = Connection(id=secrets.token_hex(8), websocket=websocket, identity=identity)
        self._connections[conn.id] = conn
        try:
            await websocket.accept()
        except Exception:
            self._connections.pop(conn.id, None)
            raise
        logger.info(
            "A user connected: %s (account %s)", conn.id, identity.id if identity else "anonymous"
        )
        return conn

    def disconnect(self, connection_id: str) -> None:
        if self._connections.pop(connection_id, None) is not None:
            logger.info("User disconnected: %s", connection_id)

    async def serve(self, websocket: WebSocket, identity: Optional[SessionData] = None) -> None:
        conn = await self.connect(websocket, identity)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            self.disconnect(conn.id)
