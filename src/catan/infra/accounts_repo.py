# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential Store: durable account records behind SQLAlchemy Core.

Only ``find_credentials`` ever reads the password column; every other read
goes through ``PUBLIC_COLUMNS`` so the hash cannot leak by accident.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

import anyio
from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from catan.errors import Conflict, InvalidArgument, NotFound, Unexpected
from catan.infra.models import PUBLIC_COLUMNS, UPDATABLE_FIELDS, users

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    id: int
    username: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def snapshot(self) -> Dict[str, Any]:
        """Identity snapshot stored in sessions and returned to clients."""
        return {"id": self.id, "username": self.username, "email": self.email}

    def as_dict(self) -> Dict[str, Any]:
        out = self.snapshot()
        out["created_at"] = self.created_at.isoformat() if self.created_at else None
        out["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return out


def _account(row: Any) -> Account:
    return Account(
        id=int(row.id),
        username=row.username,
        email=row.email,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _exact(row: Any, value: str) -> bool:
    # MySQL's default collation is case-insensitive; matches must not be.
    return row.username == value or row.email == value


class AccountsRepo:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def get_by_id(self, account_id: Optional[int]) -> Optional[Account]:
        if account_id is None or account_id == "":
            raise InvalidArgument("User ID is required")
        stmt = select(*PUBLIC_COLUMNS).where(users.c.id == account_id)
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise Unexpected() from e
        return _account(row) if row else None

    async def get_by_username_or_email(self, value: Optional[str]) -> Optional[Account]:
        if not value:
            raise InvalidArgument("Username or email is required")
        stmt = select(*PUBLIC_COLUMNS).where(or_(users.c.username == value, users.c.email == value))
        try:
            async with self._engine.connect() as conn:
                rows = (await conn.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise Unexpected() from e
        for row in rows:
            if _exact(row, value):
                return _account(row)
        return None

    async def find_credentials(self, value: str) -> Optional[Tuple[Account, str]]:
        """Return the account and its stored hash, for credential checks only."""
        if not value:
            raise InvalidArgument("Username or email is required")
        stmt = select(*PUBLIC_COLUMNS, users.c.password).where(
            or_(users.c.username == value, users.c.email == value)
        )
        try:
            async with self._engine.connect() as conn:
                rows = (await conn.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise Unexpected() from e
        for row in rows:
            if _exact(row, value):
                return _account(row), row.password
        return None

    async def insert(self, username: str, email: str, password_hash: str) -> Account:
        stmt = insert(users).values(username=username, email=email, password=password_hash)
        try:
            # Let the write finish even if the request is abandoned.
            with anyio.CancelScope(shield=True):
                async with self._engine.begin() as conn:
                    result = await conn.execute(stmt)
                    new_id = int(result.inserted_primary_key[0])
        except IntegrityError as e:
            raise Conflict("Username or email already exists") from e
        except SQLAlchemyError as e:
            raise Unexpected() from e
        logger.info("Account %s created", new_id)
        return Account(id=new_id, username=username, email=email)

    async def update(self, account_id: Optional[int], fields: Mapping[str, Any]) -> Account:
        """Apply a sparse update; keys outside username/email/password are ignored.

        ``password`` must already be a hash when it reaches this layer.
        """
        if account_id is None or account_id == "":
            raise InvalidArgument("User ID is required")
        values = {k: v for k, v in (fields or {}).items() if k in UPDATABLE_FIELDS}
        if not values:
            raise InvalidArgument("No valid fields to update")

        stmt = update(users).where(users.c.id == account_id).values(**values)
        try:
            with anyio.CancelScope(shield=True):
                async with self._engine.begin() as conn:
                    result = await conn.execute(stmt)
                    if result.rowcount == 0:
                        raise NotFound("User not found")
                    row = (
                        await conn.execute(select(*PUBLIC_COLUMNS).where(users.c.id == account_id))
                    ).first()
        except IntegrityError as e:
            raise Conflict("Username or email already exists") from e
        except SQLAlchemyError as e:
            raise Unexpected() from e
        if row is None:
            raise NotFound("User not found")
        logger.info("Account %s updated (%s)", account_id, ", ".join(sorted(values)))
        return _account(row)

    async def delete(self, account_id: Optional[int]) -> None:
        if account_id is None or account_id == "":
            raise InvalidArgument("User ID is required")
        stmt = delete(users).where(users.c.id == account_id)
        try:
            with anyio.CancelScope(shield=True):
                async with self._engine.begin() as conn:
                    result = await conn.execute(stmt)
        except SQLAlchemyError as e:
            raise Unexpected() from e
        if result.rowcount == 0:
            raise NotFound("User not found")
        logger.info("Account %s deleted", account_id)
