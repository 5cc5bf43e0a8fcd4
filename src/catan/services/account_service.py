# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Union

from catan.auth.passwords import PasswordHasher
from catan.errors import InvalidArgument, InvalidFormat
from catan.infra.accounts_repo import Account, AccountsRepo
from catan.infra.models import UPDATABLE_FIELDS

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
USERNAME_RE = re.compile(r"[A-Za-z0-9_.]+")

INVALID_EMAIL = "Invalid email format"
INVALID_USERNAME = "Username can only contain letters, numbers, underscores, and periods"


def _check_email(email: str) -> None:
    if not EMAIL_RE.fullmatch(email):
        raise InvalidFormat(INVALID_EMAIL)


def _check_username(username: str) -> None:
    if not USERNAME_RE.fullmatch(username):
        raise InvalidFormat(INVALID_USERNAME)


class AccountService:
    """Sole writer of account state: validates, hashes, then persists."""

    def __init__(self, repo: AccountsRepo, hasher: PasswordHasher) -> None:
        self._repo = repo
        self._hasher = hasher
        self._dummy_hash: Optional[str] = None

    async def create_account(self, username: str, email: str, password: str) -> Account:
        if not all(v and isinstance(v, str) for v in (username, email, password)):
            raise InvalidArgument("Username, email, and password are required")
        _check_email(email)
        _check_username(username)

        password_hash = await self._hasher.hash(password)
        return await self._repo.insert(username, email, password_hash)

    async def verify_credentials(self, username_or_email: str, password: str) -> Union[Account, bool]:
        """Return the account on a match, else ``False``.

        Unknown user and wrong password are deliberately indistinguishable.
        """
        if not username_or_email or not password:
            raise InvalidArgument("Username/Email and password are required")
        found = await self._repo.find_credentials(username_or_email)
        if found is None:
            # Spend the same argon2 work as a wrong password would.
            await self._hasher.verify(password, await self._unknown_user_hash())
            return False
        account, password_hash = found
        if not await self._hasher.verify(password, password_hash):
            return False
        return account

    async def _unknown_user_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self._hasher.hash("unknown-account-placeholder")
        return self._dummy_hash

    async def get_account(self, account_id: int) -> Optional[Account]:
        return await self._repo.get_by_id(account_id)

    async def find_account(self, username_or_email: str) -> Optional[Account]:
        return await self._repo.get_by_username_or_email(username_or_email)

    async def update_account(self, account_id: int, fields: Optional[Mapping[str, Any]]) -> Account:
        values: Dict[str, Any] = {k: v for k, v in (fields or {}).items() if k in UPDATABLE_FIELDS}
        if not values:
            raise InvalidArgument("No valid fields to update")

        for key, value in values.items():
            if not value or not isinstance(value, str):
                raise InvalidArgument(f"{key.capitalize()} cannot be empty")
        if "username" in values:
            _check_username(values["username"])
        if "email" in values:
            _check_email(values["email"])
        if "password" in values:
            # An empty password was rejected above; it is never hashed.
            values["password"] = await self._hasher.hash(values["password"])

        return await self._repo.update(account_id, values)

    async def delete_account(self, account_id: int) -> None:
        await self._repo.delete(account_id)
