# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import anyio
from argon2 import PasswordHasher as _Argon2
from argon2.exceptions import InvalidHashError, VerificationError

from catan.errors import InvalidArgument

# argon2id work factor. Encoded hashes carry their own parameters, so raising
# these never invalidates stored hashes.
TIME_COST = 3
MEMORY_COST = 65536  # KiB
PARALLELISM = 4


class PasswordHasher:
    """Salted argon2id hashing; hashing runs off the event loop."""

    def __init__(
        self,
        *,
        time_cost: int = TIME_COST,
        memory_cost: int = MEMORY_COST,
        parallelism: int = PARALLELISM,
    ) -> None:
        self._ph = _Argon2(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)

    async def hash(self, plain: str) -> str:
        if not plain:
            raise InvalidArgument("Password cannot be empty")
        return await anyio.to_thread.run_sync(self._ph.hash, plain)

    async def verify(self, plain: str, hash_value: str) -> bool:
        if not hash_value or not plain:
            return False
        return await anyio.to_thread.run_sync(self._verify, plain, hash_value)

    def _verify(self, plain: str, hash_value: str) -> bool:
        try:
            return self._ph.verify(hash_value, plain)
        except (VerificationError, InvalidHashError):
            return False
