#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from catan.auth.passwords import PasswordHasher
from catan.errors import CatanError
from catan.infra.accounts_repo import AccountsRepo
from catan.infra.db import create_engine, init_schema
from catan.services.account_service import AccountService
from catan.settings import Settings


async def _create(settings: Settings, username: str, email: str, password: str) -> None:
    engine = create_engine(settings)
    try:
        await init_schema(engine)
        service = AccountService(AccountsRepo(engine), PasswordHasher())
        account = await service.create_account(username, email, password)
    finally:
        await engine.dispose()
    print(f"OK -> id={account.id} username={account.username} email={account.email}")


def main() -> None:
    settings = Settings.from_env()

    username = input("Username: ").strip()
    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        asyncio.run(_create(settings, username, email, pw1))
    except CatanError as e:
        raise SystemExit(f"{e.code}: {e.message}")


if __name__ == "__main__":
    main()
