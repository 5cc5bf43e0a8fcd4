# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Environment-driven configuration.

Values are read once into an immutable ``Settings`` and handed to
``create_app``; nothing else in the package reads the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL

_TRUTHY = {"1", "true", "yes", "y"}


def _flag(env: Mapping[str, str], key: str, default: str = "false") -> bool:
    return str(env.get(key, default) or "").strip().lower() in _TRUTHY


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = str(env.get(key, "") or "").strip()
    return int(raw) if raw else default


def _origins(raw: str) -> List[str]:
    return [o.strip() for o in (raw or "").split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    session_secret: str
    database_url: str = "mysql+aiomysql://root@localhost:3306/catan"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    session_prefix: str = "sess:"
    session_idle_seconds: int = 86400
    cookie_name: str = "catan.sid"
    cookie_secure: bool = False
    cors_origins: List[str] = field(default_factory=list)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_password: str = ""
    mail_from: str = "no-reply@example.com"
    log_level: str = "INFO"

    @property
    def mail_enabled(self) -> bool:
        return bool(self.smtp_host)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        if env is None:
            load_dotenv()
            env = os.environ

        secret = str(env.get("SESSION_SECRET") or "").strip()
        if not secret:
            raise RuntimeError("SESSION_SECRET is required in the environment")

        database_url = str(env.get("DATABASE_URL") or "").strip()
        if not database_url:
            database_url = URL.create(
                "mysql+aiomysql",
                username=env.get("MYSQL_USER") or "root",
                password=env.get("MYSQL_PASSWORD") or None,
                host=env.get("MYSQL_HOST") or "localhost",
                port=_int(env, "MYSQL_PORT", 3306),
                database=env.get("MYSQL_DATABASE") or "catan",
            ).render_as_string(hide_password=False)

        return cls(
            session_secret=secret,
            database_url=database_url,
            redis_host=env.get("REDIS_HOST") or "localhost",
            redis_port=_int(env, "REDIS_PORT", 6379),
            redis_password=env.get("REDIS_PASSWORD") or "",
            session_prefix=env.get("SESSION_PREFIX") or "sess:",
            session_idle_seconds=_int(env, "SESSION_IDLE_SECONDS", 86400),
            cookie_name=env.get("SESSION_COOKIE_NAME") or "catan.sid",
            cookie_secure=_flag(env, "SESSION_COOKIE_SECURE"),
            cors_origins=_origins(env.get("CORS_ORIGIN", "")),
            smtp_host=env.get("SMTP_HOST") or "",
            smtp_port=_int(env, "SMTP_PORT", 587),
            smtp_secure=_flag(env, "SMTP_SECURE"),
            smtp_user=env.get("SMTP_USER") or "",
            smtp_password=env.get("SMTP_PASSWORD") or "",
            mail_from=env.get("MAIL_FROM") or "no-reply@example.com",
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
