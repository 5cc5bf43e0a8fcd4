# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from catan.infra.models import metadata
from catan.settings import Settings

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(settings.database_url, pool_pre_ping=True)


def create_redis(settings: Settings) -> Redis:
    return Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        decode_responses=True,
    )


async def init_schema(engine: AsyncEngine) -> None:
    """Create the accounts table if it is missing. Safe to call on every start."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Schema ready on %s", engine.url.render_as_string(hide_password=True))
