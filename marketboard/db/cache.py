from __future__ import annotations

import json
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from redis.asyncio import Redis

from ..config import settings


@lru_cache(maxsize=1)
def get_redis() -> Redis[str]:
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)


def ns(namespace: str, *parts: object) -> str:
    return ":".join([namespace, *(str(p) for p in parts)])


async def get_json(key: str) -> Any | None:
    raw = await get_redis().get(key)
    return None if raw is None else json.loads(raw)


async def set_json(key: str, value: Any, ttl: int | None = None) -> None:
    data = json.dumps(value)
    await get_redis().set(key, data, ex=ttl if ttl and ttl > 0 else None)


async def hset_json(key: str, mapping: Mapping[str, str]) -> None:
    """Write pre-serialized JSON fields into a hash; empty mappings are a no-op."""
    if mapping:
        await get_redis().hset(key, mapping=dict(mapping))  # type: ignore[arg-type]


async def hgetall_json(key: str) -> dict[str, Any]:
    raw = await get_redis().hgetall(key)
    return {field: json.loads(value) for field, value in raw.items()}


async def ping() -> bool:
    try:
        return bool(await get_redis().ping())
    except Exception:
        return False
