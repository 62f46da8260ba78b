from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from marketboard.api.main import create_app


class FakeRedis:
    """Just enough of redis.asyncio.Redis (strings, hashes, sets) for the store."""

    def __init__(self) -> None:
        self.strings: dict[str, str] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.sets: dict[str, set[str]] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self.strings.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self.strings[key] = value

    async def hset(
        self,
        key: str,
        field: str | None = None,
        value: str | None = None,
        mapping: dict[str, str] | None = None,
    ) -> int:
        h = self.hashes.setdefault(key, {})
        items = dict(mapping or {})
        if field is not None and value is not None:
            items[field] = value
        added = sum(1 for k in items if k not in h)
        h.update(items)
        return added

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self.hashes.get(key, {}))

    async def hmget(self, key: str, fields: list[str]) -> list[str | None]:
        h = self.hashes.get(key, {})
        return [h.get(f) for f in fields]

    async def hkeys(self, key: str) -> list[str]:
        return list(self.hashes.get(key, {}))

    async def hlen(self, key: str) -> int:
        return len(self.hashes.get(key, {}))

    async def hdel(self, key: str, *fields: str) -> int:
        h = self.hashes.get(key, {})
        removed = 0
        for f in fields:
            if h.pop(f, None) is not None:
                removed += 1
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        s = self.sets.setdefault(key, set())
        before = len(s)
        s.update(members)
        return len(s) - before

    async def smembers(self, key: str) -> set[str]:
        return set(self.sets.get(key, set()))

    async def srem(self, key: str, *members: str) -> int:
        s = self.sets.get(key, set())
        removed = len(s & set(members))
        s.difference_update(members)
        return removed


@pytest.fixture(scope="session", autouse=True)
def _env() -> Iterator[None]:
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
    yield


@pytest.fixture()
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    from marketboard.db import cache, stats

    fake = FakeRedis()
    monkeypatch.setattr(cache, "get_redis", lambda: fake)
    monkeypatch.setattr(stats, "get_redis", lambda: fake)
    return fake


@pytest.fixture()
def client() -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as c:
        yield c

