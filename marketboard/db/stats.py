"""DailyStat and item metadata persistence on Redis.

Layout:
  - HASH ds:{world_id}:{item_id}   stat_date (YYYY-MM-DD) -> DailyStat JSON
  - SET  ds:items:{world_id}       item ids with at least one row on that world
  - HASH x:meta                    item_id -> ItemMeta JSON

Writing a row for an existing (item, world, date) replaces it.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import date

from ..models.market import DailyStat, ItemMeta
from .cache import get_redis, hgetall_json, hset_json, ns

META_KEY = ns("x", "meta")


def stats_key(world_id: int, item_id: int) -> str:
    return ns("ds", world_id, item_id)


def items_key(world_id: int) -> str:
    return ns("ds", "items", world_id)


async def upsert_daily_stats(stats: Iterable[DailyStat]) -> int:
    by_key: dict[tuple[int, int], dict[str, str]] = defaultdict(dict)
    for s in stats:
        by_key[(s.world_id, s.item_id)][s.stat_date.isoformat()] = s.model_dump_json()
    r = get_redis()
    written = 0
    for (world_id, item_id), mapping in by_key.items():
        await hset_json(stats_key(world_id, item_id), mapping)
        await r.sadd(items_key(world_id), str(item_id))
        written += len(mapping)
    return written


async def upsert_daily_stat(stat: DailyStat) -> None:
    await upsert_daily_stats([stat])


async def get_item_history(item_id: int, world_id: int, since: date | None = None) -> list[DailyStat]:
    raw = await hgetall_json(stats_key(world_id, item_id))
    rows = [DailyStat.model_validate(v) for v in raw.values()]
    if since is not None:
        rows = [row for row in rows if row.stat_date >= since]
    return sorted(rows, key=lambda row: row.stat_date)


async def load_stats(world_ids: Iterable[int], since: date | None = None) -> list[DailyStat]:
    """All rows for the given worlds, optionally limited to ``stat_date >= since``."""
    r = get_redis()
    out: list[DailyStat] = []
    for world_id in world_ids:
        for item_id in sorted(int(i) for i in await r.smembers(items_key(world_id))):
            out.extend(await get_item_history(item_id, world_id, since))
    return out


async def prune_world(world_id: int, before: date) -> int:
    """Delete rows dated strictly before ``before``. Returns the number removed."""
    r = get_redis()
    removed = 0
    for item_id in await r.smembers(items_key(world_id)):
        key = stats_key(world_id, int(item_id))
        stale = [d for d in await r.hkeys(key) if date.fromisoformat(d) < before]
        if stale:
            removed += int(await r.hdel(key, *stale))
        if not await r.hlen(key):
            await r.srem(items_key(world_id), item_id)
    return removed


async def save_items_meta(metas: Iterable[ItemMeta]) -> None:
    await hset_json(META_KEY, {str(m.item_id): m.model_dump_json() for m in metas})


async def get_items_meta(item_ids: Iterable[int]) -> dict[int, ItemMeta]:
    ids = [str(i) for i in item_ids]
    if not ids:
        return {}
    vals = await get_redis().hmget(META_KEY, ids)
    out: dict[int, ItemMeta] = {}
    for iid, raw in zip(ids, vals):
        if raw:
            out[int(iid)] = ItemMeta.model_validate_json(raw)
    return out
