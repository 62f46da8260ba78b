from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from ..clients.universalis import get_items_world, parse_sales
from ..clients.xivapi import get_item_meta
from ..config import settings
from ..db.stats import get_item_history, load_stats, prune_world, save_items_meta, upsert_daily_stats
from ..logging import get_logger, job_context
from ..models.market import DailyStat, ItemMeta, World
from ..services.aggregate import aggregate_day, listing_snapshot, sales_on_day
from ..services.anchors import backfill_anchors, compute_anchor, retention_cutoff
from ..services.board import utc_today
from ..services.craft import resolve_material_cost

_log = get_logger()


async def aggregate_item(
    item_id: int,
    world: World,
    data: dict[str, Any],
    today: date,
) -> DailyStat:
    """Aggregate today's sales for one item using the anchor from stored history."""
    sales = sales_on_day(parse_sales(data.get("recentHistory", []), item_id=item_id), today)
    history = await get_item_history(item_id, world.id)
    anchor = compute_anchor(history, today)
    return aggregate_day(
        item_id=item_id,
        world_id=world.id,
        stat_date=today,
        sales=sales,
        listings=listing_snapshot(data.get("listings", [])),
        typical_price=anchor.typical_price_30d,
        price_p90=anchor.price_p90_30d,
    )


async def _fetch_chunk(chunk: list[int], world: World) -> list[dict[str, Any]] | None:
    """Batch fetch, falling back to one request per item when the batch fails.

    Items that still fail come back empty; None means nothing could be fetched.
    """
    try:
        return await get_items_world(chunk, world.name)
    except Exception:
        _log.warning("ingest_batch_failed", world=world.name, items=len(chunk), exc_info=True)
    if len(chunk) == 1:
        return None
    data_list: list[dict[str, Any]] = []
    for iid in chunk:
        try:
            data_list.extend(await get_items_world([iid], world.name))
        except Exception:
            _log.warning("ingest_item_fetch_failed", item_id=iid, world=world.name, exc_info=True)
            data_list.append({"listings": [], "recentHistory": []})
    return data_list


async def ingest_world(
    world: World,
    item_ids: Iterable[int],
    *,
    today: date | None = None,
    batch_size: int = 100,
) -> int:
    """Fetch, aggregate and upsert today's DailyStat rows for ``item_ids`` on one world.

    Re-running on the same day overwrites the same rows. Returns rows written.
    """
    today = today or utc_today()
    ids = list(item_ids)
    written = 0
    errors = 0
    with job_context("ingest"):
        for i in range(0, len(ids), batch_size):
            chunk = ids[i : i + batch_size]
            data_list = await _fetch_chunk(chunk, world)
            if data_list is None:
                errors += len(chunk)
                continue
            rows: list[DailyStat] = []
            for iid, data in zip(chunk, data_list):
                if not (data.get("listings") or data.get("recentHistory")):
                    continue
                try:
                    rows.append(await aggregate_item(iid, world, data, today))
                except Exception:
                    errors += 1
                    _log.warning("ingest_item_failed", item_id=iid, world=world.name, exc_info=True)
            written += await upsert_daily_stats(rows)
        _log.info("ingest_world_done", world=world.name, rows=written, errors=errors)
    return written


async def backfill_world_anchors(world: World, since: date | None = None) -> int:
    """Recompute anchors for rows dated ``since`` or later.

    One extra anchor window of history is read so the first rows in range
    still see their full trailing window.
    """
    cfg = settings.thresholds()
    with job_context("backfill"):
        lead_in = since - timedelta(days=cfg.anchor_window_days) if since else None
        rows = await load_stats([world.id], since=lead_in)
        updated = [r for r in backfill_anchors(rows, cfg) if since is None or r.stat_date >= since]
        return await upsert_daily_stats(updated)


async def prune_world_stats(world: World, today: date | None = None) -> int:
    cutoff = retention_cutoff(today or utc_today(), settings.thresholds())
    removed = await prune_world(world.id, before=cutoff)
    _log.info("stats_pruned", world=world.name, removed=removed, before=cutoff.isoformat())
    return removed


async def sync_item_meta(item_ids: Iterable[int], world: World, concurrency: int | None = None) -> int:
    """Refresh name/category/craftable flags and material cost for ``item_ids``."""
    sem = asyncio.Semaphore(concurrency or max(1, settings.REQUESTS_RPS // 2))

    async def _one(iid: int) -> ItemMeta | None:
        async with sem:
            try:
                meta = await get_item_meta(iid)
                if meta.is_craftable:
                    cost = await resolve_material_cost(iid, world.name)
                    meta = meta.model_copy(update={"material_cost": cost})
            except Exception:
                _log.warning("item_meta_failed", item_id=iid, exc_info=True)
                return None
            return meta

    with job_context("meta"):
        results = await asyncio.gather(*(_one(iid) for iid in item_ids))
        metas = [m for m in results if m is not None]
        await save_items_meta(metas)
        _log.info("item_meta_synced", world=world.name, items=len(metas), failed=len(results) - len(metas))
    return len(metas)
