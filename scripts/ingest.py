from __future__ import annotations

import argparse
import asyncio

from tqdm import tqdm

from marketboard.clients.universalis import get_marketable_items
from marketboard.jobs.ingest import ingest_world, prune_world_stats, sync_item_meta
from marketboard.logging import configure_logging, get_logger
from marketboard.services.scope import resolve_scope

_log = get_logger()


async def run(scope: str, limit: int, batch_size: int, with_meta: bool, prune: bool) -> int:
    worlds = resolve_scope(scope).worlds
    ids = await get_marketable_items()
    ids = ids[: limit if limit > 0 else len(ids)]
    if not ids:
        print("No marketable IDs fetched")
        return 0

    if with_meta:
        # Material costs are priced on the first world of the scope
        n = await sync_item_meta(ids, worlds[0])
        print(f"Item metadata refreshed: {n}")

    total = 0
    for world in tqdm(worlds, desc="Worlds"):
        try:
            total += await ingest_world(world, ids, batch_size=batch_size)
            if prune:
                await prune_world_stats(world)
        except Exception:
            _log.warning("ingest_world_failed", world=world.name, exc_info=True)
    return total


def main() -> None:
    ap = argparse.ArgumentParser(description="Aggregate today's Universalis sales into daily stats")
    ap.add_argument("--scope", default="all-na", help="World, data center, or all-na")
    ap.add_argument("--limit", type=int, default=0, help="Max items to process (0=all)")
    ap.add_argument("--batch-size", type=int, default=100, help="Item IDs per Universalis request")
    ap.add_argument("--with-meta", action="store_true", help="Also refresh XIVAPI metadata and recipe costs")
    ap.add_argument("--prune", action="store_true", help="Drop rows past the retention horizon")
    args = ap.parse_args()

    configure_logging()
    total = asyncio.run(run(args.scope, args.limit, args.batch_size, args.with_meta, args.prune))
    print(f"Daily stat rows written: {total}")


if __name__ == "__main__":
    main()
