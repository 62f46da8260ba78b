from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta

from tqdm import tqdm

from marketboard.jobs.ingest import backfill_world_anchors
from marketboard.logging import configure_logging
from marketboard.services.board import utc_today
from marketboard.services.scope import resolve_scope


async def run(scope: str, days: int) -> int:
    since = utc_today() - timedelta(days=days)
    worlds = resolve_scope(scope).worlds
    # Worlds share no keys, so they can be backfilled concurrently
    results = []
    for fut in tqdm(asyncio.as_completed([backfill_world_anchors(w, since) for w in worlds]), total=len(worlds)):
        results.append(await fut)
    return sum(results)


def main() -> None:
    ap = argparse.ArgumentParser(description="Recompute 30-day price anchors on stored daily stats")
    ap.add_argument("--scope", default="all-na", help="World, data center, or all-na")
    ap.add_argument("--days", type=int, default=60, help="How many days of rows to recompute")
    args = ap.parse_args()

    configure_logging()
    total = asyncio.run(run(args.scope, args.days))
    print(f"Rows updated: {total}")


if __name__ == "__main__":
    main()
