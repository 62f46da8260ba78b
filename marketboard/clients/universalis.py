from __future__ import annotations

from collections.abc import Iterable
from typing import Any, cast

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from ..db.cache import get_json, ns, set_json
from ..logging import get_logger
from ..models.market import Sale

_log = get_logger()

MAX_IDS_PER_REQUEST = 100


def _retryer() -> AsyncRetrying:
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max(1, settings.RETRY_MAX)),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=3),
        retry=retry_if_exception_type(
            (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.HTTPStatusError)
        ),
    )


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=str(settings.UNIVERSALIS_BASE),
        timeout=httpx.Timeout(10.0, read=10.0),
        headers={"User-Agent": settings.USER_AGENT},
        http2=True,
    )


def _chunks(seq: Iterable[int], size: int) -> Iterable[list[int]]:
    buf: list[int] = []
    for x in seq:
        buf.append(x)
        if len(buf) >= size:
            yield buf
            buf = []
    if buf:
        yield buf


def _items_from_payload(data: Any) -> list[dict[str, Any]]:
    """Normalize the multi-ID response into a list of per-item dicts with ``itemID``.

    Universalis answers either ``{"items": {"123": {...}}}``, a legacy
    ``{"items": [...]}`` list, or a bare item object for single-ID requests.
    """
    if not isinstance(data, dict):
        return []
    items_val = data.get("items")
    if isinstance(items_val, dict):
        out: list[dict[str, Any]] = []
        for k, v in items_val.items():
            if not isinstance(v, dict):
                continue
            if "itemID" not in v and str(k).isdigit():
                v = {**v, "itemID": int(k)}
            out.append(cast(dict[str, Any], v))
        return out
    if isinstance(items_val, list):
        return [cast(dict[str, Any], v) for v in items_val if isinstance(v, dict)]
    return [cast(dict[str, Any], data)]


async def get_items_world(item_ids: list[int], world: str) -> list[dict[str, Any]]:
    """Batch fetch listings and recent history for many items on one world.

    Returns a list aligned with ``item_ids``; items Universalis did not return
    get empty ``listings``/``recentHistory``. Raw payloads are cached under
    ``u:{world}:{item_id}:listings`` (short TTL) and ``u:{world}:{item_id}:history``.
    """
    if not item_ids:
        return []

    order = {iid: idx for idx, iid in enumerate(item_ids)}
    out: list[dict[str, Any]] = [{"listings": [], "recentHistory": []} for _ in item_ids]

    async with _client() as client:
        for group in _chunks(item_ids, MAX_IDS_PER_REQUEST):
            ids_csv = ",".join(str(i) for i in group)
            items_list: list[dict[str, Any]] = []
            async for attempt in _retryer():
                with attempt:
                    resp = await client.get(
                        f"/v2/{world}/{ids_csv}", params={"entries": settings.UNIVERSALIS_ENTRIES}
                    )
                    resp.raise_for_status()
                    items_list = _items_from_payload(resp.json())

            for item in items_list:
                try:
                    iid = int(item.get("itemID") or item.get("itemId") or 0)
                except (TypeError, ValueError):
                    continue
                if iid not in order:
                    continue
                listings = item.get("listings", []) or []
                history = item.get("recentHistory", []) or []
                await set_json(ns("u", world, iid, "listings"), listings, ttl=settings.CACHE_TTL_SHORT)
                await set_json(ns("u", world, iid, "history"), history, ttl=settings.CACHE_TTL_LONG)
                out[order[iid]] = {"listings": listings, "recentHistory": history}

            _log.info(
                "universalis_items_fetched",
                world=world,
                count=len(items_list),
                requested=len(group),
            )

    return out


def parse_sales(history: Iterable[dict[str, Any]], item_id: int | None = None) -> list[Sale]:
    """Validate ``recentHistory`` entries, dropping malformed ones with a warning."""
    sales: list[Sale] = []
    skipped = 0
    for entry in history:
        try:
            sales.append(Sale.model_validate(entry))
        except ValidationError:
            skipped += 1
    if skipped:
        _log.warning("universalis_sales_skipped", item_id=item_id, skipped=skipped)
    return sales


async def get_marketable_items() -> list[int]:
    """Universalis list of marketable item IDs, cached without TTL under ``u:marketable``."""
    key = ns("u", "marketable")
    cached = await get_json(key)
    if isinstance(cached, list):
        return [int(x) for x in cached]

    data: Any = None
    async with _client() as client:
        async for attempt in _retryer():
            with attempt:
                resp = await client.get("/marketable")
                resp.raise_for_status()
                data = resp.json()
    ids = [int(x) for x in data] if isinstance(data, list) else []
    await set_json(key, ids, ttl=None)
    _log.info("universalis_marketable_loaded", count=len(ids))
    return ids
