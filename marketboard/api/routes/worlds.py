from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ...services.scope import ALL_NA, data_centers

router = APIRouter(tags=["worlds"])


@router.get("/worlds")
async def worlds() -> dict[str, Any]:
    """Selectable scopes: the all-NA region, each data center and its worlds."""
    dcs = data_centers()
    return {
        "default": ALL_NA,
        "data_centers": sorted(dcs),
        "worlds": {dc: sorted(names) for dc, names in dcs.items()},
    }
