from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import cast

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..models.query import MarketItem, TopItemsSummary

ITEM_COLUMNS = [
    "item_id",
    "item_name",
    "category",
    "is_craftable",
    "scope_label",
    "units_sold",
    "sales_velocity",
    "total_revenue",
    "avg_price",
    "min_price",
    "max_price",
    "profit_per_unit",
    "margin_percent",
    "active_listings",
]


def _auto_fit(ws: Worksheet) -> None:
    widths: dict[int, int] = {}
    for row in ws.rows:
        for cell in row:
            value = str(cell.value) if cell.value is not None else ""
            col_idx = int(getattr(cell, "col_idx", getattr(cell, "column", 0)))
            widths[col_idx] = max(widths.get(col_idx, 0), len(value) + 2)
    for col, width in widths.items():
        ws.column_dimensions[get_column_letter(col)].width = min(60, width)


def _header(ws: Worksheet, names: list[str]) -> None:
    ws.append(names)
    for h in ws[1]:
        h.font = Font(bold=True)


def build_workbook(
    items: Iterable[MarketItem],
    summary: TopItemsSummary,
    scope: str,
    timeframe: str,
) -> Workbook:
    wb = Workbook()
    ws_items = cast(Worksheet, wb.active)
    ws_items.title = "Top Items"
    ws_summary = cast(Worksheet, wb.create_sheet("Summary"))

    _header(ws_items, ITEM_COLUMNS)
    for it in items:
        row = it.model_dump()
        ws_items.append([row[c] for c in ITEM_COLUMNS])
    ws_items.auto_filter.ref = ws_items.dimensions
    ws_items.freeze_panes = "A2"
    _auto_fit(ws_items)

    _header(ws_summary, ["metric", "value"])
    for key, value in summary.model_dump().items():
        ws_summary.append([key, value])
    _auto_fit(ws_summary)

    ts = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    for ws in (ws_items, ws_summary):
        ws.oddFooter.center.text = f"Exported {ts} - {scope} - {timeframe}"  # type: ignore[union-attr]

    return wb
