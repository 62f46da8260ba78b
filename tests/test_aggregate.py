from __future__ import annotations

from datetime import date, datetime, timezone

from marketboard.models.market import ListingSnapshot, Sale
from marketboard.services.aggregate import aggregate_day, group_sales_by_day, listing_snapshot, sales_on_day


def mk_sale(price: int, qty: int = 1, day: date = date(2024, 5, 10), hour: int = 12) -> Sale:
    ts = int(datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc).timestamp())
    return Sale(price_per_unit=price, quantity=qty, timestamp=ts)


DAY = date(2024, 5, 10)


def _day_sales() -> list[Sale]:
    return [
        mk_sale(100, 2),
        mk_sale(100, 1),
        mk_sale(105, 1),
        mk_sale(110, 3),
        mk_sale(95, 2),
        mk_sale(900, 3),
    ]


def test_zero_sale_day() -> None:
    stat = aggregate_day(1, 73, DAY, [], listings=ListingSnapshot(count=4, total_quantity=40))

    assert stat.units_sold == 0
    assert stat.total_revenue == 0
    assert stat.avg_price == 0
    assert stat.min_price is None and stat.max_price is None
    assert stat.robust_avg_price is None
    assert stat.robust_sample_size == 0
    assert stat.is_low_confidence
    assert stat.active_listings == 4
    assert stat.total_listings_quantity == 40


def test_raw_and_robust_figures() -> None:
    stat = aggregate_day(1, 73, DAY, _day_sales())

    assert stat.units_sold == 12
    assert stat.total_revenue == 3625
    assert stat.avg_price == 302
    assert stat.min_price == 95
    assert stat.max_price == 900

    # 900 is rejected; five sales survive
    assert stat.robust_sample_size == 5
    assert not stat.is_low_confidence
    assert stat.robust_units_sold == 9
    assert stat.robust_total_revenue == 925
    assert stat.robust_avg_price == 100


def test_robust_fields_empty_when_low_confidence() -> None:
    stat = aggregate_day(1, 73, DAY, [mk_sale(100), mk_sale(120, 2), mk_sale(110)])

    assert stat.units_sold == 4
    assert stat.robust_sample_size == 3
    assert stat.is_low_confidence
    assert stat.robust_avg_price is None
    assert stat.robust_units_sold == 0
    assert stat.robust_total_revenue == 0


def test_anchor_is_copied_onto_row() -> None:
    stat = aggregate_day(1, 73, DAY, _day_sales(), typical_price=101.5, price_p90=130.0)
    assert stat.typical_price_30d == 101.5
    assert stat.price_p90_30d == 130.0


def test_aggregate_is_idempotent() -> None:
    a = aggregate_day(1, 73, DAY, _day_sales(), typical_price=100.0)
    b = aggregate_day(1, 73, DAY, _day_sales(), typical_price=100.0)
    assert a == b
    assert a.model_dump_json() == b.model_dump_json()


def test_sales_are_bucketed_by_utc_day() -> None:
    other = date(2024, 5, 11)
    sales = [mk_sale(100, day=DAY, hour=23), mk_sale(200, day=other, hour=0)]

    assert [s.price_per_unit for s in sales_on_day(sales, DAY)] == [100]
    grouped = group_sales_by_day(sales)
    assert set(grouped) == {DAY, other}


def test_listing_snapshot() -> None:
    snap = listing_snapshot([{"quantity": 5}, {"quantity": 99}, {"quantity": None}])
    assert snap.count == 3
    assert snap.total_quantity == 104
