import math
from datetime import datetime, timedelta

import pytest

from models.stock import MovementType
from services import exit_requests, ledger, orders, statistics
from services.errors import ValidationFailed
from utils.dates import utcnow


@pytest.fixture()
def now():
    return utcnow()


@pytest.fixture()
def book(db, manager, now):
    def _book(product, quantity, days_ago, movement_type=MovementType.EXIT):
        ledger.record_movement(
            db, product=product, movement_type=movement_type, quantity=quantity,
            previous_stock=0, new_stock=0, user=manager, reason="historique",
            timestamp=now - timedelta(days=days_ago, hours=1),
        )
        db.commit()
    return _book


def test_average_daily_consumption_and_stockout(db, make_product, book, now):
    product = make_product(current_stock=10)
    for days_ago in (1, 10, 20):
        book(product, 10, days_ago)
    book(product, 50, 45)
    book(product, 7, 2, MovementType.ENTRY)

    average = statistics.average_daily_consumption(db, product.id, window_days=30, now=now)
    assert average == pytest.approx(1.0)
    assert statistics.days_until_stockout(10, average) == pytest.approx(10.0)
    assert statistics.days_until_stockout(10, 0) == math.inf


def test_stockout_forecast(db, make_product, book, now):
    soon = make_product(current_stock=10)
    later = make_product(current_stock=100)
    empty = make_product(current_stock=0)
    for product in (soon, later, empty):
        book(product, 30, 5)

    forecast = statistics.stockout_forecast(db, "month", now=now)

    assert [p["product_id"] for p in forecast] == [soon.id]
    assert forecast[0]["days_left"] == 10
    assert forecast[0]["average_daily"] == 1.0
    assert forecast[0]["estimated_cost"] == 15.0


def test_period_aggregates(db, make_product, book, now):
    top = make_product(current_stock=50)
    second = make_product(current_stock=50)
    book(top, 30, 3)
    book(second, 10, 4)
    book(second, 5, 40)
    book(top, 5, 6, MovementType.ENTRY)

    assert [(r["product_id"], r["quantity"]) for r in statistics.top_consumed(db, "month", now)] == [
        (top.id, 30), (second.id, 10),
    ]
    assert statistics.by_category(db, "month", now) == [
        {"category": "Visserie", "quantity": 40, "cost": 60.0},
    ]

    totals = statistics.global_stats(db, "month", now)
    assert totals["total_exits"] == 40
    assert totals["total_entries"] == 5
    assert totals["average_daily_consumption"] == 1.33
    assert totals["most_consumed"] == top.reference
    assert totals["total_exit_value"] == 60.0
    assert totals["total_entry_value"] == 7.5

    assert statistics.global_stats(db, "quarter", now)["total_exits"] == 45


def test_unknown_period(db):
    with pytest.raises(ValidationFailed):
        statistics.top_consumed(db, "decade")


def test_unusual_consumption(db, make_product, book, now):
    spiking = make_product()
    steady = make_product()
    for days_ago in (10, 15, 20, 25):
        book(spiking, 1, days_ago)
    book(spiking, 3, 1)
    for days_ago in (4, 8, 12, 16, 20, 24):
        book(steady, 1, days_ago)

    flagged = statistics.unusual_consumption(db, now)

    assert [f["product_id"] for f in flagged] == [spiking.id]
    assert flagged[0]["recent_daily"] == 1.0
    assert flagged[0]["average_daily"] == 0.15


def test_unusual_needs_enough_exits(db, make_product, book, now):
    product = make_product()
    book(product, 1, 10)
    book(product, 9, 1)
    assert statistics.unusual_consumption(db, now) == []


def test_dashboard_summary(db, make_product, user, manager):
    make_product(current_stock=0, min_stock=2)
    low = make_product(current_stock=1, min_stock=2)
    make_product(current_stock=20, min_stock=2)
    exit_requests.create_request(db, product_id=low.id, quantity=1, user=user)
    orders.create_order(db, product_id=low.id, quantity=5, user=manager)

    summary = statistics.dashboard_summary(db)

    assert summary == {
        "total_products": 3,
        "low_stock": 1,
        "critical_stock": 1,
        "pending_requests": 1,
        "pending_orders": 1,
        "average_delivery_days": 0.0,
    }


def test_user_statistics(db, make_product, user, other_user):
    now = datetime(2024, 5, 15, 12, 0)
    bolts = make_product()
    nuts = make_product()

    def booked(product, quantity, when, by=user, movement_type=MovementType.EXIT):
        ledger.record_movement(
            db, product=product, movement_type=movement_type, quantity=quantity,
            previous_stock=0, new_stock=0, user=by, reason="sortie", timestamp=when,
        )
        db.commit()

    booked(bolts, 4, datetime(2024, 1, 5))
    booked(bolts, 2, datetime(2024, 3, 20))
    booked(nuts, 5, datetime(2024, 4, 2))
    booked(bolts, 3, datetime(2024, 5, 10))
    booked(nuts, 7, datetime(2024, 5, 1), by=other_user)
    booked(nuts, 9, datetime(2024, 5, 2), movement_type=MovementType.ENTRY)

    stats = statistics.user_statistics(db, user.id, now=now)

    assert stats["total_quantity"] == 14
    assert stats["total_exits"] == 4
    assert [(p["product_id"], p["quantity"]) for p in stats["top_products"]] == [(bolts.id, 9), (nuts.id, 5)]
    assert stats["monthly"] == [
        {"month": "2024-03", "quantity": 2},
        {"month": "2024-04", "quantity": 5},
        {"month": "2024-05", "quantity": 3},
    ]
    assert [m.timestamp for m in stats["recent_exits"]][0] == datetime(2024, 5, 10)
    assert len(stats["recent_exits"]) == 4


def test_last_months_crosses_year():
    assert statistics._last_months(datetime(2024, 2, 1), 3) == ["2023-12", "2024-01", "2024-02"]
