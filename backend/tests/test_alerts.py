from types import SimpleNamespace

from services import alerts


def _product(id, stock, min_stock, max_stock, deleted_at=None):
    return SimpleNamespace(
        id=id, reference=f"RF{id:05d}", designation=f"Article {id}",
        current_stock=stock, min_stock=min_stock, max_stock=max_stock,
        location="A.1.1", deleted_at=deleted_at,
    )


EMPTY = _product(1, 0, 5, 20)
LOW = _product(2, 3, 4, 10)
AT_MIN = _product(3, 2, 2, 40)
FINE = _product(4, 9, 2, 40)


def test_classify():
    assert alerts.classify(EMPTY) == alerts.CRITICAL
    assert alerts.classify(LOW) == alerts.LOW
    assert alerts.classify(AT_MIN) == alerts.LOW
    assert alerts.classify(FINE) is None
    assert alerts.classify(_product(5, -2, 0, 0)) == alerts.CRITICAL


def test_percentages():
    assert alerts.min_percentage(LOW) == 75.0
    assert alerts.min_percentage(_product(6, 0, 0, 10)) == 0.0
    assert alerts.max_percentage(LOW) == 30
    assert alerts.max_percentage(_product(7, 1, 0, 3)) == 33
    assert alerts.max_percentage(_product(8, 2, 0, 3)) == 67
    assert alerts.max_percentage(_product(9, 5, 0, 0)) == 0


def test_alert_lists_keep_their_own_ordering():
    products = [FINE, AT_MIN, LOW, EMPTY]

    by_min = alerts.stock_alerts(products)
    assert [a["product_id"] for a in by_min] == [1, 2, 3]
    assert [a["percentage"] for a in by_min] == [0.0, 75.0, 100.0]

    by_max = alerts.dashboard_alerts(products)
    assert [a["product_id"] for a in by_max] == [1, 3, 2]
    assert [a["percentage"] for a in by_max] == [0, 5, 30]
    assert by_max[0]["level"] == "critical"
    assert by_max[0]["location"] == "A.1.1"


def test_deleted_products_raise_no_alert():
    gone = _product(10, 0, 5, 20, deleted_at="2024-01-01")
    assert alerts.stock_alerts([gone]) == []
    assert alerts.dashboard_alerts([gone]) == []
