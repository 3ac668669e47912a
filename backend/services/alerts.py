# backend/services/alerts.py
"""Stock alert derivation. Pure functions over product rows."""
from typing import Iterable, List, Optional

CRITICAL = "critical"
LOW = "low"


def classify(product) -> Optional[str]:
    """``critical`` at zero stock, ``low`` at or below the minimum, otherwise None."""
    if product.current_stock <= 0:
        return CRITICAL
    if product.current_stock <= product.min_stock:
        return LOW
    return None


def min_percentage(product) -> float:
    if not product.min_stock:
        return 0.0
    return product.current_stock / product.min_stock * 100


def max_percentage(product) -> int:
    if not product.max_stock:
        return 0
    return round(product.current_stock / product.max_stock * 100)


def _alert(product, percentage) -> dict:
    return {
        "product_id": product.id,
        "reference": product.reference,
        "designation": product.designation,
        "current_stock": product.current_stock,
        "min_stock": product.min_stock,
        "max_stock": product.max_stock,
        "location": product.location,
        "level": classify(product),
        "percentage": percentage,
    }


def _alerted(products: Iterable) -> list:
    return [p for p in products if p.deleted_at is None and classify(p) is not None]


def stock_alerts(products: Iterable) -> List[dict]:
    """Alert list ordered by stock as a share of the minimum."""
    alerts = [_alert(p, min_percentage(p)) for p in _alerted(products)]
    return sorted(alerts, key=lambda a: a["percentage"])


def dashboard_alerts(products: Iterable) -> List[dict]:
    """Dashboard view ordered by stock as a rounded share of the maximum."""
    alerts = [_alert(p, max_percentage(p)) for p in _alerted(products)]
    return sorted(alerts, key=lambda a: a["percentage"])
