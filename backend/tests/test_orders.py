from datetime import timedelta

import pytest

from services import ledger
from services import orders as order_service
from services.errors import InvalidTransition, ValidationFailed


def test_receive_adds_stock_with_one_entry(db, make_product, manager):
    product = make_product(current_stock=5)
    order = order_service.create_order(db, product_id=product.id, quantity=10, user=manager)
    assert order.status == "pending"

    received = order_service.receive_order(db, order.id, manager)

    assert received.status == "received"
    assert received.received_at is not None
    db.refresh(product)
    assert product.current_stock == 15
    entry = ledger.query_movements(db, product_id=product.id, movement_type="entry").one()
    assert (entry.quantity, entry.previous_stock, entry.new_stock) == (10, 5, 15)
    assert entry.reason == f"Réception commande #{order.id}"


def test_order_transitions_only_from_pending(db, make_product, manager):
    product = make_product(current_stock=5)
    received = order_service.create_order(db, product_id=product.id, quantity=2, user=manager)
    order_service.receive_order(db, received.id, manager)

    with pytest.raises(InvalidTransition):
        order_service.receive_order(db, received.id, manager)
    with pytest.raises(InvalidTransition):
        order_service.cancel_order(db, received.id)

    db.refresh(product)
    assert product.current_stock == 7


def test_cancel_leaves_stock_alone(db, make_product, manager):
    product = make_product(current_stock=5)
    order = order_service.create_order(db, product_id=product.id, quantity=8, user=manager)

    cancelled = order_service.cancel_order(db, order.id)

    assert cancelled.status == "cancelled"
    db.refresh(product)
    assert product.current_stock == 5
    with pytest.raises(InvalidTransition):
        order_service.receive_order(db, order.id, manager)


def test_create_validation(db, make_product, manager):
    product = make_product()
    with pytest.raises(ValidationFailed):
        order_service.create_order(db, product_id=product.id, quantity=0, user=manager)


def test_average_delivery_days(db, make_product, manager):
    assert order_service.average_delivery_days(db) == 0.0

    product = make_product()
    for days in (2, 4):
        order = order_service.create_order(db, product_id=product.id, quantity=1, user=manager)
        order = order_service.receive_order(db, order.id, manager)
        order.ordered_at = order.received_at - timedelta(days=days)
        db.commit()
    # Pending orders are ignored
    order_service.create_order(db, product_id=product.id, quantity=1, user=manager)

    assert order_service.average_delivery_days(db) == pytest.approx(3.0)


def test_list_orders_by_status(db, make_product, manager):
    product = make_product()
    first = order_service.create_order(db, product_id=product.id, quantity=1, user=manager)
    order_service.create_order(db, product_id=product.id, quantity=2, user=manager)
    order_service.cancel_order(db, first.id)

    assert [o.quantity for o in order_service.list_orders(db, status="pending")] == [2]
    assert order_service.list_orders(db).count() == 2
