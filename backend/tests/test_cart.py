import pytest

from models.exit_request import ExitRequest
from services import cart as cart_service, catalog
from services.baskets import group_into_baskets
from services.errors import InsufficientStock, NotFound, ValidationFailed


def test_cart_quantity_bounded_by_stock(db, make_product, user):
    product = make_product(current_stock=5)

    cart_service.add_item(db, user, product.id, 3)
    with pytest.raises(InsufficientStock):
        cart_service.add_item(db, user, product.id, 3)

    cart = cart_service.add_item(db, user, product.id, 2)
    assert [(i.product_id, i.quantity) for i in cart.items] == [(product.id, 5)]


def test_update_and_remove_items(db, make_product, user):
    product = make_product(current_stock=5)
    cart = cart_service.add_item(db, user, product.id, 1)
    item_id = cart.items[0].id

    with pytest.raises(InsufficientStock):
        cart_service.update_item(db, user, item_id, 6)
    cart = cart_service.update_item(db, user, item_id, 4)
    assert cart.items[0].quantity == 4

    cart = cart_service.remove_item(db, user, item_id)
    assert cart.items == []


def test_submit_forms_one_basket(db, make_product, user):
    first = make_product(current_stock=5)
    second = make_product(current_stock=5)
    cart_service.add_item(db, user, first.id, 2)
    cart = cart_service.add_item(db, user, second.id, 1)
    submitted_cart_id = cart.id

    created = cart_service.submit(db, user, reason="Chantier Sud")

    assert len(created) == 2
    assert {r.requested_at for r in created} == {created[0].requested_at}
    assert all(r.status == "pending" and r.reason == "Chantier Sud" for r in created)
    baskets = group_into_baskets(created)
    assert len(baskets) == 1
    assert baskets[0].total_quantity == 3

    fresh = cart_service.get_open_cart(db, user.id)
    assert fresh.id != submitted_cart_id
    assert fresh.items == []


def test_submit_empty_cart(db, user):
    with pytest.raises(ValidationFailed):
        cart_service.submit(db, user)


def test_clear(db, make_product, user):
    product = make_product()
    cart_service.add_item(db, user, product.id, 1)
    assert cart_service.clear(db, user).items == []


def test_deleted_product_blocks_submit_until_removed(db, make_product, user):
    kept = make_product(current_stock=5)
    removed = make_product(current_stock=5)
    cart_service.add_item(db, user, kept.id, 1)
    cart = cart_service.add_item(db, user, removed.id, 2)
    stale_item = next(i for i in cart.items if i.product_id == removed.id)
    catalog.soft_delete_product(db, removed.id)

    with pytest.raises(NotFound):
        cart_service.update_item(db, user, stale_item.id, 1)
    with pytest.raises(ValidationFailed, match=removed.reference):
        cart_service.submit(db, user)
    assert db.query(ExitRequest).count() == 0

    cart_service.remove_item(db, user, stale_item.id)
    created = cart_service.submit(db, user)
    assert [r.product_id for r in created] == [kept.id]
