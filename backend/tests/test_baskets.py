from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from models.exit_request import ExitRequest, PendingExit
from services import exit_requests as workflow
from services.baskets import aggregate_status, group_into_baskets
from services.errors import NotFound

BASE = datetime(2024, 3, 12, 10, 0)


def _req(id, requested_by, at, status="pending", quantity=1):
    return SimpleNamespace(
        id=id, requested_by=requested_by, requested_by_name=f"user {requested_by}",
        requested_at=at, status=status, quantity=quantity,
    )


def test_grouping_by_requester_and_minute():
    requests = [
        _req(1, 7, BASE + timedelta(seconds=5)),
        _req(2, 7, BASE + timedelta(seconds=55), quantity=4),
        _req(3, 7, BASE + timedelta(minutes=1)),
        _req(4, 8, BASE + timedelta(seconds=10)),
    ]

    baskets = group_into_baskets(requests)

    keys = [(b.requested_by, b.minute) for b in baskets]
    assert keys == [
        (7, BASE + timedelta(minutes=1)),
        (8, BASE),
        (7, BASE),
    ]
    first_minute = baskets[2]
    assert [r.id for r in first_minute.requests] == [1, 2]
    assert first_minute.total_quantity == 5


def test_aggregate_status():
    assert aggregate_status(["pending", "pending"]) == "pending"
    assert aggregate_status(["approved"]) == "approved"
    assert aggregate_status(["rejected", "rejected"]) == "rejected"
    assert aggregate_status(["pending", "approved"]) == "mixed"
    assert aggregate_status(["awaiting_reception"]) == "mixed"


def _basket(db, user, products_and_quantities, at=BASE):
    return [
        workflow.create_request(db, product_id=p.id, quantity=q, user=user, requested_at=at + timedelta(seconds=i))
        for i, (p, q) in enumerate(products_and_quantities)
    ]


def test_approve_basket_reports_failures(db, make_product, user, manager):
    plenty = make_product(current_stock=10)
    scarce = make_product(current_stock=1)
    ok_request, short_request = _basket(db, user, [(plenty, 3), (scarce, 5)])

    outcome = workflow.approve_basket(db, user.id, BASE, manager, allow_negative=False)

    assert outcome.processed == [ok_request.id]
    assert [request_id for request_id, _ in outcome.failed] == [short_request.id]
    db.refresh(plenty)
    db.refresh(scarce)
    assert plenty.current_stock == 7
    assert scarce.current_stock == 1
    assert workflow.get_request(db, ok_request.id).status == "approved"
    assert workflow.get_request(db, short_request.id).status == "pending"

    members = workflow.basket_members(db, user.id, BASE, pending_only=False)
    assert group_into_baskets(members)[0].status == "mixed"


def test_approve_basket_skips_decided_members(db, make_product, user, manager):
    product = make_product(current_stock=10)
    first, second = _basket(db, user, [(product, 1), (product, 2)])
    workflow.reject_request(db, first.id, manager, "doublon")

    outcome = workflow.approve_basket(db, user.id, BASE + timedelta(seconds=30), manager)

    assert outcome.processed == [second.id]
    assert outcome.failed == []
    db.refresh(product)
    assert product.current_stock == 8


def test_reject_and_cancel_basket(db, make_product, user, manager):
    product = make_product()
    rejected = _basket(db, user, [(product, 1), (product, 1)])
    later = BASE + timedelta(minutes=5)
    cancelled = _basket(db, user, [(product, 2), (product, 3)], at=later)

    reject_outcome = workflow.reject_basket(db, user.id, BASE, manager, "Pas de chantier")
    assert sorted(reject_outcome.processed) == sorted(r.id for r in rejected)
    assert all(workflow.get_request(db, r.id).notes == "Pas de chantier" for r in rejected)

    cancel_outcome = workflow.cancel_basket(db, user.id, later, user)
    assert sorted(cancel_outcome.processed) == sorted(r.id for r in cancelled)
    assert db.query(ExitRequest).count() == 2


def test_cancel_basket_by_stranger_fails_per_member(db, make_product, user, other_user):
    product = make_product()
    _basket(db, user, [(product, 1), (product, 1)])

    outcome = workflow.cancel_basket(db, user.id, BASE, other_user)

    assert outcome.processed == []
    assert len(outcome.failed) == 2
    assert db.query(ExitRequest).count() == 2


def test_empty_basket_not_found(db, user, manager):
    with pytest.raises(NotFound):
        workflow.approve_basket(db, user.id, BASE, manager)


def test_database_error_on_one_member_is_reported(db, make_product, user, manager, monkeypatch):
    first_product = make_product(current_stock=10)
    broken_product = make_product(current_stock=10)
    last_product = make_product(current_stock=10)
    first, broken, last = _basket(db, user, [(first_product, 1), (broken_product, 2), (last_product, 3)])

    real_approve = workflow._approve_in_session

    def approve_then_fail(db, request, manager, allow_negative):
        real_approve(db, request, manager, allow_negative)
        if request.id == broken.id:
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

    monkeypatch.setattr(workflow, "_approve_in_session", approve_then_fail)

    outcome = workflow.approve_basket(db, user.id, BASE, manager)

    assert outcome.processed == [first.id, last.id]
    assert outcome.failed == [(broken.id, "Database error: OperationalError")]
    db.refresh(broken_product)
    assert broken_product.current_stock == 10
    assert workflow.get_request(db, broken.id).status == "pending"
    assert db.query(PendingExit).count() == 2


def test_baskets_are_frozen():
    basket = group_into_baskets([_req(1, 7, BASE), _req(2, 7, BASE + timedelta(seconds=1))])[0]

    assert isinstance(basket.requests, tuple)
    with pytest.raises(FrozenInstanceError):
        basket.minute = BASE + timedelta(minutes=1)
