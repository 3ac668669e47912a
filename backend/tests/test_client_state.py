import httpx
import pytest

from client.api import BackendUnavailable, StockAppClient, is_transient
from client.state import (
    AppState, Confirm, Loaded, OptimisticPatch, Revert, WentOffline, reduce,
)
from services import exit_requests

PASSWORD = "secret123"

PRODUCTS = ({"id": 1, "reference": "RF00001", "current_stock": 10}, {"id": 2, "reference": "RF00002", "current_stock": 0})


def _loaded():
    return reduce(AppState(), Loaded("products", PRODUCTS))


def test_revert_restores_previous_entity():
    state = _loaded()
    patched = reduce(state, OptimisticPatch("op-1", "products", 1, {"current_stock": 3}))
    assert patched.get("products", 1)["current_stock"] == 3
    assert "op-1" in patched.pending

    reverted = reduce(patched, Revert("op-1", "Conflict"))

    assert reverted.get("products", 1) == PRODUCTS[0]
    assert reverted.pending == {}
    assert reverted.last_error == "Conflict"
    # Earlier snapshots are untouched
    assert state.get("products", 1)["current_stock"] == 10


def test_confirm_keeps_server_copy():
    state = reduce(_loaded(), OptimisticPatch("op-1", "products", 2, {"current_stock": 5}))

    confirmed = reduce(state, Confirm("op-1", {"id": 2, "reference": "RF00002", "current_stock": 6}))

    assert confirmed.get("products", 2)["current_stock"] == 6
    assert confirmed.pending == {}


def test_revert_of_new_entity_removes_it():
    state = reduce(_loaded(), OptimisticPatch("op-1", "products", 3, {"reference": "RF00003"}))
    assert state.get("products", 3) == {"id": 3, "reference": "RF00003"}

    assert reduce(state, Revert("op-1")).get("products", 3) is None


def test_unknown_operation_is_ignored():
    state = _loaded()
    assert reduce(state, Confirm("missing")) is state
    assert reduce(state, Revert("missing")) is state


def test_offline_flag_cleared_by_fresh_load():
    offline = reduce(_loaded(), WentOffline("timeout"))
    assert offline.offline and offline.last_error == "timeout"
    assert offline.items("products") == list(PRODUCTS)

    back = reduce(offline, Loaded("products", PRODUCTS[:1]))
    assert not back.offline
    assert back.items("products") == [PRODUCTS[0]]


def test_unknown_action():
    with pytest.raises(TypeError):
        reduce(AppState(), object())


def test_transient_messages():
    assert is_transient("Request Timeout while reading")
    assert is_transient("Quota exceeded")
    assert not is_transient("Product 3 not found")
    assert not is_transient(None)


def _mock_client(handler):
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://stock.test")
    return StockAppClient(http=http)


def test_reads_fall_back_to_cache_when_unreachable():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(200, json={"items": list(PRODUCTS), "total": 2, "page": 1, "page_size": 50})
        raise httpx.ConnectError("connection refused", request=request)

    api = _mock_client(handler)
    assert len(api.products()) == 2

    cached = api.products()

    assert [p["id"] for p in cached] == [1, 2]
    assert api.state.offline
    assert "connection refused" in api.state.last_error


def test_transient_error_without_cache():
    api = _mock_client(lambda request: httpx.Response(500, text="Quota exceeded, retry later"))
    with pytest.raises(BackendUnavailable):
        api.orders()
    assert api.state.offline


def test_non_transient_error_is_raised():
    api = _mock_client(lambda request: httpx.Response(400, json={"detail": "bad filter"}))
    with pytest.raises(httpx.HTTPStatusError):
        api.orders()
    assert not api.state.offline


def test_failed_write_reverts():
    def handler(request):
        if request.method == "GET":
            return httpx.Response(200, json={"items": list(PRODUCTS), "total": 2, "page": 1, "page_size": 50})
        return httpx.Response(409, json={"detail": "Reference taken", "code": "CONFLICT"})

    api = _mock_client(handler)
    api.products()

    with pytest.raises(httpx.HTTPStatusError):
        api.update_product(1, {"reference": "RF00002"})

    assert api.state.get("products", 1) == PRODUCTS[0]
    assert api.state.pending == {}
    assert "Reference taken" in api.state.last_error


def test_client_against_api(client, db, make_product, user, manager):
    product = make_product(current_stock=10)
    request = exit_requests.create_request(db, product_id=product.id, quantity=4, user=user)
    api = StockAppClient(http=client)
    api.login(manager.username, PASSWORD)

    assert [p["reference"] for p in api.products()] == [product.reference]
    api.exit_requests()
    approved = api.approve_request(request.id)

    assert approved["status"] == "approved"
    assert api.state.get("exit_requests", request.id)["status"] == "approved"
    api.products()
    assert api.state.get("products", product.id)["current_stock"] == 6
