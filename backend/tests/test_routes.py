from models.log import Log
from services import exit_requests


def test_register_login_me(client):
    response = client.post("/register", json={"username": " Dana ", "name": "Dana Roux", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["username"] == "dana"
    assert response.json()["role"] == "user"

    assert client.post("/register", json={"username": "dana", "name": "X", "password": "secret123"}).status_code == 400
    assert client.post("/login", json={"username": "dana", "password": "wrong"}).status_code == 401

    token = client.post("/login", json={"username": "DANA", "password": "secret123"}).json()["access_token"]
    me = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["name"] == "Dana Roux"


def test_badge_login(client):
    client.post("/register", json={"username": "eve", "name": "Eve Leroy", "password": "secret123", "badge_number": "B-1042"})

    token = client.post("/login/badge", json={"badge_number": " B-1042 "}).json()["access_token"]
    me = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["username"] == "eve"

    assert client.post("/login/badge", json={"badge_number": "B-9999"}).status_code == 401
    assert client.post("/login/badge", json={"badge_number": "B1"}).status_code == 422


def test_requires_authentication(client):
    assert client.get("/products").status_code in (401, 403)


def test_manager_only_routes(client, user_headers, make_product):
    product = make_product()
    assert client.post("/orders", json={"product_id": product.id, "quantity": 1}, headers=user_headers).status_code == 403
    assert client.get("/stats/forecast", headers=user_headers).status_code == 403
    assert client.get("/logs", headers=user_headers).status_code == 403


def test_workflow_errors_carry_code(client, manager_headers):
    response = client.post("/exit-requests/999/approve", headers=manager_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_product_lifecycle(client, manager_headers, refs):
    created = client.post("/products", headers=manager_headers, json={
        "designation": "Cheville nylon 8mm",
        "category_id": refs.category.id,
        "unit_id": refs.unit.id,
        "storage_zone_id": refs.zone.id,
        "shelf": 1,
        "position": 4,
        "current_stock": 20,
        "min_stock": 5,
        "max_stock": 100,
    })
    assert created.status_code == 201
    body = created.json()
    assert body["reference"] == "RF00001"
    assert body["location"] == "A.1.4"
    assert body["category"] == "Visserie"
    product_id = body["id"]

    patched = client.patch(f"/products/{product_id}", headers=manager_headers, json={"current_stock": 12})
    assert patched.json()["current_stock"] == 12

    history = client.get(f"/stock/products/{product_id}", headers=manager_headers).json()
    assert [m["movement_type"] for m in history] == ["exit", "initial"]

    conflict = client.patch(f"/products/{product_id}", headers=manager_headers, json={"min_stock": 500})
    assert conflict.status_code == 400
    assert conflict.json()["code"] == "VALIDATION_FAILED"

    assert client.delete(f"/products/{product_id}", headers=manager_headers).status_code == 200
    assert client.get("/products", headers=manager_headers).json()["total"] == 0
    listed = client.get("/products", params={"include_deleted": True}, headers=manager_headers).json()
    assert listed["total"] == 1
    assert len(client.get(f"/stock/products/{product_id}", headers=manager_headers).json()) == 2


def test_photo_upload(client, manager_headers, make_product):
    product = make_product()
    response = client.post(
        f"/products/{product.id}/photo",
        headers=manager_headers,
        files={"file": ("shelf.png", b"\x89PNG\r\n\x1a\n", "image/png")},
    )
    assert response.status_code == 200
    assert response.json()["photo_url"].startswith("http://testserver/uploads/")

    refused = client.post(
        f"/products/{product.id}/photo",
        headers=manager_headers,
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert refused.status_code == 400


def test_reference_routes(client, manager_headers, user_headers, make_product, refs):
    make_product()
    assert client.post("/zones", json={"name": "B"}, headers=user_headers).status_code == 403

    zone = client.post("/zones", json={"name": "B"}, headers=manager_headers)
    assert zone.status_code == 201
    assert client.post("/zones", json={"name": "B"}, headers=manager_headers).status_code == 409

    assert client.delete(f"/zones/{refs.zone.id}", headers=manager_headers).status_code == 409
    assert client.delete(f"/zones/{zone.json()['id']}", headers=manager_headers).status_code == 204


def test_cart_submit_then_basket_approval(client, db, user_headers, manager_headers, make_product, user):
    first = make_product(current_stock=10)
    second = make_product(current_stock=10)
    client.post("/cart/add", json={"product_id": first.id, "quantity": 2}, headers=user_headers)
    client.post("/cart/add", json={"product_id": second.id, "quantity": 3}, headers=user_headers)

    submitted = client.post("/cart/submit", json={"reason": "Chantier"}, headers=user_headers)
    assert submitted.status_code == 201
    assert len(submitted.json()) == 2

    baskets = client.get("/exit-requests/baskets", headers=manager_headers).json()
    assert len(baskets) == 1
    basket = baskets[0]
    assert basket["status"] == "pending"
    assert basket["total_quantity"] == 5

    result = client.post(
        "/exit-requests/baskets/approve",
        json={"requested_by": user.id, "minute": basket["minute"]},
        headers=manager_headers,
    )
    assert result.status_code == 200
    assert len(result.json()["processed"]) == 2
    assert result.json()["failed"] == []

    picks = client.get("/exit-requests/pending-exits", headers=manager_headers).json()
    assert sorted(p["quantity"] for p in picks) == [2, 3]
    assert client.get("/cart", headers=user_headers).json()["items"] == []


def test_users_see_only_their_requests(client, db, make_product, user, other_user, user_headers):
    product = make_product()
    exit_requests.create_request(db, product_id=product.id, quantity=1, user=user)
    theirs = exit_requests.create_request(db, product_id=product.id, quantity=1, user=other_user)

    listed = client.get("/exit-requests", headers=user_headers).json()
    assert listed["total"] == 1
    assert client.get(f"/exit-requests/{theirs.id}", headers=user_headers).status_code == 404
    assert client.delete(f"/exit-requests/{theirs.id}", headers=user_headers).status_code == 403


def test_reject_route_requires_reason(client, db, make_product, user, manager_headers):
    product = make_product()
    request = exit_requests.create_request(db, product_id=product.id, quantity=1, user=user)

    assert client.post(f"/exit-requests/{request.id}/reject", json={"reason": ""}, headers=manager_headers).status_code == 422
    rejected = client.post(f"/exit-requests/{request.id}/reject", json={"reason": "Non"}, headers=manager_headers)
    assert rejected.json()["status"] == "rejected"
    again = client.post(f"/exit-requests/{request.id}/approve", headers=manager_headers)
    assert again.status_code == 409
    assert again.json()["code"] == "INVALID_TRANSITION"


def test_stock_routes(client, user_headers, manager_headers, make_product):
    product = make_product(current_stock=4)

    too_many = client.post("/stock/direct-exit", json={"product_id": product.id, "quantity": 5}, headers=user_headers)
    assert too_many.status_code == 409
    assert too_many.json()["code"] == "INSUFFICIENT_STOCK"

    taken = client.post("/stock/direct-exit", json={"product_id": product.id, "quantity": 3}, headers=user_headers)
    assert taken.json()["reason"] == "Sortie directe depuis le catalogue"
    assert taken.json()["new_stock"] == 1

    delivered = client.post(
        "/stock/delivery",
        json={"items": [{"product_id": product.id, "quantity": 9}]},
        headers=manager_headers,
    )
    assert [m["new_stock"] for m in delivered.json()] == [10]

    adjusted = client.post("/stock/adjust", json={"product_id": product.id, "new_stock": 7}, headers=manager_headers)
    assert adjusted.json()["movement_type"] == "adjustment"
    assert adjusted.json()["quantity"] == 3

    recent = client.get("/stock/recent", headers=manager_headers).json()
    assert len(recent) == 4


def test_orders_routes(client, manager_headers, make_product):
    product = make_product(current_stock=1)
    order = client.post("/orders", json={"product_id": product.id, "quantity": 6}, headers=manager_headers).json()

    received = client.post(f"/orders/{order['id']}/receive", headers=manager_headers)
    assert received.json()["status"] == "received"
    assert client.get(f"/products/{product.id}", headers=manager_headers).json()["current_stock"] == 7
    assert client.get("/orders/delivery-time", headers=manager_headers).json()["average_days"] >= 0


def test_inventory_routes(client, manager_headers, make_product):
    product = make_product(current_stock=8)
    session = client.post("/inventory/sessions", json={"mode": "full"}, headers=manager_headers).json()
    count = session["counts"][0]

    counted = client.put(
        f"/inventory/sessions/{session['id']}/counts/{count['id']}",
        json={"counted_stock": 5},
        headers=manager_headers,
    ).json()
    assert counted["difference"] == -3
    client.post(f"/inventory/sessions/{session['id']}/counts/{count['id']}/validate", headers=manager_headers)

    closed = client.post(f"/inventory/sessions/{session['id']}/validate", headers=manager_headers).json()
    assert closed["status"] == "validated"
    assert closed["summary"]["total_difference"] == -3
    assert client.get(f"/products/{product.id}", headers=manager_headers).json()["current_stock"] == 5


def test_stats_routes(client, user_headers, manager_headers, make_product):
    product = make_product(current_stock=0, min_stock=3, max_stock=30)

    consumption = client.get(f"/stats/consumption/{product.id}", headers=user_headers).json()
    assert consumption["days_until_stockout"] is None

    alerts = client.get("/stats/alerts", headers=user_headers).json()
    assert [a["level"] for a in alerts] == ["critical"]
    assert client.get("/stats/summary", headers=user_headers).json()["critical_stock"] == 1
    assert client.get("/stats/global", params={"period": "week"}, headers=manager_headers).json()["days"] == 7
    assert client.get("/stats/global", params={"period": "decade"}, headers=manager_headers).status_code == 422


def test_own_statistics(client, user_headers, manager_headers, make_product):
    product = make_product(current_stock=10)
    client.post("/stock/direct-exit", json={"product_id": product.id, "quantity": 4}, headers=user_headers)
    client.post("/stock/direct-exit", json={"product_id": product.id, "quantity": 1}, headers=manager_headers)

    mine = client.get("/stats/me", headers=user_headers)
    assert mine.status_code == 200
    body = mine.json()
    assert (body["total_exits"], body["total_quantity"]) == (1, 4)
    assert body["top_products"][0]["reference"] == product.reference
    assert len(body["monthly"]) == 3
    assert body["recent_exits"][0]["new_stock"] == 6


def test_mutations_are_audited(client, db, manager_headers, make_product):
    product = make_product()
    client.patch(f"/products/{product.id}", json={"designation": "Renommé"}, headers=manager_headers)

    assert db.query(Log).filter(Log.action == "PRODUCT_EDIT").count() == 1
    logs = client.get("/logs", headers=manager_headers).json()
    assert any(item["action"] == "PRODUCT_EDIT" for item in logs["items"])


def test_role_change(client, manager_headers, manager, user):
    promoted = client.put(f"/users/{user.id}/role", json={"role": "manager"}, headers=manager_headers)
    assert promoted.json()["role"] == "manager"
    assert client.put(f"/users/{manager.id}/role", json={"role": "user"}, headers=manager_headers).status_code == 400
