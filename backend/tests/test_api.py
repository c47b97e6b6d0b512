def _login(client, email):
    r = client.post("/auth/login", json={"email": email})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}


def test_list_items(client, seed):
    r = client.get(f"/shops/{seed.shop1}/items")
    assert r.status_code == 200
    body = r.json()
    assert [it["item_name"] for it in body] == ["Ramen", "Gyoza"]
    assert body[1]["is_available"] is False


def test_guest_order_then_sign_up_claims_it(client, seed):
    r = client.post(
        f"/shops/{seed.shop1}/guest-orders",
        json={"items": [{"item_id": seed.item_a, "quantity": 2}]},
    )
    assert r.status_code == 201
    guest = r.json()
    assert guest["guest_order_token"]

    r = client.post(
        "/auth/signup",
        json={"email": "carol@example.com", "guest_order_token": guest["guest_order_token"]},
    )
    assert r.status_code == 201
    headers = {"Authorization": f"Bearer {r.json()['token']}"}

    r = client.get("/orders", headers=headers)
    assert r.status_code == 200
    (order,) = r.json()
    assert order["order_id"] == guest["order_id"]
    assert order["total_amount"] == 200
    assert order["items"] == [{"item_name": "Ramen", "quantity": 2}]


def test_authenticated_order_and_status_poll(client, seed):
    headers = _login(client, "alice@example.com")
    r = client.post(
        f"/shops/{seed.shop1}/orders",
        json={"items": [{"item_id": seed.item_a, "quantity": 1}]},
        headers=headers,
    )
    assert r.status_code == 201
    order_id = r.json()["order_id"]
    assert r.json()["status"] == "cooking"

    r = client.get(f"/orders/{order_id}/status", headers=headers)
    assert r.json() == {"order_id": order_id, "status": "cooking", "waiting_count": 0}

    r = client.get(f"/orders/{order_id}/status", headers=_login(client, "bob@example.com"))
    assert r.status_code == 404
    assert r.json()["err_code"] == "S003"


def test_error_codes_map_to_http_status(client, seed):
    headers = _login(client, "alice@example.com")

    r = client.post(
        f"/shops/{seed.shop1}/orders",
        json={"items": [{"item_id": seed.item_b, "quantity": 1}]},
        headers=headers,
    )
    assert (r.status_code, r.json()["err_code"]) == (409, "C001")

    r = client.post(
        f"/shops/{seed.shop1}/orders",
        json={"items": [{"item_id": seed.item_a, "quantity": 2}, {"item_id": 999, "quantity": 1}]},
        headers=headers,
    )
    assert (r.status_code, r.json()["err_code"]) == (400, "R002")

    r = client.post(f"/shops/{seed.shop1}/orders", json={"items": []}, headers=headers)
    assert (r.status_code, r.json()["err_code"]) == (400, "R003")

    r = client.post(f"/shops/{seed.shop1}/orders", json={"items": [{"item_id": seed.item_a, "quantity": 1}]})
    assert (r.status_code, r.json()["err_code"]) == (401, "A001")


def test_admin_flow(client, seed):
    customer = _login(client, "alice@example.com")
    r = client.post(
        f"/shops/{seed.shop1}/orders",
        json={"items": [{"item_id": seed.item_a, "quantity": 1}]},
        headers=customer,
    )
    order_id = r.json()["order_id"]

    admin = _login(client, "admin1@example.com")
    r = client.get(f"/admin/shops/{seed.shop1}/orders", headers=admin)
    assert r.status_code == 200
    assert [o["order_id"] for o in r.json()["cooking_orders"]] == [order_id]

    r = client.get(f"/admin/shops/{seed.shop2}/orders", headers=admin)
    assert (r.status_code, r.json()["err_code"]) == (403, "A002")

    assert client.patch(f"/admin/orders/{order_id}/status", headers=admin).json()["status"] == "completed"
    assert client.patch(f"/admin/orders/{order_id}/status", headers=admin).json()["status"] == "handed"
    r = client.patch(f"/admin/orders/{order_id}/status", headers=admin)
    assert (r.status_code, r.json()["err_code"]) == (409, "C001")

    r = client.patch(f"/admin/orders/{order_id}/status", headers=_login(client, "admin2@example.com"))
    assert r.status_code == 404

    assert client.delete(f"/admin/orders/{order_id}", headers=admin).status_code == 204
    assert client.delete(f"/admin/orders/{order_id}", headers=admin).status_code == 404


def test_admin_routes_reject_customers(client, seed):
    customer = _login(client, "alice@example.com")
    r = client.get(f"/admin/shops/{seed.shop1}/orders", headers=customer)
    assert (r.status_code, r.json()["err_code"]) == (403, "A002")


def test_item_availability_toggle(client, seed):
    admin = _login(client, "admin1@example.com")
    r = client.patch(
        f"/admin/items/{seed.item_b}/availability", json={"is_available": True}, headers=admin
    )
    assert r.status_code == 204
    assert all(it["is_available"] for it in client.get(f"/shops/{seed.shop1}/items").json())

    r = client.patch(
        f"/admin/items/{seed.item_c}/availability", json={"is_available": False}, headers=admin
    )
    assert r.status_code == 404


def test_login_block_returns_retry_after(client, seed):
    for _ in range(5):
        assert client.post("/auth/login", json={"email": "ghost@example.com"}).status_code == 401
    r = client.post("/auth/login", json={"email": "ghost@example.com"})
    assert r.status_code == 403
    assert r.json()["err_code"] == "A002"
    assert int(r.headers["Retry-After"]) > 0


def test_order_date_has_one_format_across_views(client, seed):
    headers = _login(client, "alice@example.com")
    r = client.post(
        f"/shops/{seed.shop1}/orders",
        json={"items": [{"item_id": seed.item_a, "quantity": 1}]},
        headers=headers,
    )
    created = r.json()["order_date"]
    (listed,) = client.get("/orders", headers=headers).json()
    assert listed["order_date"] == created

    admin = _login(client, "admin1@example.com")
    page = client.get(f"/admin/shops/{seed.shop1}/orders", headers=admin).json()
    assert page["cooking_orders"][0]["order_date"] == created
