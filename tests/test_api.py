"""
Tests for the HTTP API.

Covers:
- Health, root and metrics endpoints
- Acting user header
- Domain error mapping to status codes and error bodies
- End-to-end buying, fulfilment, demand and subscription flows
"""

from datetime import timedelta

from agrostore.domain.entities import utcnow
from agrostore.infrastructure.payment_gateway import PaymentOutcome


def _as(user):
    return {"X-User-ID": user.id}


def _product_payload(**overrides):
    payload = {
        "name": "Organic Tomatoes",
        "description": "Vine ripened",
        "category": "vegetables",
        "price": "25.00",
        "unit": "kg",
        "available_quantity": "50",
        "delivery_options": ["pickup", "delivery"],
    }
    payload.update(overrides)
    return payload


def _create_product(client, farmer, **overrides):
    response = client.post("/api/products", json=_product_payload(**overrides), headers=_as(farmer))
    assert response.status_code == 201
    return response.json()


class TestServiceEndpoints:
    """Test health, root and metrics."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["checks"] == {"database": "ok"}

    def test_root(self, client):
        data = client.get("/").json()
        assert data["service"] == "agrostore"
        assert data["status"] == "running"

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_metrics(self, client):
        client.get("/health")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "agrostore_http_requests_total" in response.text


class TestUsersApi:
    """Test registration and profiles."""

    def test_register_and_fetch(self, client):
        response = client.post(
            "/api/users",
            json={
                "name": "Victor Lungu",
                "email": "victor@piata.md",
                "phone": "+37369000111",
                "role": "retailer",
                "location": "Balti",
            },
        )
        assert response.status_code == 201
        user = response.json()
        assert user["role"] == "retailer"
        assert user["is_pro_subscriber"] is False

        me = client.get("/api/users/me", headers={"X-User-ID": user["id"]})
        assert me.json()["email"] == "victor@piata.md"

    def test_invalid_email_rejected(self, client):
        response = client.post(
            "/api/users",
            json={"name": "X", "email": "nope", "phone": "1", "role": "consumer", "location": "Y"},
        )
        assert response.status_code == 422

    def test_missing_user_header(self, client):
        response = client.get("/api/users/me")
        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "unauthorized"

    def test_unknown_user(self, client):
        response = client.get("/api/users/missing")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "not_found"
        assert body["details"] == {"entity": "User", "id": "missing"}

    def test_profile_update(self, client, farmer):
        response = client.patch("/api/users/me", json={"farm_description": "Since 1998"}, headers=_as(farmer))
        assert response.status_code == 200
        assert response.json()["farm_description"] == "Since 1998"

    def test_farmer_stats(self, client, farmer, consumer):
        assert client.get("/api/users/me/stats", headers=_as(farmer)).json()["listings_count"] == 0
        assert client.get("/api/users/me/stats", headers=_as(consumer)).status_code == 403

    def test_farm_locations(self, client, farmer):
        _create_product(client, farmer)
        pins = client.get("/api/users/farms/locations").json()
        assert [(p["farmer_id"], p["available_products"]) for p in pins] == [(farmer.id, 1)]


class TestProductsApi:
    """Test listings and marketplace search."""

    def test_create_and_search(self, client, farmer):
        created = _create_product(client, farmer)
        _create_product(client, farmer, name="Potatoes", price="5")

        results = client.get("/api/products", params={"search": "tomato"}).json()
        assert [p["id"] for p in results] == [created["id"]]
        assert results[0]["farmer_name"] == "Green Valley Farm"
        assert results[0]["price"] == 25.0

    def test_sort_by_price(self, client, farmer):
        for price in ("25", "18", "35"):
            _create_product(client, farmer, price=price)
        results = client.get("/api/products", params={"sort": "priceLow"}).json()
        assert [p["price"] for p in results] == [18.0, 25.0, 35.0]

    def test_malformed_price(self, client, farmer):
        response = client.post("/api/products", json=_product_payload(price="abc"), headers=_as(farmer))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["details"]["field"] == "price"

    def test_consumer_cannot_list(self, client, consumer):
        response = client.post("/api/products", json=_product_payload(), headers=_as(consumer))
        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    def test_listing_limit(self, client, farmer):
        for i in range(5):
            _create_product(client, farmer, name=f"Listing {i}")

        response = client.post("/api/products", json=_product_payload(), headers=_as(farmer))
        assert response.status_code == 402
        body = response.json()
        assert body["error"] == "listing_limit_exceeded"
        assert body["details"]["limit"] == 5
        assert body["details"]["upgrade_required"] is True

    def test_view_counts(self, client, farmer):
        product = _create_product(client, farmer)
        client.get(f"/api/products/{product['id']}")
        assert client.get(f"/api/products/{product['id']}").json()["views"] == 2

    def test_hidden_listing_leaves_search(self, client, farmer):
        product = _create_product(client, farmer)
        response = client.put(
            f"/api/products/{product['id']}/availability",
            json={"is_available": False},
            headers=_as(farmer),
        )
        assert response.json()["is_available"] is False
        assert client.get("/api/products").json() == []


class TestBuyingFlow:
    """Test cart, checkout and the order workflow over HTTP."""

    def test_checkout_then_fulfil_and_rate(self, client, gateway, farmer, consumer):
        product = _create_product(client, farmer)
        added = client.post(
            "/api/cart/items",
            json={"product_id": product["id"], "quantity": "2"},
            headers=_as(consumer),
        )
        assert added.status_code == 201

        cart = client.get("/api/cart", headers=_as(consumer)).json()
        assert cart["grand_total"] == 50.0
        assert cart["farmer_ids"] == [farmer.id]

        checkout = client.post("/api/cart/checkout", json={"delivery_option": "pickup"}, headers=_as(consumer))
        assert checkout.status_code == 201
        (order,) = checkout.json()
        assert order["status"] == "pending"
        assert order["payment_status"] == "paid"
        assert client.get("/api/cart", headers=_as(consumer)).json()["item_count"] == 0

        assert client.post(f"/api/orders/{order['id']}/accept", headers=_as(farmer)).json()["status"] == "confirmed"
        for status in ("preparing", "ready", "delivered"):
            response = client.put(f"/api/orders/{order['id']}/status", json={"status": status}, headers=_as(farmer))
            assert response.status_code == 200

        rated = client.post(f"/api/orders/{order['id']}/rating", json={"rating": 5}, headers=_as(consumer))
        assert rated.json()["customer_rating"] == 5.0
        assert client.get(f"/api/users/{farmer.id}").json()["rating"] == 5.0

        completed = client.get("/api/orders", params={"tab": "completed"}, headers=_as(consumer)).json()
        assert completed["total"] == 1

    def test_skipping_a_step_conflicts(self, client, farmer, consumer):
        product = _create_product(client, farmer)
        order = client.post(
            "/api/orders/buy-now",
            json={"product_id": product["id"], "quantity": "1"},
            headers=_as(consumer),
        ).json()

        response = client.put(f"/api/orders/{order['id']}/status", json={"status": "ready"}, headers=_as(farmer))
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_status_transition"

    def test_customer_cannot_change_status(self, client, farmer, consumer):
        product = _create_product(client, farmer)
        order = client.post(
            "/api/orders/buy-now",
            json={"product_id": product["id"], "quantity": "1"},
            headers=_as(consumer),
        ).json()

        response = client.post(f"/api/orders/{order['id']}/accept", headers=_as(consumer))
        assert response.status_code == 403

    def test_declined_payment(self, client, gateway, farmer, consumer):
        gateway.authorize.return_value = PaymentOutcome.FAILED
        product = _create_product(client, farmer)
        client.post("/api/cart/items", json={"product_id": product["id"], "quantity": 1}, headers=_as(consumer))

        response = client.post("/api/cart/checkout", json={"delivery_option": "pickup"}, headers=_as(consumer))

        assert response.status_code == 402
        assert response.json()["error"] == "payment_failed"
        assert client.get("/api/cart", headers=_as(consumer)).json()["item_count"] == 1
        assert client.get("/api/orders", headers=_as(consumer)).json()["total"] == 0

    def test_delivery_needs_address(self, client, farmer, consumer):
        product = _create_product(client, farmer)
        client.post("/api/cart/items", json={"product_id": product["id"], "quantity": 1}, headers=_as(consumer))
        response = client.post("/api/cart/checkout", json={"delivery_option": "delivery"}, headers=_as(consumer))
        assert response.status_code == 400


class TestDemandsApi:
    """Test the demand board over HTTP."""

    def test_post_respond_accept(self, client, restaurant, farmer):
        demand = client.post(
            "/api/demands",
            json={
                "title": "Potatoes",
                "description": "Weekly kitchen supply",
                "category": "vegetables",
                "quantity": "100",
                "unit": "kg",
                "max_price": "6",
                "required_by": (utcnow() + timedelta(days=5)).isoformat(),
            },
            headers=_as(restaurant),
        )
        assert demand.status_code == 201
        demand_id = demand.json()["id"]

        offer = client.post(
            f"/api/demands/{demand_id}/responses",
            json={"offered_price": "5.5", "available_quantity": "100"},
            headers=_as(farmer),
        )
        assert offer.status_code == 201

        duplicate = client.post(
            f"/api/demands/{demand_id}/responses",
            json={"offered_price": "5", "available_quantity": "100"},
            headers=_as(farmer),
        )
        assert duplicate.status_code == 400

        accepted = client.post(
            f"/api/demands/{demand_id}/accept",
            json={"response_id": offer.json()["id"]},
            headers=_as(restaurant),
        ).json()
        assert accepted["status"] == "inProgress"
        assert accepted["responses"][0]["is_accepted"] is True

        mine = client.get("/api/demands", params={"filter": "mine"}, headers=_as(restaurant)).json()
        assert [d["id"] for d in mine] == [demand_id]

    def test_consumer_cannot_post(self, client, consumer):
        response = client.post(
            "/api/demands",
            json={
                "title": "Eggs",
                "description": "Two trays",
                "category": "dairy",
                "quantity": "60",
                "unit": "pcs",
                "max_price": "3",
                "required_by": (utcnow() + timedelta(days=2)).isoformat(),
            },
            headers=_as(consumer),
        )
        assert response.status_code == 403

    def test_expire_sweep(self, client):
        response = client.post("/api/demands/expire")
        assert response.json() == {"expired": [], "count": 0}


class TestSubscriptionsApi:
    """Test plans and plan changes over HTTP."""

    def test_plans(self, client):
        plans = client.get("/api/subscriptions/plans").json()
        assert [p["plan"] for p in plans] == ["free", "basic", "premium"]
        assert plans[0]["max_listings"] == 5
        assert plans[2]["price"] == 19.99

    def test_my_subscription(self, client, farmer):
        _create_product(client, farmer)
        data = client.get("/api/subscriptions/me", headers=_as(farmer)).json()
        assert data["subscription"]["plan"] == "free"
        assert data["remaining_listings"] == 4
        assert set(data["plans"]) == {"free", "basic", "premium"}

    def test_upgrade(self, client, gateway, farmer):
        response = client.post("/api/subscriptions/me/change", json={"plan": "premium"}, headers=_as(farmer))
        assert response.status_code == 200
        assert response.json()["plan"] == "premium"
        gateway.authorize.assert_awaited_once()

        assert client.get("/api/users/me", headers=_as(farmer)).json()["is_pro_subscriber"] is True
        history = client.get("/api/subscriptions/me/history", headers=_as(farmer)).json()
        assert [s["is_active"] for s in history] == [True, False]
        assert client.get("/api/subscriptions/me", headers=_as(farmer)).json()["remaining_listings"] is None

    def test_cancelled_upgrade(self, client, gateway, farmer):
        gateway.authorize.return_value = PaymentOutcome.CANCELLED
        response = client.post("/api/subscriptions/me/change", json={"plan": "basic"}, headers=_as(farmer))
        assert response.status_code == 402
        assert response.json()["details"]["outcome"] == "cancelled"
