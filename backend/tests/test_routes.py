"""
HTTP layer tests: payload validation, status codes and JSON shapes.
"""

import pytest

from shopledger.services.ledger_store import LedgerStore


COFFEE = {
    "name": "Premium Coffee Beans - Arabica",
    "sku": "COFFEE-ARAB-001",
    "description": "High-quality single-origin Arabica coffee beans",
    "buying_price": "8.50",
    "selling_price": 14.99,
    "current_stock": 150,
    "minimum_stock_level": 30,
    "unit_of_measurement": "bag",
}


@pytest.fixture
def coffee(client, db_session):
    response = client.post("/api/products", json=COFFEE)
    assert response.status_code == 201
    return response.get_json()["product"]


# ---------------------------------------------------------------------------
# products
# ---------------------------------------------------------------------------

def test_create_product_converts_money(coffee):
    assert coffee["buying_price_cents"] == 850
    assert coffee["selling_price_cents"] == 1499
    assert coffee["buying_price"] == "8.50"
    assert coffee["selling_price"] == "14.99"
    assert coffee["current_stock"] == 150


def test_create_product_accepts_cents(client, db_session):
    response = client.post("/api/products", json={"name": "Organic Green Tea", "selling_price_cents": 999})
    assert response.status_code == 201
    assert response.get_json()["product"]["selling_price"] == "9.99"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"sku": "X"}, "Missing required fields: name"),
        ({"name": "Tea", "colour": "green"}, "Field not allowed: colour"),
        ({"name": "Tea", "buying_price_cents": 8.5}, "buying_price_cents must be an integer"),
        ({"name": "Tea", "current_stock": "1e3"}, "current_stock must be a plain integer"),
        ({"name": "Tea", "buying_price": "1.00", "buying_price_cents": 100}, "Send either buying_price or buying_price_cents, not both"),
        ({"name": "Tea", "minimum_stock_level": -1}, "minimum_stock_level must be >= 0"),
        ({"name": "   "}, "name cannot be blank"),
    ],
)
def test_create_product_validation(client, db_session, payload, message):
    response = client.post("/api/products", json=payload)
    assert response.status_code == 400
    assert response.get_json()["error"] == message


def test_negative_price_is_rejected(client, db_session):
    response = client.post("/api/products", json={"name": "Tea", "selling_price": "-1.00"})
    assert response.status_code == 400
    assert response.get_json()["details"]["field"] == "selling_price"


def test_duplicate_sku_conflicts(client, coffee):
    response = client.post("/api/products", json=COFFEE)
    assert response.status_code == 409


def test_get_update_delete_product(client, db_session):
    created = client.post("/api/products", json={"name": "Herbal Tea Assortment", "selling_price": "14.99"}).get_json()["product"]

    response = client.get(f"/api/products/{created['id']}")
    assert response.status_code == 200
    assert response.get_json()["product"]["name"] == "Herbal Tea Assortment"

    response = client.put(f"/api/products/{created['id']}", json={"selling_price": "15.49", "minimum_stock_level": 12})
    assert response.status_code == 200
    body = response.get_json()["product"]
    assert body["selling_price_cents"] == 1549
    assert body["minimum_stock_level"] == 12

    response = client.delete(f"/api/products/{created['id']}")
    assert response.status_code == 200
    assert client.get(f"/api/products/{created['id']}").status_code == 404


def test_update_cannot_set_stock(client, coffee):
    response = client.put(f"/api/products/{coffee['id']}", json={"current_stock": 999})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Field not allowed: current_stock"


def test_product_with_history_cannot_be_deleted(client, coffee):
    response = client.delete(f"/api/products/{coffee['id']}")
    assert response.status_code == 409


def test_missing_product_is_404_with_details(client, db_session):
    response = client.get("/api/products/123456")
    assert response.status_code == 404
    body = response.get_json()
    assert body["error"] == "Product 123456 not found"
    assert body["details"] == {"product_id": 123456}


def test_list_search_and_low_stock(client, coffee):
    client.post("/api/products", json={"name": "Artisanal Cheese Selection", "current_stock": 10, "minimum_stock_level": 10})

    names = [p["name"] for p in client.get("/api/products").get_json()["products"]]
    assert names == ["Artisanal Cheese Selection", "Premium Coffee Beans - Arabica"]

    found = client.get("/api/products/search?q=ARABICA").get_json()["products"]
    assert [p["id"] for p in found] == [coffee["id"]]

    low = client.get("/api/products/low-stock").get_json()["products"]
    assert [p["name"] for p in low] == ["Artisanal Cheese Selection"]


def test_unexpected_failure_is_500(client, db_session, monkeypatch):
    def boom(self, data):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(LedgerStore, "create_product", boom)
    response = client.post("/api/products", json={"name": "Tea"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error"}


# ---------------------------------------------------------------------------
# sales
# ---------------------------------------------------------------------------

def test_record_and_fetch_sale(client, coffee):
    response = client.post(
        "/api/sales",
        json={
            "payment_method": "MOBILE_MONEY",
            "customer_name": "Ama",
            "items": [{"product_id": coffee["id"], "quantity": 2}],
        },
    )
    assert response.status_code == 201
    sale = response.get_json()["sale"]
    assert sale["total_amount"] == "29.98"
    assert sale["items"][0]["product_sku"] == "COFFEE-ARAB-001"

    fetched = client.get(f"/api/sales/{sale['id']}").get_json()["sale"]
    assert fetched["id"] == sale["id"]

    listed = client.get("/api/sales").get_json()["sales"]
    assert [s["id"] for s in listed] == [sale["id"]]
    assert "items" not in listed[0]

    assert client.get(f"/api/products/{coffee['id']}").get_json()["product"]["current_stock"] == 148


def test_sale_with_line_price_override(client, coffee):
    response = client.post(
        "/api/sales",
        json={"items": [{"product_id": coffee["id"], "quantity": 1, "unit_price": "12.00"}]},
    )
    assert response.status_code == 201
    assert response.get_json()["sale"]["total_amount_cents"] == 1200


def test_oversell_is_409(client, coffee):
    response = client.post("/api/sales", json={"items": [{"product_id": coffee["id"], "quantity": 151}]})
    assert response.status_code == 409
    assert response.get_json()["details"] == {"product_id": coffee["id"], "requested": 151, "available": 150}


@pytest.mark.parametrize(
    "items, status",
    [
        (None, 400),
        ([], 400),
        ([{"quantity": 1}], 400),
        ([{"product_id": 1, "quantity": "1.5"}], 400),
        ([{"product_id": 1, "quantity": 0}], 400),
        ([{"product_id": 999999, "quantity": 1}], 404),
    ],
)
def test_sale_item_validation(client, db_session, items, status):
    response = client.post("/api/sales", json={"items": items})
    assert response.status_code == status


def test_unknown_sale_is_404(client, db_session):
    assert client.get("/api/sales/777").status_code == 404


# ---------------------------------------------------------------------------
# purchases
# ---------------------------------------------------------------------------

def test_pending_purchase_lifecycle(client, coffee):
    response = client.post(
        "/api/purchases",
        json={
            "status": "pending",
            "items": [{"product_id": coffee["id"], "quantity": 10, "unit_price": "9.00"}],
        },
    )
    assert response.status_code == 201
    purchase = response.get_json()["purchase"]
    assert purchase["status"] == "PENDING"
    assert purchase["total_amount"] == "90.00"

    assert client.get(f"/api/products/{coffee['id']}").get_json()["product"]["current_stock"] == 150

    response = client.post(f"/api/purchases/{purchase['id']}/receive")
    assert response.status_code == 200
    assert response.get_json()["purchase"]["status"] == "RECEIVED"

    product = client.get(f"/api/products/{coffee['id']}").get_json()["product"]
    assert product["current_stock"] == 160
    assert product["buying_price"] == "9.00"

    assert client.post(f"/api/purchases/{purchase['id']}/receive").status_code == 409
    assert client.post(f"/api/purchases/{purchase['id']}/cancel").status_code == 409


def test_cancel_pending_purchase(client, coffee):
    purchase = client.post(
        "/api/purchases",
        json={"status": "PENDING", "items": [{"product_id": coffee["id"], "quantity": 3}]},
    ).get_json()["purchase"]

    response = client.post(f"/api/purchases/{purchase['id']}/cancel")
    assert response.status_code == 200
    assert response.get_json()["purchase"]["status"] == "CANCELLED"
    assert [p["id"] for p in client.get("/api/purchases").get_json()["purchases"]] == [purchase["id"]]


def test_purchase_from_supplier(client, coffee):
    supplier = client.post("/api/suppliers", json={"name": "Premium Wholesale Co."}).get_json()["supplier"]
    response = client.post(
        "/api/purchases",
        json={"supplier_id": supplier["id"], "items": [{"product_id": coffee["id"], "quantity": 5}]},
    )
    assert response.status_code == 201
    body = response.get_json()["purchase"]
    assert body["supplier_name"] == "Premium Wholesale Co."
    assert client.get(f"/api/purchases/{body['id']}").status_code == 200


# ---------------------------------------------------------------------------
# inventory
# ---------------------------------------------------------------------------

def test_adjust_and_history(client, coffee):
    response = client.post(f"/api/inventory/{coffee['id']}/adjust", json={"delta": -200, "reason": "flood damage"})
    assert response.status_code == 200
    assert response.get_json()["product"]["current_stock"] == 0

    movements = client.get(f"/api/inventory/{coffee['id']}/movements?limit=1").get_json()["movements"]
    assert len(movements) == 1
    assert movements[0]["movement_type"] == "ADJUSTMENT"
    assert movements[0]["quantity"] == 200
    assert movements[0]["notes"] == "-200 - flood damage (applied -150)"


def test_adjust_reason_does_not_change_recorded_sign(client, store, coffee):
    response = client.post(f"/api/inventory/{coffee['id']}/adjust", json={"delta": 2, "reason": "found box (applied -40)"})
    assert response.status_code == 200
    assert response.get_json()["product"]["current_stock"] == coffee["current_stock"] + 2
    assert store.stock_from_movements(coffee["id"]) == coffee["current_stock"] + 2


@pytest.mark.parametrize(
    "payload",
    [{}, {"delta": 0}, {"delta": 2.5}, {"delta": "ten"}, {"delta": 10**20}, {"delta": "-100000000000"}],
)
def test_adjust_validation(client, coffee, payload):
    response = client.post(f"/api/inventory/{coffee['id']}/adjust", json=payload)
    assert response.status_code == 400


def test_history_limit_must_be_integer(client, coffee):
    assert client.get(f"/api/inventory/{coffee['id']}/movements?limit=abc").status_code == 400
    assert client.get(f"/api/inventory/{coffee['id']}/movements?limit=0").status_code == 400


def test_metrics_recommendations_and_alerts(client, coffee):
    low = client.post("/api/products", json={"name": "Honey", "current_stock": 5, "minimum_stock_level": 5}).get_json()["product"]

    single = client.get(f"/api/inventory/{coffee['id']}/metrics").get_json()["metrics"]
    assert single["stock_health"] == "healthy"
    assert single["profit_margin"] == "43.3%"

    metrics = client.get("/api/inventory/metrics").get_json()["metrics"]
    assert [m["product_id"] for m in metrics] == [low["id"], coffee["id"]]

    recs = client.get("/api/inventory/recommendations").get_json()["recommendations"]
    assert len(recs) == 1
    assert recs[0]["product"]["id"] == low["id"]
    assert recs[0]["suggested_order"] == 10
    assert recs[0]["urgency"] == "critical"

    alerts = client.get("/api/inventory/alerts").get_json()
    assert alerts["count"] == 1
    assert alerts["items"][0] == {"id": low["id"], "name": "Honey", "current": 5, "min": 5}


def test_metrics_for_missing_product(client, db_session):
    assert client.get("/api/inventory/4242/metrics").status_code == 404


# ---------------------------------------------------------------------------
# suppliers, categories, health
# ---------------------------------------------------------------------------

def test_supplier_crud(client, db_session):
    response = client.post(
        "/api/suppliers",
        json={"name": "Direct Factory Supply", "contact_person": "Michael Chen", "email": "michael@directfactory.com"},
    )
    assert response.status_code == 201
    supplier = response.get_json()["supplier"]

    response = client.put(f"/api/suppliers/{supplier['id']}", json={"phone": "+1-800-555-1234"})
    assert response.get_json()["supplier"]["phone"] == "+1-800-555-1234"

    found = client.get("/api/suppliers/search?q=michael").get_json()["suppliers"]
    assert [s["id"] for s in found] == [supplier["id"]]

    assert client.delete(f"/api/suppliers/{supplier['id']}").status_code == 200
    assert client.get(f"/api/suppliers/{supplier['id']}").status_code == 404


def test_supplier_in_use_cannot_be_deleted(client, db_session):
    supplier = client.post("/api/suppliers", json={"name": "Quality Imports Ltd."}).get_json()["supplier"]
    client.post("/api/products", json={"name": "Almond Butter", "supplier_id": supplier["id"]})
    assert client.delete(f"/api/suppliers/{supplier['id']}").status_code == 409


def test_categories(client, db_session):
    assert client.post("/api/categories", json={}).status_code == 400
    response = client.post("/api/categories", json={"name": "Beverages"})
    assert response.status_code == 201
    assert [c["name"] for c in client.get("/api/categories").get_json()["categories"]] == ["Beverages"]


def test_health(client, db_session):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["details"]["products"] == 0
