import pytest
from fastapi.testclient import TestClient


def _setup(client: TestClient) -> dict:
    response = client.post("/api/inventory/warehouses", json={"name": "Main", "short_code": "WH"})
    assert response.status_code == 201, response.text
    warehouse = response.json()
    stock = warehouse["locations"][0]

    vendors = client.post("/api/inventory/locations", json={"name": "Vendors", "type": "supplier"}).json()
    customers = client.post("/api/inventory/locations", json={"name": "Customers", "type": "customer"}).json()

    response = client.post(
        "/api/products",
        json={"name": "Gaming Laptop", "sku": "LAP-001", "category": "Electronics", "cost": 800, "price": 1200},
    )
    assert response.status_code == 201, response.text
    product = response.json()

    types = {t["sequence_code"]: t for t in client.get("/api/operations/types").json()}
    return {
        "stock": stock,
        "vendors": vendors,
        "customers": customers,
        "product": product,
        "types": types,
    }


def _operation(world: dict, code: str, quantity: float, src: str, dest: str) -> dict:
    return {
        "operation_type_id": world["types"][code]["id"],
        "moves": [
            {
                "product_id": world["product"]["id"],
                "quantity": quantity,
                "location_src_id": world[src]["id"],
                "location_dest_id": world[dest]["id"],
            }
        ],
    }


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_startup_seeds_operation_types(client: TestClient) -> None:
    codes = [t["sequence_code"] for t in client.get("/api/operations/types").json()]
    assert codes == ["WH/IN", "WH/OUT", "WH/INT"]


def test_get_operation_type_by_id(client: TestClient) -> None:
    receipts = client.get("/api/operations/types").json()[0]

    response = client.get(f"/api/operations/types/{receipts['id']}")
    assert response.status_code == 200
    assert response.json() == receipts

    response = client.get("/api/operations/types/999")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_receipt_delivery_flow(client: TestClient) -> None:
    world = _setup(client)

    response = client.post("/api/operations", json=_operation(world, "WH/IN", 10, "vendors", "stock"))
    assert response.status_code == 201, response.text
    receipt = response.json()
    assert receipt["reference"] == "WH/IN/00001"
    assert receipt["status"] == "draft"
    assert receipt["moves"][0]["status"] == "draft"

    response = client.post(f"/api/operations/{receipt['id']}/validate")
    assert response.status_code == 200, response.text
    validated = response.json()
    assert validated["status"] == "done"
    assert validated["moves"][0]["status"] == "done"
    assert validated["moves"][0]["location_dest"]["name"] == "Stock"

    response = client.post(f"/api/operations/{receipt['id']}/validate")
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"

    delivery = client.post(
        "/api/operations", json=_operation(world, "WH/OUT", 4, "stock", "customers")
    ).json()
    client.post(f"/api/operations/{delivery['id']}/validate")

    products = client.get("/api/products").json()
    assert products[0]["on_hand"] == 6
    assert products[0]["free_to_use"] == 6

    levels = client.get("/api/reporting/stock-levels").json()
    assert [(level["location"]["name"], level["quantity"]) for level in levels] == [("Stock", 6)]

    ledger = client.get("/api/reporting/ledger").json()
    assert [entry["operation"]["reference"] for entry in ledger] == ["WH/OUT/00001", "WH/IN/00001"]
    assert ledger[0]["operation"]["operation_type"]["type"] == "delivery"

    on_hand = client.get(f"/api/reporting/on-hand/{world['product']['id']}").json()
    assert on_hand == {
        "product_id": world["product"]["id"],
        "location_id": None,
        "on_hand": 6,
        "reserved": 0,
        "free_to_use": 6,
    }

    listed = client.get("/api/operations").json()
    assert [op["reference"] for op in listed] == ["WH/OUT/00001", "WH/IN/00001"]
    assert listed[0]["moves"][0]["product"]["sku"] == "LAP-001"


def test_confirm_cancel_and_dashboard(client: TestClient) -> None:
    world = _setup(client)
    delivery = client.post(
        "/api/operations", json=_operation(world, "WH/OUT", 2, "stock", "customers")
    ).json()

    confirmed = client.post(f"/api/operations/{delivery['id']}/confirm").json()
    assert confirmed["status"] == "waiting"

    stats = client.get("/api/dashboard/stats").json()
    outgoing = next(t for t in stats["operation_types"] if t["sequence_code"] == "WH/OUT")
    assert outgoing["waiting_count"] == 1

    canceled = client.post(f"/api/operations/{delivery['id']}/cancel").json()
    assert canceled["status"] == "canceled"
    assert client.post(f"/api/operations/{delivery['id']}/validate").status_code == 409
    assert client.delete(f"/api/operations/{delivery['id']}").status_code == 200


def test_error_categories(client: TestClient) -> None:
    world = _setup(client)

    response = client.post("/api/operations", json=_operation(world, "WH/IN", 0, "vendors", "stock"))
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"

    payload = _operation(world, "WH/IN", 1, "vendors", "stock")
    payload["operation_type_id"] = 999
    response = client.post("/api/operations", json=payload)
    assert response.status_code == 422
    assert response.json()["code"] == "unknown_reference"

    assert client.get("/api/operations/999").status_code == 404
    assert client.get("/api/products/999").status_code == 404

    response = client.post("/api/products", json={"name": "Dup", "sku": "LAP-001"})
    assert response.status_code == 409

    client.post("/api/operations", json=_operation(world, "WH/IN", 1, "vendors", "stock"))
    response = client.delete(f"/api/products/{world['product']['id']}")
    assert response.status_code == 409
    assert response.json()["code"] == "integrity_error"


def test_product_crud(client: TestClient) -> None:
    response = client.post("/api/products", json={"name": "Mouse", "sku": "MOU-003", "cost": 20, "price": 45})
    product = response.json()

    response = client.patch(f"/api/products/{product['id']}", json={"price": 50})
    assert response.status_code == 200
    assert response.json()["price"] == 50

    response = client.delete(f"/api/products/{product['id']}")
    assert response.status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_update_operation_over_http(client: TestClient) -> None:
    world = _setup(client)
    receipt = client.post("/api/operations", json=_operation(world, "WH/IN", 3, "vendors", "stock")).json()

    response = client.patch(
        f"/api/operations/{receipt['id']}",
        json={"contact": "Acme", "scheduled_date": "2030-01-02T10:00:00"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["contact"] == "Acme"
    assert response.json()["moves"][0]["quantity"] == 3


def test_reject_policy_over_http(settings, database) -> None:
    from stockledger.app import create_app

    strict = settings.model_copy(update={"negative_stock_policy": "reject"})
    with TestClient(create_app(strict, database)) as client:
        world = _setup(client)
        delivery = client.post(
            "/api/operations", json=_operation(world, "WH/OUT", 1, "stock", "customers")
        ).json()
        response = client.post(f"/api/operations/{delivery['id']}/validate")
        assert response.status_code == 409
        assert response.json()["code"] == "insufficient_stock"


@pytest.mark.parametrize("quantity", ["Infinity", "-Infinity", "NaN"])
def test_non_finite_quantity_is_a_validation_error(client: TestClient, quantity: str) -> None:
    world = _setup(client)

    response = client.post("/api/operations", json=_operation(world, "WH/IN", quantity, "vendors", "stock"))
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
    assert "quantity" in response.json()["message"]
    assert client.get("/api/operations").json() == []

    response = client.post("/api/products", json={"name": "Mouse", "sku": "MOU-003", "cost": quantity})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"
