import pytest
from decimal import Decimal
from sqlalchemy import select

from atelier.db.models import Order, OrderStatus, Product


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["shop_name"] == "ATELIER 7X"


@pytest.mark.asyncio
async def test_cart_flow_persists_in_session(client, make_product):
    product = await make_product(name="Blue Hour", stock_quantity=3)

    response = await client.post("/api/cart/add", json={"product_id": product.id, "quantity": 2})
    assert response.status_code == 200
    data = response.json()
    assert data["item_count"] == 2
    assert Decimal(data["total"]) == Decimal("200.00")
    assert data["items"][0]["id"] == str(product.id)
    assert data["items"][0]["title"] == "Blue Hour"
    assert data["notifications"][0]["title"] == "2 items added to cart!"

    # the cart comes back from the session cookie
    response = await client.get("/api/cart")
    assert response.json()["item_count"] == 2

    response = await client.post("/api/cart/add", json={"product_id": product.id, "quantity": 2})
    assert response.status_code == 400
    assert "Only 3 units available" in response.json()["detail"]

    response = await client.put("/api/cart/update", json={"product_id": product.id, "quantity": 3})
    assert response.json()["item_count"] == 3

    response = await client.put("/api/cart/update", json={"product_id": product.id, "quantity": 5})
    assert response.status_code == 400

    response = await client.delete(f"/api/cart/remove/{product.id}")
    data = response.json()
    assert data["items"] == []
    assert Decimal(data["total"]) == 0


@pytest.mark.asyncio
async def test_add_unknown_product(client):
    response = await client.post("/api/cart/add", json={"product_id": 9999, "quantity": 1})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_checkout_handoff(client, make_product):
    product = await make_product(stock_quantity=4)

    empty = await client.post("/api/cart/checkout")
    assert empty.status_code == 400
    assert empty.json()["detail"] == "Cart is empty"

    await client.post("/api/cart/add", json={"product_id": product.id, "quantity": 1})
    response = await client.post("/api/cart/checkout")

    assert response.status_code == 200
    data = response.json()
    assert data["redirect_url"] == "/checkout"
    assert data["handoff"]["currency"] == "INR"
    assert data["handoff"]["item_count"] == 1


@pytest.mark.asyncio
async def test_public_settings(client):
    response = await client.get("/api/settings")

    assert response.status_code == 200
    data = response.json()
    assert data["store_name"] == "ATELIER 7X"
    assert "store_address" not in data


@pytest.mark.asyncio
async def test_shop_lists_only_purchasable(client, make_product):
    await make_product(name="Available", stock_quantity=2)
    await make_product(name="Sold", stock_quantity=0)
    await make_product(name="Hidden", stock_quantity=2, is_active=False)

    response = await client.get("/api/shop/products")

    assert [p["name"] for p in response.json()] == ["Available"]


@pytest.mark.asyncio
async def test_admin_requires_session(client):
    response = await client.get("/api/v1/admin/inventory")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_adjust_stock(client, as_admin, db_session, make_product):
    product = await make_product(stock_quantity=5)

    response = await client.post(
        f"/api/v1/admin/inventory/{product.id}/adjust",
        json={"type": "IN", "quantity": 10, "reason": "received", "notes": "New shipment"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["item"]["stock_quantity"] == 15
    assert data["item"]["status"] == "in-stock"
    assert data["movement"]["previous_quantity"] == 5
    assert data["movement"]["created_by"] == "Gallery Admin"

    listing = await client.get("/api/v1/admin/inventory")
    assert listing.json()["stats"]["recent_changes"] == 1


@pytest.mark.asyncio
async def test_admin_adjust_insufficient_stock(client, as_admin, db_session, make_product):
    product = await make_product(stock_quantity=2)

    response = await client.post(
        f"/api/v1/admin/inventory/{product.id}/adjust",
        json={"type": "OUT", "quantity": 3, "reason": "sold"},
    )

    assert response.status_code == 409
    result = await db_session.execute(select(Product.stock_quantity).where(Product.id == product.id))
    assert result.scalar_one() == 2


@pytest.mark.asyncio
async def test_admin_adjust_rejects_zero_quantity(client, as_admin, make_product):
    product = await make_product()

    response = await client.post(
        f"/api/v1/admin/inventory/{product.id}/adjust",
        json={"type": "IN", "quantity": 0, "reason": "received"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_admin_adjust_missing_product(client, as_admin):
    response = await client.post(
        "/api/v1/admin/inventory/4242/adjust",
        json={"type": "IN", "quantity": 1, "reason": "received"},
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_inventory_export(client, as_admin, make_product):
    await make_product(name="Red Field")

    response = await client.get("/api/v1/admin/inventory/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Red Field" in response.text


@pytest.mark.asyncio
async def test_category_delete_refused(client, as_admin, category, make_product):
    await make_product(category_id=category.id)

    response = await client.delete(f"/api/v1/admin/categories/{category.id}")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_order_bulk_status(client, as_admin, db_session):
    db_session.add_all([
        Order(order_number="AT7X-1", total=Decimal("10.00"), status=OrderStatus.PENDING),
        Order(order_number="AT7X-2", total=Decimal("20.00"), status=OrderStatus.DELIVERED),
    ])
    await db_session.commit()
    ids = [o.id for o in (await db_session.execute(select(Order).order_by(Order.id))).scalars()]

    response = await client.patch("/api/v1/admin/orders/bulk", json={"order_ids": ids, "status": "CANCELLED"})

    assert response.status_code == 200
    assert response.json() == {"updated": [ids[0]], "skipped": [ids[1]]}

    listing = await client.get("/api/v1/admin/orders", params={"status": "CANCELLED"})
    assert listing.json()["total"] == 1
    assert listing.json()["status_counts"]["CANCELLED"] == 1


@pytest.mark.asyncio
async def test_admin_settings_update(client, as_admin):
    response = await client.put("/api/v1/admin/settings", json={"currency": "eur"})

    assert response.status_code == 200
    assert response.json()["currency"] == "EUR"

    public = await client.get("/api/settings")
    assert public.json()["currency"] == "EUR"


@pytest.mark.asyncio
async def test_session_cookie_stays_within_browser_limit(client, make_product):
    statuses = []
    for n in range(15):
        product = await make_product(
            name=f"Untitled Composition No. {n} in Ochre, Umber and Cobalt Blue",
            price=Decimal("1250.00"),
            image_url=f"https://cdn.atelier7x.com/artworks/2024/originals/untitled-composition-no-{n}-ochre-umber-cobalt.jpg",
            medium="Oil and cold wax on Belgian linen",
            size="120 x 150 cm",
        )
        response = await client.post("/api/cart/add", json={"product_id": product.id, "quantity": 1})
        statuses.append(response.status_code)

        assert len(response.headers["set-cookie"]) <= 4096

    assert statuses[0] == 200
    assert statuses[-1] == 400
    assert response.json()["detail"].startswith("Cart is full")

    cart = (await client.get("/api/cart")).json()
    assert cart["item_count"] == statuses.count(200)


@pytest.mark.asyncio
async def test_admin_updates_reject_nulls(client, as_admin, category):
    settings_response = await client.put("/api/v1/admin/settings", json={"store_name": None})
    category_response = await client.put(f"/api/v1/admin/categories/{category.id}", json={"is_active": None})

    assert settings_response.status_code == 422
    assert category_response.status_code == 422

    public = await client.get("/api/settings")
    assert public.json()["store_name"] == "ATELIER 7X"


@pytest.mark.asyncio
async def test_checkout_provider_garbage_is_bad_gateway(client, make_product):
    import httpx
    from atelier.core.checkout_client import CheckoutClient
    from atelier.main import app

    product = await make_product()
    await client.post("/api/cart/add", json={"product_id": product.id, "quantity": 1})

    previous = app.state.checkout_client
    app.state.checkout_client = CheckoutClient(
        base_url="https://pay.example.com",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>ok</html>")),
    )
    try:
        response = await client.post("/api/cart/checkout")
    finally:
        await app.state.checkout_client.close()
        app.state.checkout_client = previous

    assert response.status_code == 502
