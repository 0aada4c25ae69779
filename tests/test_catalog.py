"""
Shop, product and dashboard endpoint tests.
"""

from decimal import Decimal

from httpx import AsyncClient

from backoffice.models import Product


async def test_create_and_search_shops(auth_client: AsyncClient):
    response = await auth_client.post(
        "/api/v1/shops",
        json={"name": "Blue Door Grocery", "city": "Dallas", "state": "TX"},
    )
    assert response.status_code == 201
    assert response.json()["location"] == "Dallas, TX"

    await auth_client.post("/api/v1/shops", json={"name": "Harbor Deli"})

    response = await auth_client.get("/api/v1/shops", params={"search": "dallas"})
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["name"] == "Blue Door Grocery"


async def test_shop_with_invoices_cannot_be_deleted(auth_client: AsyncClient, shop, make_invoice):
    await make_invoice(shop, "10.00")

    response = await auth_client.delete(f"/api/v1/shops/{shop.id}")

    assert response.status_code == 400


async def test_shop_without_invoices_is_deleted(auth_client: AsyncClient, shop):
    response = await auth_client.delete(f"/api/v1/shops/{shop.id}")
    assert response.status_code == 200

    response = await auth_client.get(f"/api/v1/shops/{shop.id}")
    assert response.status_code == 404


async def test_shop_balances(auth_client: AsyncClient, shop, make_invoice):
    await make_invoice(shop, "50.00")
    await make_invoice(shop, "30.00", paid=["10.00"])
    await make_invoice(shop, "20.00", paid=["20.00"])

    response = await auth_client.get("/api/v1/shops/balances")

    assert response.status_code == 200
    [balance] = response.json()
    assert balance["shop_id"] == shop.id
    assert balance["invoice_count"] == 3
    assert Decimal(balance["total_amount"]) == Decimal("100.00")
    assert Decimal(balance["total_paid"]) == Decimal("30.00")
    assert Decimal(balance["total_pending"]) == Decimal("70.00")
    assert balance["pending_invoice_count"] == 2


async def test_product_admin_and_stock(auth_client: AsyncClient):
    response = await auth_client.post(
        "/api/v1/products",
        json={"name": "Flour 2kg", "category": "Bakery", "price": "3.20", "stock_quantity": 12},
    )
    assert response.status_code == 201
    product = response.json()
    assert product["is_low_stock"] is False

    response = await auth_client.post(
        f"/api/v1/products/{product['id']}/stock",
        json={"quantity": -5, "reason": "damaged"},
    )
    assert response.json()["stock_quantity"] == 7
    assert response.json()["is_low_stock"] is True

    response = await auth_client.post(
        f"/api/v1/products/{product['id']}/stock",
        json={"quantity": -50},
    )
    assert response.status_code == 400

    response = await auth_client.get("/api/v1/products/low-stock")
    assert [p["name"] for p in response.json()] == ["Flour 2kg"]

    response = await auth_client.delete(f"/api/v1/products/{product['id']}")
    assert response.status_code == 200
    response = await auth_client.get(f"/api/v1/products/{product['id']}")
    assert response.json()["is_active"] is False


async def test_sales_user_cannot_edit_catalog(sales_client: AsyncClient, products):
    response = await sales_client.get("/api/v1/products", params={"category": "Grocery"})
    assert response.json()["total"] == 2

    response = await sales_client.patch(
        f"/api/v1/products/{products[0].id}",
        json={"price": "1.00"},
    )
    assert response.status_code == 403


async def test_dashboard_overview(auth_client: AsyncClient, shop, make_invoice):
    await make_invoice(shop, "50.00")
    await make_invoice(shop, "30.00", paid=["10.00"])

    response = await auth_client.get("/api/v1/dashboard/overview")

    assert response.status_code == 200
    overview = response.json()
    assert overview["invoice_count"] == 2
    assert overview["total_sales"] == 80.0
    assert overview["total_collected"] == 10.0
    assert overview["total_pending"] == 70.0
    assert overview["status_distribution"] == {"unpaid": 1, "partial": 1, "paid": 0}


async def test_dashboard_is_scoped_for_sales_users(
    sales_client: AsyncClient, sales_user, shop, make_invoice
):
    await make_invoice(shop, "15.00", created_by=sales_user.id)
    await make_invoice(shop, "90.00")

    response = await sales_client.get("/api/v1/dashboard/overview")
    assert response.json()["invoice_count"] == 1
    assert response.json()["total_sales"] == 15.0

    response = await sales_client.get("/api/v1/dashboard/sales-performance")
    [row] = response.json()
    assert row["user_id"] == sales_user.id
    assert row["shop_count"] == 1


async def test_shop_balances_are_scoped_for_sales_users(
    sales_client: AsyncClient, sales_user, shop, make_invoice
):
    await make_invoice(shop, "40.00", created_by=sales_user.id)
    await make_invoice(shop, "100.00")

    response = await sales_client.get(f"/api/v1/shops/{shop.id}/balance")

    balance = response.json()
    assert balance["invoice_count"] == 1
    assert Decimal(str(balance["total_pending"])) == Decimal("40.00")


# Imports


async def test_import_shops(auth_client: AsyncClient):
    response = await auth_client.post(
        "/api/v1/shops/bulk",
        json={
            "rows": [
                {"name": "North Deli", "city": "Austin", "state": "TX"},
                {"name": "", "city": "Waco"},
                {"name": "Bad Mail Shop", "email": "not-an-email"},
                {"name": "South Deli", "zip_code": "78701"},
            ]
        },
    )

    assert response.status_code == 201
    result = response.json()
    assert result["total"] == 3
    assert result["created"] == 2
    assert result["failed"] == 1
    assert result["skipped"] == 1
    assert result["errors"][0].startswith("Row 3 (Bad Mail Shop): email")

    response = await auth_client.get("/api/v1/shops")
    assert [s["name"] for s in response.json()["items"]] == ["North Deli", "South Deli"]


async def test_import_products(auth_client: AsyncClient):
    response = await auth_client.post(
        "/api/v1/products/bulk",
        json={
            "rows": [
                {"name": "Sugar 1kg", "price": "2.10", "stock_quantity": 30, "category": ""},
                {"name": "Salt 500g", "price": "-1.00"},
                {"name": "Green Tea", "price": "4.00", "category": "Drinks"},
            ]
        },
    )

    assert response.status_code == 201
    result = response.json()
    assert (result["created"], result["failed"], result["skipped"]) == (2, 1, 0)
    assert "Salt 500g" in result["errors"][0]

    response = await auth_client.get("/api/v1/products/categories")
    assert response.json() == ["Drinks", "General"]


async def test_sales_user_cannot_import_products(sales_client: AsyncClient):
    response = await sales_client.post(
        "/api/v1/products/bulk",
        json={"rows": [{"name": "Flour 2kg", "price": "3.20"}]},
    )
    assert response.status_code == 403


# Analytics


async def test_sales_by_category(auth_client: AsyncClient, db_session, shop, products):
    tea = Product(name="Green Tea", category="Drinks", price=Decimal("4.00"), stock_quantity=20)
    db_session.add(tea)
    await db_session.commit()

    response = await auth_client.post(
        "/api/v1/invoices",
        json={
            "shop_id": shop.id,
            "items": [
                {"product_id": products[0].id, "quantity": 2},
                {"product_id": products[1].id, "quantity": 1},
                {"product_id": tea.id, "quantity": 5},
            ],
        },
    )
    assert response.status_code == 201

    response = await auth_client.get("/api/v1/dashboard/sales-by-category")

    assert response.status_code == 200
    drinks, grocery = response.json()
    assert drinks["category"] == "Drinks"
    assert drinks["total_quantity"] == 5
    assert drinks["total_sales"] == 20.0
    assert grocery["total_quantity"] == 3
    assert grocery["products"] == [
        {"name": "Rice 5kg", "quantity": 2},
        {"name": "Olive Oil 1L", "quantity": 1},
    ]


async def test_recent_activity(auth_client: AsyncClient, shop, make_invoice):
    older = await make_invoice(shop, "10.00")
    newer = await make_invoice(shop, "30.00", age_days=3, paid=["5.00"])

    response = await auth_client.get("/api/v1/dashboard/recent-activity")

    assert response.status_code == 200
    activity = response.json()
    assert {(a["type"], a["invoice_number"]) for a in activity} == {
        ("invoice", older.invoice_number),
        ("invoice", newer.invoice_number),
        ("payment", newer.invoice_number),
    }
    invoices = [a["invoice_number"] for a in activity if a["type"] == "invoice"]
    assert invoices == [newer.invoice_number, older.invoice_number]
    assert all(a["shop_name"] == "Corner Market" for a in activity)

    response = await auth_client.get("/api/v1/dashboard/recent-activity", params={"limit": 1})
    assert len(response.json()) == 1


async def test_recent_activity_is_scoped_for_sales_users(
    sales_client: AsyncClient, sales_user, shop, make_invoice
):
    own = await make_invoice(shop, "15.00", created_by=sales_user.id)
    await make_invoice(shop, "90.00")

    response = await sales_client.get("/api/v1/dashboard/recent-activity")

    assert [a["invoice_number"] for a in response.json()] == [own.invoice_number]
