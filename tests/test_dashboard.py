"""
Tests for the dashboard endpoints.
"""

from decimal import Decimal

from retail_pos.services.sale_processor import process_sale


def sell(db, user, product, quantity, payment_method=None):
    price = product.selling_price
    item = {
        "product_id": product.id,
        "quantity": quantity,
        "unit_price": str(price),
        "total_price": str(price * quantity),
    }
    return process_sale(db, user, [item], price * quantity, payment_method=payment_method)


class TestDashboard:

    def test_stats_on_empty_store(self, client, cashier_headers):
        response = client.get("/dashboard/stats", headers=cashier_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_products"] == 0
        assert data["today_sales"] == 0
        assert Decimal(data["total_revenue"]) == Decimal("0")

    def test_stats_count_todays_sales(self, client, db, cashier, cashier_headers, make_product):
        p1 = make_product(stock=10, price="1000")
        sell(db, cashier, p1, 2)
        sell(db, cashier, p1, 1)

        data = client.get("/dashboard/stats", headers=cashier_headers).json()

        assert data["total_products"] == 1
        assert data["total_users"] == 1
        assert data["today_sales"] == 2
        assert Decimal(data["total_revenue"]) == Decimal("3000")

    def test_analytics(self, client, db, cashier, cashier_headers, category, make_product):
        shirt = make_product(name="Shirt", stock=10, price="150", category_id=category.id)
        coffee = make_product(name="Coffee", stock=10, price="20")
        sell(db, cashier, shirt, 1, payment_method="card")
        sell(db, cashier, coffee, 3)

        response = client.get("/dashboard/analytics", headers=cashier_headers)

        assert response.status_code == 200
        data = response.json()
        assert [p["name"] for p in data["trending_products"]] == ["Coffee", "Shirt"]
        assert data["category_performance"][0]["category"] == "Clothing"
        assert sum(day["orders"] for day in data["daily_sales"]) == 2
        assert sum(hour["orders"] for hour in data["hourly_sales"]) == 2
        assert {row["method"] for row in data["payment_methods"]} == {"card", "cash"}
        assert len(data["recent_orders"]) == 2
        assert data["recent_orders"][0]["cashier"] == "cashier"

    def test_requires_token(self, client):
        assert client.get("/dashboard/stats").status_code == 401
