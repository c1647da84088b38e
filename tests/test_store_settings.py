"""
Tests for store settings and first-run setup.
"""

from decimal import Decimal

from retail_pos.models.store_settings import StoreSettings
from retail_pos.models.users import User, UserRole


def settings_payload(**overrides):
    payload = {
        "store_name": "Corner Shop",
        "address": "12 Market Street",
        "phone": "020 5555 1234",
        "tax_rate": "7",
        "currency": "LAK",
        "receipt_footer": "See you soon!",
    }
    payload.update(overrides)
    return payload


class TestStoreSettings:

    def test_defaults_are_created_on_first_read(self, client, db, cashier_headers):
        response = client.get("/settings", headers=cashier_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["store_name"] == "POS System"
        assert Decimal(data["tax_rate"]) == Decimal("10")
        assert db.query(StoreSettings).count() == 1

    def test_admin_updates_settings(self, client, admin_headers):
        response = client.put("/settings", json=settings_payload(), headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["store_name"] == "Corner Shop"
        assert Decimal(response.json()["tax_rate"]) == Decimal("7")

    def test_cashier_cannot_update(self, client, cashier_headers):
        response = client.put("/settings", json=settings_payload(), headers=cashier_headers)

        assert response.status_code == 403

    def test_tax_rate_out_of_range(self, client, admin_headers):
        response = client.put("/settings", json=settings_payload(tax_rate="150"), headers=admin_headers)

        assert response.status_code == 422

    def test_public_settings_without_token(self, client, admin_headers):
        before = client.get("/settings/public")
        client.put("/settings", json=settings_payload(), headers=admin_headers)
        after = client.get("/settings/public")

        assert before.status_code == 200
        assert before.json()["store_name"] == "POS System"
        assert after.json() == {
            "store_name": "Corner Shop",
            "logo_url": "",
            "store_address": "12 Market Street",
            "store_phone": "020 5555 1234",
        }


class TestInternalSetup:

    def test_wrong_secret(self, client):
        response = client.post("/internal/setup?secret=guess")

        assert response.status_code == 403

    def test_setup_creates_admin_once(self, client, db):
        first = client.post("/internal/setup?secret=test-internal-secret")
        second = client.post("/internal/setup?secret=test-internal-secret")

        assert first.status_code == 200
        assert first.json()["admin_created"] is True
        assert "sales" in first.json()["tables"]
        assert second.json()["admin_created"] is False
        assert db.query(User).filter(User.role == UserRole.ADMIN).count() == 1
        assert db.query(StoreSettings).count() == 1

    def test_default_admin_can_log_in(self, client):
        client.post("/internal/setup?secret=test-internal-secret")

        response = client.post("/auth/login", data={"username": "admin", "password": "admin123"})

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "admin"

    def test_promote_admin(self, client, db, cashier):
        response = client.post("/internal/promote-admin?username=cashier&secret=test-internal-secret")

        assert response.status_code == 200
        db.expire_all()
        assert db.get(User, cashier.id).role == UserRole.ADMIN

    def test_promote_unknown_user(self, client):
        response = client.post("/internal/promote-admin?username=ghost&secret=test-internal-secret")

        assert response.status_code == 404
