"""
Unit tests for the sale transaction processor.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from retail_pos.core.config import settings
from retail_pos.core.exceptions import (
    DuplicateRequest,
    EmptyCart,
    InsufficientStock,
    InvalidLineItem,
    InvalidPaymentMethod,
    InvalidTotal,
    PersistenceFailure,
    PriceMismatch,
    ProductNotFound,
    RequestDefect,
    StateConflict,
    Unauthenticated,
)
from retail_pos.database import SessionLocal
from retail_pos.models.products import Product
from retail_pos.models.sale_items import SaleItem
from retail_pos.models.sales import Sale
from retail_pos.models.users import User, UserRole
from retail_pos.services import sale_processor
from retail_pos.services.sale_processor import process_sale, validate_checkout


def line(product, quantity, unit_price=None, **extra):
    unit_price = Decimal(unit_price if unit_price is not None else product.selling_price)
    item = {
        "product_id": product.id,
        "quantity": quantity,
        "unit_price": str(unit_price),
        "total_price": str(unit_price * quantity),
    }
    item.update(extra)
    return item


def sale_count(db):
    return db.query(Sale).count()


def stock_of(db, product_id):
    db.expire_all()
    return db.query(Product.stock).filter(Product.id == product_id).scalar()


class TestSuccessfulSale:
    """Carts with enough stock are committed in full."""

    def test_single_item_sale(self, db, cashier, make_product):
        """P1 (stock 10, price 1000) x3 with 300 tax."""
        p1 = make_product(name="P1", stock=10, price="1000")

        sale = process_sale(db, cashier, [line(p1, 3)], 3300, declared_tax=300)

        assert sale.id is not None
        assert sale.total_amount == Decimal("3300")
        assert sale.tax_amount == Decimal("300")
        assert sale.user_id == cashier.id
        assert sale.payment_method == "cash"
        assert len(sale.items) == 1
        assert sale.items[0].quantity == 3
        assert sale.items[0].product_name == "P1"
        assert stock_of(db, p1.id) == 7

    def test_total_matches_declared_total(self, db, cashier, make_product):
        shirt = make_product(name="Shirt", stock=5, price="150000")
        coffee = make_product(name="Coffee", stock=50, price="80000")

        sale = process_sale(
            db,
            cashier,
            [line(shirt, 2), line(coffee, 1)],
            "418000",
            declared_tax="38000",
        )

        items_total = sum(item.total_price for item in sale.items)
        assert items_total + sale.tax_amount == sale.total_amount
        assert sale.total_amount == Decimal("418000")
        assert stock_of(db, shirt.id) == 3
        assert stock_of(db, coffee.id) == 49

    def test_items_keep_cart_order_and_variants(self, db, cashier, make_product):
        shirt = make_product(name="Shirt", stock=5, price="100", sizes=["M", "L"], colors=["red"])
        hat = make_product(name="Hat", stock=5, price="50")

        sale = process_sale(
            db,
            cashier,
            [line(hat, 1), line(shirt, 1, size="L", color="red")],
            150,
        )

        assert [item.product_name for item in sale.items] == ["Hat", "Shirt"]
        assert sale.items[1].size == "L"
        assert sale.items[1].color == "red"
        assert sale.items[0].size is None

    def test_tax_defaults_to_zero(self, db, cashier, make_product):
        p1 = make_product(stock=10, price="1000")

        sale = process_sale(db, cashier, [line(p1, 1)], 1000)

        assert sale.tax_amount == Decimal("0")

    def test_payment_method_is_normalized(self, db, cashier, make_product):
        p1 = make_product(stock=10, price="1000")

        sale = process_sale(db, cashier, [line(p1, 1)], 1000, payment_method=" Card ")

        assert sale.payment_method == "card"

    def test_numeric_strings_are_accepted(self, db, cashier, make_product):
        p1 = make_product(stock=10, price="12.50")
        item = {"product_id": str(p1.id), "quantity": "2", "unit_price": "12.50", "total_price": "25.00"}

        sale = process_sale(db, cashier, [item], "25.00")

        assert sale.items[0].quantity == 2
        assert stock_of(db, p1.id) == 8

    def test_whole_stock_can_be_sold(self, db, cashier, make_product):
        p1 = make_product(stock=3, price="10")

        process_sale(db, cashier, [line(p1, 3)], 30)

        assert stock_of(db, p1.id) == 0


class TestRejectedSale:
    """Rejected carts leave the catalog and sales untouched."""

    def test_insufficient_stock(self, db, cashier, make_product):
        p1 = make_product(name="P1", stock=2, price="1000")

        with pytest.raises(InsufficientStock) as exc_info:
            process_sale(db, cashier, [line(p1, 3)], 3000)

        error = exc_info.value
        assert error.product_name == "P1"
        assert error.available == 2
        assert error.requested == 3
        assert isinstance(error, StateConflict)
        assert stock_of(db, p1.id) == 2
        assert sale_count(db) == 0

    def test_unknown_product_rolls_back_whole_cart(self, db, cashier, make_product):
        p1 = make_product(name="P1", stock=10, price="1000")
        missing = {"product_id": 9999, "quantity": 1, "unit_price": 5, "total_price": 5}

        with pytest.raises(ProductNotFound) as exc_info:
            process_sale(db, cashier, [line(p1, 1), missing], 1005)

        assert exc_info.value.product_id == 9999
        assert stock_of(db, p1.id) == 10
        assert sale_count(db) == 0
        assert db.query(SaleItem).count() == 0

    def test_repeated_lines_are_checked_together(self, db, cashier, make_product):
        p1 = make_product(name="P1", stock=4, price="10")

        with pytest.raises(InsufficientStock) as exc_info:
            process_sale(db, cashier, [line(p1, 3), line(p1, 3)], 60)

        assert exc_info.value.requested == 6
        assert stock_of(db, p1.id) == 4

    @pytest.mark.parametrize("items", [None, []])
    def test_empty_cart(self, db, cashier, items):
        with pytest.raises(EmptyCart):
            process_sale(db, cashier, items, 100)

        assert sale_count(db) == 0

    def test_missing_actor(self, db, make_product):
        p1 = make_product(stock=10, price="1000")

        with pytest.raises(Unauthenticated):
            process_sale(db, None, [line(p1, 1)], 1000)

        assert stock_of(db, p1.id) == 10

    def test_rejection_is_repeatable(self, db, cashier, make_product):
        """Same invalid cart, same error, stock never touched."""
        p1 = make_product(name="P1", stock=10, price="1000")
        cart = [{"product_id": p1.id, "quantity": -1, "unit_price": 1000, "total_price": 1000, "name": "P1"}]

        messages = []
        for _ in range(2):
            with pytest.raises(InvalidLineItem) as exc_info:
                process_sale(db, cashier, cart, 1000)
            messages.append(exc_info.value.message)

        assert messages[0] == messages[1] == "Item 1 (P1): Invalid quantity"
        assert stock_of(db, p1.id) == 10
        assert sale_count(db) == 0


class TestStructuralValidation:
    """Cart shape checks run before any database access."""

    @pytest.mark.parametrize("total", [None, "", "abc", 0, -5, "NaN", "1e10", "1e30"])
    def test_invalid_total(self, total):
        item = {"product_id": 1, "quantity": 1, "unit_price": 10, "total_price": 10}

        with pytest.raises(InvalidTotal):
            validate_checkout([item], total)

    def test_negative_tax(self):
        item = {"product_id": 1, "quantity": 1, "unit_price": 10, "total_price": 10}

        with pytest.raises(InvalidTotal):
            validate_checkout([item], 10, declared_tax=-1)

    def test_oversized_tax(self):
        item = {"product_id": 1, "quantity": 1, "unit_price": 10, "total_price": 10}

        with pytest.raises(InvalidTotal):
            validate_checkout([item], 10, declared_tax="1e30")

    @pytest.mark.parametrize("field", ["size", "color"])
    def test_variant_longer_than_column(self, field):
        item = {"product_id": 1, "quantity": 1, "unit_price": 10, "total_price": 10, field: "X" * 51}

        with pytest.raises(InvalidLineItem) as exc_info:
            validate_checkout([item], 10)

        assert exc_info.value.reason == "Size or color is too long"

    def test_oversized_total_without_price_verification(self, db, cashier, make_product, monkeypatch):
        monkeypatch.setattr(settings, "VERIFY_DECLARED_PRICES", False)
        p1 = make_product(name="P1", stock=10, price="1000")

        with pytest.raises(InvalidTotal):
            process_sale(db, cashier, [line(p1, 1)], "1e30")

        assert stock_of(db, p1.id) == 10
        assert sale_count(db) == 0

    def test_missing_fields_names_position(self):
        items = [
            {"product_id": 1, "quantity": 1, "unit_price": 10, "total_price": 10},
            {"product_id": 2, "quantity": 1, "name": "Hat"},
        ]

        with pytest.raises(InvalidLineItem) as exc_info:
            validate_checkout(items, 20)

        assert exc_info.value.index == 2
        assert exc_info.value.message == "Item 2 (Hat): Missing required fields"

    @pytest.mark.parametrize(
        "field, value, reason",
        [
            ("quantity", 0, "Invalid quantity"),
            ("quantity", 1.5, "Invalid quantity"),
            ("quantity", "two", "Invalid quantity"),
            ("unit_price", -10, "Invalid unit price"),
            ("unit_price", "free", "Invalid unit price"),
            ("total_price", 0, "Invalid total price"),
            ("product_id", "abc", "Invalid product ID"),
            ("product_id", 2**40, "Invalid product ID"),
            ("quantity", 2**40, "Invalid quantity"),
            ("unit_price", "1e30", "Invalid unit price"),
            ("total_price", "1e10", "Invalid total price"),
        ],
    )
    def test_invalid_line_values(self, field, value, reason):
        item = {"product_id": 7, "quantity": 1, "unit_price": 10, "total_price": 10}
        item[field] = value

        with pytest.raises(InvalidLineItem) as exc_info:
            validate_checkout([item], 10)

        assert exc_info.value.index == 1
        assert exc_info.value.reason == reason
        assert isinstance(exc_info.value, RequestDefect)

    def test_first_defect_wins(self):
        items = [
            {"product_id": 1, "quantity": 0, "unit_price": 10, "total_price": 10},
            {"product_id": 2},
        ]

        with pytest.raises(InvalidLineItem) as exc_info:
            validate_checkout(items, 10)

        assert exc_info.value.index == 1

    def test_unknown_payment_method(self):
        item = {"product_id": 1, "quantity": 1, "unit_price": 10, "total_price": 10}

        with pytest.raises(InvalidPaymentMethod):
            validate_checkout([item], 10, payment_method="crypto")

    def test_line_total_must_match_quantity_times_price(self):
        item = {"product_id": 1, "quantity": 3, "unit_price": 10, "total_price": 20}

        with pytest.raises(InvalidLineItem) as exc_info:
            validate_checkout([item], 20)

        assert "does not match" in exc_info.value.reason

    def test_declared_total_must_match_items_plus_tax(self):
        item = {"product_id": 1, "quantity": 1, "unit_price": 10, "total_price": 10}

        with pytest.raises(InvalidTotal):
            validate_checkout([item], 50, declared_tax=1)


class TestCatalogPrices:
    """Declared prices are checked against the catalog."""

    def test_stale_price_is_rejected(self, db, cashier, make_product):
        p1 = make_product(name="P1", stock=10, price="1000")

        with pytest.raises(PriceMismatch) as exc_info:
            process_sale(db, cashier, [line(p1, 1, unit_price="900")], 900)

        assert exc_info.value.expected == Decimal("1000")
        assert stock_of(db, p1.id) == 10
        assert sale_count(db) == 0

    def test_verification_can_be_disabled(self, db, cashier, make_product, monkeypatch):
        monkeypatch.setattr(settings, "VERIFY_DECLARED_PRICES", False)
        p1 = make_product(name="P1", stock=10, price="1000")

        sale = process_sale(db, cashier, [line(p1, 1, unit_price="900")], 5000)

        assert sale.total_amount == Decimal("5000")
        assert sale.items[0].unit_price == Decimal("900")


class TestConsistency:
    """Concurrent checkouts and storage failures never leave partial sales."""

    def test_stock_taken_after_check_rolls_back(self, db, cashier, make_product, monkeypatch):
        p1 = make_product(name="P1", stock=5, price="10")
        original_check = sale_processor.check_availability

        def check_then_competing_sale(session, lines):
            products = original_check(session, lines)
            # Another till sells 4 units between our check and our write
            other = SessionLocal()
            try:
                other.query(Product).filter(Product.id == p1.id).update({Product.stock: 1})
                other.commit()
            finally:
                other.close()
            return products

        monkeypatch.setattr(sale_processor, "check_availability", check_then_competing_sale)

        with pytest.raises(InsufficientStock) as exc_info:
            process_sale(db, cashier, [line(p1, 3)], 30)

        assert exc_info.value.available == 1
        assert stock_of(db, p1.id) == 1
        assert sale_count(db) == 0

    def test_storage_failure_is_reported_and_rolled_back(self, db, cashier, make_product, monkeypatch):
        p1 = make_product(name="P1", stock=5, price="10")

        def failing_commit():
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(db, "commit", failing_commit)

        with pytest.raises(PersistenceFailure) as exc_info:
            process_sale(db, cashier, [line(p1, 2)], 20)

        assert "disk" not in exc_info.value.message
        assert stock_of(db, p1.id) == 5
        assert sale_count(db) == 0

    def test_request_id_replays_existing_sale(self, db, cashier, make_product):
        p1 = make_product(name="P1", stock=5, price="10")

        first = process_sale(db, cashier, [line(p1, 2)], 20, request_id="till-1-0001")
        second = process_sale(db, cashier, [line(p1, 2)], 20, request_id="till-1-0001")

        assert first.id == second.id
        assert sale_count(db) == 1
        assert stock_of(db, p1.id) == 3

    def test_request_id_is_scoped_to_the_cashier(self, db, cashier, make_product):
        """Another till reusing the same request id gets its own sale."""
        other = User(username="till2", email="till2@example.com", password_hash="x", role=UserRole.CASHIER)
        db.add(other)
        db.commit()
        p1 = make_product(name="P1", stock=10, price="10")

        first = process_sale(db, cashier, [line(p1, 1)], 10, request_id="abc")
        second = process_sale(db, other, [line(p1, 5)], 50, request_id="abc")

        assert second.id != first.id
        assert second.user_id == other.id
        assert second.total_amount == Decimal("50")
        assert second.items[0].quantity == 5
        assert stock_of(db, p1.id) == 4

    def test_request_id_reused_for_different_cart(self, db, cashier, make_product):
        p1 = make_product(name="P1", stock=10, price="10")
        process_sale(db, cashier, [line(p1, 1)], 10, request_id="till-1-0002")

        with pytest.raises(DuplicateRequest) as exc_info:
            process_sale(db, cashier, [line(p1, 5)], 50, request_id="till-1-0002")

        assert isinstance(exc_info.value, StateConflict)
        assert sale_count(db) == 1
        assert stock_of(db, p1.id) == 9

    def test_simultaneous_retry_returns_committed_sale(self, db, cashier, make_product, monkeypatch):
        """Both submissions pass the replay lookup; the second to write gets the first's sale."""
        p1 = make_product(name="P1", stock=5, price="10")
        cashier_id, product_id = cashier.id, p1.id
        original_check = sale_processor.check_availability
        committed = {}

        def check_then_twin_commits(session, lines):
            products = original_check(session, lines)
            other = SessionLocal()
            try:
                twin = Sale(
                    user_id=cashier_id,
                    total_amount=Decimal("20"),
                    tax_amount=Decimal("0"),
                    payment_method="cash",
                    request_id="till-1-0003",
                )
                other.add(twin)
                other.flush()
                other.add(
                    SaleItem(
                        sale_id=twin.id,
                        product_id=product_id,
                        product_name="P1",
                        quantity=2,
                        unit_price=Decimal("10"),
                        total_price=Decimal("20"),
                    )
                )
                other.query(Product).filter(Product.id == product_id).update({Product.stock: 3})
                other.commit()
                committed["id"] = twin.id
            finally:
                other.close()
            return products

        monkeypatch.setattr(sale_processor, "check_availability", check_then_twin_commits)

        sale = process_sale(db, cashier, [line(p1, 2)], 20, request_id="till-1-0003")

        assert sale.id == committed["id"]
        assert sale_count(db) == 1
        assert stock_of(db, product_id) == 3
