"""
Sale transaction processing.

Turns a cart submitted by the till into a persisted sale:

1. structural validation of the cart and declared totals (no I/O)
2. stock and price check for every line before anything is written
3. sale header insert
4. per line: sale item insert + conditional stock decrement

Steps 3 and 4 run in one transaction. The decrement only applies while
``stock >= quantity`` holds, so two concurrent checkouts cannot oversell a
product; the loser gets ``InsufficientStock`` and its sale is rolled back.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

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
    SaleError,
    Unauthenticated,
)
from retail_pos.models.products import Product
from retail_pos.models.sale_items import SaleItem
from retail_pos.models.sales import PAYMENT_METHODS, Sale

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
DEFAULT_PAYMENT_METHOD = "cash"
REQUIRED_ITEM_FIELDS = ("product_id", "quantity", "unit_price", "total_price")

# Storage limits: Numeric(12, 2) amounts, Integer ids and quantities, String(50) variants
MAX_AMOUNT = Decimal("1e10")
MAX_INTEGER = 2**31 - 1
MAX_VARIANT_LENGTH = 50


@dataclass
class CartLine:
    position: int
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    size: Optional[str] = None
    color: Optional[str] = None
    name: Optional[str] = None


@dataclass
class Checkout:
    lines: list
    total_amount: Decimal
    tax_amount: Decimal
    payment_method: str


# =========================================================
# COERCION HELPERS
# =========================================================
def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a JSON number or numeric string; None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, float):
            number = Decimal(str(value))
        elif isinstance(value, (int, Decimal)):
            number = Decimal(value)
        elif isinstance(value, str):
            number = Decimal(value.strip())
        else:
            return None
    except InvalidOperation:
        return None

    if not number.is_finite():
        return None

    return number


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _optional_text(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    return str(value).strip()


# =========================================================
# STEP 1: STRUCTURAL VALIDATION
# =========================================================
def _parse_line(position: int, item: Any) -> CartLine:
    if not isinstance(item, Mapping):
        raise InvalidLineItem(position, "Malformed line item")

    name = _optional_text(item.get("name"))

    if any(_is_missing(item.get(field)) for field in REQUIRED_ITEM_FIELDS):
        raise InvalidLineItem(position, "Missing required fields", name)

    label = name or item.get("product_id")

    product_id = _to_decimal(item["product_id"])
    if (
        product_id is None
        or product_id != product_id.to_integral_value()
        or not 0 < product_id <= MAX_INTEGER
    ):
        raise InvalidLineItem(position, "Invalid product ID", label)

    quantity = _to_decimal(item["quantity"])
    if quantity is None or not 0 < quantity <= MAX_INTEGER or quantity != quantity.to_integral_value():
        raise InvalidLineItem(position, "Invalid quantity", label)

    unit_price = _to_decimal(item["unit_price"])
    if unit_price is None or not 0 < unit_price < MAX_AMOUNT:
        raise InvalidLineItem(position, "Invalid unit price", label)

    total_price = _to_decimal(item["total_price"])
    if total_price is None or not 0 < total_price < MAX_AMOUNT:
        raise InvalidLineItem(position, "Invalid total price", label)

    size = _optional_text(item.get("size"))
    color = _optional_text(item.get("color"))

    for variant in (size, color):
        if variant and len(variant) > MAX_VARIANT_LENGTH:
            raise InvalidLineItem(position, "Size or color is too long", label)

    return CartLine(
        position=position,
        product_id=int(product_id),
        quantity=int(quantity),
        unit_price=unit_price,
        total_price=total_price,
        size=size,
        color=color,
        name=name,
    )


def validate_checkout(
    items: Optional[Sequence[Any]],
    declared_total: Any,
    declared_tax: Any = None,
    payment_method: Optional[str] = None,
) -> Checkout:
    """Check the cart shape and declared amounts. Raises on the first defect found."""
    if not items:
        raise EmptyCart()

    if _is_missing(declared_total):
        raise InvalidTotal("Total amount is required")

    total_amount = _to_decimal(declared_total)
    if total_amount is None:
        raise InvalidTotal("Total amount must be a valid number")
    if total_amount <= 0:
        raise InvalidTotal("Total amount must be greater than 0")
    if total_amount >= MAX_AMOUNT:
        raise InvalidTotal("Total amount is too large")

    if _is_missing(declared_tax):
        tax_amount = Decimal("0")
    else:
        tax_amount = _to_decimal(declared_tax)
        if tax_amount is None or tax_amount < 0:
            raise InvalidTotal("Tax amount must be a non-negative number")
        if tax_amount >= MAX_AMOUNT:
            raise InvalidTotal("Tax amount is too large")

    method = (payment_method or "").strip().lower() or DEFAULT_PAYMENT_METHOD
    if method not in PAYMENT_METHODS:
        raise InvalidPaymentMethod(method, PAYMENT_METHODS)

    lines = [_parse_line(position, item) for position, item in enumerate(items, start=1)]

    if settings.VERIFY_DECLARED_PRICES:
        tolerance = settings.PRICE_TOLERANCE

        for line in lines:
            if abs(line.total_price - line.unit_price * line.quantity) > tolerance:
                raise InvalidLineItem(
                    line.position,
                    "Total price does not match quantity x unit price",
                    line.name or line.product_id,
                )

        expected_total = sum((line.total_price for line in lines), Decimal("0")) + tax_amount
        if abs(total_amount - expected_total) > tolerance:
            raise InvalidTotal(
                f"Total amount {total_amount} does not match items plus tax ({expected_total})"
            )

    return Checkout(
        lines=lines,
        total_amount=total_amount.quantize(CENTS),
        tax_amount=tax_amount.quantize(CENTS),
        payment_method=method,
    )


# =========================================================
# STEP 2: STOCK AND CATALOG PRICE CHECK
# =========================================================
def _load_products(db: Session, lines: list) -> dict:
    product_ids = {line.product_id for line in lines}
    products = db.query(Product).filter(Product.id.in_(product_ids)).all()
    return {product.id: product for product in products}


def check_availability(db: Session, lines: list) -> dict:
    """Verify every line against the catalog without mutating it.

    Lines for the same product are checked against their combined quantity.
    Returns the loaded products keyed by id.
    """
    products = _load_products(db, lines)
    requested = {}

    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise ProductNotFound(line.product_id)

        requested[product.id] = requested.get(product.id, 0) + line.quantity
        if product.stock < requested[product.id]:
            raise InsufficientStock(product.name, product.stock, requested[product.id])

        if settings.VERIFY_DECLARED_PRICES:
            current_price = Decimal(product.selling_price)
            if abs(line.unit_price - current_price) > settings.PRICE_TOLERANCE:
                raise PriceMismatch(product.name, line.unit_price, current_price)

    return products


# =========================================================
# STEPS 3 + 4: PERSIST
# =========================================================
def _decrement_stock(db: Session, product: Product, quantity: int):
    updated = (
        db.query(Product)
        .filter(Product.id == product.id, Product.stock >= quantity)
        .update(
            {
                Product.stock: Product.stock - quantity,
                Product.updated_at: func.now(),
            },
            synchronize_session=False,
        )
    )

    if updated == 0:
        # Another checkout took the stock after our availability check
        available = db.query(Product.stock).filter(Product.id == product.id).scalar()
        raise InsufficientStock(product.name, available or 0, quantity)


def _persist_sale(db: Session, actor, checkout: Checkout, products: dict, request_id) -> Sale:
    sale = Sale(
        user_id=actor.id,
        total_amount=checkout.total_amount,
        tax_amount=checkout.tax_amount,
        payment_method=checkout.payment_method,
        request_id=request_id,
    )
    db.add(sale)
    db.flush()

    for line in checkout.lines:
        product = products[line.product_id]

        db.add(
            SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price=line.unit_price.quantize(CENTS),
                total_price=line.total_price.quantize(CENTS),
                size=line.size,
                color=line.color,
            )
        )
        db.flush()

        _decrement_stock(db, product, line.quantity)

    db.commit()
    db.refresh(sale)
    return sale


# =========================================================
# REPLAYS (DOUBLE CLICK / RETRY PROTECTION)
# =========================================================
def _same_cart(sale: Sale, checkout: Checkout) -> bool:
    if Decimal(sale.total_amount) != checkout.total_amount:
        return False

    recorded = sorted((item.product_id or 0, item.quantity) for item in sale.items)
    requested = sorted((line.product_id, line.quantity) for line in checkout.lines)
    return recorded == requested


def _find_replay(db: Session, actor_id: int, checkout: Checkout, request_id: str) -> Optional[Sale]:
    """The sale this cashier already recorded under ``request_id``, if any.

    A request id reused for a different cart is rejected rather than
    answered with the earlier sale.
    """
    existing = (
        db.query(Sale)
        .filter(Sale.user_id == actor_id, Sale.request_id == request_id)
        .first()
    )
    if existing is None:
        return None

    if not _same_cart(existing, checkout):
        raise DuplicateRequest(request_id)

    logger.info(f"Sale {existing.id} replayed for request {request_id}")
    return existing


# =========================================================
# PUBLIC ENTRY POINT
# =========================================================
def process_sale(
    db: Session,
    actor,
    items: Optional[Sequence[Any]],
    declared_total: Any,
    declared_tax: Any = None,
    payment_method: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Sale:
    """Record a sale for ``actor`` and take its items out of stock.

    Either the whole sale (header, items, stock decrements) is committed or
    nothing is. Raises a ``SaleError`` subclass describing why the cart was
    rejected; storage errors surface as ``PersistenceFailure``.
    """
    checkout = None

    try:
        if actor is None:
            raise Unauthenticated()

        actor_id = actor.id
        checkout = validate_checkout(items, declared_total, declared_tax, payment_method)

        if request_id:
            existing = _find_replay(db, actor_id, checkout, request_id)
            if existing:
                return existing

        products = check_availability(db, checkout.lines)

        sale = _persist_sale(db, actor, checkout, products, request_id)

    except SaleError as exc:
        db.rollback()
        logger.warning(f"Sale rejected ({exc.kind}): {exc.message}")
        raise

    except IntegrityError:
        db.rollback()

        # A concurrent submission with the same request id committed first
        if request_id and checkout is not None:
            existing = _find_replay(db, actor_id, checkout, request_id)
            if existing:
                return existing

        logger.exception("Sale processing failed while writing to the database")
        raise PersistenceFailure()

    except SQLAlchemyError:
        db.rollback()
        logger.exception("Sale processing failed while writing to the database")
        raise PersistenceFailure()

    logger.info(
        f"Sale {sale.id} completed by user {actor_id}: "
        f"{len(checkout.lines)} item(s), total {sale.total_amount}"
    )
    return sale
