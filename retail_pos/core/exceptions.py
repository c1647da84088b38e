# =========================================================
# CHECKOUT ERRORS
#
# RequestDefect  -> caller must fix the cart and resubmit
# StateConflict  -> caller should refresh the catalog and retry
# PersistenceFailure -> storage rejected a write, nothing was kept
# =========================================================

from decimal import Decimal


class SaleError(Exception):
    """Base class for every checkout failure."""

    status_code = 500
    kind = "sale_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"detail": self.message, "kind": self.kind}


class Unauthenticated(SaleError):
    status_code = 401
    kind = "unauthenticated"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


# ---------------- REQUEST DEFECTS ----------------

class RequestDefect(SaleError):
    status_code = 400
    kind = "request_defect"


class EmptyCart(RequestDefect):
    kind = "empty_cart"

    def __init__(self):
        super().__init__("No items in cart")


class InvalidLineItem(RequestDefect):
    kind = "invalid_line_item"

    def __init__(self, index: int, reason: str, name=None):
        self.index = index
        self.reason = reason
        self.name = name

        label = f"Item {index}"
        if name:
            label = f"{label} ({name})"

        super().__init__(f"{label}: {reason}")


class InvalidTotal(RequestDefect):
    kind = "invalid_total"


class InvalidPaymentMethod(RequestDefect):
    kind = "invalid_payment_method"

    def __init__(self, method: str, allowed):
        self.method = method
        super().__init__(
            f"Unsupported payment method '{method}'. "
            f"Allowed: {', '.join(allowed)}"
        )


# ---------------- STATE CONFLICTS ----------------

class StateConflict(SaleError):
    status_code = 400
    kind = "state_conflict"


class ProductNotFound(StateConflict):
    kind = "product_not_found"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found")


class InsufficientStock(StateConflict):
    kind = "insufficient_stock"

    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for product "{product_name}". '
            f"Available: {available}, Requested: {requested}"
        )


class PriceMismatch(StateConflict):
    kind = "price_mismatch"

    def __init__(self, product_name: str, declared: Decimal, expected: Decimal):
        self.product_name = product_name
        self.declared = declared
        self.expected = expected
        super().__init__(
            f'Price for "{product_name}" has changed. '
            f"Declared: {declared}, Current: {expected}"
        )


class DuplicateRequest(StateConflict):
    kind = "duplicate_request"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(
            f"Request {request_id} was already used for a different sale"
        )


# ---------------- STORAGE ----------------

class PersistenceFailure(SaleError):
    status_code = 500
    kind = "persistence_failure"

    def __init__(self, message: str = "Unable to complete sale"):
        super().__init__(message)
