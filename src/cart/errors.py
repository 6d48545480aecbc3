"""
Checkout failures. Every one of them leaves the cart untouched and can be
retried by the customer once the cause is fixed.
"""

from typing import Optional

from cart.models import CartLine


class CheckoutError(Exception):
    """Base class; str(err) is suitable to show to the customer."""


class EmptyCart(CheckoutError):
    def __init__(self):
        super().__init__("Your cart is empty.")


class ProductUnavailable(CheckoutError):
    def __init__(self, line: CartLine):
        self.line = line
        super().__init__(
            f"'{line.name}' is no longer available. Remove it from your cart and try again."
        )


class InsufficientStock(CheckoutError):
    def __init__(self, line: CartLine, requested: int, available: int):
        self.line = line
        self.requested = requested
        self.available = available
        super().__init__(
            f"Only {available} of '{line.name}' in stock, {requested} requested."
        )


class PersistenceFailure(CheckoutError):
    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__("Could not place your order right now. Please try again.")
