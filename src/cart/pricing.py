# display-side totals; computed from the prices snapshotted in the cart
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from cart.models import CartLine
from utils.config import CURRENCY_SYMBOL

ZERO = Decimal("0.00")
PENDING_LABEL = "Calculated at checkout"


def line_total(line: CartLine) -> Decimal:
    return line.unit_price * line.quantity


def subtotal(lines: Iterable[CartLine]) -> Decimal:
    """Sum of line totals; accepts a Cart or any iterable of lines."""
    return sum((line_total(line) for line in lines), ZERO)


def format_amount(amount: Optional[Decimal], symbol: str = CURRENCY_SYMBOL) -> str:
    if amount is None:
        return PENDING_LABEL
    amount = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol}{amount:.2f}"


@dataclass(frozen=True)
class CartSummary:
    subtotal: Decimal
    # tax and shipping are never estimated here
    tax: Optional[Decimal] = None
    shipping: Optional[Decimal] = None

    @property
    def total(self) -> Decimal:
        return self.subtotal + (self.tax or ZERO) + (self.shipping or ZERO)


def summarize(lines: Iterable[CartLine]) -> CartSummary:
    return CartSummary(subtotal=subtotal(lines))
