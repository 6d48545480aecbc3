"""
Checkout: re-price the cart against the product catalog, then turn it into
an order.

reconcile() is the single place where price authority is enforced: the
cart's snapshotted prices are for display only, every order line is priced
from the product record as it is at submission time. Validation is
all-or-nothing; one bad line aborts the whole checkout.

materialize() writes the order header, then its lines. The backend has no
multi-statement transaction across the two calls, so a header whose lines
fail to insert is deleted again before the error is reported. The cart is
only cleared after both writes succeed; if clearing fails, the order still
stands and is returned.

A backend that cannot be reached surfaces as PersistenceFailure, never as a
raw exception.

Neither function guards against being called twice for the same cart; the
caller must keep the submit action disabled while a checkout is in flight.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Protocol, Sequence, Tuple

from cart.errors import EmptyCart, InsufficientStock, PersistenceFailure, ProductUnavailable
from cart.models import Cart, CartLine
from cart.pricing import ZERO
from cart.status import INITIAL_STATUS
from cart.store import CartStore
from db import models
from db.crud import StockConflict
from utils.logger import get_logger

_logger = get_logger(__name__)


class CheckoutBackend(Protocol):
    async def get_product(self, product_id: int) -> Optional[models.Product]: ...

    async def insert_order(self, header: models.OrderHeader) -> int: ...

    async def insert_order_items(
        self, order_id: int, items: Sequence[models.OrderItem]
    ) -> None: ...

    async def delete_order(self, order_id: int) -> None: ...


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str
    phone: str
    shipping_address: str
    notes: Optional[str] = None
    user_id: Optional[int] = None  # None for guest checkout

    def validate(self) -> None:
        for field_name, label in (
            ("name", "Name"),
            ("email", "Email"),
            ("phone", "Phone"),
            ("shipping_address", "Shipping address"),
        ):
            if not (getattr(self, field_name) or "").strip():
                raise ValueError(f"{label} is required.")
        if "@" not in self.email:
            raise ValueError("Email address is invalid.")


@dataclass(frozen=True)
class ReconciledLine:
    line: CartLine
    product: models.Product
    unit_price: Decimal  # authoritative
    subtotal: Decimal

    @property
    def price_changed(self) -> bool:
        return self.unit_price != self.line.unit_price

    @property
    def price_delta(self) -> Decimal:
        return self.unit_price - self.line.unit_price

    def to_order_item(self) -> models.OrderItem:
        return models.OrderItem(
            product_id=self.line.product_id,
            quantity=self.line.quantity,
            unit_price=self.unit_price,
            subtotal=self.subtotal,
            product_name=self.product.name,
        )


@dataclass(frozen=True)
class Reconciliation:
    lines: Tuple[ReconciledLine, ...]
    total_amount: Decimal

    @property
    def price_changes(self) -> List[ReconciledLine]:
        return [rl for rl in self.lines if rl.price_changed]

    @property
    def snapshot_total(self) -> Decimal:
        return sum((rl.line.unit_price * rl.line.quantity for rl in self.lines), ZERO)


async def reconcile(cart: Cart, backend: CheckoutBackend) -> Reconciliation:
    """
    Validate every cart line against the current product record and price it
    at the current price. Raises EmptyCart, ProductUnavailable or
    InsufficientStock for the first offending line, in cart order, and
    PersistenceFailure when a product cannot be fetched.
    """
    if cart.is_empty:
        raise EmptyCart()

    reconciled: List[ReconciledLine] = []
    for line in cart:
        try:
            product = await backend.get_product(line.product_id)
        except Exception as exc:
            _logger.exception(f"Product {line.product_id} lookup failed during checkout")
            raise PersistenceFailure(exc) from exc
        if product is None or not product.is_active:
            _logger.warning(f"Checkout blocked: product {line.product_id} unavailable")
            raise ProductUnavailable(line)
        if product.stock < line.quantity:
            _logger.warning(
                f"Checkout blocked: product {line.product_id} "
                f"requested {line.quantity}, in stock {product.stock}"
            )
            raise InsufficientStock(line, line.quantity, product.stock)

        unit_price = product.price
        reconciled.append(
            ReconciledLine(
                line=line,
                product=product,
                unit_price=unit_price,
                subtotal=unit_price * line.quantity,
            )
        )

    total = sum((rl.subtotal for rl in reconciled), ZERO)
    return Reconciliation(lines=tuple(reconciled), total_amount=total)


async def materialize(
    reconciliation: Reconciliation,
    customer: CustomerInfo,
    backend: CheckoutBackend,
    store: CartStore,
) -> models.Order:
    """
    Persist the order header and its items, then empty the cart.
    Any failure before the order is complete leaves the cart as it was and no
    order behind.
    """
    header = models.OrderHeader(
        customer_name=customer.name.strip(),
        customer_email=customer.email.strip(),
        customer_phone=customer.phone.strip(),
        shipping_address=customer.shipping_address.strip(),
        total_amount=reconciliation.total_amount,
        status=INITIAL_STATUS,
        notes=(customer.notes or "").strip() or None,
        user_id=customer.user_id,
    )
    items = [rl.to_order_item() for rl in reconciliation.lines]

    try:
        order_id = await backend.insert_order(header)
    except Exception as exc:
        _logger.exception("Order header insert failed")
        raise PersistenceFailure(exc) from exc

    try:
        await backend.insert_order_items(order_id, items)
    except StockConflict as exc:
        await _discard_order(backend, order_id)
        line = next(
            rl.line for rl in reconciliation.lines if rl.line.product_id == exc.product_id
        )
        _logger.warning(f"Order {order_id} lost a stock race on product {exc.product_id}")
        raise InsufficientStock(line, exc.requested, exc.available) from exc
    except Exception as exc:
        _logger.exception(f"Order {order_id} items insert failed")
        await _discard_order(backend, order_id)
        raise PersistenceFailure(exc) from exc

    try:
        store.clear()
    except Exception:
        # the order is already persisted, so a failed clear is logged only
        _logger.exception(f"Order {order_id} placed but the cart could not be cleared")
    _logger.info(
        f"Order {order_id} placed: {len(items)} line(s), total {reconciliation.total_amount}"
    )
    return models.Order(
        id=order_id,
        user_id=header.user_id,
        customer_name=header.customer_name,
        customer_email=header.customer_email,
        customer_phone=header.customer_phone,
        shipping_address=header.shipping_address,
        status=header.status,
        total_amount=header.total_amount,
        created_at=header.created_at,
        notes=header.notes,
    )


async def _discard_order(backend: CheckoutBackend, order_id: int) -> None:
    try:
        await backend.delete_order(order_id)
    except Exception:
        # the orphan header stays behind; it has no lines and will show up in the admin list
        _logger.exception(f"Could not clean up order {order_id} after a failed checkout")


async def place_order(
    store: CartStore, customer: CustomerInfo, backend: CheckoutBackend
) -> models.Order:
    """Reconcile the stored cart and materialize it in one go."""
    customer.validate()
    reconciliation = await reconcile(store.read_cart(), backend)
    return await materialize(reconciliation, customer, backend, store)
