# provide dataclass models

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from cart.status import OrderStatus


@dataclass(frozen=True)
class User:
    uid: int
    name: str
    email: str
    role: str  # "customer" or "admin"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    description: str
    category: str
    price: Decimal
    stock: int
    is_active: bool = True
    image_refs: Tuple[str, ...] = ()
    # informational key/value specs, shown in insertion order
    specifications: Dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class OrderHeader:
    """What the checkout pipeline hands to insert_order."""

    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: str
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Order:
    id: int
    user_id: Optional[int]
    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: str
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    notes: Optional[str] = None


@dataclass(frozen=True)
class OrderItem:
    product_id: int
    quantity: int
    unit_price: Decimal  # price at time of order
    subtotal: Decimal
    order_id: Optional[int] = None
    product_name: str = ""


class QuoteStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class MessageStatus(str, Enum):
    PENDING = "pending"
    REPLIED = "replied"
    CLOSED = "closed"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Quote:
    """A customer's request for a price on a bulk or custom order."""

    id: int
    user_id: Optional[int]
    customer_name: str
    customer_email: str
    phone: Optional[str]
    message: Optional[str]
    status: QuoteStatus
    created_at: datetime


@dataclass(frozen=True)
class ContactMessage:
    id: int
    customer_name: str
    customer_email: str
    subject: str
    message: str
    status: MessageStatus
    created_at: datetime
    admin_reply: Optional[str] = None
    replied_at: Optional[datetime] = None
