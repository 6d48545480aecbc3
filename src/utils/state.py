from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from cart.store import CartStore, FileStorage
from db.models import User
from utils.config import CART_PATH


def _default_cart_store() -> CartStore:
    return CartStore(FileStorage(CART_PATH))


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - user: logged-in account, or None for a guest / before login
      - role: "customer" | "admin" | None if not determined yet
      - cart: the cart store; screens reach the cart only through it
      - checkout_in_flight: set while an order is being submitted
    """

    user: Optional[User] = None
    role: Optional[Literal["customer", "admin"]] = None
    cart: CartStore = field(default_factory=_default_cart_store)
    checkout_in_flight: bool = False

    @property
    def uid(self) -> Optional[int]:
        return self.user.uid if self.user else None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def current_user(self) -> Optional[User]:
        """The signed-in user; None means checkout happens as a guest."""
        return self.user

    def sign_in(self, user: User) -> None:
        self.user = user
        self.role = "admin" if user.is_admin else "customer"

    def continue_as_guest(self) -> None:
        self.user = None
        self.role = "customer"

    def sign_out(self) -> None:
        # the cart belongs to the device, not the account, and is kept
        self.user = None
        self.role = None
        self.checkout_in_flight = False
