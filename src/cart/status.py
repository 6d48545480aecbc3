# order status lifecycle
from enum import Enum
from typing import Dict, FrozenSet, List


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# targets only an administrator may move an order into
ADMIN_ONLY: FrozenSet[OrderStatus] = frozenset(
    {OrderStatus.READY, OrderStatus.CANCELLED}
)

INITIAL_STATUS = OrderStatus.PENDING


class InvalidTransition(Exception):
    def __init__(self, old: OrderStatus, new: OrderStatus, reason: str = ""):
        self.old = old
        self.new = new
        msg = f"Cannot move order from {old.value} to {new.value}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


def can_transition(old: OrderStatus, new: OrderStatus, admin: bool = False) -> bool:
    if new not in ALLOWED_TRANSITIONS[old]:
        return False
    if new in ADMIN_ONLY and not admin:
        return False
    return True


def check_transition(old: OrderStatus, new: OrderStatus, admin: bool = False) -> None:
    """Raise InvalidTransition unless old -> new is permitted for the caller."""
    if new not in ALLOWED_TRANSITIONS[old]:
        reason = "terminal state" if old.is_terminal else "not allowed"
        raise InvalidTransition(old, new, reason)
    if new in ADMIN_ONLY and not admin:
        raise InvalidTransition(old, new, "administrators only")


def next_statuses(old: OrderStatus, admin: bool = False) -> List[OrderStatus]:
    """Statuses reachable from `old`, in lifecycle order."""
    return [s for s in OrderStatus if can_transition(old, s, admin)]
