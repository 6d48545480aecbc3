# cart dataclasses, plus the plain-dict form the cart takes in local storage
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterator, List, Optional, Tuple


def to_money(value) -> Decimal:
    """Coerce a float/str/int price to a Decimal with two fractional digits."""
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value))
    return amount.quantize(Decimal("0.01"))


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    unit_price: Decimal  # snapshot taken when the product was added
    quantity: int
    image_ref: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "image_ref": self.image_ref,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CartLine":
        try:
            quantity = int(data["quantity"])
            return cls(
                product_id=int(data["product_id"]),
                name=str(data.get("name", "")),
                unit_price=to_money(data["unit_price"]),
                quantity=max(quantity, 1),
                image_ref=data.get("image_ref"),
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            raise ValueError(f"Malformed cart line: {data!r}") from exc


@dataclass(frozen=True)
class Cart:
    lines: Tuple[CartLine, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def find(self, product_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def to_list(self) -> List[Dict[str, Any]]:
        return [line.to_dict() for line in self.lines]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]]) -> "Cart":
        if not isinstance(data, list):
            raise ValueError("Stored cart must be a JSON array.")
        return cls(tuple(CartLine.from_dict(item) for item in data))


EMPTY_CART = Cart()
