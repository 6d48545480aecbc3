# durable client-side cart, kept in a small key-value store
from __future__ import annotations

import json
import os
import tempfile
from typing import Dict, Optional, Protocol

from cart import mutator
from cart.models import Cart
from db.models import Product
from utils.logger import get_logger

_logger = get_logger(__name__)

CART_KEY = "cart"


class LocalStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage; lives as long as the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorage:
    """
    A JSON object on disk mapping keys to string values.
    Every write rewrites the whole file through a temp file + os.replace,
    so a crash mid-write leaves the previous contents in place.
    """

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            _logger.warning(f"Ignoring unreadable storage file {self.path}: {exc}")
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)


class CartStore:
    """
    Single source of truth for the cart until checkout.

    Each mutator reads the stored cart right before writing the new one back.
    Two writers sharing one storage medium can therefore lose an update
    (last write wins).
    """

    def __init__(self, storage: LocalStorage, key: str = CART_KEY):
        self._storage = storage
        self._key = key

    def read_cart(self) -> Cart:
        raw = self._storage.get(self._key)
        if not raw:
            return Cart()
        try:
            return Cart.from_list(json.loads(raw))
        except (json.JSONDecodeError, ValueError) as exc:
            _logger.warning(f"Discarding corrupt cart in storage: {exc}")
            return Cart()

    def write_cart(self, cart: Cart) -> None:
        self._storage.set(self._key, json.dumps(cart.to_list()))

    def add_item(self, product: Product, quantity: int = 1) -> Cart:
        cart = mutator.add_item(self.read_cart(), product, quantity)
        self.write_cart(cart)
        _logger.debug(f"Added {quantity} x product {product.id} to cart")
        return cart

    def set_quantity(self, product_id: int, quantity: int) -> Cart:
        cart = mutator.set_quantity(self.read_cart(), product_id, quantity)
        self.write_cart(cart)
        return cart

    def adjust_quantity(self, product_id: int, delta: int) -> Cart:
        cart = mutator.adjust_quantity(self.read_cart(), product_id, delta)
        self.write_cart(cart)
        return cart

    def remove_item(self, product_id: int) -> Cart:
        cart = mutator.remove_item(self.read_cart(), product_id)
        self.write_cart(cart)
        _logger.debug(f"Removed product {product_id} from cart")
        return cart

    def clear(self) -> Cart:
        cart = mutator.clear(self.read_cart())
        self.write_cart(cart)
        return cart
