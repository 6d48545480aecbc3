import json
import os
import tempfile
import unittest
from decimal import Decimal

from cart import mutator
from cart.models import Cart, CartLine
from cart.pricing import PENDING_LABEL, format_amount, line_total, subtotal, summarize
from cart.store import CartStore, FileStorage, MemoryStorage
from db.models import Product


def make_product(pid=1, price="10.00", stock=5, **kwargs) -> Product:
    return Product(
        id=pid,
        name=kwargs.pop("name", f"Product {pid}"),
        description="",
        category="Misc",
        price=Decimal(price),
        stock=stock,
        **kwargs,
    )


class MutatorTestCase(unittest.TestCase):
    def test_add_merges_lines_for_same_product(self):
        prod = make_product(1)
        cart = mutator.add_item(Cart(), prod, 2)
        cart = mutator.add_item(cart, prod, 3)
        self.assertEqual(len(cart), 1)
        self.assertEqual(cart.find(1).quantity, 5)

    def test_add_snapshots_product_fields(self):
        prod = make_product(7, price="19.999", name="Lamp", image_refs=("a.jpg", "b.jpg"))
        line = mutator.add_item(Cart(), prod).find(7)
        self.assertEqual(line.name, "Lamp")
        self.assertEqual(line.unit_price, Decimal("20.00"))
        self.assertEqual(line.image_ref, "a.jpg")
        self.assertEqual(line.quantity, 1)

    def test_add_keeps_insertion_order(self):
        cart = Cart()
        for pid in (3, 1, 2):
            cart = mutator.add_item(cart, make_product(pid))
        self.assertEqual([line.product_id for line in cart], [3, 1, 2])

    def test_quantity_never_drops_below_one(self):
        cart = mutator.add_item(Cart(), make_product(1), 0)
        self.assertEqual(cart.find(1).quantity, 1)
        cart = mutator.set_quantity(cart, 1, -4)
        self.assertEqual(cart.find(1).quantity, 1)
        cart = mutator.adjust_quantity(cart, 1, -1)
        self.assertEqual(cart.find(1).quantity, 1)
        cart = mutator.adjust_quantity(cart, 1, 2)
        self.assertEqual(cart.find(1).quantity, 3)

    def test_missing_product_is_a_noop(self):
        cart = mutator.add_item(Cart(), make_product(1))
        self.assertEqual(mutator.remove_item(cart, 99), cart)
        self.assertEqual(mutator.set_quantity(cart, 99, 4), cart)
        self.assertEqual(mutator.adjust_quantity(cart, 99, 1), cart)

    def test_remove_and_clear(self):
        cart = mutator.add_item(Cart(), make_product(1))
        cart = mutator.add_item(cart, make_product(2))
        cart = mutator.remove_item(cart, 1)
        self.assertEqual([line.product_id for line in cart], [2])
        self.assertTrue(mutator.clear(cart).is_empty)


class PricingTestCase(unittest.TestCase):
    def test_subtotal_uses_snapshot_prices(self):
        cart = mutator.add_item(Cart(), make_product(1, price="120.00"), 2)
        cart = mutator.add_item(cart, make_product(2, price="1399.50"))
        self.assertEqual(line_total(cart.find(1)), Decimal("240.00"))
        self.assertEqual(subtotal(cart), Decimal("1639.50"))
        self.assertEqual(subtotal(Cart()), Decimal("0.00"))

    def test_summary_leaves_tax_and_shipping_open(self):
        cart = mutator.add_item(Cart(), make_product(1, price="0.10"), 3)
        summary = summarize(cart)
        self.assertIsNone(summary.tax)
        self.assertIsNone(summary.shipping)
        self.assertEqual(summary.total, Decimal("0.30"))
        self.assertEqual(format_amount(summary.tax), PENDING_LABEL)

    def test_format_amount(self):
        self.assertEqual(format_amount(Decimal("2450"), "₹"), "₹2450.00")
        self.assertEqual(format_amount(Decimal("0.005"), "$"), "$0.01")


class CartStoreTestCase(unittest.TestCase):
    def setUp(self):
        self.storage = MemoryStorage()
        self.store = CartStore(self.storage)

    def test_every_mutation_is_persisted(self):
        prod = make_product(1)
        returned = self.store.add_item(prod, 2)
        self.assertEqual(self.store.read_cart(), returned)

        returned = self.store.adjust_quantity(1, 1)
        self.assertEqual(self.store.read_cart().find(1).quantity, 3)
        self.assertEqual(self.store.read_cart(), returned)

        self.store.set_quantity(1, 7)
        self.assertEqual(self.store.read_cart().find(1).quantity, 7)

        self.store.remove_item(1)
        self.assertTrue(self.store.read_cart().is_empty)

    def test_cart_survives_a_new_store(self):
        self.store.add_item(make_product(1, price="5.25"), 4)
        reopened = CartStore(self.storage)
        line = reopened.read_cart().find(1)
        self.assertEqual(line.quantity, 4)
        self.assertEqual(line.unit_price, Decimal("5.25"))

    def test_stored_form_is_a_json_list(self):
        self.store.add_item(make_product(1, price="5.25"))
        data = json.loads(self.storage.get("cart"))
        self.assertIsInstance(data, list)
        self.assertEqual(data[0]["product_id"], 1)
        self.assertEqual(data[0]["unit_price"], "5.25")

    def test_missing_or_corrupt_cart_reads_as_empty(self):
        self.assertTrue(self.store.read_cart().is_empty)
        for payload in ("not json", '{"a": 1}', '[{"product_id": 1}]'):
            self.storage.set("cart", payload)
            self.assertTrue(self.store.read_cart().is_empty, payload)

    def test_stored_quantity_below_one_is_clamped(self):
        self.storage.set(
            "cart",
            json.dumps([{"product_id": 1, "name": "x", "unit_price": "1.00", "quantity": 0}]),
        )
        self.assertEqual(self.store.read_cart().find(1).quantity, 1)

    def test_clear(self):
        self.store.add_item(make_product(1))
        self.assertTrue(self.store.clear().is_empty)
        self.assertTrue(self.store.read_cart().is_empty)


class FileStorageTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, "nested", "cart.json")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_round_trip_through_disk(self):
        CartStore(FileStorage(self.path)).add_item(make_product(2, price="3.10"), 2)
        self.assertTrue(os.path.exists(self.path))
        cart = CartStore(FileStorage(self.path)).read_cart()
        self.assertEqual(cart.lines, (CartLine(2, "Product 2", Decimal("3.10"), 2),))
        # no temp files left behind
        self.assertEqual(os.listdir(os.path.dirname(self.path)), ["cart.json"])

    def test_unreadable_file_acts_as_empty(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{broken")
        storage = FileStorage(self.path)
        self.assertIsNone(storage.get("cart"))
        storage.set("cart", "[]")
        self.assertEqual(storage.get("cart"), "[]")

    def test_remove(self):
        storage = FileStorage(self.path)
        storage.set("cart", "[]")
        storage.remove("cart")
        self.assertIsNone(storage.get("cart"))
        storage.remove("cart")


if __name__ == "__main__":
    unittest.main()
