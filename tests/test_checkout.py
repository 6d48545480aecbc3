import os
import tempfile
import unittest
from decimal import Decimal

from cart import checkout
from cart.errors import EmptyCart, InsufficientStock, PersistenceFailure, ProductUnavailable
from cart.status import OrderStatus
from cart.store import CartStore, MemoryStorage
from db import crud
from db import database as db_database


class FlakyBackend:
    """Delegates to db.crud, but can fail chosen steps."""

    def __init__(
        self,
        fail_fetch=False,
        fail_header=False,
        fail_items=False,
        fail_delete=False,
        steal_stock=None,
    ):
        self.fail_fetch = fail_fetch
        self.fail_header = fail_header
        self.fail_items = fail_items
        self.fail_delete = fail_delete
        # (product_id, units) bought by someone else between reconcile and materialize
        self.steal_stock = steal_stock
        self.deleted = []

    async def get_product(self, product_id):
        if self.fail_fetch:
            raise OSError("backend unreachable")
        return await crud.get_product(product_id)

    async def insert_order(self, header):
        if self.fail_header:
            raise OSError("database is locked")
        return await crud.insert_order(header)

    async def insert_order_items(self, order_id, items):
        if self.fail_items:
            raise RuntimeError("disk full")
        if self.steal_stock:
            product_id, units = self.steal_stock
            prod = await crud.get_product(product_id)
            await crud.update_product(product_id, stock=prod.stock - units)
        await crud.insert_order_items(order_id, items)

    async def delete_order(self, order_id):
        self.deleted.append(order_id)
        if self.fail_delete:
            raise RuntimeError("connection lost")
        await crud.delete_order(order_id)


class BrokenStorage(MemoryStorage):
    """Memory storage whose writes start failing once `broken` is set."""

    broken = False

    def set(self, key, value):
        if self.broken:
            raise OSError("disk full")
        super().set(key, value)


class CheckoutTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database._initialized = False
        self.store = CartStore(MemoryStorage())
        self.customer = checkout.CustomerInfo(
            name="Bob Mehta",
            email="bob@example.com",
            phone="9000000000",
            shipping_address="4 Park Street, Kolkata",
            user_id=1002,
        )

    def tearDown(self):
        self.temp_dir.cleanup()

    async def _add(self, product_id, quantity):
        self.store.add_item(await crud.get_product(product_id), quantity)

    async def _order_count(self):
        _, total = await crud.list_all_orders()
        return total

    async def test_successful_checkout(self):
        await self._add(2001, 3)
        await self._add(2005, 1)

        order = await checkout.place_order(self.store, self.customer, crud)

        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal("3559.00"))
        self.assertEqual(order.user_id, 1002)
        self.assertTrue(self.store.read_cart().is_empty)

        saved, items = await crud.get_order_detail(order.id)
        self.assertEqual(saved.total_amount, order.total_amount)
        self.assertEqual(sum((it.subtotal for it in items), Decimal("0")), order.total_amount)
        self.assertEqual([(it.product_id, it.quantity) for it in items], [(2001, 3), (2005, 1)])
        self.assertEqual((await crud.get_product(2001)).stock, 37)
        self.assertEqual((await crud.get_product(2005)).stock, 2)

    async def test_guest_checkout(self):
        await self._add(2003, 1)
        guest = checkout.CustomerInfo(
            name="Guest", email="guest@example.com", phone="1", shipping_address="Here"
        )
        order = await checkout.place_order(self.store, guest, crud)
        self.assertIsNone((await crud.get_order(order.id)).user_id)

    async def test_authoritative_price_wins(self):
        await self._add(2001, 2)
        await crud.update_product(2001, price=Decimal("150.00"))

        reconciliation = await checkout.reconcile(self.store.read_cart(), crud)
        self.assertEqual(len(reconciliation.price_changes), 1)
        self.assertEqual(reconciliation.price_changes[0].price_delta, Decimal("30.00"))
        self.assertEqual(reconciliation.snapshot_total, Decimal("240.00"))
        self.assertEqual(reconciliation.total_amount, Decimal("300.00"))

        order = await checkout.materialize(reconciliation, self.customer, crud, self.store)
        _, items = await crud.get_order_detail(order.id)
        self.assertEqual(items[0].unit_price, Decimal("150.00"))
        self.assertEqual(order.total_amount, Decimal("300.00"))

    async def test_insufficient_stock_aborts_everything(self):
        await self._add(2001, 1)
        await self._add(2005, 4)
        before = self.store.read_cart()
        orders_before = await self._order_count()

        with self.assertRaises(InsufficientStock) as ctx:
            await checkout.place_order(self.store, self.customer, crud)
        self.assertEqual(ctx.exception.line.product_id, 2005)
        self.assertEqual((ctx.exception.requested, ctx.exception.available), (4, 3))

        self.assertEqual(await self._order_count(), orders_before)
        self.assertEqual(self.store.read_cart(), before)
        self.assertEqual((await crud.get_product(2001)).stock, 40)

    async def test_inactive_or_missing_product_is_unavailable(self):
        await self._add(2006, 1)
        with self.assertRaises(ProductUnavailable):
            await checkout.place_order(self.store, self.customer, crud)

        self.store.clear()
        await self._add(2001, 1)
        await crud.update_product(2001, is_active=False)
        before = self.store.read_cart()
        with self.assertRaises(ProductUnavailable):
            await checkout.place_order(self.store, self.customer, crud)
        self.assertEqual(self.store.read_cart(), before)

    async def test_empty_cart(self):
        with self.assertRaises(EmptyCart):
            await checkout.place_order(self.store, self.customer, crud)

    async def test_invalid_customer_details(self):
        await self._add(2001, 1)
        bad = checkout.CustomerInfo(
            name="Bob", email="not-an-email", phone="1", shipping_address="Here"
        )
        with self.assertRaises(ValueError):
            await checkout.place_order(self.store, bad, crud)
        blank = checkout.CustomerInfo(
            name="  ", email="b@example.com", phone="1", shipping_address="Here"
        )
        with self.assertRaisesRegex(ValueError, "Name is required"):
            blank.validate()
        self.assertFalse(self.store.read_cart().is_empty)

    async def test_item_failure_removes_orphan_header(self):
        await self._add(2002, 1)
        before = self.store.read_cart()
        orders_before = await self._order_count()
        backend = FlakyBackend(fail_items=True)

        with self.assertRaises(PersistenceFailure) as ctx:
            await checkout.place_order(self.store, self.customer, backend)
        self.assertIsInstance(ctx.exception.cause, RuntimeError)

        self.assertEqual(len(backend.deleted), 1)
        self.assertEqual(await self._order_count(), orders_before)
        self.assertEqual(self.store.read_cart(), before)
        self.assertEqual((await crud.get_product(2002)).stock, 6)

    async def test_cleanup_failure_still_reports_persistence_failure(self):
        await self._add(2002, 1)
        backend = FlakyBackend(fail_items=True, fail_delete=True)
        with self.assertRaises(PersistenceFailure):
            await checkout.place_order(self.store, self.customer, backend)
        self.assertFalse(self.store.read_cart().is_empty)

    async def test_losing_a_stock_race(self):
        await self._add(2005, 2)
        before = self.store.read_cart()
        orders_before = await self._order_count()
        # another buyer takes 2 of the 3 units after reconcile passed
        backend = FlakyBackend(steal_stock=(2005, 2))

        with self.assertRaises(InsufficientStock) as ctx:
            await checkout.place_order(self.store, self.customer, backend)
        self.assertEqual(ctx.exception.available, 1)

        self.assertEqual(await self._order_count(), orders_before)
        self.assertEqual(self.store.read_cart(), before)
        self.assertEqual((await crud.get_product(2005)).stock, 1)

    async def test_unreachable_backend_during_reconcile(self):
        await self._add(2001, 2)
        before = self.store.read_cart()
        orders_before = await self._order_count()

        with self.assertRaises(PersistenceFailure) as ctx:
            await checkout.reconcile(before, FlakyBackend(fail_fetch=True))
        self.assertIsInstance(ctx.exception.cause, OSError)

        with self.assertRaises(PersistenceFailure):
            await checkout.place_order(self.store, self.customer, FlakyBackend(fail_fetch=True))
        self.assertEqual(self.store.read_cart(), before)
        self.assertEqual(await self._order_count(), orders_before)

    async def test_header_failure_leaves_nothing_behind(self):
        await self._add(2003, 2)
        before = self.store.read_cart()
        orders_before = await self._order_count()
        backend = FlakyBackend(fail_header=True)

        with self.assertRaises(PersistenceFailure) as ctx:
            await checkout.place_order(self.store, self.customer, backend)
        self.assertIsInstance(ctx.exception.cause, OSError)

        self.assertEqual(backend.deleted, [])
        self.assertEqual(self.store.read_cart(), before)
        self.assertEqual(await self._order_count(), orders_before)
        self.assertEqual((await crud.get_product(2003)).stock, 12)

    async def test_order_stands_when_cart_cannot_be_cleared(self):
        storage = BrokenStorage()
        store = CartStore(storage)
        store.add_item(await crud.get_product(2001), 1)
        storage.broken = True

        order = await checkout.place_order(store, self.customer, crud)

        saved, items = await crud.get_order_detail(order.id)
        self.assertEqual(saved.total_amount, Decimal("120.00"))
        self.assertEqual(len(items), 1)
        # the stale cart is still there, but no error reached the caller
        self.assertEqual(len(store.read_cart()), 1)


if __name__ == "__main__":
    unittest.main()
