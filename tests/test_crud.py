import os
import tempfile
import unittest
from decimal import Decimal

from cart.status import InvalidTransition, OrderStatus
from db import crud
from db import database as db_database
from db import models


class CrudTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database._initialized = False

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute("SELECT name FROM sqlite_master WHERE type='table';")
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        self.temp_dir.cleanup()

    async def _place(self, product_id: int, quantity: int, status=OrderStatus.PENDING) -> int:
        prod = await crud.get_product(product_id)
        order_id = await crud.insert_order(
            models.OrderHeader(
                customer_name="Test",
                customer_email="t@example.com",
                customer_phone="1",
                shipping_address="Somewhere",
                total_amount=prod.price * quantity,
                status=status,
                user_id=1002,
            )
        )
        await crud.insert_order_items(
            order_id,
            [
                models.OrderItem(
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=prod.price,
                    subtotal=prod.price * quantity,
                )
            ],
        )
        return order_id

    # ---------- Auth & registration ----------

    async def test_email_available_register_and_login(self):
        self.assertFalse(await crud.email_available("alice@example.com"))
        self.assertFalse(await crud.email_available("ALICE@example.com"))
        self.assertTrue(await crud.email_available("new@example.com"))

        uid = await crud.register_customer("Charlie", "charlie@example.com", "pw")
        self.assertIsInstance(uid, int)

        user = await crud.login("charlie@example.com", "pw")
        self.assertIsNotNone(user)
        self.assertEqual(user.uid, uid)
        self.assertEqual(user.role, "customer")
        self.assertFalse(user.is_admin)
        self.assertIsNone(await crud.login("charlie@example.com", "wrong"))

        admin = await crud.login("admin@example.com", "admin")
        self.assertTrue(admin.is_admin)

        self.assertEqual((await crud.get_user(uid)).name, "Charlie")
        self.assertIsNone(await crud.get_user(424242))

    # ---------- Products ----------

    async def test_get_product_decodes_columns(self):
        prod = await crud.get_product(2002)
        self.assertEqual(prod.name, "Hydraulic Jack")
        self.assertEqual(prod.price, Decimal("2450.00"))
        self.assertEqual(prod.image_refs, ("products/2002/main.jpg", "products/2002/side.jpg"))
        self.assertEqual(prod.specifications["Capacity"], "2 t")

        inactive = await crud.get_product(2006)
        self.assertFalse(inactive.is_active)
        self.assertIsNone(await crud.get_product(999))

    async def test_list_active_products_hides_inactive_and_pages(self):
        products, total = await crud.list_active_products("", page=1, page_size=2)
        self.assertEqual(total, 5)
        self.assertEqual([p.id for p in products], [2001, 2002])

        products, _ = await crud.list_active_products("", page=3, page_size=2)
        self.assertEqual([p.id for p in products], [2005])

        products, total = await crud.list_active_products("drill", page=1)
        self.assertEqual((products, total), ([], 0))

        products, total = await crud.list_active_products("tools copper", page=1)
        self.assertEqual({p.id for p in products}, {2002, 2003, 2005})
        self.assertEqual(total, 3)

    async def test_search_products_admin(self):
        everything = await crud.search_products_admin("")
        self.assertEqual([p.id for p in everything], [2001, 2002, 2003, 2004, 2005, 2006])

        self.assertEqual([p.id for p in await crud.search_products_admin("2006")], [2006])

        results = await crud.search_products_admin("grinder jack")
        self.assertEqual([p.id for p in results], [2005, 2002])

        self.assertEqual(await crud.search_products_admin("nothing-like-this"), [])

    async def test_update_product(self):
        self.assertTrue(await crud.update_product(2001, price=Decimal("135.50")))
        prod = await crud.get_product(2001)
        self.assertEqual(prod.price, Decimal("135.50"))
        self.assertEqual(prod.stock, 40)

        self.assertTrue(await crud.update_product(2001, stock=0, is_active=False))
        prod = await crud.get_product(2001)
        self.assertEqual((prod.stock, prod.is_active), (0, False))

        self.assertFalse(await crud.update_product(2001))
        self.assertFalse(await crud.update_product(999, stock=1))
        with self.assertRaises(ValueError):
            await crud.update_product(2001, price=Decimal("-1"))
        with self.assertRaises(ValueError):
            await crud.update_product(2001, stock=-1)

    async def test_low_stock_products(self):
        low = await crud.low_stock_products(10)
        self.assertEqual([p.id for p in low], [2004, 2005, 2002])

    async def test_create_product(self):
        product_id = await crud.create_product(
            "  Spirit Level ", "600 mm aluminium", "Tools", Decimal("349.5"), 8,
            specifications={"Length": "600 mm"},
        )
        prod = await crud.get_product(product_id)
        self.assertEqual(prod.name, "Spirit Level")
        self.assertEqual(prod.price, Decimal("349.50"))
        self.assertEqual(prod.stock, 8)
        self.assertTrue(prod.is_active)
        self.assertEqual(prod.image_refs, ())
        self.assertEqual(prod.specifications, {"Length": "600 mm"})

        with self.assertRaises(ValueError):
            await crud.create_product(" ", "", "", Decimal("1"), 1)
        with self.assertRaises(ValueError):
            await crud.create_product("Bad", "", "", Decimal("-0.01"), 1)
        with self.assertRaises(ValueError):
            await crud.create_product("Bad", "", "", Decimal("1"), -1)

    async def test_delete_product(self):
        product_id = await crud.create_product("Tape", "", "Hardware", Decimal("40"), 5)
        self.assertTrue(await crud.delete_product(product_id))
        self.assertIsNone(await crud.get_product(product_id))
        self.assertFalse(await crud.delete_product(product_id))

        # 2001 is on order 1, so it stays for the order history
        with self.assertRaises(ValueError):
            await crud.delete_product(2001)
        self.assertIsNotNone(await crud.get_product(2001))

        # never ordered, even though inactive
        self.assertTrue(await crud.delete_product(2006))

    # ---------- Orders ----------

    async def test_insert_order_items_decrements_stock(self):
        order_id = await self._place(2005, 2)
        self.assertEqual((await crud.get_product(2005)).stock, 1)

        order, items = await crud.get_order_detail(order_id)
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.total_amount, Decimal("6398.00"))
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].product_name, "Angle Grinder")
        self.assertEqual(items[0].subtotal, Decimal("6398.00"))

    async def test_insert_order_items_is_all_or_nothing(self):
        order_id = await crud.insert_order(
            models.OrderHeader(
                customer_name="Test",
                customer_email="t@example.com",
                customer_phone="1",
                shipping_address="Somewhere",
                total_amount=Decimal("0"),
            )
        )
        items = [
            models.OrderItem(2001, 5, Decimal("120.00"), Decimal("600.00")),
            models.OrderItem(2005, 4, Decimal("3199.00"), Decimal("12796.00")),
        ]
        with self.assertRaises(crud.StockConflict) as ctx:
            await crud.insert_order_items(order_id, items)
        self.assertEqual(ctx.exception.product_id, 2005)
        self.assertEqual(ctx.exception.available, 3)

        # the first line's decrement was rolled back with the rest
        self.assertEqual((await crud.get_product(2001)).stock, 40)
        _, lines = await crud.get_order_detail(order_id)
        self.assertEqual(lines, [])

        await crud.delete_order(order_id)
        self.assertIsNone(await crud.get_order(order_id))

    async def test_get_order_detail_missing(self):
        self.assertEqual(await crud.get_order_detail(12345), (None, []))

    async def test_list_orders(self):
        orders, total = await crud.list_orders_for_user(1001, page=1)
        self.assertEqual(total, 2)
        self.assertEqual([o.id for o in orders], [2, 1])
        self.assertEqual(orders[0].notes, "Call before delivery")

        orders, total = await crud.list_orders_for_user(1002, page=1)
        self.assertEqual((orders, total), ([], 0))

        orders, total = await crud.list_all_orders(OrderStatus.COMPLETED)
        self.assertEqual(([o.id for o in orders], total), ([1], 1))

        _, total = await crud.list_all_orders()
        self.assertEqual(total, 2)

    async def test_update_order_status_follows_lifecycle(self):
        order = await crud.update_order_status(2, OrderStatus.PROCESSING)
        self.assertEqual(order.status, OrderStatus.PROCESSING)

        with self.assertRaises(InvalidTransition):
            await crud.update_order_status(2, OrderStatus.READY)
        order = await crud.update_order_status(2, OrderStatus.READY, admin=True)
        order = await crud.update_order_status(2, OrderStatus.COMPLETED)
        self.assertEqual(order.status, OrderStatus.COMPLETED)

        with self.assertRaises(InvalidTransition):
            await crud.update_order_status(2, OrderStatus.CANCELLED, admin=True)
        with self.assertRaises(crud.OrderNotFound):
            await crud.update_order_status(999, OrderStatus.PROCESSING)

    async def test_cancel_restocks(self):
        order_id = await self._place(2002, 4)
        self.assertEqual((await crud.get_product(2002)).stock, 2)

        await crud.update_order_status(order_id, OrderStatus.CANCELLED, admin=True)
        self.assertEqual((await crud.get_product(2002)).stock, 6)
        self.assertEqual((await crud.get_order(order_id)).status, OrderStatus.CANCELLED)

    # ---------- Quotes ----------

    async def test_submit_and_list_quotes(self):
        seeded = await crud.list_quotes()
        self.assertEqual([q.id for q in seeded], [2, 1])
        self.assertIsNone(seeded[0].phone)

        quote_id = await crud.submit_quote(
            "Guest", "guest@example.com", phone="  ", message="50 gloves"
        )
        quote = (await crud.list_quotes(status=models.QuoteStatus.PENDING))[0]
        self.assertEqual(quote.id, quote_id)
        self.assertIsNone(quote.user_id)
        self.assertIsNone(quote.phone)
        self.assertEqual(quote.message, "50 gloves")

        mine = await crud.list_quotes(user_id=1001)
        self.assertEqual([q.status for q in mine], [models.QuoteStatus.APPROVED])
        self.assertEqual(
            await crud.list_quotes(user_id=1001, status=models.QuoteStatus.PENDING), []
        )

        with self.assertRaises(ValueError):
            await crud.submit_quote("", "x@example.com")
        with self.assertRaises(ValueError):
            await crud.submit_quote("Guest", "not-an-email")

    async def test_update_quote_status(self):
        quote = await crud.update_quote_status(2, models.QuoteStatus.REJECTED)
        self.assertEqual(quote.status, models.QuoteStatus.REJECTED)
        quote = await crud.update_quote_status(2, models.QuoteStatus.APPROVED)
        self.assertEqual(quote.status, models.QuoteStatus.APPROVED)

        with self.assertRaises(ValueError):
            await crud.update_quote_status(2, models.QuoteStatus.PENDING)
        with self.assertRaises(crud.RecordNotFound):
            await crud.update_quote_status(99, models.QuoteStatus.APPROVED)

    # ---------- Contact messages ----------

    async def test_submit_and_list_messages(self):
        message_id = await crud.submit_message(
            "Sam", "sam@example.com", " Returns ", "Can I return a jack?"
        )
        inbox = await crud.list_messages()
        self.assertEqual([m.id for m in inbox], [message_id, 2, 1])
        self.assertEqual(inbox[0].subject, "Returns")
        self.assertEqual(inbox[0].status, models.MessageStatus.PENDING)
        self.assertEqual(inbox[2].admin_reply, "Yes, 10am to 2pm.")
        self.assertIsNotNone(inbox[2].replied_at)

        pending = await crud.list_messages(models.MessageStatus.PENDING)
        self.assertEqual([m.id for m in pending], [message_id, 2])

        with self.assertRaises(ValueError):
            await crud.submit_message("Sam", "sam@example.com", "", "body")
        with self.assertRaises(ValueError):
            await crud.submit_message("Sam", "sam@example.com", "Subject", "  ")

    async def test_reply_and_close_messages(self):
        with self.assertRaises(ValueError):
            await crud.reply_to_message(2, "   ")
        msg = await crud.reply_to_message(2, "Yes, within two days.")
        self.assertEqual(msg.status, models.MessageStatus.REPLIED)
        self.assertEqual(msg.admin_reply, "Yes, within two days.")
        self.assertIsNotNone(msg.replied_at)

        # a reply can be revised, but a replied message is not closed
        msg = await crud.reply_to_message(2, "Yes, within three days.")
        self.assertEqual(msg.admin_reply, "Yes, within three days.")
        with self.assertRaises(ValueError):
            await crud.close_message(2)

        message_id = await crud.submit_message("Sam", "sam@example.com", "Spam", "Hi")
        msg = await crud.close_message(message_id)
        self.assertEqual(msg.status, models.MessageStatus.CLOSED)
        with self.assertRaises(ValueError):
            await crud.reply_to_message(message_id, "Too late")
        with self.assertRaises(crud.RecordNotFound):
            await crud.close_message(99)

    # ---------- Analytics ----------

    async def test_sales_summary_on_seed_data(self):
        summary = await crud.sales_summary(10, Decimal("0.30"))
        self.assertEqual(summary["total_orders"], 2)
        self.assertEqual(summary["completed_orders"], 1)
        self.assertEqual(summary["pending_orders"], 1)
        self.assertEqual(summary["cancelled_orders"], 0)
        self.assertEqual(summary["total_revenue"], Decimal("2690.00"))
        self.assertEqual(summary["average_order_value"], Decimal("2044.75"))
        self.assertEqual(summary["estimated_profit"], Decimal("807.00"))
        self.assertEqual(summary["active_products"], 5)
        self.assertEqual(summary["out_of_stock_items"], 1)
        self.assertEqual(summary["low_stock_items"], 2)
        self.assertEqual(summary["pending_quotes"], 1)
        self.assertEqual(summary["pending_messages"], 1)

    async def test_sales_summary_ignores_cancelled(self):
        order_id = await self._place(2001, 1)
        await crud.update_order_status(order_id, OrderStatus.CANCELLED, admin=True)
        summary = await crud.sales_summary(10, Decimal("0.30"))
        self.assertEqual(summary["cancelled_orders"], 1)
        self.assertEqual(summary["total_revenue"], Decimal("2690.00"))
        self.assertEqual(summary["average_order_value"], Decimal("2044.75"))

    async def test_top_products_by_quantity(self):
        self.assertEqual(
            await crud.top_products_by_quantity(k=1),
            [(2001, "Steel Bracket", 2)],
        )
        # 2002 and 2003 tie for second place
        with_ties = await crud.top_products_by_quantity(k=2)
        self.assertEqual([r[0] for r in with_ties], [2001, 2002, 2003])
        without_ties = await crud.top_products_by_quantity(k=2, include_ties_at_k=False)
        self.assertEqual([r[0] for r in without_ties], [2001, 2002])
        self.assertEqual(await crud.top_products_by_quantity(k=0), [])

        order_id = await self._place(2005, 3)
        top = await crud.top_products_by_quantity(k=1)
        self.assertEqual(top, [(2005, "Angle Grinder", 3)])
        await crud.update_order_status(order_id, OrderStatus.CANCELLED, admin=True)
        self.assertEqual((await crud.top_products_by_quantity(k=1))[0][0], 2001)


if __name__ == "__main__":
    unittest.main()
