import unittest
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from cart.status import OrderStatus
from db.models import ContactMessage, MessageStatus, Order, OrderItem, Quote, QuoteStatus
from utils.config import COMPANY_NAME, CURRENCY_SYMBOL
from views.modal_invoice import invoice_markdown, invoice_number
from views.scr_admin_messages import message_markdown
from views.scr_quotes import quotes_markdown


def _order(**kwargs) -> Order:
    fields = dict(
        id=1,
        user_id=1001,
        customer_name="Alice Kumar",
        customer_email="alice@example.com",
        customer_phone="9876543210",
        shipping_address="12 MG Road, Pune",
        status=OrderStatus.COMPLETED,
        total_amount=Decimal("2690.00"),
        created_at=datetime(2025, 10, 28, 10, 15),
    )
    fields.update(kwargs)
    return Order(**fields)


def _quote(id: int, status: QuoteStatus, message=None) -> Quote:
    return Quote(
        id=id,
        user_id=1001,
        customer_name="Alice Kumar",
        customer_email="alice@example.com",
        phone=None,
        message=message,
        status=status,
        created_at=datetime(2025, 10, 20, 9, 0),
    )


class InvoiceTestCase(unittest.TestCase):
    def test_invoice_number_is_zero_padded(self):
        self.assertEqual(invoice_number(1), "INV-000001")
        self.assertEqual(invoice_number(1234567), "INV-1234567")

    def test_invoice_lists_frozen_line_prices(self):
        items = [
            OrderItem(2001, 2, Decimal("120.00"), Decimal("240.00"), 1, "Steel Bracket"),
            OrderItem(2002, 1, Decimal("2450.00"), Decimal("2450.00"), 1, "Hydraulic Jack"),
        ]
        md = invoice_markdown(_order(), items)
        self.assertIn(COMPANY_NAME, md)
        self.assertIn("INVOICE INV-000001", md)
        self.assertIn("Date: 2025-10-28", md)
        self.assertIn("Status: Completed", md)
        self.assertIn("12 MG Road, Pune", md)
        self.assertIn("Steel Bracket", md)
        self.assertIn(f"{CURRENCY_SYMBOL}240.00", md)
        self.assertIn(f"**Total: {CURRENCY_SYMBOL}2690.00**", md)
        self.assertNotIn("Notes:", md)
        self.assertNotIn("_No items found._", md)

    def test_invoice_without_lines(self):
        md = invoice_markdown(_order(notes="Call before delivery"), [])
        self.assertIn("_No items found._", md)
        self.assertIn("Notes: Call before delivery", md)

    def test_deleted_product_falls_back_to_id(self):
        items = [OrderItem(2999, 1, Decimal("10.00"), Decimal("10.00"), 1)]
        self.assertIn("Product 2999", invoice_markdown(_order(), items))


class QuotesMarkdownTestCase(unittest.TestCase):
    def test_counts_and_notes(self):
        md = quotes_markdown(
            [
                _quote(2, QuoteStatus.PENDING, "10 angle grinders"),
                _quote(1, QuoteStatus.APPROVED),
            ]
        )
        self.assertIn("| Pending | Approved | Rejected |", md)
        self.assertIn("| 1 | 1 | 0 |", md)
        self.assertIn("Quote #2  (Pending)", md)
        self.assertIn("> 10 angle grinders", md)
        self.assertIn("has been approved", md)
        self.assertLess(md.index("Quote #2"), md.index("Quote #1"))

    def test_no_quotes(self):
        md = quotes_markdown([])
        self.assertIn("| 0 | 0 | 0 |", md)
        self.assertIn("You have not requested any quotes yet.", md)


class MessageMarkdownTestCase(unittest.TestCase):
    def test_reply_shown_once_answered(self):
        msg = ContactMessage(
            id=1,
            customer_name="Ravi Shah",
            customer_email="ravi@example.com",
            subject="Showroom hours",
            message="Are you open on Sundays?",
            status=MessageStatus.PENDING,
            created_at=datetime(2025, 10, 30, 18, 5),
        )
        md = message_markdown(msg)
        self.assertIn("Showroom hours  (Pending)", md)
        self.assertNotIn("Reply", md)

        answered = replace(
            msg,
            status=MessageStatus.REPLIED,
            admin_reply="Yes, 10am to 2pm.",
            replied_at=datetime(2025, 10, 31, 9, 12),
        )
        md = message_markdown(answered)
        self.assertIn("#### Reply (2025-10-31 09:12)", md)
        self.assertIn("Yes, 10am to 2pm.", md)

    def test_empty_inbox(self):
        self.assertEqual(message_markdown(None), "### No messages.")
