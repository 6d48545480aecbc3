from typing import List

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, MarkdownViewer

import db.crud
from cart.pricing import PENDING_LABEL, format_amount
from db.models import Order, OrderItem
from utils.config import (
    COMPANY_ADDRESS,
    COMPANY_DESCRIPTION,
    COMPANY_EMAIL,
    COMPANY_NAME,
    COMPANY_PHONE,
)
from utils.pure import generate_markdown_table


def invoice_number(order_id: int) -> str:
    return f"INV-{order_id:06d}"


def invoice_markdown(order: Order, items: List[OrderItem]) -> str:
    """Printable invoice for an order, using the prices frozen on its lines."""
    rows = [
        [
            it.product_name or f"Product {it.product_id}",
            it.quantity,
            format_amount(it.unit_price),
            format_amount(it.subtotal),
        ]
        for it in items
    ]
    lines = (
        generate_markdown_table(
            ["Item", "Qty", "Unit Price", "Amount"], rows, ["l", "r", "r", "r"]
        )
        if rows
        else "_No items found._"
    )

    md = (
        f"## {COMPANY_NAME}\n\n"
        f"{COMPANY_ADDRESS}  \nEmail: {COMPANY_EMAIL}  \nPhone: {COMPANY_PHONE}\n\n"
        f"### INVOICE {invoice_number(order.id)}\n\n"
        f"Date: {order.created_at:%Y-%m-%d}  \n"
        f"Status: {order.status.label}\n\n"
        "#### Bill To\n\n"
        f"{order.customer_name}  \n{order.customer_email}  \n{order.customer_phone}\n\n"
        "#### Ship To\n\n"
        f"{order.shipping_address}\n\n"
        f"{lines}\n\n"
        f"Tax and shipping: {PENDING_LABEL.lower()}.  \n"
        f"**Total: {format_amount(order.total_amount)}**\n"
    )
    if order.notes:
        md += f"\nNotes: {order.notes}\n"
    md += f"\n---\n\nThank you for your business!  \n{COMPANY_DESCRIPTION}\n"
    return md


class InvoiceModal(ModalScreen[None]):
    """Invoice of one order; any order the caller can already see."""

    def __init__(self, order_id: int) -> None:
        super().__init__()
        self._order_id = order_id

    def compose(self) -> ComposeResult:
        with Vertical(id="div-invoice"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Horizontal():
                yield Button("Close", id="btn-quit", variant="primary")

    async def on_mount(self):
        order, items = await db.crud.get_order_detail(self._order_id)
        if order is None:
            self.app.notify("Order not found.", severity="error")
            self.dismiss(None)
            return
        await self.query_one(MarkdownViewer).document.update(invoice_markdown(order, items))
        self.query_one("#btn-quit").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
