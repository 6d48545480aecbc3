from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer

import db.crud
from cart.pricing import format_amount
from db.models import Order, OrderItem
from utils.config import PAGE_SIZE
from utils.messages import ModeSwitchedMessage, NewOrderMessage, OrderStatusChangedMessage
from utils.pure import generate_markdown_table, page_count
from views.base_screen import BaseScreen
from views.modal_invoice import InvoiceModal


def order_detail_markdown(order: Optional[Order], items: List[OrderItem]) -> str:
    if order is None:
        return "### Select an order to view its details."

    header = (
        f"### Order #{order.id}  ({order.status.label})\n"
        f"Placed: {order.created_at:%Y-%m-%d %H:%M}  \n"
        f"Customer: {order.customer_name}, {order.customer_email}, {order.customer_phone}  \n"
        f"Ship To: {order.shipping_address}\n\n"
    )
    if order.notes:
        header += f"Notes: {order.notes}\n\n"
    rows = [
        [
            it.product_name or f"Product {it.product_id}",
            it.quantity,
            format_amount(it.unit_price),
            format_amount(it.subtotal),
        ]
        for it in items
    ]
    table = generate_markdown_table(
        ["Product", "Qty", "Unit Price", "Line Total"], rows, ["l", "r", "r", "r"]
    )
    return header + table + f"\n\n**Total:** {format_amount(order.total_amount)}"


class MyOrdersScreen(BaseScreen):
    """
    Order history of the signed-in customer, newest first, with the
    status of each order and the prices frozen at the time it was placed.
    Guests are asked to sign in.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)
    _selected: Optional[int] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
            yield Button("Invoice", id="btn-invoice", disabled=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Status", "Total")
        self._load_orders(1)

    def action_noop(self) -> None:
        pass

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    @on(OrderStatusChangedMessage)
    def handle_refresh(self):
        self.page_idx = 1
        self._load_orders(1)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value:
            self._selected = int(event.row_key.value)
            self._load_and_render_detail(self._selected)

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1
            self._load_orders(self.page_idx)

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1
            self._load_orders(self.page_idx)

    def _refresh_controls(self) -> None:
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        detail = self.query_one("#md-order-detail", MarkdownViewer)
        table = self.query_one(DataTable)
        table.clear()

        uid = self.app.state.uid
        if uid is None:
            await detail.document.update(
                "### Sign in to track your orders.\n\n"
                "Orders placed as a guest are confirmed by their order number."
            )
            self._selected = None
            self.query_one("#btn-invoice", Button).disabled = True
            self.page_cnt = 1
            self._refresh_controls()
            return

        orders, total = await db.crud.list_orders_for_user(uid, page, PAGE_SIZE)
        for o in orders:
            table.add_row(
                o.id,
                f"{o.created_at:%Y-%m-%d %H:%M}",
                o.status.label,
                format_amount(o.total_amount),
                key=str(o.id),
            )
        self.page_cnt = page_count(total, PAGE_SIZE)
        self._refresh_controls()
        self._selected = orders[0].id if orders else None
        self.query_one("#btn-invoice", Button).disabled = self._selected is None
        if orders:
            table.move_cursor(row=0)
            self._load_and_render_detail(orders[0].id)
        else:
            await detail.document.update("### You have not placed any orders yet.")

    @work(exclusive=True, group="detail")
    async def _load_and_render_detail(self, order_id: int) -> None:
        order, items = await db.crud.get_order_detail(order_id)
        await self.query_one("#md-order-detail", MarkdownViewer).document.update(
            order_detail_markdown(order, items)
        )

    @on(Button.Pressed, "#btn-invoice")
    def handle_invoice(self) -> None:
        if self._selected is not None:
            self.app.push_screen(InvoiceModal(self._selected))
