from __future__ import annotations

from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer, Select

import db.crud
from cart.pricing import format_amount
from cart.status import InvalidTransition, OrderStatus, next_statuses
from db.crud import OrderNotFound
from utils.config import PAGE_SIZE
from utils.messages import ModeSwitchedMessage, NewOrderMessage, OrderStatusChangedMessage
from utils.pure import page_count
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.modal_invoice import InvoiceModal
from views.scr_my_orders import order_detail_markdown


class AdminOrdersScreen(BaseScreen):
    """
    All orders, filterable by status. The status picker only offers the
    transitions the order lifecycle allows from the selected order's status.
    """

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._selected: Optional[int] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filter"):
            yield Label("Show:")
            yield Select(
                [(s.label, s.value) for s in OrderStatus],
                prompt="All statuses",
                id="select-filter",
            )
        with Vertical():
            yield DataTable(id="table-orders")
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label("1 / 1", id="label-page")
            yield Button(">", id="btn-next")
            yield Select([], prompt="Move to...", id="select-status", disabled=True)
            yield Button("Apply", id="btn-apply-status", variant="success", disabled=True)
            yield Button("Invoice", id="btn-invoice", disabled=True)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Customer", "Status", "Total")
        self._load_orders(1)

    def _status_filter(self) -> Optional[OrderStatus]:
        value = self.query_one("#select-filter", Select).value
        return OrderStatus(value) if isinstance(value, str) else None

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    @on(Select.Changed, "#select-filter")
    def handle_refresh(self) -> None:
        self.page_idx = 1
        self._load_orders(1)

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

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value:
            self._selected = int(event.row_key.value)
            self._load_detail(self._selected)

    @on(Select.Changed, "#select-status")
    def handle_target_changed(self, event: Select.Changed) -> None:
        self.query_one("#btn-apply-status", Button).disabled = not isinstance(
            event.value, str
        )

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        orders, total = await db.crud.list_all_orders(self._status_filter(), page, PAGE_SIZE)
        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.id,
                f"{o.created_at:%Y-%m-%d %H:%M}",
                o.customer_name,
                o.status.label,
                format_amount(o.total_amount),
                key=str(o.id),
            )
        self.page_cnt = page_count(total, PAGE_SIZE)
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        self.query_one("#label-page", Label).update(f"{self.page_idx} / {self.page_cnt}")
        if orders:
            table.move_cursor(row=0)
            self._selected = orders[0].id
            self._load_detail(orders[0].id)
        else:
            self._selected = None
            await self.query_one("#md-order-detail", MarkdownViewer).document.update(
                f"### {total} orders"
            )
            self._offer_statuses(None)

    @work(exclusive=True, group="detail")
    async def _load_detail(self, order_id: int) -> None:
        order, items = await db.crud.get_order_detail(order_id)
        await self.query_one("#md-order-detail", MarkdownViewer).document.update(
            order_detail_markdown(order, items)
        )
        self._offer_statuses(order.status if order else None)

    def _offer_statuses(self, current: Optional[OrderStatus]) -> None:
        self.query_one("#btn-invoice", Button).disabled = current is None
        select = self.query_one("#select-status", Select)
        options = next_statuses(current, admin=True) if current else []
        select.set_options([(s.label, s.value) for s in options])
        select.disabled = not options
        self.query_one("#btn-apply-status", Button).disabled = True

    @on(Button.Pressed, "#btn-apply-status")
    @work(exclusive=True, group="update")
    async def handle_apply_status(self) -> None:
        value = self.query_one("#select-status", Select).value
        if self._selected is None or not isinstance(value, str):
            return
        target = OrderStatus(value)
        if target == OrderStatus.CANCELLED and not await self.app.push_screen_wait(
            DialogModal(
                f"Cancel order #{self._selected}? Its items go back into stock.",
                primary_text="Cancel Order",
                secondary_text="Keep",
                tone="error",
            )
        ):
            return

        try:
            order = await db.crud.update_order_status(self._selected, target, admin=True)
        except (InvalidTransition, OrderNotFound) as exc:
            self.notify(str(exc), severity="error")
        else:
            self.notify(f"Order #{order.id} is now {order.status.label}.")
            self.app.post_message(OrderStatusChangedMessage(order.id, order.status.value))
        self._load_orders(self.page_idx)

    @on(Button.Pressed, "#btn-invoice")
    def handle_invoice(self) -> None:
        if self._selected is not None:
            self.app.push_screen(InvoiceModal(self._selected))
