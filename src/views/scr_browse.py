from textual import events, on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.validation import Number
from textual.widgets import DataTable, Input, Label

import db.crud
from cart.pricing import format_amount
from utils.config import LOW_STOCK_THRESHOLD, PAGE_SIZE
from utils.messages import CartChangedMessage
from utils.pure import page_count, stock_label
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal


class BrowseScreen(BaseScreen):
    """
    product catalogue for customers; only active products are listed
    """

    # footer hints only
    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)
    query_str = reactive("")

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Input(id="input-search", placeholder="Search by name, description or category...")
        yield DataTable(id="table-products")
        with Horizontal(id="hort-table-control"):
            yield Input("1", id="input-page", type="integer")
            yield Label(" / 1", id="label-total-page-cnt")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price", "Availability")

        self.update_results("", 1)
        self.query_one("#input-search").focus()

    def action_noop(self) -> None:
        pass

    @on(Input.Changed, "#input-search")
    def handle_search_changed(self, message: Input.Changed) -> None:
        self.query_str = message.value
        self.page_idx = 1
        self.update_results(self.query_str, 1)

    @on(Input.Changed, "#input-page")
    def handle_page_changed(self, message: Input.Changed) -> None:
        if message.value and message.value.isdigit():
            self.page_idx = int(message.value)

    def validate_page_idx(self, page_idx: int) -> int:
        return max(1, min(page_idx, self.page_cnt))

    def watch_page_idx(self, old: int, new: int) -> None:
        if old == new:
            return
        self.query_one("#input-page", Input).value = str(new)
        self.update_results(self.query_str, new)

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            product_id = int(table.get_row_at(table.cursor_row)[0])
            self.open_detail(product_id)

    @work()
    async def open_detail(self, product_id: int) -> None:
        if await self.app.push_screen_wait(ProdDetailModal(product_id)):
            self.app.post_message(CartChangedMessage())

    @work(exclusive=True)
    async def update_results(self, query: str, page: int) -> None:
        products, total = await db.crud.list_active_products(query, page, PAGE_SIZE)

        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(
                p.id,
                p.name,
                p.category,
                format_amount(p.price),
                stock_label(p.stock, LOW_STOCK_THRESHOLD),
            )
        self.page_cnt = page_count(total, PAGE_SIZE)
        self.query_one("#label-total-page-cnt", Label).update(f" / {self.page_cnt}")
        self.query_one("#input-page", Input).validators = [
            Number(minimum=1, maximum=self.page_cnt)
        ]
