from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer, OptionList, Switch
from textual.widgets.option_list import Option

from cart.pricing import format_amount
from db.crud import (
    delete_product,
    get_product,
    low_stock_products,
    search_products_admin,
    update_product,
)
from db.models import Product
from utils.config import LOW_STOCK_THRESHOLD
from utils.messages import ModeSwitchedMessage, NewOrderMessage, OrderStatusChangedMessage
from utils.pure import generate_markdown_table, stock_label
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal
from views.modal_product_form import ProductFormModal


class AdminStockScreen(BaseScreen):
    """
    Stock & price management. Lists products running low, and lets an
    admin look up any product to change its price, stock or visibility.
    Products can also be added, and removed if they were never ordered.
    """

    current_id: Optional[int] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-filter"):
                yield Input(id="input-search", placeholder="Search by id or name...")
                yield Button("New Product", id="btn-new-product", variant="primary")
            yield OptionList(id="optlist-prods")
            yield MarkdownViewer(id="md-prod", show_table_of_contents=False)
            with Horizontal(id="hort-controls"):
                with Vertical():
                    yield Label("Price:")
                    yield Input(
                        id="input-price",
                        type="number",
                        validators=[Number(minimum=0.0)],
                    )
                with Vertical():
                    yield Label("Stock:")
                    yield Input(
                        id="input-stock",
                        type="integer",
                        validators=[Number(minimum=0)],
                    )
                with Vertical():
                    yield Label("Active:")
                    yield Switch(id="switch-active")
                yield Button("Update", id="btn-update", variant="success")
                yield Button("Delete", id="btn-delete", variant="error")

    def on_mount(self) -> None:
        self.query_one("#input-search", Input).focus()
        self.query_one("#hort-controls").add_class("hidden")
        self.render_overview()

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    @on(OrderStatusChangedMessage)
    def handle_refresh(self) -> None:
        if self.current_id is None:
            self.render_overview()
        else:
            self.render_product()

    @on(Input.Changed, "#input-search")
    def handle_search(self, message: Input.Changed) -> None:
        self.query_one("#optlist-prods").remove_class("hidden")
        self.update_optlist(message.value)

    def on_option_list_option_selected(self, message: OptionList.OptionSelected):
        self.current_id = int(message.option.id)
        self.render_product()
        self.query_one("#optlist-prods").add_class("hidden")
        self.query_one("#hort-controls").remove_class("hidden")

    @work(exclusive=True, group="search")
    async def update_optlist(self, query: str):
        results: List[Product] = await search_products_admin(query)
        opt_list = self.query_one("#optlist-prods", OptionList)
        opt_list.clear_options()
        opt_list.add_options([_option(p) for p in results])

    @work(exclusive=True, group="render")
    async def render_overview(self) -> None:
        products = await low_stock_products(LOW_STOCK_THRESHOLD)
        rows = [
            [p.id, p.name, p.stock, stock_label(p.stock, LOW_STOCK_THRESHOLD)]
            for p in products
        ]
        md = f"### Low Stock (at most {LOW_STOCK_THRESHOLD} left)\n\n"
        md += (
            generate_markdown_table(["ID", "Name", "Stock", "Status"], rows, ["r", "l", "r", "l"])
            if rows
            else "All active products are well stocked."
        )
        await self.query_one("#md-prod", MarkdownViewer).document.update(md)

    @work(exclusive=True, group="render")
    async def render_product(self) -> None:
        prod = await get_product(self.current_id)
        if prod is None:
            self.notify("Product no longer exists.", severity="error")
            self.current_id = None
            self.query_one("#hort-controls").add_class("hidden")
            return

        rows = [
            ["ID", prod.id],
            ["Category", prod.category or "-"],
            ["Price", format_amount(prod.price)],
            ["Stock", f"{prod.stock} ({stock_label(prod.stock, LOW_STOCK_THRESHOLD)})"],
            ["Active", "Yes" if prod.is_active else "No"],
        ]
        rows.extend([k, v] for k, v in prod.specifications.items())
        md_table = generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
        await self.query_one("#md-prod", MarkdownViewer).document.update(
            f"### {prod.name}\n\n{prod.description}\n\n" + md_table
        )

        self.query_one("#input-price", Input).value = f"{prod.price:.2f}"
        self.query_one("#input-stock", Input).value = str(prod.stock)
        self.query_one("#switch-active", Switch).value = prod.is_active

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True, group="update")
    async def handle_update(self) -> None:
        prod = await get_product(self.current_id)
        if prod is None:
            return

        price_input = self.query_one("#input-price", Input)
        stock_input = self.query_one("#input-stock", Input)
        try:
            new_price = Decimal(price_input.value)
        except InvalidOperation:
            price_input.focus()
            price_input.add_class("-invalid")
            return
        if not stock_input.value.isdigit():
            stock_input.focus()
            stock_input.add_class("-invalid")
            return
        new_stock = int(stock_input.value)
        new_active = self.query_one("#switch-active", Switch).value

        if (new_price, new_stock, new_active) == (prod.price, prod.stock, prod.is_active):
            self.notify("Nothing to update.", severity="warning")
            return

        try:
            updated = await update_product(
                prod.id, price=new_price, stock=new_stock, is_active=new_active
            )
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        if updated:
            self.notify("Product updated successfully.")
        else:
            self.notify("Update failed.", severity="error")
        self.render_product()

    @on(Button.Pressed, "#btn-new-product")
    @work(exclusive=True, group="update")
    async def handle_new_product(self) -> None:
        product_id = await self.app.push_screen_wait(ProductFormModal())
        if product_id is None:
            return
        self.notify(f"Product {product_id} created.")
        self.current_id = product_id
        self.query_one("#optlist-prods").add_class("hidden")
        self.query_one("#hort-controls").remove_class("hidden")
        self.render_product()

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True, group="update")
    async def handle_delete(self) -> None:
        prod = await get_product(self.current_id)
        if prod is None:
            return
        confirmed = await self.app.push_screen_wait(
            DialogModal(
                f"Delete {prod.name}? This cannot be undone.",
                primary_text="Delete",
                secondary_text="Keep",
                tone="error",
            )
        )
        if not confirmed:
            return
        try:
            deleted = await delete_product(prod.id)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        if deleted:
            self.notify(f"{prod.name} deleted.")
        else:
            self.notify("Product no longer exists.", severity="warning")
        self.current_id = None
        self.query_one("#hort-controls").add_class("hidden")
        self.render_overview()


def _option(p: Product) -> Option:
    suffix = "" if p.is_active else "  (inactive)"
    return Option(f"{p.id} {p.name} - {p.stock} in stock{suffix}", id=str(p.id))
