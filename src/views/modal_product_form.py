from decimal import Decimal, InvalidOperation
from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label

import db.crud


class ProductFormModal(ModalScreen[Optional[int]]):
    """
    New catalogue entry. Dismisses with the new product id, or None if cancelled.
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="div-product-form"):
            with VerticalScroll():
                yield Label("Name")
                yield Input(id="input-new-name")
                yield Label("Description")
                yield Input(id="input-new-desc")
                yield Label("Category")
                yield Input(placeholder="Tools", id="input-new-category")
                yield Label("Price")
                yield Input(
                    value="0.00",
                    type="number",
                    validators=[Number(minimum=0.0)],
                    id="input-new-price",
                )
                yield Label("Stock")
                yield Input(
                    value="0",
                    type="integer",
                    validators=[Number(minimum=0)],
                    id="input-new-stock",
                )
            with Horizontal():
                yield Button("Cancel", id="btn-quit")
                yield Button("Create", id="btn-create", variant="success")

    def on_mount(self):
        self.query_one("#input-new-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)

    @on(Button.Pressed, "#btn-create")
    @work(exclusive=True)
    async def handle_create(self) -> None:
        price_input = self.query_one("#input-new-price", Input)
        stock_input = self.query_one("#input-new-stock", Input)
        try:
            price = Decimal(price_input.value)
        except InvalidOperation:
            price_input.add_class("-invalid")
            price_input.focus()
            return
        if not stock_input.value.isdigit():
            stock_input.add_class("-invalid")
            stock_input.focus()
            return

        try:
            product_id = await db.crud.create_product(
                self.query_one("#input-new-name", Input).value,
                self.query_one("#input-new-desc", Input).value,
                self.query_one("#input-new-category", Input).value,
                price,
                int(stock_input.value),
            )
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        self.dismiss(product_id)
