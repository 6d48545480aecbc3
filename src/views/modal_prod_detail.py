from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from cart.pricing import format_amount
from db.crud import get_product
from db.models import Product
from utils.config import LOW_STOCK_THRESHOLD
from utils.pure import generate_markdown_table, stock_label


class ProdDetailModal(ModalScreen[bool]):
    """
    product detail plus "add to cart"
    dismisses with True if the cart changed
    """

    order_qty = reactive(1)

    def __init__(self, product_id: int) -> None:
        super().__init__()

        self._product_id = product_id
        self._prod: Product | None = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical(id="div-order-controls"):
                yield Label("Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                yield Label("", id="label-in-cart")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        self._prod = await get_product(self._product_id)
        if self._prod is None or not self._prod.is_active:
            self.app.notify("Product not found.", severity="error")
            self.dismiss(False)
            return
        prod = self._prod

        rows = [
            ["Price", format_amount(prod.price)],
            ["Category", prod.category or "-"],
            ["Availability", f"{stock_label(prod.stock, LOW_STOCK_THRESHOLD)} ({prod.stock})"],
        ]
        rows.extend([k, v] for k, v in prod.specifications.items())
        md = f"### {prod.name}\n\n{prod.description}\n\n"
        md += generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
        if prod.image_refs:
            md += "\n\n**Images:** " + ", ".join(prod.image_refs)
        await self.query_one(MarkdownViewer).document.update(md)

        if prod.stock < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"
        self.query_one("#input-order-qty").validators = [
            Number(minimum=1, maximum=max(prod.stock, 1))
        ]

        in_cart = self.app.state.cart.read_cart().find(prod.id)
        if in_cart:
            self.query_one("#label-in-cart", Label).update(
                f"Already in cart: {in_cart.quantity}"
            )

        self.query_one("#input-order-qty").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    async def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def validate_order_qty(self, qty: int) -> int:
        upper = self._prod.stock if self._prod else 1
        return max(1, min(qty, max(upper, 1)))

    def watch_order_qty(self, qty: int) -> None:
        if self._prod is None:
            return
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = qty >= self._prod.stock
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        # stock is checked again at checkout, the cart only keeps a snapshot
        self.app.state.cart.add_item(self._prod, self.order_qty)
        self.app.notify("Added to cart!")
        self.dismiss(True)
