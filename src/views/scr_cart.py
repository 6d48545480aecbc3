from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Label, Markdown, Rule

from cart.models import CartLine
from cart.pricing import PENDING_LABEL, format_amount, line_total, summarize
from utils.messages import CartChangedMessage, ModeSwitchedMessage, NewOrderMessage
from utils.pure import generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal


class CartItemActionRemoveMessage(Message):
    bubble = True

    def __init__(self, product_id: int) -> None:
        super().__init__()
        self.product_id = product_id


class CartItemWidget(HorizontalGroup):
    """One cart line: name, unit price, -/+ quantity, line total and remove."""

    def __init__(self, line: CartLine):
        super().__init__()
        self.line = line

    def compose(self) -> ComposeResult:
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(self.line.name, id="label-item-name")
                yield Label(
                    f"{format_amount(self.line.unit_price)} each", id="label-item-price"
                )
                yield Label(format_amount(line_total(self.line)), id="label-item-total")
            with Container(id="div-actions"):
                yield Button("-", id="btn-item-dec", disabled=self.line.quantity <= 1)
                yield Label(str(self.line.quantity), id="label-item-qty")
                yield Button("+", id="btn-item-inc")
                yield Button("Remove", id="btn-item-remove", variant="error")

    @on(Button.Pressed, "#btn-item-dec")
    def handle_decrement(self) -> None:
        self.app.state.cart.adjust_quantity(self.line.product_id, -1)
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-item-inc")
    def handle_increment(self) -> None:
        self.app.state.cart.adjust_quantity(self.line.product_id, 1)
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-item-remove")
    def handle_remove(self) -> None:
        self.post_message(CartItemActionRemoveMessage(self.line.product_id))


class CartScreen(BaseScreen):
    """
    cart lines with quantity controls, order summary, checkout
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Label("", id="label-cart-count")
        yield VerticalScroll(id="vertscroll-content")
        yield Markdown("", id="md-cart-summary")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(NewOrderMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # exclusive, else two refreshes can mount duplicates
    async def handle_cart_change(self):
        cart = self.app.state.cart.read_cart()

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        await content.mount_all([CartItemWidget(line) for line in cart])
        content.set_class(cart.is_empty, "no-items")

        self.query_one("#label-cart-count", Label).update(
            f"{len(cart)} item(s) in your cart"
            if not cart.is_empty
            else "Your cart is empty. Browse products to add some."
        )

        summary = summarize(cart)
        rows = [
            ["Subtotal", format_amount(summary.subtotal)],
            ["Tax", PENDING_LABEL],
            ["Shipping", PENDING_LABEL],
            ["**Total**", f"**{format_amount(summary.total)}**"],
        ]
        await self.query_one("#md-cart-summary", Markdown).update(
            "#### Order Summary\n\n" + generate_markdown_table(None, rows, ["l", "r"])
        )
        self.query_one("#btn-checkout", Button).disabled = cart.is_empty

    @on(CartItemActionRemoveMessage)
    @work()
    async def handle_remove_item(self, message: CartItemActionRemoveMessage):
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove this item from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )
        if remove_confirmed:
            self.app.state.cart.remove_item(message.product_id)
            self.post_message(CartChangedMessage())
            self.notify("Item removed from cart.", severity="information")

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if self.app.state.cart.read_cart().is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        )
        if remove_confirmed:
            self.app.state.cart.clear()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if self.app.state.cart.read_cart().is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal())
        if order_id:
            self.app.post_message(NewOrderMessage(order_id))
        self.post_message(CartChangedMessage())
